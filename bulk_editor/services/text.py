import re
from typing import List


def apply_capitalization(text: str, capitalization_type: str) -> str:
    text = text or ""
    if capitalization_type == "titleCase":
        return " ".join(word[:1].upper() + word[1:] for word in text.lower().split(" "))
    if capitalization_type == "uppercase":
        return text.upper()
    if capitalization_type == "lowercase":
        return text.lower()
    if capitalization_type == "firstLetter":
        return text[:1].upper() + text[1:].lower()
    return text


def replace_literal(text: str, find: str, replacement: str, ignore_case: bool = True) -> str:
    """Replace every occurrence of `find`; the find text is never treated as a pattern."""
    if not find:
        return text
    flags = re.IGNORECASE if ignore_case else 0
    return re.sub(re.escape(find), lambda _: replacement, text, flags=flags)


def split_list(raw: str) -> List[str]:
    """Comma separated input to a list of trimmed, non-empty items."""
    return [item.strip() for item in (raw or "").split(",") if item.strip()]


def unique(items) -> List[str]:
    return list(dict.fromkeys(items))
