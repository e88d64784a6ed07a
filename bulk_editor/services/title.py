import logging
from typing import List

from bulk_editor.core.admin_client import ShopifyAdminClient
from bulk_editor.schemas.bulk_edit import TitleEdit, BulkEditResult
from bulk_editor.services.bulk_edit import (
    BulkEditValidationError,
    require,
    run_product_field_edit,
    summarize,
    crash_result,
)
from bulk_editor.services.text import apply_capitalization, replace_literal

logger = logging.getLogger(__name__)


def validate_title_edit(edit: TitleEdit):
    require(edit.editType, "editType")
    if edit.editType in ("addTextBeginning", "addTextEnd", "removeText", "replaceText"):
        require(edit.textToAdd, "textToAdd")
    if edit.editType == "replaceText" and edit.replacementText is None:
        raise BulkEditValidationError("Missing required parameter: replacementText")
    if edit.editType == "capitalize":
        require(edit.capitalizationType, "capitalizationType")
    if edit.editType == "truncate":
        require(edit.numberOfCharacters, "numberOfCharacters")
        if edit.numberOfCharacters <= 0:
            raise BulkEditValidationError("Invalid parameter numberOfCharacters: must be a positive number")


def compute_new_title(current: str, edit: TitleEdit) -> str:
    current = current or ""
    if edit.editType == "addTextBeginning":
        return f"{edit.textToAdd} {current}"
    if edit.editType == "addTextEnd":
        return f"{current} {edit.textToAdd}"
    if edit.editType == "removeText":
        return replace_literal(current, edit.textToAdd, "").strip()
    if edit.editType == "replaceText":
        return replace_literal(current, edit.textToAdd, edit.replacementText or "")
    if edit.editType == "capitalize":
        return apply_capitalization(current, edit.capitalizationType)
    if edit.editType == "truncate":
        return current[:edit.numberOfCharacters]
    return current


async def handle_title_edit(client: ShopifyAdminClient, product_ids: List[str], edit: TitleEdit) -> BulkEditResult:
    validate_title_edit(edit)
    logger.info(f"Title edit {edit.editType} for {len(product_ids)} products")

    try:
        records = await run_product_field_edit(
            client,
            product_ids,
            "title",
            lambda current: compute_new_title(current, edit)
        )
        return summarize(records, "Titles")
    except Exception as e:
        return crash_result("Titles", e)
