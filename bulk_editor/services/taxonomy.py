"""
Product taxonomy used by the category picker.

The taxonomy ships as a flat text file, one category per line::

    gid://shopify/TaxonomyCategory/ap-2-1 : Animals & Pet Supplies > Pet Supplies > Bird Supplies

It is turned into a tree keyed by breadcrumb path and into a flat
``(label, value)`` list for autocomplete. Both are computed once per process;
a changed file needs a restart to show up.
"""
import logging
import re
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from bulk_editor.core.config import settings
from bulk_editor.schemas.category import CategoryOption, TaxonomyNode

logger = logging.getLogger(__name__)

LINE_PATTERN = re.compile(r"^(gid://shopify/TaxonomyCategory/\S+)\s+:\s+(.+)$")
PATH_SEPARATOR = " > "

TaxonomyEntry = Tuple[str, str]


def _gid(suffix: str) -> str:
    return f"gid://shopify/TaxonomyCategory/{suffix}"


FALLBACK_CATEGORIES: List[TaxonomyEntry] = [
    (_gid("ap"), "Animals & Pet Supplies"),
    (_gid("ap-1"), "Animals & Pet Supplies > Live Animals"),
    (_gid("ap-2"), "Animals & Pet Supplies > Pet Supplies"),
    (_gid("ap-2-1"), "Animals & Pet Supplies > Pet Supplies > Bird Supplies"),
    (_gid("ap-2-1-1"), "Animals & Pet Supplies > Pet Supplies > Bird Supplies > Bird Cage Accessories"),
    (_gid("ap-2-1-1-1"), "Animals & Pet Supplies > Pet Supplies > Bird Supplies > Bird Cage Accessories > Bird Cage Bird Baths"),
    (_gid("ap-2-1-1-2"), "Animals & Pet Supplies > Pet Supplies > Bird Supplies > Bird Cage Accessories > Bird Cage Food & Water Dishes"),
    (_gid("ap-2-1-2"), "Animals & Pet Supplies > Pet Supplies > Bird Supplies > Bird Cages & Stands"),
    (_gid("ap-2-1-3"), "Animals & Pet Supplies > Pet Supplies > Bird Supplies > Bird Food"),
    (_gid("ap-2-1-4"), "Animals & Pet Supplies > Pet Supplies > Bird Supplies > Bird Gyms & Playstands"),
    (_gid("ap-2-1-5"), "Animals & Pet Supplies > Pet Supplies > Bird Supplies > Bird Ladders & Perches"),
    (_gid("ap-2-1-6"), "Animals & Pet Supplies > Pet Supplies > Bird Supplies > Bird Toys"),
    (_gid("ap-2-1-7"), "Animals & Pet Supplies > Pet Supplies > Bird Supplies > Bird Treats"),
    (_gid("ap-2-2"), "Animals & Pet Supplies > Pet Supplies > Cat Supplies"),
    (_gid("ap-2-3"), "Animals & Pet Supplies > Pet Supplies > Dog Supplies"),
    (_gid("ap-2-4"), "Animals & Pet Supplies > Pet Supplies > Fish Supplies"),
    (_gid("ad"), "Apparel & Accessories"),
    (_gid("ad-1"), "Apparel & Accessories > Clothing"),
    (_gid("ad-1-1"), "Apparel & Accessories > Clothing > Men's Clothing"),
    (_gid("ad-1-2"), "Apparel & Accessories > Clothing > Women's Clothing"),
    (_gid("ad-2"), "Apparel & Accessories > Jewelry"),
    (_gid("ab"), "Arts & Entertainment"),
    (_gid("ba"), "Baby & Toddler"),
    (_gid("bun"), "Bundles"),
    (_gid("bu"), "Business & Industrial"),
    (_gid("cm"), "Cameras & Optics"),
    (_gid("el"), "Electronics"),
    (_gid("el-1"), "Electronics > Computers"),
    (_gid("el-2"), "Electronics > Audio Equipment"),
    (_gid("fo"), "Food, Beverages & Tobacco"),
    (_gid("fu"), "Furniture"),
    (_gid("ha"), "Hardware"),
    (_gid("he"), "Health & Beauty"),
    (_gid("ho"), "Home & Garden"),
    (_gid("lu"), "Luggage & Bags"),
    (_gid("ma"), "Mature"),
    (_gid("me"), "Media"),
    (_gid("of"), "Office Supplies"),
    (_gid("re"), "Religious & Ceremonial"),
    (_gid("so"), "Software"),
    (_gid("sp"), "Sporting Goods"),
    (_gid("to"), "Toys & Games"),
    (_gid("ve"), "Vehicles & Parts"),
    (_gid("other"), "Other"),
    (_gid("services"), "Services"),
    (_gid("crafts"), "Crafts"),
    (_gid("phone"), "Phone & Telecommunications"),
    (_gid("home_improvement"), "Home Improvement"),
]


def normalize_path(path: str) -> str:
    return PATH_SEPARATOR.join(part.strip() for part in path.split(">") if part.strip())


def parse_taxonomy_lines(text: str) -> List[TaxonomyEntry]:
    """(id, breadcrumb path) pairs; blank, comment and malformed lines are dropped."""
    entries = []
    for line in (text or "").splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        match = LINE_PATTERN.match(line)
        if not match:
            continue
        category_id, path = match.groups()
        path = normalize_path(path)
        if path:
            entries.append((category_id.strip(), path))
    return entries


def _sort_nodes(nodes: List[TaxonomyNode]) -> List[TaxonomyNode]:
    nodes.sort(key=lambda node: (node.name.casefold(), node.name))
    for node in nodes:
        _sort_nodes(node.children)
    return nodes


def build_taxonomy_tree(entries: List[TaxonomyEntry]) -> List[TaxonomyNode]:
    path_map: Dict[str, TaxonomyNode] = {}

    # First pass: one node per breadcrumb path
    for category_id, path in entries:
        parts = path.split(PATH_SEPARATOR)
        path_map[path] = TaxonomyNode(
            id=category_id,
            name=parts[-1],
            full_path=path,
            level=len(parts) - 1,
        )

    roots = [node for node in path_map.values() if node.level == 0]

    # Second pass: attach to the parent path; nodes without one stay out of the tree
    for path, node in path_map.items():
        if node.level == 0:
            continue
        parent = path_map.get(path.rsplit(PATH_SEPARATOR, 1)[0])
        if parent is None:
            logger.debug(f"No parent for taxonomy path {path!r}, dropping it")
            continue
        parent.children.append(node)

    return _sort_nodes(roots)


def flatten_taxonomy_tree(tree: List[TaxonomyNode]) -> List[CategoryOption]:
    result: List[CategoryOption] = []

    def traverse(node: TaxonomyNode):
        result.append(CategoryOption(label=node.full_path, value=node.id))
        for child in node.children:
            traverse(child)

    for node in tree:
        traverse(node)
    return result


class TaxonomyService:
    """Loads the taxonomy once and serves the cached tree and flat list."""

    def __init__(
        self,
        primary_path: Path = None,
        legacy_path: Path = None,
        min_entries: int = None
    ):
        self.primary_path = Path(primary_path or settings.TAXONOMY_FILE)
        self.legacy_path = Path(legacy_path or settings.TAXONOMY_LEGACY_FILE)
        self.min_entries = min_entries if min_entries is not None else settings.TAXONOMY_MIN_ENTRIES
        self._tree: Optional[List[TaxonomyNode]] = None
        self._flat: Optional[List[CategoryOption]] = None
        self.source: Optional[str] = None

    @property
    def loaded(self) -> bool:
        return self._tree is not None

    def _read_file(self) -> str:
        for path in (self.primary_path, self.legacy_path):
            try:
                if path.is_file():
                    logger.info(f"Reading taxonomy file from {path}")
                    self.source = str(path)
                    return path.read_text(encoding="utf-8")
            except OSError as e:
                logger.error(f"Error reading taxonomy file {path}: {str(e)}")
        logger.error("Taxonomy file not found at any path")
        return ""

    def _load_entries(self) -> List[TaxonomyEntry]:
        text = self._read_file()
        entries = parse_taxonomy_lines(text)
        logger.info(f"Parsed {len(entries)} taxonomy categories")

        if len(entries) < self.min_entries:
            logger.error(f"Too few taxonomy categories ({len(entries)}), using fallback list")
            self.source = "fallback"
            return list(FALLBACK_CATEGORIES)
        return entries

    def load(self) -> List[TaxonomyNode]:
        if self._tree is None:
            tree = build_taxonomy_tree(self._load_entries())
            self._flat = flatten_taxonomy_tree(tree)
            self._tree = tree
            logger.info(f"Taxonomy tree built with {len(tree)} root categories from {self.source}")
        return self._tree

    def get_tree(self) -> List[TaxonomyNode]:
        return self.load()

    def get_flat_list(self) -> List[CategoryOption]:
        self.load()
        return self._flat


taxonomy_service = TaxonomyService()
