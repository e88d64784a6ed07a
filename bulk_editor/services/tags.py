"""
Bulk editing of product tags.

Tags behave as a set: every action de-duplicates its result, and a product
whose resulting set equals its current set is skipped without a write.
"""
import asyncio
import logging
from typing import List

from bulk_editor.core.admin_client import ShopifyAdminClient
from bulk_editor.schemas.bulk_edit import TagEdit, BulkEditResult
from bulk_editor.services.bulk_edit import (
    BulkEditValidationError,
    require,
    run_product_field_edit,
    summarize,
    crash_result,
)
from bulk_editor.services.text import split_list, unique

logger = logging.getLogger(__name__)


def validate_tag_edit(edit: TagEdit):
    require(edit.tagAction, "tagAction")
    if edit.tagAction == "add_tags" and not split_list(edit.tags):
        raise BulkEditValidationError("Missing required parameter: tags")
    if edit.tagAction == "find_replace" and not split_list(edit.findTags):
        raise BulkEditValidationError("Missing required parameter: findTags")


def compute_new_tags(current: List[str], edit: TagEdit) -> List[str]:
    current = list(current or [])

    if edit.tagAction == "add_tags":
        return unique(current + split_list(edit.tags))

    if edit.tagAction == "remove":
        to_remove = set(split_list(edit.tags)) | set(edit.tagsToRemove)
        if not to_remove:
            return []
        return unique(tag for tag in current if tag not in to_remove)

    if edit.tagAction == "replace":
        return unique(split_list(edit.tags))

    if edit.tagAction == "find_replace":
        to_find = set(split_list(edit.findTags))
        kept = [tag for tag in current if tag not in to_find]
        return unique(kept + split_list(edit.replaceTags))

    return current


def same_tags(current, new) -> bool:
    return set(current or []) == set(new or [])


async def handle_tag_edit(client: ShopifyAdminClient, product_ids: List[str], edit: TagEdit) -> BulkEditResult:
    validate_tag_edit(edit)
    logger.info(f"Tag edit {edit.tagAction} for {len(product_ids)} products")

    try:
        records = await run_product_field_edit(
            client,
            product_ids,
            "tags",
            lambda current: compute_new_tags(current, edit),
            equals=same_tags
        )
        return summarize(records, "Tags")
    except Exception as e:
        return crash_result("Tags", e)


async def fetch_product_tags(client: ShopifyAdminClient, product_ids: List[str]) -> List[str]:
    """Sorted union of the tags carried by the given products."""
    logger.info(f"Fetching tags for {len(product_ids)} products")
    products = await asyncio.gather(
        *(client.get_product(product_id, ["tags"]) for product_id in product_ids)
    )
    tags = sorted({tag for product in products for tag in (product.get("tags") or [])})
    logger.info(f"Found {len(tags)} unique tags")
    return tags
