import logging
from typing import List

from bulk_editor.core.admin_client import ShopifyAdminClient
from bulk_editor.schemas.bulk_edit import DescriptionEdit, BulkEditResult
from bulk_editor.services.bulk_edit import (
    BulkEditValidationError,
    require,
    run_product_field_edit,
    summarize,
    crash_result,
)
from bulk_editor.services.text import replace_literal

logger = logging.getLogger(__name__)


def validate_description_edit(edit: DescriptionEdit):
    require(edit.editType, "editType")
    if edit.editType in ("addBeginning", "addEnd") and not edit.textToAdd:
        raise BulkEditValidationError("Missing required parameter: textToAdd")
    if edit.editType in ("remove", "replace") and not edit.textToRemove:
        raise BulkEditValidationError("Missing required parameter: textToRemove")


def compute_new_description(current_html: str, edit: DescriptionEdit) -> str:
    current_html = current_html or ""
    if edit.editType == "addBeginning":
        return f"{edit.textToAdd} {current_html}"
    if edit.editType == "addEnd":
        return f"{current_html} {edit.textToAdd}"
    if edit.editType == "remove":
        if edit.textToRemove.lower() not in current_html.lower():
            return current_html
        return replace_literal(current_html, edit.textToRemove, "").strip()
    if edit.editType == "replace":
        if edit.textToRemove.lower() not in current_html.lower():
            return current_html
        return replace_literal(current_html, edit.textToRemove, edit.textToAdd).strip()
    return current_html


async def handle_description_edit(
    client: ShopifyAdminClient,
    product_ids: List[str],
    edit: DescriptionEdit
) -> BulkEditResult:
    validate_description_edit(edit)
    logger.info(f"Description edit {edit.editType} for {len(product_ids)} products")

    try:
        records = await run_product_field_edit(
            client,
            product_ids,
            "descriptionHtml",
            lambda current: compute_new_description(current, edit)
        )
        return summarize(records, "Descriptions")
    except Exception as e:
        return crash_result("Descriptions", e)
