import logging
from typing import List

from bulk_editor.core.admin_client import ShopifyAdminClient
from bulk_editor.schemas.bulk_edit import VendorEdit, BulkEditResult
from bulk_editor.services.bulk_edit import (
    BulkEditValidationError,
    require,
    run_product_field_edit,
    summarize,
    crash_result,
)
from bulk_editor.services.text import apply_capitalization

logger = logging.getLogger(__name__)


def validate_vendor_edit(edit: VendorEdit):
    require(edit.editType, "editType")
    if edit.editType == "updateVendor" and not (edit.newVendor or "").strip():
        raise BulkEditValidationError("Missing required parameter: newVendor")
    if edit.editType == "capitalizeVendor":
        require(edit.capitalizationType, "capitalizationType")


def compute_new_vendor(current: str, edit: VendorEdit) -> str:
    if edit.editType == "updateVendor":
        return edit.newVendor.strip()
    if edit.editType == "capitalizeVendor":
        return apply_capitalization(current or "", edit.capitalizationType)
    return current


async def handle_vendor_edit(client: ShopifyAdminClient, product_ids: List[str], edit: VendorEdit) -> BulkEditResult:
    validate_vendor_edit(edit)
    logger.info(f"Vendor edit {edit.editType} for {len(product_ids)} products")

    try:
        records = await run_product_field_edit(
            client,
            product_ids,
            "vendor",
            lambda current: compute_new_vendor(current, edit)
        )
        return summarize(records, "Vendors")
    except Exception as e:
        return crash_result("Vendors", e)
