import logging
from typing import List

from bulk_editor.core.admin_client import ShopifyAdminClient
from bulk_editor.schemas.bulk_edit import ProductTypeEdit, BulkEditResult
from bulk_editor.services.bulk_edit import (
    BulkEditValidationError,
    run_product_field_edit,
    summarize,
    crash_result,
)

logger = logging.getLogger(__name__)


async def handle_product_type_edit(
    client: ShopifyAdminClient,
    product_ids: List[str],
    edit: ProductTypeEdit
) -> BulkEditResult:
    # An empty string clears the product type, only a missing field is rejected
    if edit.newProductType is None:
        raise BulkEditValidationError("Missing required parameter: newProductType")
    new_type = edit.newProductType.strip()
    logger.info(f"Product type edit to {new_type!r} for {len(product_ids)} products")

    try:
        records = await run_product_field_edit(
            client,
            product_ids,
            "productType",
            lambda current: new_type,
            equals=lambda current, new: (current or "") == new
        )
        return summarize(records, "Product type")
    except Exception as e:
        return crash_result("Product type", e)
