import logging
from typing import List

from bulk_editor.core.admin_client import ShopifyAdminClient
from bulk_editor.schemas.bulk_edit import StatusEdit, BulkEditResult
from bulk_editor.schemas.product import ProductStatus
from bulk_editor.services.bulk_edit import (
    BulkEditValidationError,
    require,
    run_product_field_edit,
    summarize,
    crash_result,
)

logger = logging.getLogger(__name__)


def validate_status_edit(edit: StatusEdit) -> ProductStatus:
    require(edit.newStatus, "newStatus")
    try:
        return ProductStatus(edit.newStatus.upper())
    except ValueError:
        allowed = ", ".join(s.value for s in ProductStatus)
        raise BulkEditValidationError(f"Invalid parameter newStatus: must be one of {allowed}")


async def handle_status_edit(client: ShopifyAdminClient, product_ids: List[str], edit: StatusEdit) -> BulkEditResult:
    new_status = validate_status_edit(edit)
    logger.info(f"Status edit to {new_status.value} for {len(product_ids)} products")

    try:
        records = await run_product_field_edit(client, product_ids, "status", lambda current: new_status.value)
        return summarize(records, "Status")
    except Exception as e:
        return crash_result("Status", e)
