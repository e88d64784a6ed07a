import logging
from typing import List

from bulk_editor.core.admin_client import ShopifyAdminClient
from bulk_editor.schemas.bulk_edit import BarcodeEdit, BulkEditResult, VariantOutcome
from bulk_editor.services.bulk_edit import (
    require,
    run_variant_edit,
    skipped_variant,
    record_variant_write,
    summarize,
    crash_result,
)

logger = logging.getLogger(__name__)


async def handle_barcode_edit(client: ShopifyAdminClient, product_ids: List[str], edit: BarcodeEdit) -> BulkEditResult:
    """Set the same barcode on every variant, written through the REST variant resource."""
    barcode = require(edit.barcodeValue, "barcodeValue")
    logger.info(f"Barcode edit to {barcode!r} for {len(product_ids)} products")

    async def write(variant_id: str):
        updated = await client.update_variant_rest(variant_id, {"barcode": barcode})
        return updated.get("barcode") or barcode, []

    async def edit_variant(variant: dict) -> VariantOutcome:
        original = variant.get("barcode") or ""
        if original == barcode:
            logger.info(f"Variant {variant['id']} already has barcode {original!r}, skipping update")
            return skipped_variant(variant["id"], original)
        return await record_variant_write(variant["id"], "barcode", original, lambda: write(variant["id"]))

    try:
        records = await run_variant_edit(
            product_ids,
            lambda product_id: client.get_product_variants(product_id, ["barcode"]),
            edit_variant
        )
        return summarize(records, "Barcodes")
    except Exception as e:
        return crash_result("Barcodes", e)
