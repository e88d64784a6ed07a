import logging
from typing import List

from bulk_editor.core.admin_client import ShopifyAdminClient
from bulk_editor.schemas.bulk_edit import RequiresShippingEdit, BulkEditResult, VariantOutcome
from bulk_editor.services.bulk_edit import (
    parse_flag,
    run_variant_edit,
    write_with_fallback,
    skipped_variant,
    record_variant_write,
    summarize,
    crash_result,
)

logger = logging.getLogger(__name__)

SHIPPING_VARIANT_FIELDS = ["inventoryItem { id requiresShipping }"]


async def handle_requires_shipping_edit(
    client: ShopifyAdminClient,
    product_ids: List[str],
    edit: RequiresShippingEdit
) -> BulkEditResult:
    """Set whether every variant is a physical product that needs shipping."""
    requires_shipping = parse_flag(edit.requiresShipping, "requiresShipping")
    label = "enabled" if requires_shipping else "disabled"
    logger.info(f"Requires shipping {label} for {len(product_ids)} products")

    async def write(variant_id: str):
        async def graphql_write():
            _, user_errors = await client.update_variant(
                variant_id, {"inventoryItem": {"requiresShipping": requires_shipping}}
            )
            return requires_shipping, user_errors

        async def rest_write():
            updated = await client.update_variant_rest(variant_id, {"requires_shipping": requires_shipping})
            return updated.get("requires_shipping", requires_shipping), []

        return await write_with_fallback(graphql_write, rest_write, f"shipping update for {variant_id}")

    async def edit_variant(variant: dict) -> VariantOutcome:
        current = (variant.get("inventoryItem") or {}).get("requiresShipping")
        if current == requires_shipping:
            return skipped_variant(variant["id"], current)
        return await record_variant_write(variant["id"], "requiresShipping", current, lambda: write(variant["id"]))

    try:
        records = await run_variant_edit(
            product_ids,
            lambda product_id: client.get_product_variants(product_id, SHIPPING_VARIANT_FIELDS),
            edit_variant
        )
        return summarize(records, "Shipping requirements", success_message=f"Shipping requirements {label} successfully!")
    except Exception as e:
        return crash_result("Shipping requirements", e)
