import logging
from typing import List

from bulk_editor.core.admin_client import ShopifyAdminClient
from bulk_editor.schemas.bulk_edit import TracksInventoryEdit, BulkEditResult, VariantOutcome
from bulk_editor.services.bulk_edit import (
    parse_flag,
    run_variant_edit,
    write_with_fallback,
    skipped_variant,
    record_variant_write,
    summarize,
    crash_result,
)
from bulk_editor.services.cost import no_inventory_item

logger = logging.getLogger(__name__)

TRACKING_VARIANT_FIELDS = ["inventoryItem { id tracked }"]


async def handle_tracks_inventory_edit(
    client: ShopifyAdminClient,
    product_ids: List[str],
    edit: TracksInventoryEdit
) -> BulkEditResult:
    """Turn inventory tracking on or off for every variant."""
    tracked = parse_flag(edit.tracksInventory, "tracksInventory")
    logger.info(f"Inventory tracking {'enabled' if tracked else 'disabled'} for {len(product_ids)} products")

    async def write(inventory_item_id: str):
        async def graphql_write():
            item, user_errors = await client.update_inventory_item(inventory_item_id, {"tracked": tracked})
            return (item or {}).get("tracked", tracked), user_errors

        async def rest_write():
            item = await client.update_inventory_item_rest(inventory_item_id, {"tracked": tracked})
            return item.get("tracked", tracked), []

        return await write_with_fallback(graphql_write, rest_write, f"tracking update for {inventory_item_id}")

    async def edit_variant(variant: dict) -> VariantOutcome:
        item = variant.get("inventoryItem")
        if not item:
            return no_inventory_item(variant["id"], "tracked")
        if item.get("tracked") == tracked:
            return skipped_variant(variant["id"], tracked)
        return await record_variant_write(variant["id"], "tracked", item.get("tracked"), lambda: write(item["id"]))

    message = f"Inventory tracking {'enabled' if tracked else 'disabled'} successfully!"
    try:
        records = await run_variant_edit(
            product_ids,
            lambda product_id: client.get_product_variants(product_id, TRACKING_VARIANT_FIELDS),
            edit_variant
        )
        return summarize(records, "Inventory tracking", success_message=message)
    except Exception as e:
        return crash_result("Inventory tracking", e)
