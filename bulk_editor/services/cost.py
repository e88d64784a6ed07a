"""
Bulk editing of the cost per item.

The cost lives on each variant's inventory item. It is written with
`inventoryItemUpdate`, falling back once to the REST inventory item resource
when the API version rejects the GraphQL input.
"""
import logging
from typing import List

from bulk_editor.core.admin_client import ShopifyAdminClient
from bulk_editor.schemas.bulk_edit import CostEdit, BulkEditResult, FieldError, VariantOutcome
from bulk_editor.services.bulk_edit import (
    parse_amount,
    run_variant_edit,
    write_with_fallback,
    skipped_variant,
    record_variant_write,
    summarize,
    crash_result,
)
from bulk_editor.services.price import format_money, unit_cost

logger = logging.getLogger(__name__)

COST_VARIANT_FIELDS = ["inventoryItem { id unitCost { amount } }"]


def no_inventory_item(variant_id: str, field: str) -> VariantOutcome:
    return VariantOutcome(
        variant_id=variant_id,
        errors=[FieldError(field=[field], message="No inventory item found for variant")]
    )


async def handle_cost_edit(client: ShopifyAdminClient, product_ids: List[str], edit: CostEdit) -> BulkEditResult:
    cost = parse_amount(edit.costValue, "costValue")
    new_cost = format_money(cost)
    logger.info(f"Cost per item edit to {new_cost} for {len(product_ids)} products")

    async def write(inventory_item_id: str):
        async def graphql_write():
            item, user_errors = await client.update_inventory_item(inventory_item_id, {"cost": new_cost})
            return ((item or {}).get("unitCost") or {}).get("amount") or new_cost, user_errors

        async def rest_write():
            item = await client.update_inventory_item_rest(inventory_item_id, {"cost": new_cost})
            return item.get("cost") or new_cost, []

        return await write_with_fallback(graphql_write, rest_write, f"cost update for {inventory_item_id}")

    async def edit_variant(variant: dict) -> VariantOutcome:
        item = variant.get("inventoryItem")
        if not item:
            return no_inventory_item(variant["id"], "cost")

        current = unit_cost(variant)
        original = format_money(current) if current is not None else None
        if current is not None and current == cost:
            logger.info(f"Variant {variant['id']} already costs {original}, skipping update")
            return skipped_variant(variant["id"], original)
        return await record_variant_write(variant["id"], "cost", original, lambda: write(item["id"]))

    try:
        records = await run_variant_edit(
            product_ids,
            lambda product_id: client.get_product_variants(product_id, COST_VARIANT_FIELDS),
            edit_variant
        )
        return summarize(records, "Cost per item")
    except Exception as e:
        return crash_result("Cost per item", e)
