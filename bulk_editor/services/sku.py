import logging
from typing import List, Optional, Tuple

from bulk_editor.core.admin_client import ShopifyAdminClient
from bulk_editor.core.config import settings
from bulk_editor.schemas.bulk_edit import (
    SkuEdit,
    BulkEditResult,
    VariantOutcome,
)
from bulk_editor.services.bulk_edit import (
    BulkEditValidationError,
    require,
    run_variant_edit,
    write_with_fallback,
    skipped_variant,
    record_variant_write,
    summarize,
    crash_result,
)
from bulk_editor.services.text import replace_literal

logger = logging.getLogger(__name__)


def validate_sku_edit(edit: SkuEdit):
    require(edit.skuAction, "skuAction")
    if edit.skuAction in ("update", "replace"):
        if not edit.skuValue:
            raise BulkEditValidationError(f"Missing required parameter skuValue for action: {edit.skuAction}")
    elif edit.skuAction == "find_replace":
        require(edit.findText, "findText")
    elif edit.skuAction == "add_prefix":
        require(edit.prefix, "prefix")
    elif edit.skuAction == "add_suffix":
        require(edit.suffix, "suffix")


def compute_new_sku(original: str, edit: SkuEdit) -> str:
    original = original or ""
    if edit.skuAction in ("update", "replace"):
        return edit.skuValue
    if edit.skuAction == "find_replace":
        if edit.findText in original:
            return replace_literal(original, edit.findText, edit.replaceText or "", ignore_case=False)
        return original
    # Prefix and suffix are applied unconditionally, a second run stacks them
    if edit.skuAction == "add_prefix":
        return edit.prefix + original
    if edit.skuAction == "add_suffix":
        return original + edit.suffix
    return original


async def write_sku(
    client: ShopifyAdminClient,
    variant_id: str,
    new_sku: str,
    force_rest: bool
) -> Tuple[str, List[dict]]:
    async def graphql_write():
        variant, user_errors = await client.update_variant(variant_id, {"sku": new_sku})
        return (variant or {}).get("sku") or new_sku, user_errors

    async def rest_write():
        variant = await client.update_variant_rest(variant_id, {"sku": new_sku})
        return variant.get("sku") or new_sku, []

    if force_rest:
        return await rest_write()
    return await write_with_fallback(graphql_write, rest_write, f"SKU update for {variant_id}")


async def handle_sku_edit(
    client: ShopifyAdminClient,
    product_ids: List[str],
    edit: SkuEdit,
    force_rest: Optional[bool] = None
) -> BulkEditResult:
    validate_sku_edit(edit)
    if force_rest is None:
        force_rest = settings.SKU_FORCE_REST
    logger.info(f"SKU edit {edit.skuAction} for {len(product_ids)} products (force_rest={force_rest})")

    async def edit_variant(variant: dict) -> VariantOutcome:
        original = variant.get("sku") or ""
        new_sku = compute_new_sku(original, edit)

        if new_sku == original:
            logger.info(f"Variant {variant['id']} already has SKU {original!r}, skipping update")
            return skipped_variant(variant["id"], original)

        return await record_variant_write(
            variant["id"], "sku", original,
            lambda: write_sku(client, variant["id"], new_sku, force_rest)
        )

    try:
        records = await run_variant_edit(product_ids, client.get_product_variants, edit_variant)
        return summarize(records, "SKUs")
    except Exception as e:
        return crash_result("SKUs", e)
