"""
Bulk editing of variant weights.

Two modes, picked from the request: `weight` (a value and a unit were given)
and `weightUnit` (only the unit changes, the numeric weight is kept). The
GraphQL variant type on the configured API version does not expose weight,
so current values are read and new ones written through the REST variant
resource. Variants are listed through GraphQL unless `useRestApi` is set.
"""
import logging
import math
from typing import List, Optional, Tuple

from bulk_editor.core.admin_client import ShopifyAdminClient, variant_gid
from bulk_editor.schemas.bulk_edit import (
    VariantWeightEdit,
    BulkEditResult,
    FieldError,
    VariantOutcome,
)
from bulk_editor.schemas.product import WeightUnit
from bulk_editor.services.bulk_edit import (
    BulkEditValidationError,
    run_variant_edit,
    summarize,
    crash_result,
)

logger = logging.getLogger(__name__)


def validate_weight_edit(edit: VariantWeightEdit) -> Tuple[Optional[float], WeightUnit]:
    weight_value = None
    if edit.weightValue not in (None, ""):
        try:
            weight_value = float(edit.weightValue)
        except ValueError:
            weight_value = -1.0
        if not math.isfinite(weight_value) or weight_value < 0:
            raise BulkEditValidationError("Invalid weight value: must be a positive number")

    allowed = [unit.value for unit in WeightUnit]
    if not edit.weightUnit or edit.weightUnit not in allowed:
        raise BulkEditValidationError(
            "Missing or invalid required parameter: weightUnit (must be one of 'g', 'kg', 'oz', 'lb')"
        )
    return weight_value, WeightUnit(edit.weightUnit)


def compute_new_weight(
    original_weight: float,
    original_unit: str,
    weight_value: Optional[float],
    weight_unit: WeightUnit
) -> Tuple[float, str, bool]:
    """New (weight, unit) and whether the variant is already there."""
    new_weight = weight_value if weight_value is not None else original_weight
    new_unit = weight_unit.value
    if weight_value is not None:
        unchanged = original_weight == new_weight and original_unit == new_unit
    else:
        unchanged = original_unit == new_unit
    return new_weight, new_unit, unchanged


def _current_weight(variant: dict) -> Tuple[float, str]:
    weight = variant.get("weight")
    unit = (variant.get("weight_unit") or "g").lower()
    return float(weight) if weight is not None else 0.0, unit


async def handle_variant_weight_edit(
    client: ShopifyAdminClient,
    product_ids: List[str],
    edit: VariantWeightEdit
) -> BulkEditResult:
    weight_value, weight_unit = validate_weight_edit(edit)
    mode = "weight" if weight_value is not None else "weightUnit"
    logger.info(f"Variant weight edit ({mode}: {weight_value} {weight_unit.value}) for {len(product_ids)} products")

    async def edit_variant(variant: dict) -> VariantOutcome:
        variant_id = variant_gid(variant["id"])
        try:
            if "weight" not in variant:
                variant = await client.get_variant_rest(variant_id)
            original_weight, original_unit = _current_weight(variant)
            original = {"weight": original_weight, "weight_unit": original_unit}

            new_weight, new_unit, unchanged = compute_new_weight(
                original_weight, original_unit, weight_value, weight_unit
            )
            if unchanged:
                logger.info(f"Variant {variant_id} already has weight {new_weight} {new_unit}, skipping update")
                return VariantOutcome(variant_id=variant_id, original_value=original, new_value=original, skipped=True)

            updated = await client.update_variant_rest(variant_id, {"weight": new_weight, "weight_unit": new_unit})
            return VariantOutcome(
                variant_id=variant_id,
                original_value=original,
                new_value={
                    "weight": float(updated.get("weight", new_weight)),
                    "weight_unit": updated.get("weight_unit", new_unit)
                }
            )
        except Exception as e:
            logger.error(f"Failed to update weight for variant {variant_id}: {str(e)}")
            return VariantOutcome(
                variant_id=variant_id,
                errors=[FieldError(field=["weight"], message=f"Failed to update weight: {str(e)}")]
            )

    async def load_variants(product_id: str) -> Tuple[str, List[dict]]:
        if edit.useRestApi:
            product = await client.get_product_rest(product_id) or {}
            title = product.get("title") or f"Product {product_id}"
            return title, await client.list_variants_rest(product_id)
        return await client.get_product_variants(product_id)

    success_message = (
        "Variant weight updated successfully!" if mode == "weight"
        else "Variant weight units updated successfully!"
    )
    try:
        records = await run_variant_edit(product_ids, load_variants, edit_variant)
        return summarize(records, "Variant weights", success_message=success_message)
    except Exception as e:
        return crash_result("Variant weights", e)
