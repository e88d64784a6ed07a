"""
Bulk editing of variant prices and compare-at prices.

Every edit type works per variant from its current price, compare-at price
and unit cost. The changed variants of one product are written together with
a single `productVariantsBulkUpdate`, so a rejected write fails all of them.
Money is computed with `Decimal` and written rounded to cents.
"""
import logging
from decimal import Decimal, ROUND_CEILING, ROUND_FLOOR, ROUND_HALF_UP
from typing import Dict, List, Optional

from bulk_editor.core.admin_client import ShopifyAdminClient
from bulk_editor.schemas.bulk_edit import (
    PriceEdit,
    BulkEditResult,
    FieldError,
    ProductOutcome,
    VariantOutcome,
)
from bulk_editor.services.bulk_edit import (
    BulkEditValidationError,
    require,
    parse_amount,
    fan_out,
    field_errors,
    skipped_variant,
    summarize,
    crash_result,
)

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
HUNDRED = Decimal("100")
CENT = Decimal("0.01")

PRICE_VARIANT_FIELDS = [
    "price",
    "compareAtPrice",
    "inventoryItem { unitCost { amount } }",
]

ABSOLUTE_ADJUSTMENTS = ("adjustPrice", "adjustCompareAtPrice")
PERCENTAGE_ADJUSTMENTS = ("adjustPriceByPercentage", "adjustCompareAtPriceByPercentage")
PERCENTAGE_OF_PRICE = (
    "setPriceToCompareAtPercentage",
    "setPriceToCompareAtPercentageLess",
    "setCompareAtPriceToPricePercentage",
    "setCompareAtPriceToCostPercentage",
)
COST_MARKUPS = ("setPriceToCostPercentage", "setPriceToCostAndShippingPercentage")
ROUNDINGS = ("roundPrice", "roundCompareAtPrice")

# Edits that can keep the price they replace as the compare-at price
KEEPS_ORIGINAL_PRICE = (
    "adjustPrice",
    "adjustPriceByPercentage",
    "setPriceToCompareAtPercentage",
    "setPriceToCompareAtPercentageLess",
)


class MissingUnitCost(ValueError):
    pass


def to_money(value) -> Optional[Decimal]:
    if value is None or value == "":
        return None
    return Decimal(str(value))


def format_money(value: Decimal) -> str:
    return str(value.quantize(CENT, rounding=ROUND_HALF_UP))


def round_to_step(value: Decimal, rounding_type: str, step: int) -> Decimal:
    """Round the whole-currency part of a price to a multiple of `step`; cents are dropped."""
    whole = value.to_integral_value(rounding=ROUND_FLOOR)
    modes = {"upper": ROUND_CEILING, "lower": ROUND_FLOOR, "nearest": ROUND_HALF_UP}
    steps = (whole / step).to_integral_value(rounding=modes[rounding_type])
    return steps * step


def unit_cost(variant: dict) -> Optional[Decimal]:
    item = variant.get("inventoryItem") or {}
    return to_money((item.get("unitCost") or {}).get("amount"))


def _percentage(edit: PriceEdit) -> Decimal:
    percentage = parse_amount(edit.adjustmentAmount, "adjustmentAmount")
    if percentage <= 0 or percentage > HUNDRED:
        raise BulkEditValidationError("Percentage must be between 0 and 100")
    return percentage


def _require_direction(edit: PriceEdit):
    if not edit.adjustmentType:
        raise BulkEditValidationError(f"Missing required parameter adjustmentType for edit type: {edit.editType}")


def validate_price_edit(edit: PriceEdit) -> Optional[Decimal]:
    """Check the request and return the amount or percentage it applies."""
    require(edit.editType, "editType")
    edit_type = edit.editType

    if edit_type in ("setPrice", "setCompareAtPrice"):
        return parse_amount(edit.newPrice, "newPrice")

    if edit_type in ABSOLUTE_ADJUSTMENTS:
        _require_direction(edit)
        amount = parse_amount(edit.adjustmentAmount, "adjustmentAmount")
        if amount <= 0:
            raise BulkEditValidationError("Invalid adjustment amount: must be greater than 0")
        return amount

    if edit_type in PERCENTAGE_ADJUSTMENTS:
        _require_direction(edit)
        return _percentage(edit)

    if edit_type in PERCENTAGE_OF_PRICE:
        percentage = _percentage(edit)
        if edit_type == "setCompareAtPriceToPricePercentage" and percentage == HUNDRED:
            raise BulkEditValidationError("Percentage must be below 100 to derive a compare-at price")
        return percentage

    if edit_type in COST_MARKUPS:
        markup = parse_amount(edit.adjustmentAmount, "adjustmentAmount")
        if edit_type == "setPriceToCostAndShippingPercentage" and edit.shippingCost not in (None, ""):
            parse_amount(edit.shippingCost, "shippingCost")
        return markup

    if edit_type in ROUNDINGS:
        require(edit.roundingType, "roundingType")
        if not edit.roundingValue or edit.roundingValue <= 0:
            raise BulkEditValidationError("Invalid parameter roundingValue: must be a positive whole number")
        return None

    return None


def _adjust(base: Decimal, delta: Decimal, direction: str) -> Decimal:
    if direction == "increase":
        return base + delta
    return max(base - delta, ZERO)


def _cost_or_raise(variant: dict) -> Decimal:
    cost = unit_cost(variant)
    if cost is None:
        raise MissingUnitCost(f"Variant {variant['id']} has no unit cost")
    return cost


def compute_price_changes(variant: dict, edit: PriceEdit, amount: Optional[Decimal]) -> Dict[str, Optional[str]]:
    """Fields of the bulk update input that change for this variant; empty when nothing does."""
    price = to_money(variant.get("price")) or ZERO
    compare_at = to_money(variant.get("compareAtPrice"))
    new_price, new_compare_at = price, compare_at
    edit_type = edit.editType

    if edit_type == "setPrice":
        new_price = amount
    elif edit_type == "setCompareAtPrice":
        new_compare_at = amount
    elif edit_type == "adjustPrice":
        new_price = _adjust(price, amount, edit.adjustmentType)
    elif edit_type == "adjustPriceByPercentage":
        new_price = _adjust(price, price * amount / HUNDRED, edit.adjustmentType)
    elif edit_type == "adjustCompareAtPrice":
        new_compare_at = _adjust(compare_at or price, amount, edit.adjustmentType)
    elif edit_type == "adjustCompareAtPriceByPercentage":
        base = compare_at or price
        new_compare_at = _adjust(base, base * amount / HUNDRED, edit.adjustmentType)
    elif edit_type == "setPriceToCompareAtPercentage":
        new_price = (compare_at or price) * amount / HUNDRED
    elif edit_type == "setPriceToCompareAtPercentageLess":
        base = compare_at or price
        new_price = base - base * amount / HUNDRED
    elif edit_type == "setCompareAtPriceToPricePercentage":
        new_compare_at = price / (1 - amount / HUNDRED)
    elif edit_type == "setCompareAtPriceToCostPercentage":
        new_compare_at = _cost_or_raise(variant) * (1 + amount / HUNDRED)
    elif edit_type == "setPriceToCostPercentage":
        new_price = _cost_or_raise(variant) * (1 + amount / HUNDRED)
    elif edit_type == "setPriceToCostAndShippingPercentage":
        shipping = to_money(edit.shippingCost) or ZERO
        new_price = (_cost_or_raise(variant) + shipping) * (1 + amount / HUNDRED)
    elif edit_type == "removeCompareAtPrice":
        new_compare_at = None
    elif edit_type == "roundPrice":
        new_price = round_to_step(price, edit.roundingType, edit.roundingValue)
    elif edit_type == "roundCompareAtPrice" and compare_at is not None:
        new_compare_at = round_to_step(compare_at, edit.roundingType, edit.roundingValue)

    if edit_type in KEEPS_ORIGINAL_PRICE and edit.setCompareAtPriceToOriginal:
        new_compare_at = price

    changes = {}
    new_price = max(new_price, ZERO).quantize(CENT, rounding=ROUND_HALF_UP)
    if new_price != price:
        changes["price"] = format_money(new_price)
    if new_compare_at is not None:
        new_compare_at = max(new_compare_at, ZERO).quantize(CENT, rounding=ROUND_HALF_UP)
    if new_compare_at != compare_at:
        changes["compareAtPrice"] = format_money(new_compare_at) if new_compare_at is not None else None
    return changes


def price_snapshot(variant: dict) -> dict:
    return {"price": variant.get("price"), "compareAtPrice": variant.get("compareAtPrice")}


async def handle_price_edit(client: ShopifyAdminClient, product_ids: List[str], edit: PriceEdit) -> BulkEditResult:
    amount = validate_price_edit(edit)
    logger.info(f"Price edit {edit.editType} ({amount}) for {len(product_ids)} products")

    async def edit_product(product_id: str) -> ProductOutcome:
        title, variants = await client.get_product_variants(product_id, PRICE_VARIANT_FIELDS)
        if not variants:
            logger.info(f"Product {product_id} has no variants, skipping")
            return ProductOutcome(product_id=product_id, product_title=title, skipped=True)

        outcomes: List[VariantOutcome] = []
        updates: List[dict] = []
        for variant in variants:
            original = price_snapshot(variant)
            try:
                changes = compute_price_changes(variant, edit, amount)
            except MissingUnitCost as e:
                logger.warning(str(e))
                outcomes.append(VariantOutcome(
                    variant_id=variant["id"],
                    original_value=original,
                    new_value=original,
                    errors=[FieldError(field=["cost"], message=str(e))]
                ))
                continue

            if not changes:
                outcomes.append(skipped_variant(variant["id"], original))
                continue
            updates.append({"id": variant["id"], **changes})
            outcomes.append(VariantOutcome(variant_id=variant["id"], original_value=original, new_value={**original, **changes}))

        if updates:
            _, user_errors = await client.bulk_update_variants(product_id, updates)
            if user_errors:
                written = {update["id"] for update in updates}
                outcomes = [
                    outcome.model_copy(update={"new_value": outcome.original_value, "errors": field_errors(user_errors)})
                    if outcome.variant_id in written else outcome
                    for outcome in outcomes
                ]

        return ProductOutcome(
            product_id=product_id,
            product_title=title,
            skipped=not updates and all(v.skipped for v in outcomes),
            variants=outcomes
        )

    try:
        records = await fan_out(product_ids, edit_product)
        return summarize(records, "Prices")
    except Exception as e:
        return crash_result("Prices", e)
