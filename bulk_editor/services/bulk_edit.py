import asyncio
import json
import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Awaitable, Callable, Iterable, List, Optional, Tuple

from bulk_editor.core.admin_client import ShopifyAdminClient, GraphQLError
from bulk_editor.schemas.bulk_edit import (
    BulkEditFailure,
    BulkEditOk,
    BulkEditPartialFailure,
    BulkEditResult,
    BulkEditStats,
    FieldError,
    ProductOutcome,
    VariantOutcome,
)

logger = logging.getLogger(__name__)


class BulkEditValidationError(ValueError):
    """A required request parameter is missing or invalid."""


def require(value, name: str):
    if value is None or (isinstance(value, str) and not value):
        raise BulkEditValidationError(f"Missing required parameter: {name}")
    return value


def parse_json_list(raw: Optional[str], name: str, required: bool = True) -> List[Any]:
    if not raw:
        if required:
            raise BulkEditValidationError(f"Missing required parameter: {name}")
        return []
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        raise BulkEditValidationError(f"Invalid parameter {name}: expected a JSON array")
    if not isinstance(value, list):
        raise BulkEditValidationError(f"Invalid parameter {name}: expected a JSON array")
    return value


def parse_amount(raw: Optional[str], name: str) -> Decimal:
    """Non-negative, finite decimal from a form value."""
    require(raw, name)
    try:
        value = Decimal(str(raw).strip())
    except InvalidOperation:
        raise BulkEditValidationError(f"Invalid parameter {name}: must be a number")
    if not value.is_finite() or value < 0:
        raise BulkEditValidationError(f"Invalid parameter {name}: must be a non-negative number")
    return value


def parse_flag(raw: Optional[str], name: str) -> bool:
    if raw not in ("true", "false"):
        raise BulkEditValidationError(f"Invalid parameter {name}: must be 'true' or 'false'")
    return raw == "true"


def parse_product_ids(raw: Optional[str]) -> List[str]:
    product_ids = parse_json_list(raw, "productIds")
    if not product_ids:
        raise BulkEditValidationError("Invalid or empty productIds array")
    return [str(product_id) for product_id in product_ids]


def field_errors(user_errors: Iterable[dict]) -> List[FieldError]:
    return [
        FieldError(field=err.get("field"), message=err.get("message", "Unknown error"))
        for err in user_errors
    ]


def error_outcome(product_id: str, exc: Exception, original_value: Any = None) -> ProductOutcome:
    return ProductOutcome(
        product_id=product_id,
        original_value=original_value,
        new_value=original_value,
        errors=[FieldError(message=str(exc) or exc.__class__.__name__)]
    )


async def fan_out(product_ids: List[str], worker: Callable[[str], Awaitable[ProductOutcome]]) -> List[ProductOutcome]:
    """Run the worker for every product concurrently and wait for all of them."""
    async def guarded(product_id: str) -> ProductOutcome:
        try:
            return await worker(product_id)
        except Exception as e:
            logger.error(f"Product {product_id} failed: {str(e)}")
            return error_outcome(product_id, e)

    return list(await asyncio.gather(*(guarded(product_id) for product_id in product_ids)))


async def run_product_field_edit(
    client: ShopifyAdminClient,
    product_ids: List[str],
    field: str,
    compute: Callable[[Any], Any],
    equals: Callable[[Any, Any], bool] = lambda a, b: a == b,
) -> List[ProductOutcome]:
    """Fetch one product field, compute its new value and write it back when it changed."""

    async def edit_one(product_id: str) -> ProductOutcome:
        product = await client.get_product(product_id, ["title"] if field == "title" else ["title", field])
        current = product.get(field)
        new_value = compute(current)

        if equals(current, new_value):
            logger.info(f"Product {product_id} already has {field}={current!r}, skipping update")
            return ProductOutcome(
                product_id=product_id,
                product_title=product.get("title"),
                original_value=current,
                new_value=current,
                skipped=True
            )

        updated, user_errors = await client.update_product(product_id, {field: new_value})
        if user_errors:
            return ProductOutcome(
                product_id=product_id,
                product_title=product.get("title"),
                original_value=current,
                new_value=current,
                errors=field_errors(user_errors)
            )

        return ProductOutcome(
            product_id=product_id,
            product_title=product.get("title"),
            original_value=current,
            new_value=(updated or {}).get(field, new_value)
        )

    return await fan_out(product_ids, edit_one)


async def run_variant_edit(
    product_ids: List[str],
    load_variants: Callable[[str], Awaitable[Tuple[str, List[dict]]]],
    edit_variant: Callable[[dict], Awaitable[VariantOutcome]],
) -> List[ProductOutcome]:
    """Edit every variant of every product; products without variants are skipped."""

    async def edit_product(product_id: str) -> ProductOutcome:
        title, variants = await load_variants(product_id)
        if not variants:
            logger.info(f"Product {product_id} has no variants, skipping")
            return ProductOutcome(product_id=product_id, product_title=title, skipped=True)

        variant_outcomes = await asyncio.gather(*(edit_variant(variant) for variant in variants))
        return ProductOutcome(
            product_id=product_id,
            product_title=title,
            skipped=all(v.skipped for v in variant_outcomes),
            variants=list(variant_outcomes)
        )

    return await fan_out(product_ids, edit_product)


async def write_with_fallback(
    graphql_write: Callable[[], Awaitable[Tuple[Any, List[dict]]]],
    rest_write: Callable[[], Awaitable[Tuple[Any, List[dict]]]],
    description: str,
) -> Tuple[Any, List[dict]]:
    """GraphQL write, retried once through REST when the API version rejects the GraphQL input."""
    try:
        return await graphql_write()
    except GraphQLError as e:
        logger.warning(f"GraphQL {description} rejected, using REST: {e.message}")
    return await rest_write()


def skipped_variant(variant_id: str, value: Any) -> VariantOutcome:
    return VariantOutcome(variant_id=variant_id, original_value=value, new_value=value, skipped=True)


async def record_variant_write(
    variant_id: str,
    field: str,
    original: Any,
    write: Callable[[], Awaitable[Tuple[Any, List[dict]]]],
) -> VariantOutcome:
    """Run one variant write and turn its result, user errors or exception into an outcome."""
    try:
        written, user_errors = await write()
    except Exception as e:
        logger.error(f"Failed to update {field} for variant {variant_id}: {str(e)}")
        return VariantOutcome(
            variant_id=variant_id,
            original_value=original,
            new_value=original,
            errors=[FieldError(field=[field], message=f"Failed to update {field}: {str(e)}")]
        )

    if user_errors:
        return VariantOutcome(
            variant_id=variant_id,
            original_value=original,
            new_value=original,
            errors=field_errors(user_errors)
        )
    return VariantOutcome(variant_id=variant_id, original_value=original, new_value=written)


def compute_stats(records: List[ProductOutcome]) -> BulkEditStats:
    stats = BulkEditStats(products_total=len(records))
    for record in records:
        if record.failed:
            stats.products_failed += 1
        elif record.updated:
            stats.products_updated += 1
        else:
            stats.products_skipped += 1
        for variant in record.variants:
            if variant.errors:
                stats.variants_failed += 1
            elif variant.skipped:
                stats.variants_skipped += 1
            else:
                stats.variants_updated += 1
    return stats


def error_messages(records: List[ProductOutcome]) -> List[str]:
    messages = []
    for record in records:
        for err in record.errors:
            messages.append(f"{record.product_id}: {err.message}")
        for variant in record.variants:
            for err in variant.errors:
                messages.append(f"{variant.variant_id}: {err.message}")
    return messages


def summarize(records: List[ProductOutcome], noun: str, success_message: str = None) -> BulkEditResult:
    stats = compute_stats(records)
    messages = error_messages(records)

    if not messages:
        message = success_message or f"{noun} updated successfully!"
        if stats.variants_updated or stats.variants_skipped:
            message += f" {stats.variants_updated} variants updated, {stats.variants_skipped} variants skipped."
        else:
            message += f" {stats.products_updated} products updated, {stats.products_skipped} products skipped."
        logger.info(f"{noun} update completed: {stats.model_dump()}")
        return BulkEditOk(message=message, stats=stats, results=records)

    if stats.products_failed == stats.products_total:
        logger.error(f"{noun} update failed for every product: {messages}")
        return BulkEditFailure(
            error=f"Failed to update {noun.lower()} for all {stats.products_total} products",
            details=", ".join(messages),
            stats=stats
        )

    logger.warning(f"{noun} update finished with errors: {messages}")
    return BulkEditPartialFailure(
        message=(
            f"{noun} updated with some errors: {stats.products_updated} products updated, "
            f"{stats.products_skipped} skipped, {stats.products_failed} failed."
        ),
        stats=stats,
        errors=messages,
        results=records
    )


def crash_result(noun: str, exc: Exception) -> BulkEditFailure:
    logger.exception(f"Error updating {noun.lower()}: {str(exc)}")
    return BulkEditFailure(error=f"Failed to update {noun.lower()}", details=str(exc))
