"""
Product filter and preview.

The remote search syntax only covers part of the conditions the editor
offers, so the query sent upstream is a superset (`*value*` for prefix and
suffix matches) and the returned page is narrowed here. Results are only
exact within that single page; nothing beyond it is fetched.
"""
import asyncio
import logging
from typing import Dict, List, Optional

from bulk_editor.core.admin_client import ShopifyAdminClient, AdminAPIError, legacy_id
from bulk_editor.core.config import settings
from bulk_editor.schemas.product import (
    FeaturedImage,
    FilterRule,
    ProductSummary,
    ProductWeights,
    VariantWeightDetail,
)
from bulk_editor.services.bulk_edit import BulkEditValidationError

logger = logging.getLogger(__name__)


FIELD_MAP: Dict[str, str] = {
    "title": "title",
    "collection": "collection",
    "productId": "id",
    "description": "description",
    "price": "variants.price",
}

ALLOWED_CONDITIONS: Dict[str, List[str]] = {
    "title": ["is", "contains", "doesNotContain", "startsWith", "endsWith"],
    "description": ["contains", "doesNotContain", "startsWith", "endsWith", "empty"],
    "productId": ["is"],
    "collection": ["is", "contains"],
    "price": ["is"],
}

# Fields whose values come back in the product node and can be re-checked locally
LOCAL_FIELDS = ("title", "description")


def validate_rule(rule: FilterRule):
    if rule.condition not in ALLOWED_CONDITIONS[rule.field]:
        raise BulkEditValidationError(
            f"Condition '{rule.condition}' is not available for field '{rule.field}'"
        )


def build_search_query(field: str, condition: str, value: str) -> str:
    if not value:
        return ""

    search_field = FIELD_MAP.get(field, field)
    escaped = value.replace("'", "").replace('"', "").strip()
    if not escaped:
        return ""

    if condition == "is":
        return f"{search_field}:'{escaped}'"
    if condition == "contains":
        return f"{search_field}:*{escaped}*"
    if condition == "doesNotContain":
        return f"-{search_field}:*{escaped}*"
    if condition in ("startsWith", "endsWith"):
        return f"{search_field}:*{escaped}*"
    return ""


def matches_rule(product: ProductSummary, rule: FilterRule) -> bool:
    if rule.field not in LOCAL_FIELDS:
        return True

    field_value = (product.description if rule.field == "description" else product.title) or ""
    if rule.condition == "empty":
        return not field_value.strip()

    search = rule.value.lower().strip()
    if not search:
        return True

    field_value = field_value.lower()
    if rule.condition == "is":
        return field_value == search
    if rule.condition == "contains":
        return search in field_value
    if rule.condition == "doesNotContain":
        return search not in field_value
    if rule.condition == "startsWith":
        return field_value.startswith(search)
    if rule.condition == "endsWith":
        return field_value.endswith(search)
    return True


def to_summary(node: dict) -> ProductSummary:
    image = node.get("featuredImage")
    price = ((node.get("priceRangeV2") or {}).get("minVariantPrice")) or {}
    return ProductSummary(
        id=legacy_id(node["id"]),
        title=node.get("title") or "",
        description=node.get("description") or "",
        productType=node.get("productType") or "",
        vendor=node.get("vendor") or "",
        status=(node.get("status") or "ACTIVE").upper(),
        tags=node.get("tags") or [],
        featuredImage=FeaturedImage(url=image["url"], altText=image.get("altText")) if image else None,
        priceAmount=price.get("amount"),
        currencyCode=price.get("currencyCode"),
    )


async def preview_products(client: ShopifyAdminClient, rule: FilterRule) -> List[ProductSummary]:
    validate_rule(rule)
    logger.info(f"Filtering products: {rule.field} {rule.condition} {rule.value!r}")

    if rule.field == "productId" and rule.value.strip():
        node = await client.get_product_summary(rule.value.strip())
        return [to_summary(node)] if node else []

    query = build_search_query(rule.field, rule.condition, rule.value)
    nodes = await client.search_products(query, first=settings.FILTER_PAGE_SIZE)
    products = [to_summary(node) for node in nodes]
    filtered = [product for product in products if matches_rule(product, rule)]
    logger.info(f"Remote query returned {len(products)} products, {len(filtered)} kept after filtering")
    return filtered


def _weights_from_rest(product: dict, variants: List[dict]) -> ProductWeights:
    return ProductWeights(
        id=str(product["id"]),
        title=product.get("title") or "",
        status=(product.get("status") or "active").upper(),
        variant_details=[
            VariantWeightDetail(
                id=str(variant["id"]),
                title=variant.get("title"),
                weight=variant.get("weight"),
                weight_unit=variant.get("weight_unit"),
            )
            for variant in variants
        ],
    )


async def list_products_with_weights(
    client: ShopifyAdminClient,
    product_ids: Optional[List[str]] = None,
    title: Optional[str] = None
) -> List[ProductWeights]:
    """Products with their variant weights, for the weight editor listing."""
    if product_ids:
        async def load(product_id: str) -> Optional[ProductWeights]:
            try:
                product = await client.get_product_rest(product_id)
                if product is None:
                    return None
                variants = await client.list_variants_rest(product_id)
                return _weights_from_rest(product, variants)
            except AdminAPIError as e:
                logger.error(f"Error fetching weights for product {product_id}: {e.message}")
                return None

        loaded = await asyncio.gather(*(load(product_id) for product_id in product_ids))
        return [product for product in loaded if product is not None]

    params = {"limit": settings.FILTER_PAGE_SIZE}
    if title:
        params["title"] = title
    products = await client.list_products_rest(params)
    # REST product payloads embed their variants, weights included
    return [_weights_from_rest(product, product.get("variants") or []) for product in products]
