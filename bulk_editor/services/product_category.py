"""
Bulk assignment of products to a category.

A category is a collection named after it. `newProductCategory` is either a
taxonomy category id picked from the taxonomy tree (the collection takes the
category's own name) or a free-text category name. The collection is looked
up, or created, once per request, then each product not already in it is
added.
"""
import logging
from typing import List

from bulk_editor.core.admin_client import ShopifyAdminClient, AdminAPIError
from bulk_editor.schemas.bulk_edit import ProductCategoryEdit, BulkEditResult, ProductOutcome
from bulk_editor.services.bulk_edit import (
    BulkEditValidationError,
    require,
    fan_out,
    field_errors,
    summarize,
    crash_result,
)
from bulk_editor.services.taxonomy import TaxonomyService, taxonomy_service

logger = logging.getLogger(__name__)

TAXONOMY_GID_PREFIX = "gid://shopify/TaxonomyCategory/"


def resolve_category_title(value: str, taxonomy: TaxonomyService = None) -> str:
    value = require((value or "").strip(), "newProductCategory")
    if not value.startswith(TAXONOMY_GID_PREFIX):
        return value

    for option in (taxonomy or taxonomy_service).get_flat_list():
        if option.value == value:
            return option.label.split(" > ")[-1]
    raise BulkEditValidationError(f"Unknown taxonomy category: {value}")


async def ensure_collection(client: ShopifyAdminClient, title: str) -> dict:
    collection = await client.find_collection(title)
    if collection:
        logger.info(f"Using existing collection {collection['id']} for category {title!r}")
        return collection

    collection, user_errors = await client.create_collection(title)
    if user_errors or not collection:
        messages = ", ".join(err.get("message", "Unknown error") for err in user_errors)
        raise AdminAPIError(f"Failed to create or find category collection: {messages}", details=user_errors)
    return collection


async def handle_product_category_edit(
    client: ShopifyAdminClient,
    product_ids: List[str],
    edit: ProductCategoryEdit,
    taxonomy: TaxonomyService = None
) -> BulkEditResult:
    title = resolve_category_title(edit.newProductCategory, taxonomy)
    logger.info(f"Category edit to {title!r} for {len(product_ids)} products")

    async def edit_one(collection: dict, product_id: str) -> ProductOutcome:
        product_title, already_in = await client.product_in_collection(product_id, collection["id"])
        if already_in:
            logger.info(f"Product {product_id} is already in category {title!r}, skipping")
            return ProductOutcome(
                product_id=product_id, product_title=product_title, original_value=title, new_value=title, skipped=True
            )

        user_errors = await client.add_products_to_collection(collection["id"], [product_id])
        if user_errors:
            return ProductOutcome(product_id=product_id, product_title=product_title, errors=field_errors(user_errors))
        return ProductOutcome(product_id=product_id, product_title=product_title, new_value=title)

    try:
        collection = await ensure_collection(client, title)
        records = await fan_out(product_ids, lambda product_id: edit_one(collection, product_id))
        return summarize(records, "Category", success_message=f'Products successfully added to category "{title}"!')
    except Exception as e:
        return crash_result("Category", e)
