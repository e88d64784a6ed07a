import json

import pytest

from bulk_editor.schemas.bulk_edit import ProductCategoryEdit
from bulk_editor.services.bulk_edit import BulkEditValidationError
from bulk_editor.services.product_category import handle_product_category_edit, resolve_category_title
from bulk_editor.services.taxonomy import TaxonomyService


@pytest.fixture
def fallback_taxonomy(tmp_path):
    return TaxonomyService(tmp_path / "missing.txt", tmp_path / "also_missing.txt")


def test_category_title_from_taxonomy_id_or_text(fallback_taxonomy):
    assert resolve_category_title("gid://shopify/TaxonomyCategory/ap-2-1", fallback_taxonomy) == "Bird Supplies"
    assert resolve_category_title("  Summer Sale ", fallback_taxonomy) == "Summer Sale"


@pytest.mark.parametrize("value, message", [
    (None, "newProductCategory"),
    ("   ", "newProductCategory"),
    ("gid://shopify/TaxonomyCategory/zz-404", "Unknown taxonomy category"),
])
def test_category_title_rejects(fallback_taxonomy, value, message):
    with pytest.raises(BulkEditValidationError, match=message):
        resolve_category_title(value, fallback_taxonomy)


@pytest.mark.asyncio
async def test_existing_collection_is_reused(client, shop, fallback_taxonomy):
    result = await handle_product_category_edit(
        client, ["1", "2"], ProductCategoryEdit(newProductCategory="summer sale"), fallback_taxonomy
    )

    assert result.status == "ok"
    assert result.message.startswith('Products successfully added to category "summer sale"!')
    assert result.stats.products_updated == 1
    assert result.stats.products_skipped == 1
    assert shop.writes("collectionCreate") == []
    assert shop.writes("collectionAddProducts") == [
        ("collectionAddProducts", "gid://shopify/Collection/900", ["gid://shopify/Product/2"])
    ]
    assert "gid://shopify/Product/2" in shop.collections["900"]["products"]


@pytest.mark.asyncio
async def test_taxonomy_category_creates_collection_once(client, shop, fallback_taxonomy):
    result = await handle_product_category_edit(
        client,
        ["2", "3"],
        ProductCategoryEdit(newProductCategory="gid://shopify/TaxonomyCategory/ap-2-1"),
        fallback_taxonomy
    )

    assert result.status == "ok"
    assert result.stats.products_updated == 2
    assert [call[1] for call in shop.writes("collectionCreate")] == ["Bird Supplies"]
    created = next(c for c in shop.collections.values() if c["title"] == "Bird Supplies")
    assert sorted(created["products"]) == ["gid://shopify/Product/2", "gid://shopify/Product/3"]


@pytest.mark.asyncio
async def test_rejected_product_is_reported(client, shop, fallback_taxonomy):
    shop.user_error_products.add("3")

    result = await handle_product_category_edit(
        client, ["2", "3"], ProductCategoryEdit(newProductCategory="Summer Sale"), fallback_taxonomy
    )

    assert result.status == "partial_failure"
    assert result.stats.products_failed == 1
    assert result.errors == ["3: Product can't be added"]


@pytest.mark.asyncio
async def test_category_required(client, shop, fallback_taxonomy):
    with pytest.raises(BulkEditValidationError, match="newProductCategory"):
        await handle_product_category_edit(client, ["1"], ProductCategoryEdit(), fallback_taxonomy)
    assert shop.calls == []


def test_product_category_route(test_client, shop):
    response = test_client.post("/api/v1/bulk-edit/product-category", data={
        "productIds": json.dumps(["3"]),
        "newProductCategory": "Summer Sale",
    })

    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert "gid://shopify/Product/3" in shop.collections["900"]["products"]
