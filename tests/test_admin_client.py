import json

import httpx
import pytest

from bulk_editor.core.admin_client import (
    ShopifyAdminClient,
    AdminAPIError,
    GraphQLError,
    inventory_item_gid,
    legacy_id,
    product_gid,
    variant_gid,
)


def make_client(handler):
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return ShopifyAdminClient("test-shop.myshopify.com", "test-token", api_version="2024-01", client=http_client)


def test_id_helpers():
    assert product_gid(42) == "gid://shopify/Product/42"
    assert product_gid("gid://shopify/Product/42") == "gid://shopify/Product/42"
    assert variant_gid("7") == "gid://shopify/ProductVariant/7"
    assert inventory_item_gid(210) == "gid://shopify/InventoryItem/210"
    assert legacy_id("gid://shopify/ProductVariant/7") == "7"
    assert legacy_id(7) == "7"


@pytest.mark.asyncio
async def test_graphql_posts_to_versioned_endpoint():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["token"] = request.headers["X-Shopify-Access-Token"]
        return httpx.Response(200, json={"data": {"shop": {"name": "Test"}}})

    client = make_client(handler)
    data = await client.graphql("{ shop { name } }")

    assert data == {"shop": {"name": "Test"}}
    assert seen == {
        "url": "https://test-shop.myshopify.com/admin/api/2024-01/graphql.json",
        "token": "test-token",
    }


@pytest.mark.asyncio
async def test_top_level_graphql_errors_raise():
    client = make_client(lambda request: httpx.Response(200, json={"errors": [{"message": "Field 'sku' doesn't exist"}]}))

    with pytest.raises(GraphQLError, match="Field 'sku' doesn't exist"):
        await client.graphql("mutation { x }")


@pytest.mark.asyncio
async def test_http_errors_become_admin_api_errors():
    client = make_client(lambda request: httpx.Response(429, json={"errors": "Throttled"}))

    with pytest.raises(AdminAPIError) as exc_info:
        await client.rest_get("products.json")

    assert exc_info.value.status_code == 429
    assert exc_info.value.details == {"errors": "Throttled"}


@pytest.mark.asyncio
async def test_network_errors_become_admin_api_errors():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(AdminAPIError, match="network error"):
        await make_client(handler).rest_get("products.json")


@pytest.mark.asyncio
async def test_invalid_json_becomes_admin_api_error():
    client = make_client(lambda request: httpx.Response(200, text="<html>"))

    with pytest.raises(AdminAPIError, match="invalid JSON"):
        await client.rest_get("products.json")


@pytest.mark.asyncio
async def test_update_product_returns_user_errors(client, shop):
    shop.user_error_products.add("1")

    product, user_errors = await client.update_product("1", {"title": ""})

    assert product is None
    assert user_errors == [{"field": ["title"], "message": "Value is invalid"}]


@pytest.mark.asyncio
async def test_missing_product_raises_not_found(client):
    with pytest.raises(AdminAPIError) as exc_info:
        await client.get_product("999", ["title"])
    assert exc_info.value.status_code == 404


@pytest.mark.asyncio
async def test_variant_query_selects_requested_fields():
    seen = {}

    def handler(request):
        seen["query"] = json.loads(request.content)["query"]
        return httpx.Response(200, json={"data": {"product": {"id": "gid://shopify/Product/1", "title": "Shirt", "variants": {
            "edges": [{"node": {"id": "gid://shopify/ProductVariant/11", "barcode": "123"}}]
        }}}})

    title, variants = await make_client(handler).get_product_variants("1", ["barcode", "inventoryItem { id tracked }"])

    assert title == "Shirt"
    assert variants == [{"id": "gid://shopify/ProductVariant/11", "barcode": "123"}]
    assert "barcode" in seen["query"]
    assert "inventoryItem { id tracked }" in seen["query"]
    assert "sku" not in seen["query"]


@pytest.mark.asyncio
async def test_find_collection_requires_exact_title():
    seen = {}

    def handler(request):
        seen["variables"] = json.loads(request.content)["variables"]
        return httpx.Response(200, json={"data": {"collections": {"edges": [
            {"node": {"id": "gid://shopify/Collection/1", "title": "Summer Sale 2023"}},
            {"node": {"id": "gid://shopify/Collection/2", "title": "Summer Sale"}},
        ]}}})

    client = make_client(handler)

    assert (await client.find_collection("summer sale"))["id"] == "gid://shopify/Collection/2"
    assert seen["variables"]["query"] == 'title:"summer sale"'
    assert await client.find_collection("Winter") is None


@pytest.mark.asyncio
async def test_inventory_item_rest_update_uses_numeric_id(client, shop):
    item = await client.update_inventory_item_rest("gid://shopify/InventoryItem/110", {"cost": "3.00"})

    assert item == {"id": 110, "cost": "3.00", "tracked": True}
    assert shop.writes("PUT")[0][1] == "inventory_items/110.json"
