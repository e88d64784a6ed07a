import copy
import json
import re

import httpx
import pytest
from fastapi.testclient import TestClient

from bulk_editor.core.admin_client import ShopifyAdminClient, legacy_id


SHOP_DOMAIN = "test-shop.myshopify.com"
ACCESS_TOKEN = "test-token"

PRODUCT_PATH = re.compile(r"^products/(\d+)\.json$")
PRODUCT_VARIANTS_PATH = re.compile(r"^products/(\d+)/variants\.json$")
VARIANT_PATH = re.compile(r"^variants/(\d+)\.json$")
INVENTORY_ITEM_PATH = re.compile(r"^inventory_items/(\d+)\.json$")


def make_product(product_id, title, status="ACTIVE", tags=None, variants=None, **fields):
    product = {
        "id": f"gid://shopify/Product/{product_id}",
        "title": title,
        "description": fields.pop("description", ""),
        "descriptionHtml": fields.pop("descriptionHtml", ""),
        "productType": fields.pop("productType", ""),
        "vendor": fields.pop("vendor", ""),
        "status": status,
        "tags": tags or [],
        "featuredImage": None,
        "priceRangeV2": {"minVariantPrice": {"amount": "10.0", "currencyCode": "USD"}},
        "variants": variants or [],
    }
    product.update(fields)
    return product


def make_variant(variant_id, sku="", weight=0.0, weight_unit="g", title="Default Title", price="10.00",
                 compare_at_price=None, barcode="", cost=None, tracked=True, requires_shipping=True):
    return {
        "id": variant_id,
        "title": title,
        "sku": sku,
        "weight": weight,
        "weight_unit": weight_unit,
        "price": price,
        "compare_at_price": compare_at_price,
        "barcode": barcode,
        "inventory_item": {
            "id": variant_id * 10,
            "cost": cost,
            "tracked": tracked,
            "requires_shipping": requires_shipping,
        },
    }


class FakeShop:
    """In-memory Admin API answering the GraphQL and REST calls the editor makes."""

    def __init__(self):
        self.products = {
            "1": make_product(
                1, "Blue Shirt", tags=["summer", "cotton"], productType="Shirts", vendor="acme co",
                description="Soft cotton shirt", descriptionHtml="<p>Soft cotton shirt</p>",
                variants=[
                    make_variant(11, "ABC123", 1.5, "kg", "Small", price="25.00", cost="10.00"),
                    make_variant(12, "ABC124", 0.5, "kg", "Large", price="30.00", compare_at_price="40.00"),
                ],
            ),
            "2": make_product(
                2, "Red Hat", status="DRAFT", tags=["winter"], productType="Hats", vendor="Hat Co",
                variants=[make_variant(21, "HAT-1", 200.0, "g", price="15.50", barcode="123456", cost="5.00")],
            ),
            "3": make_product(3, "wireless mouse", variants=[
                make_variant(31, "MOUSE-1", 100.0, "g", price="19.99", tracked=False)
            ]),
            "4": make_product(4, "Gift Card"),
        }
        self.collections = {
            "900": {"id": "gid://shopify/Collection/900", "title": "Summer Sale", "products": ["gid://shopify/Product/1"]},
        }
        self.calls = []
        self.search_queries = []
        self.variant_graphql_broken = False
        self.inventory_graphql_broken = False
        self.user_error_products = set()
        self.server_error_products = set()

    # Lookups

    def product(self, product_id):
        return self.products.get(legacy_id(product_id))

    def variant(self, variant_id):
        numeric = int(legacy_id(variant_id))
        for product in self.products.values():
            for variant in product["variants"]:
                if variant["id"] == numeric:
                    return product, variant
        return None, None

    def inventory_item(self, inventory_item_id):
        numeric = int(legacy_id(inventory_item_id))
        for product in self.products.values():
            for variant in product["variants"]:
                if variant["inventory_item"]["id"] == numeric:
                    return variant["inventory_item"]
        return None

    def writes(self, kind=None):
        kinds = (
            "productUpdate", "productVariantUpdate", "productVariantsBulkUpdate", "inventoryItemUpdate",
            "collectionCreate", "collectionAddProducts", "PUT",
        )
        return [call for call in self.calls if call[0] in kinds and (kind is None or call[0] == kind)]

    # Wire shapes

    def graphql_product(self, product):
        node = {key: value for key, value in product.items() if key != "variants"}
        return copy.deepcopy(node)

    def graphql_variant(self, variant):
        item = variant["inventory_item"]
        return {
            "id": f"gid://shopify/ProductVariant/{variant['id']}",
            "title": variant["title"],
            "sku": variant["sku"],
            "barcode": variant["barcode"],
            "price": variant["price"],
            "compareAtPrice": variant["compare_at_price"],
            "inventoryItem": self.graphql_inventory_item(item),
        }

    def graphql_inventory_item(self, item):
        return {
            "id": f"gid://shopify/InventoryItem/{item['id']}",
            "tracked": item["tracked"],
            "requiresShipping": item["requires_shipping"],
            "unitCost": {"amount": item["cost"], "currencyCode": "USD"} if item["cost"] is not None else None,
        }

    def rest_product(self, product):
        return {
            "id": int(legacy_id(product["id"])),
            "title": product["title"],
            "status": product["status"].lower(),
            "variants": [self.rest_variant(product, variant) for variant in product["variants"]],
        }

    def rest_variant(self, product, variant):
        fields = {key: value for key, value in variant.items() if key != "inventory_item"}
        return {
            **fields,
            "product_id": int(legacy_id(product["id"])),
            "inventory_item_id": variant["inventory_item"]["id"],
            "requires_shipping": variant["inventory_item"]["requires_shipping"],
        }

    def rest_inventory_item(self, item):
        return {"id": item["id"], "cost": item["cost"], "tracked": item["tracked"]}

    # Transport

    def handle(self, request: httpx.Request) -> httpx.Response:
        assert request.headers["X-Shopify-Access-Token"] == ACCESS_TOKEN
        path = request.url.path.split("/admin/api/", 1)[1].split("/", 1)[1]

        if path == "graphql.json":
            body = json.loads(request.content)
            return self.handle_graphql(body["query"], body.get("variables") or {})

        if request.method == "GET":
            self.calls.append(("GET", path, dict(request.url.params)))
            return self.handle_rest_get(path, request.url.params)

        if request.method == "PUT":
            payload = json.loads(request.content)
            self.calls.append(("PUT", path, payload))
            return self.handle_rest_put(path, payload)

        return httpx.Response(405)

    def handle_graphql(self, query, variables):
        if "productVariantsBulkUpdate" in query:
            return self.handle_variants_bulk_update(variables)

        if "inventoryItemUpdate" in query:
            return self.handle_inventory_item_update(variables)

        if "collectionCreate" in query:
            title = variables["input"]["title"]
            self.calls.append(("collectionCreate", title, variables["input"]))
            collection_id = str(900 + len(self.collections))
            self.collections[collection_id] = {
                "id": f"gid://shopify/Collection/{collection_id}", "title": title, "products": []
            }
            return httpx.Response(200, json={"data": {"collectionCreate": {
                "collection": {"id": f"gid://shopify/Collection/{collection_id}", "title": title},
                "userErrors": [],
            }}})

        if "collectionAddProducts" in query:
            self.calls.append(("collectionAddProducts", variables["id"], variables["productIds"]))
            rejected = [pid for pid in variables["productIds"] if legacy_id(pid) in self.user_error_products]
            if rejected:
                return httpx.Response(200, json={"data": {"collectionAddProducts": {
                    "collection": None,
                    "userErrors": [{"field": ["productIds"], "message": "Product can't be added"}],
                }}})
            collection = self.collections[legacy_id(variables["id"])]
            collection["products"].extend(variables["productIds"])
            return httpx.Response(200, json={"data": {"collectionAddProducts": {
                "collection": {"id": collection["id"], "title": collection["title"]},
                "userErrors": [],
            }}})

        if "findCollections" in query:
            # Search matching is loose, like the real index
            self.calls.append(("findCollections", variables.get("query"), variables))
            return httpx.Response(200, json={"data": {"collections": {"edges": [
                {"node": {"id": c["id"], "title": c["title"]}} for c in self.collections.values()
            ]}}})

        if "productInCollection" in query:
            self.calls.append(("productInCollection", variables["id"], variables))
            product = self.product(variables["id"])
            if product is None:
                return httpx.Response(200, json={"data": {"product": None}})
            collection = self.collections[legacy_id(variables["collectionId"])]
            return httpx.Response(200, json={"data": {"product": {
                "id": product["id"],
                "title": product["title"],
                "inCollection": product["id"] in collection["products"],
            }}})

        if "productVariantUpdate" in query:
            self.calls.append(("productVariantUpdate", variables["input"]["id"], variables["input"]))
            if self.variant_graphql_broken:
                field = "sku" if "sku" in variables["input"] else "inventoryItem"
                return httpx.Response(200, json={
                    "errors": [{"message": f"Field '{field}' doesn't exist on type 'ProductVariantInput'"}]
                })
            _, variant = self.variant(variables["input"]["id"])
            if "sku" in variables["input"]:
                variant["sku"] = variables["input"]["sku"]
            if "inventoryItem" in variables["input"]:
                variant["inventory_item"]["requires_shipping"] = variables["input"]["inventoryItem"]["requiresShipping"]
            return httpx.Response(200, json={"data": {"productVariantUpdate": {
                "productVariant": {"id": variables["input"]["id"], "sku": variant["sku"]},
                "userErrors": [],
            }}})

        if "productUpdate" in query:
            changes = dict(variables["input"])
            product_id = changes.pop("id")
            self.calls.append(("productUpdate", product_id, changes))
            if legacy_id(product_id) in self.user_error_products:
                return httpx.Response(200, json={"data": {"productUpdate": {
                    "product": None,
                    "userErrors": [{"field": list(changes)[:1], "message": "Value is invalid"}],
                }}})
            product = self.product(product_id)
            product.update(changes)
            return httpx.Response(200, json={"data": {"productUpdate": {
                "product": self.graphql_product(product),
                "userErrors": [],
            }}})

        if "searchProducts" in query:
            self.calls.append(("searchProducts", variables.get("query"), variables))
            self.search_queries.append(variables.get("query"))
            nodes = [self.graphql_product(product) for product in self.products.values()]
            return httpx.Response(200, json={"data": {"products": {
                "edges": [{"node": node} for node in nodes[:variables["first"]]]
            }}})

        if "getProductVariants" in query:
            self.calls.append(("getProductVariants", variables["id"], variables))
            product = self.product(variables["id"])
            if product is None:
                return httpx.Response(200, json={"data": {"product": None}})
            return httpx.Response(200, json={"data": {"product": {
                "id": product["id"],
                "title": product["title"],
                "variants": {"edges": [
                    {"node": self.graphql_variant(variant)} for variant in product["variants"]
                ]},
            }}})

        if "getProduct" in query:
            self.calls.append(("getProduct", variables["id"], variables))
            if legacy_id(variables["id"]) in self.server_error_products:
                return httpx.Response(500, json={"errors": "Internal error"})
            product = self.product(variables["id"])
            return httpx.Response(200, json={"data": {
                "product": self.graphql_product(product) if product else None
            }})

        return httpx.Response(400, json={"errors": [{"message": "Unknown operation"}]})

    def handle_rest_get(self, path, params):
        if path == "products.json":
            products = list(self.products.values())
            if params.get("title"):
                products = [p for p in products if p["title"] == params["title"]]
            return httpx.Response(200, json={"products": [self.rest_product(p) for p in products]})

        match = PRODUCT_PATH.match(path)
        if match:
            product = self.products.get(match.group(1))
            if product is None:
                return httpx.Response(404, json={"errors": "Not Found"})
            return httpx.Response(200, json={"product": self.rest_product(product)})

        match = PRODUCT_VARIANTS_PATH.match(path)
        if match:
            product = self.products.get(match.group(1))
            if product is None:
                return httpx.Response(404, json={"errors": "Not Found"})
            return httpx.Response(200, json={"variants": [self.rest_variant(product, v) for v in product["variants"]]})

        match = VARIANT_PATH.match(path)
        if match:
            product, variant = self.variant(match.group(1))
            if variant is None:
                return httpx.Response(404, json={"errors": "Not Found"})
            return httpx.Response(200, json={"variant": self.rest_variant(product, variant)})

        return httpx.Response(404, json={"errors": "Not Found"})

    def handle_variants_bulk_update(self, variables):
        product_id = variables["productId"]
        self.calls.append(("productVariantsBulkUpdate", product_id, variables["variants"]))
        if legacy_id(product_id) in self.user_error_products:
            return httpx.Response(200, json={"data": {"productVariantsBulkUpdate": {
                "productVariants": None,
                "userErrors": [{"field": ["variants", "0", "price"], "message": "Price is invalid"}],
            }}})
        updated = []
        for change in variables["variants"]:
            _, variant = self.variant(change["id"])
            if "price" in change:
                variant["price"] = change["price"]
            if "compareAtPrice" in change:
                variant["compare_at_price"] = change["compareAtPrice"]
            updated.append({"id": change["id"], "price": variant["price"], "compareAtPrice": variant["compare_at_price"]})
        return httpx.Response(200, json={"data": {"productVariantsBulkUpdate": {
            "productVariants": updated,
            "userErrors": [],
        }}})

    def handle_inventory_item_update(self, variables):
        self.calls.append(("inventoryItemUpdate", variables["id"], variables["input"]))
        if self.inventory_graphql_broken:
            return httpx.Response(200, json={
                "errors": [{"message": "Variable $input of type InventoryItemUpdateInput! was provided invalid value"}]
            })
        item = self.inventory_item(variables["id"])
        if "cost" in variables["input"]:
            item["cost"] = variables["input"]["cost"]
        if "tracked" in variables["input"]:
            item["tracked"] = variables["input"]["tracked"]
        return httpx.Response(200, json={"data": {"inventoryItemUpdate": {
            "inventoryItem": self.graphql_inventory_item(item),
            "userErrors": [],
        }}})

    def handle_rest_put(self, path, payload):
        match = INVENTORY_ITEM_PATH.match(path)
        if match:
            item = self.inventory_item(match.group(1))
            if item is None:
                return httpx.Response(404, json={"errors": "Not Found"})
            item.update({key: value for key, value in payload["inventory_item"].items() if key != "id"})
            return httpx.Response(200, json={"inventory_item": self.rest_inventory_item(item)})

        match = VARIANT_PATH.match(path)
        if not match:
            return httpx.Response(404, json={"errors": "Not Found"})
        product, variant = self.variant(match.group(1))
        if variant is None:
            return httpx.Response(404, json={"errors": "Not Found"})
        changes = {key: value for key, value in payload["variant"].items() if key != "id"}
        if "requires_shipping" in changes:
            variant["inventory_item"]["requires_shipping"] = changes.pop("requires_shipping")
        variant.update(changes)
        return httpx.Response(200, json={"variant": self.rest_variant(product, variant)})


@pytest.fixture
def shop():
    return FakeShop()


@pytest.fixture
async def client(shop):
    async with httpx.AsyncClient(transport=httpx.MockTransport(shop.handle)) as http_client:
        yield ShopifyAdminClient(SHOP_DOMAIN, ACCESS_TOKEN, client=http_client)


@pytest.fixture
def test_client(shop):
    from bulk_editor.main import app
    from bulk_editor.api.dependencies import get_admin_client

    async def override_admin_client():
        return ShopifyAdminClient(
            SHOP_DOMAIN,
            ACCESS_TOKEN,
            client=httpx.AsyncClient(transport=httpx.MockTransport(shop.handle))
        )

    app.dependency_overrides[get_admin_client] = override_admin_client
    yield TestClient(app)
    app.dependency_overrides.clear()
