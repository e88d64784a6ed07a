import logging
import httpx
from typing import Optional, List, Dict, Any, Tuple

from bulk_editor.core.config import settings

logger = logging.getLogger(__name__)

GID_PREFIX = "gid://shopify/"

_http_client: Optional[httpx.AsyncClient] = None


class AdminAPIError(Exception):
    """Failure talking to the shop Admin API."""

    def __init__(self, message: str, status_code: Optional[int] = None, details: Any = None):
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(message)


class GraphQLError(AdminAPIError):
    """Top-level GraphQL errors, e.g. a field missing on the configured API version."""


def get_http_client() -> httpx.AsyncClient:
    global _http_client
    if _http_client is None:
        _http_client = httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_SECONDS)
    return _http_client


async def close_http_client():
    global _http_client
    if _http_client is not None:
        await _http_client.aclose()
        _http_client = None


def _to_gid(resource: str, value) -> str:
    value = str(value).strip()
    if value.startswith(GID_PREFIX):
        return value
    return f"{GID_PREFIX}{resource}/{value}"


def product_gid(product_id) -> str:
    return _to_gid("Product", product_id)


def variant_gid(variant_id) -> str:
    return _to_gid("ProductVariant", variant_id)


def inventory_item_gid(inventory_item_id) -> str:
    return _to_gid("InventoryItem", inventory_item_id)


def legacy_id(gid) -> str:
    """Numeric id used by the REST endpoints, from either form of id."""
    numeric = str(gid).rstrip("/").split("/")[-1]
    if not numeric:
        raise ValueError(f"Cannot extract numeric id from {gid}")
    return numeric


PRODUCT_UPDATE_MUTATION = """
mutation productUpdate($input: ProductInput!) {
  productUpdate(input: $input) {
    product {
      id
      %(fields)s
    }
    userErrors {
      field
      message
    }
  }
}
"""

PRODUCT_FIELDS_QUERY = """
query getProduct($id: ID!) {
  product(id: $id) {
    id
    %(fields)s
  }
}
"""

PRODUCT_VARIANTS_QUERY = """
query getProductVariants($id: ID!, $first: Int!) {
  product(id: $id) {
    id
    title
    variants(first: $first) {
      edges {
        node {
          id
          title
          %(fields)s
        }
      }
    }
  }
}
"""

VARIANT_UPDATE_MUTATION = """
mutation productVariantUpdate($input: ProductVariantInput!) {
  productVariantUpdate(input: $input) {
    productVariant {
      id
      sku
    }
    userErrors {
      field
      message
    }
  }
}
"""

VARIANTS_BULK_UPDATE_MUTATION = """
mutation productVariantsBulkUpdate($productId: ID!, $variants: [ProductVariantsBulkInput!]!) {
  productVariantsBulkUpdate(productId: $productId, variants: $variants) {
    productVariants {
      id
      price
      compareAtPrice
    }
    userErrors {
      field
      message
    }
  }
}
"""

INVENTORY_ITEM_UPDATE_MUTATION = """
mutation inventoryItemUpdate($id: ID!, $input: InventoryItemUpdateInput!) {
  inventoryItemUpdate(id: $id, input: $input) {
    inventoryItem {
      id
      tracked
      unitCost {
        amount
      }
    }
    userErrors {
      field
      message
    }
  }
}
"""

COLLECTION_SEARCH_QUERY = """
query findCollections($first: Int!, $query: String) {
  collections(first: $first, query: $query) {
    edges {
      node {
        id
        title
      }
    }
  }
}
"""

COLLECTION_CREATE_MUTATION = """
mutation collectionCreate($input: CollectionInput!) {
  collectionCreate(input: $input) {
    collection {
      id
      title
    }
    userErrors {
      field
      message
    }
  }
}
"""

COLLECTION_ADD_PRODUCTS_MUTATION = """
mutation collectionAddProducts($id: ID!, $productIds: [ID!]!) {
  collectionAddProducts(id: $id, productIds: $productIds) {
    collection {
      id
      title
    }
    userErrors {
      field
      message
    }
  }
}
"""

PRODUCT_IN_COLLECTION_QUERY = """
query productInCollection($id: ID!, $collectionId: ID!) {
  product(id: $id) {
    id
    title
    inCollection(id: $collectionId)
  }
}
"""

PRODUCT_SUMMARY_FIELDS = """
    title
    description
    productType
    vendor
    status
    tags
    featuredImage {
      url
      altText
    }
    priceRangeV2 {
      minVariantPrice {
        amount
        currencyCode
      }
    }
"""

PRODUCT_SEARCH_QUERY = """
query searchProducts($first: Int!, $query: String) {
  products(first: $first, query: $query) {
    edges {
      node {
        id
        %s
      }
    }
  }
}
""" % PRODUCT_SUMMARY_FIELDS


class ShopifyAdminClient:
    """Admin API access for one shop, over the GraphQL and REST surfaces."""

    def __init__(
        self,
        shop_domain: str,
        access_token: str,
        api_version: str = None,
        client: httpx.AsyncClient = None
    ):
        self.shop_domain = shop_domain
        self.access_token = access_token
        self.api_version = api_version or settings.SHOP_API_VERSION
        self.base_url = f"https://{shop_domain}/admin/api/{self.api_version}"
        self.client = client

    async def _get_client(self) -> httpx.AsyncClient:
        if self.client is None:
            self.client = get_http_client()
        return self.client

    def _headers(self) -> dict:
        return {
            "Content-Type": "application/json",
            "X-Shopify-Access-Token": self.access_token
        }

    async def _request(self, method: str, path: str, params: dict = None, payload: dict = None) -> dict:
        url = f"{self.base_url}/{path.lstrip('/')}"
        logger.debug(f"{method} {url} params={params} payload={payload}")
        try:
            client = await self._get_client()
            response = await client.request(method, url, params=params, json=payload, headers=self._headers())
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"Admin API {method} {path} failed with status {e.response.status_code}: {e.response.text[:500]}")
            try:
                details = e.response.json()
            except ValueError:
                details = e.response.text
            raise AdminAPIError(
                f"Admin API request failed: {e.response.status_code}",
                status_code=e.response.status_code,
                details=details
            ) from e
        except httpx.TimeoutException as e:
            logger.error(f"Admin API {method} {path} timed out")
            raise AdminAPIError("Admin API request timed out") from e
        except httpx.RequestError as e:
            logger.error(f"Admin API {method} {path} network error: {str(e)}")
            raise AdminAPIError(f"Admin API network error: {str(e)}") from e
        except ValueError as e:
            logger.error(f"Admin API {method} {path} returned a non-JSON body")
            raise AdminAPIError("Admin API returned an invalid JSON body") from e

    async def graphql(self, query: str, variables: Optional[dict] = None) -> dict:
        body = await self._request("POST", "graphql.json", payload={"query": query, "variables": variables or {}})
        errors = body.get("errors")
        if errors:
            messages = ", ".join(str(err.get("message", err)) for err in errors)
            logger.error(f"GraphQL errors: {messages}")
            raise GraphQLError(f"GraphQL errors: {messages}", details=errors)
        return body.get("data") or {}

    async def rest_get(self, path: str, params: Optional[dict] = None) -> dict:
        return await self._request("GET", path, params=params)

    async def rest_put(self, path: str, payload: dict) -> dict:
        return await self._request("PUT", path, payload=payload)

    async def get_product(self, product_id, fields: List[str]) -> dict:
        data = await self.graphql(
            PRODUCT_FIELDS_QUERY % {"fields": "\n    ".join(fields)},
            {"id": product_gid(product_id)}
        )
        product = data.get("product")
        if product is None:
            raise AdminAPIError(f"Product {product_id} not found", status_code=404)
        return product

    async def update_product(self, product_id, changes: Dict[str, Any]) -> Tuple[Optional[dict], List[dict]]:
        logger.info(f"Updating product {product_id}: {list(changes)}")
        data = await self.graphql(
            PRODUCT_UPDATE_MUTATION % {"fields": "\n      ".join(changes)},
            {"input": {"id": product_gid(product_id), **changes}}
        )
        result = data.get("productUpdate") or {}
        user_errors = result.get("userErrors") or []
        if user_errors:
            logger.warning(f"User errors updating product {product_id}: {user_errors}")
        return result.get("product"), user_errors

    async def get_product_variants(self, product_id, fields: List[str] = None) -> Tuple[str, List[dict]]:
        """Product title and its variants with the requested fields (SKU by default)."""
        data = await self.graphql(
            PRODUCT_VARIANTS_QUERY % {"fields": "\n          ".join(fields or ["sku"])},
            {"id": product_gid(product_id), "first": settings.VARIANTS_PAGE_SIZE}
        )
        product = data.get("product")
        if product is None:
            raise AdminAPIError(f"Product {product_id} not found", status_code=404)
        variants = [edge["node"] for edge in (product.get("variants") or {}).get("edges", [])]
        return product.get("title", ""), variants

    async def update_variant(self, variant_id, changes: Dict[str, Any]) -> Tuple[Optional[dict], List[dict]]:
        data = await self.graphql(
            VARIANT_UPDATE_MUTATION,
            {"input": {"id": variant_gid(variant_id), **changes}}
        )
        result = data.get("productVariantUpdate") or {}
        return result.get("productVariant"), result.get("userErrors") or []

    async def bulk_update_variants(self, product_id, variants: List[dict]) -> Tuple[List[dict], List[dict]]:
        logger.info(f"Updating {len(variants)} variants of product {product_id}")
        data = await self.graphql(
            VARIANTS_BULK_UPDATE_MUTATION,
            {"productId": product_gid(product_id), "variants": variants}
        )
        result = data.get("productVariantsBulkUpdate") or {}
        user_errors = result.get("userErrors") or []
        if user_errors:
            logger.warning(f"User errors updating variants of product {product_id}: {user_errors}")
        return result.get("productVariants") or [], user_errors

    async def update_inventory_item(self, inventory_item_id, changes: Dict[str, Any]) -> Tuple[Optional[dict], List[dict]]:
        data = await self.graphql(
            INVENTORY_ITEM_UPDATE_MUTATION,
            {"id": inventory_item_gid(inventory_item_id), "input": changes}
        )
        result = data.get("inventoryItemUpdate") or {}
        return result.get("inventoryItem"), result.get("userErrors") or []

    async def update_inventory_item_rest(self, inventory_item_id, changes: Dict[str, Any]) -> dict:
        numeric_id = legacy_id(inventory_item_id)
        logger.info(f"Updating inventory item {numeric_id} through REST: {changes}")
        data = await self.rest_put(
            f"inventory_items/{numeric_id}.json",
            {"inventory_item": {"id": numeric_id, **changes}}
        )
        return data.get("inventory_item") or {}

    async def find_collection(self, title: str) -> Optional[dict]:
        """Collection whose title matches exactly, ignoring case."""
        escaped = title.replace("\\", "\\\\").replace('"', '\\"')
        data = await self.graphql(COLLECTION_SEARCH_QUERY, {"first": 10, "query": f'title:"{escaped}"'})
        for edge in (data.get("collections") or {}).get("edges", []):
            if edge["node"].get("title", "").casefold() == title.casefold():
                return edge["node"]
        return None

    async def create_collection(self, title: str) -> Tuple[Optional[dict], List[dict]]:
        logger.info(f"Creating collection {title!r}")
        data = await self.graphql(COLLECTION_CREATE_MUTATION, {"input": {"title": title}})
        result = data.get("collectionCreate") or {}
        return result.get("collection"), result.get("userErrors") or []

    async def add_products_to_collection(self, collection_id: str, product_ids: List[str]) -> List[dict]:
        data = await self.graphql(
            COLLECTION_ADD_PRODUCTS_MUTATION,
            {"id": collection_id, "productIds": [product_gid(product_id) for product_id in product_ids]}
        )
        return (data.get("collectionAddProducts") or {}).get("userErrors") or []

    async def product_in_collection(self, product_id, collection_id: str) -> Tuple[str, bool]:
        data = await self.graphql(
            PRODUCT_IN_COLLECTION_QUERY,
            {"id": product_gid(product_id), "collectionId": collection_id}
        )
        product = data.get("product")
        if product is None:
            raise AdminAPIError(f"Product {product_id} not found", status_code=404)
        return product.get("title", ""), bool(product.get("inCollection"))

    async def get_variant_rest(self, variant_id) -> dict:
        data = await self.rest_get(f"variants/{legacy_id(variant_id)}.json")
        return data.get("variant") or {}

    async def update_variant_rest(self, variant_id, changes: Dict[str, Any]) -> dict:
        numeric_id = legacy_id(variant_id)
        logger.info(f"Updating variant {numeric_id} through REST: {changes}")
        data = await self.rest_put(
            f"variants/{numeric_id}.json",
            {"variant": {"id": numeric_id, **changes}}
        )
        return data.get("variant") or {}

    async def search_products(self, query: str, first: int = None) -> List[dict]:
        first = first or settings.FILTER_PAGE_SIZE
        logger.info(f"Searching products (first={first}) with query: {query!r}")
        data = await self.graphql(PRODUCT_SEARCH_QUERY, {"first": first, "query": query or None})
        return [edge["node"] for edge in (data.get("products") or {}).get("edges", [])]

    async def get_product_summary(self, product_id) -> Optional[dict]:
        data = await self.graphql(
            PRODUCT_FIELDS_QUERY % {"fields": PRODUCT_SUMMARY_FIELDS},
            {"id": product_gid(product_id)}
        )
        return data.get("product")

    async def list_products_rest(self, params: Optional[dict] = None) -> List[dict]:
        data = await self.rest_get("products.json", params=params)
        return data.get("products") or []

    async def get_product_rest(self, product_id) -> Optional[dict]:
        data = await self.rest_get(f"products/{legacy_id(product_id)}.json")
        return data.get("product")

    async def list_variants_rest(self, product_id) -> List[dict]:
        data = await self.rest_get(f"products/{legacy_id(product_id)}/variants.json")
        return data.get("variants") or []
