import logging
from typing import Optional, Tuple

from fastapi import HTTPException, status, Request

from bulk_editor.core.admin_client import ShopifyAdminClient
from bulk_editor.core.config import settings


logger = logging.getLogger(__name__)


def resolve_shop_credentials(request: Request) -> Optional[Tuple[str, str]]:
    """Shop domain and access token, always taken together from one source.

    A shop from one source is never paired with a token from another, so a
    caller-supplied domain can't receive the configured token.
    """
    # Session set by the embedding platform
    shop = request.session.get("shop")
    token = request.session.get("access_token")
    if shop and token:
        return shop, token

    # Headers, only as a complete pair
    shop = request.headers.get("X-Shop-Domain", "")
    auth_header = request.headers.get("Authorization", "")
    token = auth_header.replace("Bearer ", "", 1) if auth_header.startswith("Bearer ") else ""
    if shop and token:
        return shop, token
    if shop or token:
        logger.warning("Ignoring incomplete shop credentials in request headers")

    # Configured single-shop defaults
    if settings.SHOP_DOMAIN and settings.SHOP_ACCESS_TOKEN:
        return settings.SHOP_DOMAIN, settings.SHOP_ACCESS_TOKEN
    return None


async def get_admin_client(request: Request) -> ShopifyAdminClient:
    credentials = resolve_shop_credentials(request)
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    shop, token = credentials
    return ShopifyAdminClient(shop, token)
