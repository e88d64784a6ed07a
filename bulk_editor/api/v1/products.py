import logging
from typing import Optional

from fastapi import APIRouter, Depends, Form, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from bulk_editor.api.dependencies import get_admin_client
from bulk_editor.core.admin_client import ShopifyAdminClient, AdminAPIError
from bulk_editor.schemas.bulk_edit import BulkEditFailure
from bulk_editor.schemas.product import FilterRule, FilterResponse
from bulk_editor.services.bulk_edit import BulkEditValidationError, parse_json_list
from bulk_editor.services.filtering import preview_products, list_products_with_weights


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/products", tags=["products"])


def failure_response(status_code: int, error: str, details: Optional[str] = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=BulkEditFailure(error=error, details=details).model_dump(),
    )


def validation_message(exc: ValidationError) -> str:
    return "; ".join(
        f"Invalid parameter {'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
        for err in exc.errors()
    )


@router.post("/filter", response_model=FilterResponse)
async def filter_products(
    field: str = Form("title"),
    condition: str = Form("contains"),
    value: str = Form(""),
    client: ShopifyAdminClient = Depends(get_admin_client)
):
    try:
        rule = FilterRule(field=field, condition=condition, value=value)
        products = await preview_products(client, rule)
        return FilterResponse(count=len(products), products=products)
    except ValidationError as e:
        return failure_response(status.HTTP_400_BAD_REQUEST, validation_message(e))
    except BulkEditValidationError as e:
        return failure_response(status.HTTP_400_BAD_REQUEST, str(e))
    except AdminAPIError as e:
        logger.error(f"Error filtering products: {e.message}")
        return failure_response(status.HTTP_502_BAD_GATEWAY, "Failed to fetch products", e.message)


@router.post("/weights")
async def product_weights(
    productIds: Optional[str] = Form(None),
    title: Optional[str] = Form(None),
    client: ShopifyAdminClient = Depends(get_admin_client)
):
    try:
        product_ids = [str(product_id) for product_id in parse_json_list(productIds, "productIds", required=False)]
        products = await list_products_with_weights(client, product_ids=product_ids, title=title)
        return {
            "success": True,
            "count": len(products),
            "products": [product.model_dump() for product in products]
        }
    except BulkEditValidationError as e:
        return failure_response(status.HTTP_400_BAD_REQUEST, str(e))
    except AdminAPIError as e:
        logger.error(f"Error fetching product weights: {e.message}")
        return failure_response(status.HTTP_502_BAD_GATEWAY, "Failed to fetch product weights", e.message)
