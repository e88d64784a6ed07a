import logging
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, Request, Form
from fastapi.responses import RedirectResponse, HTMLResponse
from fastapi.templating import Jinja2Templates
from pydantic import ValidationError

from bulk_editor.api.dependencies import get_admin_client
from bulk_editor.core.admin_client import ShopifyAdminClient, AdminAPIError
from bulk_editor.core.config import settings
from bulk_editor.schemas.bulk_edit import TitleEdit
from bulk_editor.schemas.product import FilterRule
from bulk_editor.services.bulk_edit import BulkEditValidationError, parse_product_ids
from bulk_editor.services.filtering import ALLOWED_CONDITIONS, preview_products
from bulk_editor.services.title import handle_title_edit


logger = logging.getLogger(__name__)

router = APIRouter(tags=["web"])
templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent.parent / "templates"))
templates.env.globals["app_name"] = settings.APP_NAME


def render_page(request: Request, rule: FilterRule, products=None, result=None, error: str = None, status_code: int = 200):
    return templates.TemplateResponse(
        request,
        "bulk_edit.html",
        {
            "rule": rule,
            "conditions": ALLOWED_CONDITIONS,
            "products": products or [],
            "result": result,
            "error": error,
        },
        status_code=status_code
    )


@router.get("/", response_class=HTMLResponse)
async def root(request: Request):
    return RedirectResponse(url="/bulk-edit")


@router.get("/bulk-edit", response_class=HTMLResponse)
async def bulk_edit_page(request: Request, client: ShopifyAdminClient = Depends(get_admin_client)):
    rule = FilterRule(value="")
    try:
        products = await preview_products(client, rule)
    except AdminAPIError as e:
        logger.error(f"Error loading products: {e.message}")
        return render_page(request, rule, error="Failed to fetch products", status_code=502)
    return render_page(request, rule, products=products)


@router.post("/bulk-edit", response_class=HTMLResponse)
async def bulk_edit_action(
    request: Request,
    actionType: str = Form("filter"),
    field: str = Form("title"),
    condition: str = Form("contains"),
    value: str = Form(""),
    productIds: Optional[str] = Form(None),
    editType: Optional[str] = Form(None),
    textToAdd: Optional[str] = Form(None),
    replacementText: Optional[str] = Form(None),
    capitalizationType: Optional[str] = Form(None),
    numberOfCharacters: Optional[str] = Form(None),
    client: ShopifyAdminClient = Depends(get_admin_client)
):
    try:
        rule = FilterRule(field=field, condition=condition, value=value)
    except ValidationError:
        rule = FilterRule()
        return render_page(request, rule, error=f"Invalid filter: {field} {condition}", status_code=400)

    result = None
    if actionType == "bulkEdit":
        try:
            edit = TitleEdit(
                editType=editType,
                textToAdd=textToAdd,
                replacementText=replacementText,
                capitalizationType=capitalizationType,
                numberOfCharacters=numberOfCharacters or None,
            )
            result = await handle_title_edit(client, parse_product_ids(productIds), edit)
        except (ValidationError, BulkEditValidationError) as e:
            return render_page(request, rule, error=str(e), status_code=400)

    try:
        products = await preview_products(client, rule)
    except BulkEditValidationError as e:
        return render_page(request, rule, result=result, error=str(e), status_code=400)
    except AdminAPIError as e:
        logger.error(f"Error filtering products: {e.message}")
        return render_page(request, rule, result=result, error="Failed to fetch products", status_code=502)

    return render_page(request, rule, products=products, result=result)
