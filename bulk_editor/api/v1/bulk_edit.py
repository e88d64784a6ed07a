import logging
from typing import Awaitable, Callable, List, Optional

from fastapi import APIRouter, Depends, Form, Request, status
from pydantic import BaseModel, ValidationError

from bulk_editor.api.dependencies import get_admin_client
from bulk_editor.api.v1.products import failure_response, validation_message
from bulk_editor.core.admin_client import ShopifyAdminClient, AdminAPIError
from bulk_editor.schemas.bulk_edit import (
    TitleEdit,
    StatusEdit,
    ProductTypeEdit,
    TagEdit,
    SkuEdit,
    VariantWeightEdit,
    VendorEdit,
    DescriptionEdit,
    PriceEdit,
    ProductCategoryEdit,
    BarcodeEdit,
    CostEdit,
    RequiresShippingEdit,
    TracksInventoryEdit,
    BulkEditResult,
    TagListResponse,
)
from bulk_editor.services.bulk_edit import BulkEditValidationError, parse_json_list, parse_product_ids
from bulk_editor.services.barcode import handle_barcode_edit
from bulk_editor.services.cost import handle_cost_edit
from bulk_editor.services.description import handle_description_edit
from bulk_editor.services.inventory_tracking import handle_tracks_inventory_edit
from bulk_editor.services.price import handle_price_edit
from bulk_editor.services.product_category import handle_product_category_edit
from bulk_editor.services.product_type import handle_product_type_edit
from bulk_editor.services.requires_shipping import handle_requires_shipping_edit
from bulk_editor.services.sku import handle_sku_edit
from bulk_editor.services.status import handle_status_edit
from bulk_editor.services.tags import handle_tag_edit, fetch_product_tags
from bulk_editor.services.title import handle_title_edit
from bulk_editor.services.variant_weight import handle_variant_weight_edit
from bulk_editor.services.vendor import handle_vendor_edit


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/bulk-edit", tags=["bulk-edit"])

Handler = Callable[[ShopifyAdminClient, List[str], BaseModel], Awaitable[BulkEditResult]]


async def run_bulk_edit(
    client: ShopifyAdminClient,
    product_ids_raw: Optional[str],
    build_edit: Callable[[], BaseModel],
    handler: Handler
):
    """Parse the request, run the handler and map request errors to 400."""
    try:
        product_ids = parse_product_ids(product_ids_raw)
        edit = build_edit()
        return await handler(client, product_ids, edit)
    except ValidationError as e:
        logger.warning(f"Rejected bulk edit request: {validation_message(e)}")
        return failure_response(status.HTTP_400_BAD_REQUEST, validation_message(e))
    except BulkEditValidationError as e:
        logger.warning(f"Rejected bulk edit request: {str(e)}")
        return failure_response(status.HTTP_400_BAD_REQUEST, str(e))


@router.post("/title")
async def edit_titles(
    productIds: Optional[str] = Form(None),
    editType: Optional[str] = Form(None),
    textToAdd: Optional[str] = Form(None),
    replacementText: Optional[str] = Form(None),
    capitalizationType: Optional[str] = Form(None),
    numberOfCharacters: Optional[str] = Form(None),
    client: ShopifyAdminClient = Depends(get_admin_client)
):
    return await run_bulk_edit(
        client,
        productIds,
        lambda: TitleEdit(
            editType=editType,
            textToAdd=textToAdd,
            replacementText=replacementText,
            capitalizationType=capitalizationType,
            numberOfCharacters=numberOfCharacters or None,
        ),
        handle_title_edit
    )


@router.post("/status")
async def edit_status(
    productIds: Optional[str] = Form(None),
    newStatus: Optional[str] = Form(None),
    client: ShopifyAdminClient = Depends(get_admin_client)
):
    return await run_bulk_edit(client, productIds, lambda: StatusEdit(newStatus=newStatus), handle_status_edit)


@router.post("/product-type")
async def edit_product_type(
    request: Request,
    productIds: Optional[str] = Form(None),
    client: ShopifyAdminClient = Depends(get_admin_client)
):
    # Empty form values collapse to the default, read the raw form so "" still clears the type
    form = await request.form()
    return await run_bulk_edit(
        client,
        productIds,
        lambda: ProductTypeEdit(newProductType=form.get("newProductType")),
        handle_product_type_edit
    )


@router.post("/tags")
async def edit_tags(
    productIds: Optional[str] = Form(None),
    action: Optional[str] = Form(None),
    tagAction: Optional[str] = Form(None),
    tags: str = Form(""),
    tagsToRemove: Optional[str] = Form(None),
    findTags: str = Form(""),
    replaceTags: str = Form(""),
    client: ShopifyAdminClient = Depends(get_admin_client)
):
    if action == "fetchTags":
        try:
            product_ids = parse_product_ids(productIds)
            return TagListResponse(tags=await fetch_product_tags(client, product_ids))
        except BulkEditValidationError as e:
            return failure_response(status.HTTP_400_BAD_REQUEST, str(e))
        except AdminAPIError as e:
            logger.error(f"Error fetching product tags: {e.message}")
            return failure_response(status.HTTP_502_BAD_GATEWAY, "Failed to fetch product tags", e.message)

    return await run_bulk_edit(
        client,
        productIds,
        lambda: TagEdit(
            tagAction=tagAction,
            tags=tags,
            tagsToRemove=[str(tag) for tag in parse_json_list(tagsToRemove, "tagsToRemove", required=False)],
            findTags=findTags,
            replaceTags=replaceTags,
        ),
        handle_tag_edit
    )


@router.post("/sku")
async def edit_skus(
    productIds: Optional[str] = Form(None),
    skuAction: Optional[str] = Form(None),
    skuValue: Optional[str] = Form(None),
    findText: Optional[str] = Form(None),
    replaceText: str = Form(""),
    prefix: Optional[str] = Form(None),
    suffix: Optional[str] = Form(None),
    client: ShopifyAdminClient = Depends(get_admin_client)
):
    return await run_bulk_edit(
        client,
        productIds,
        lambda: SkuEdit(
            skuAction=skuAction,
            skuValue=skuValue,
            findText=findText,
            replaceText=replaceText,
            prefix=prefix,
            suffix=suffix,
        ),
        handle_sku_edit
    )


@router.post("/variant-weight")
async def edit_variant_weights(
    productIds: Optional[str] = Form(None),
    weightValue: Optional[str] = Form(None),
    weightUnit: Optional[str] = Form(None),
    useRestApi: bool = Form(False),
    client: ShopifyAdminClient = Depends(get_admin_client)
):
    return await run_bulk_edit(
        client,
        productIds,
        lambda: VariantWeightEdit(weightValue=weightValue, weightUnit=weightUnit, useRestApi=useRestApi),
        handle_variant_weight_edit
    )


@router.post("/vendor")
async def edit_vendors(
    productIds: Optional[str] = Form(None),
    editType: Optional[str] = Form(None),
    newVendor: Optional[str] = Form(None),
    capitalizationType: Optional[str] = Form(None),
    client: ShopifyAdminClient = Depends(get_admin_client)
):
    return await run_bulk_edit(
        client,
        productIds,
        lambda: VendorEdit(editType=editType, newVendor=newVendor, capitalizationType=capitalizationType),
        handle_vendor_edit
    )


@router.post("/description")
async def edit_descriptions(
    productIds: Optional[str] = Form(None),
    editType: Optional[str] = Form(None),
    textToAdd: str = Form(""),
    textToRemove: str = Form(""),
    client: ShopifyAdminClient = Depends(get_admin_client)
):
    return await run_bulk_edit(
        client,
        productIds,
        lambda: DescriptionEdit(editType=editType, textToAdd=textToAdd, textToRemove=textToRemove),
        handle_description_edit
    )


@router.post("/price")
async def edit_prices(
    productIds: Optional[str] = Form(None),
    editType: Optional[str] = Form(None),
    newPrice: Optional[str] = Form(None),
    adjustmentType: Optional[str] = Form(None),
    adjustmentAmount: Optional[str] = Form(None),
    setCompareAtPriceToOriginal: bool = Form(False),
    shippingCost: Optional[str] = Form(None),
    roundingType: Optional[str] = Form(None),
    roundingValue: Optional[str] = Form(None),
    client: ShopifyAdminClient = Depends(get_admin_client)
):
    return await run_bulk_edit(
        client,
        productIds,
        lambda: PriceEdit(
            editType=editType,
            newPrice=newPrice,
            adjustmentType=adjustmentType or None,
            adjustmentAmount=adjustmentAmount,
            setCompareAtPriceToOriginal=setCompareAtPriceToOriginal,
            shippingCost=shippingCost,
            roundingType=roundingType or None,
            roundingValue=roundingValue or None,
        ),
        handle_price_edit
    )


@router.post("/product-category")
async def edit_product_category(
    productIds: Optional[str] = Form(None),
    newProductCategory: Optional[str] = Form(None),
    client: ShopifyAdminClient = Depends(get_admin_client)
):
    return await run_bulk_edit(
        client,
        productIds,
        lambda: ProductCategoryEdit(newProductCategory=newProductCategory),
        handle_product_category_edit
    )


@router.post("/barcode")
async def edit_barcodes(
    productIds: Optional[str] = Form(None),
    barcodeValue: Optional[str] = Form(None),
    client: ShopifyAdminClient = Depends(get_admin_client)
):
    return await run_bulk_edit(client, productIds, lambda: BarcodeEdit(barcodeValue=barcodeValue), handle_barcode_edit)


@router.post("/cost-per-item")
async def edit_costs(
    productIds: Optional[str] = Form(None),
    costValue: Optional[str] = Form(None),
    client: ShopifyAdminClient = Depends(get_admin_client)
):
    return await run_bulk_edit(client, productIds, lambda: CostEdit(costValue=costValue), handle_cost_edit)


@router.post("/requires-shipping")
async def edit_requires_shipping(
    productIds: Optional[str] = Form(None),
    requiresShipping: Optional[str] = Form(None),
    client: ShopifyAdminClient = Depends(get_admin_client)
):
    return await run_bulk_edit(
        client,
        productIds,
        lambda: RequiresShippingEdit(requiresShipping=requiresShipping),
        handle_requires_shipping_edit
    )


@router.post("/tracks-inventory")
async def edit_tracks_inventory(
    productIds: Optional[str] = Form(None),
    tracksInventory: Optional[str] = Form(None),
    client: ShopifyAdminClient = Depends(get_admin_client)
):
    return await run_bulk_edit(
        client,
        productIds,
        lambda: TracksInventoryEdit(tracksInventory=tracksInventory),
        handle_tracks_inventory_edit
    )
