from pydantic import BaseModel
from typing import Any, List, Optional, Literal, Union


CapitalizationType = Literal["titleCase", "uppercase", "lowercase", "firstLetter"]


class TitleEdit(BaseModel):
    editType: Optional[Literal[
        "addTextBeginning", "addTextEnd", "removeText", "replaceText", "capitalize", "truncate"
    ]] = None
    textToAdd: Optional[str] = None
    replacementText: Optional[str] = None
    capitalizationType: Optional[CapitalizationType] = None
    numberOfCharacters: Optional[int] = None


class StatusEdit(BaseModel):
    newStatus: Optional[str] = None


class ProductTypeEdit(BaseModel):
    newProductType: Optional[str] = None


class TagEdit(BaseModel):
    tagAction: Optional[Literal["add_tags", "remove", "replace", "find_replace"]] = None
    tags: str = ""
    tagsToRemove: List[str] = []
    findTags: str = ""
    replaceTags: str = ""


class SkuEdit(BaseModel):
    skuAction: Optional[Literal["update", "replace", "find_replace", "add_prefix", "add_suffix"]] = None
    skuValue: Optional[str] = None
    findText: Optional[str] = None
    replaceText: str = ""
    prefix: Optional[str] = None
    suffix: Optional[str] = None


class VariantWeightEdit(BaseModel):
    weightValue: Optional[str] = None
    weightUnit: Optional[str] = None
    useRestApi: bool = False


class VendorEdit(BaseModel):
    editType: Optional[Literal["updateVendor", "capitalizeVendor"]] = None
    newVendor: Optional[str] = None
    capitalizationType: Optional[CapitalizationType] = None


class DescriptionEdit(BaseModel):
    editType: Optional[Literal["addBeginning", "addEnd", "remove", "replace"]] = None
    textToAdd: str = ""
    textToRemove: str = ""


PriceEditType = Literal[
    "setPrice",
    "setCompareAtPrice",
    "adjustPrice",
    "adjustPriceByPercentage",
    "adjustCompareAtPrice",
    "adjustCompareAtPriceByPercentage",
    "setPriceToCompareAtPercentage",
    "setPriceToCompareAtPercentageLess",
    "setCompareAtPriceToPricePercentage",
    "setCompareAtPriceToCostPercentage",
    "setPriceToCostPercentage",
    "setPriceToCostAndShippingPercentage",
    "removeCompareAtPrice",
    "roundPrice",
    "roundCompareAtPrice",
]


class PriceEdit(BaseModel):
    editType: Optional[PriceEditType] = None
    newPrice: Optional[str] = None
    adjustmentType: Optional[Literal["increase", "decrease"]] = None
    adjustmentAmount: Optional[str] = None
    setCompareAtPriceToOriginal: bool = False
    shippingCost: Optional[str] = None
    roundingType: Optional[Literal["upper", "lower", "nearest"]] = None
    roundingValue: Optional[int] = None


class ProductCategoryEdit(BaseModel):
    newProductCategory: Optional[str] = None


class BarcodeEdit(BaseModel):
    barcodeValue: Optional[str] = None


class CostEdit(BaseModel):
    costValue: Optional[str] = None


class RequiresShippingEdit(BaseModel):
    requiresShipping: Optional[str] = None


class TracksInventoryEdit(BaseModel):
    tracksInventory: Optional[str] = None


class FieldError(BaseModel):
    field: Optional[List[str]] = None
    message: str


class VariantOutcome(BaseModel):
    variant_id: str
    original_value: Any = None
    new_value: Any = None
    skipped: bool = False
    errors: List[FieldError] = []


class ProductOutcome(BaseModel):
    product_id: str
    product_title: Optional[str] = None
    original_value: Any = None
    new_value: Any = None
    skipped: bool = False
    errors: List[FieldError] = []
    variants: List[VariantOutcome] = []

    @property
    def updated_variants(self) -> int:
        return sum(1 for v in self.variants if not v.skipped and not v.errors)

    @property
    def failed(self) -> bool:
        if self.errors:
            return True
        failed_variants = [v for v in self.variants if v.errors]
        return bool(failed_variants) and self.updated_variants == 0

    @property
    def updated(self) -> bool:
        if self.failed:
            return False
        if self.variants:
            return self.updated_variants > 0
        return not self.skipped


class BulkEditStats(BaseModel):
    products_total: int = 0
    products_updated: int = 0
    products_skipped: int = 0
    products_failed: int = 0
    variants_updated: int = 0
    variants_skipped: int = 0
    variants_failed: int = 0


class BulkEditOk(BaseModel):
    status: Literal["ok"] = "ok"
    success: Literal[True] = True
    message: str
    stats: BulkEditStats
    results: List[ProductOutcome] = []


class BulkEditPartialFailure(BaseModel):
    status: Literal["partial_failure"] = "partial_failure"
    success: Literal[True] = True
    message: str
    stats: BulkEditStats
    errors: List[str] = []
    results: List[ProductOutcome] = []


class BulkEditFailure(BaseModel):
    status: Literal["error"] = "error"
    success: Literal[False] = False
    error: str
    details: Optional[str] = None
    stats: Optional[BulkEditStats] = None


BulkEditResult = Union[BulkEditOk, BulkEditPartialFailure, BulkEditFailure]


class TagListResponse(BaseModel):
    success: bool = True
    tags: List[str]
