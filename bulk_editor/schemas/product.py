from pydantic import BaseModel
from typing import List, Optional, Literal
import enum


class ProductStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    DRAFT = "DRAFT"
    ARCHIVED = "ARCHIVED"


class WeightUnit(str, enum.Enum):
    G = "g"
    KG = "kg"
    OZ = "oz"
    LB = "lb"


FilterField = Literal["title", "description", "productId", "collection", "price"]
FilterCondition = Literal["is", "contains", "doesNotContain", "startsWith", "endsWith", "empty"]


class FilterRule(BaseModel):
    field: FilterField = "title"
    condition: FilterCondition = "contains"
    value: str = ""


class FeaturedImage(BaseModel):
    url: str
    altText: Optional[str] = None


class ProductSummary(BaseModel):
    id: str
    title: str
    description: str = ""
    productType: str = ""
    vendor: str = ""
    status: str = ProductStatus.ACTIVE.value
    tags: List[str] = []
    featuredImage: Optional[FeaturedImage] = None
    priceAmount: Optional[str] = None
    currencyCode: Optional[str] = None


class FilterResponse(BaseModel):
    success: bool = True
    count: int
    products: List[ProductSummary]


class VariantWeightDetail(BaseModel):
    id: str
    title: Optional[str] = None
    weight: Optional[float] = None
    weight_unit: Optional[str] = None


class ProductWeights(BaseModel):
    id: str
    title: str
    status: str = ProductStatus.ACTIVE.value
    variant_details: List[VariantWeightDetail] = []
