from typing import List

from fastapi import APIRouter

from bulk_editor.schemas.category import CategoryOption, TaxonomyNode
from bulk_editor.services.taxonomy import taxonomy_service


router = APIRouter(prefix="/api/v1/taxonomy", tags=["taxonomy"])


@router.get("/tree", response_model=List[TaxonomyNode])
async def get_taxonomy_tree():
    return taxonomy_service.get_tree()


@router.get("/categories", response_model=List[CategoryOption])
async def get_taxonomy_categories():
    return taxonomy_service.get_flat_list()
