from __future__ import annotations

from pydantic import BaseModel
from typing import List


class TaxonomyNode(BaseModel):
    id: str
    name: str
    full_path: str
    level: int
    children: List[TaxonomyNode] = []


class CategoryOption(BaseModel):
    label: str
    value: str


TaxonomyNode.model_rebuild()
