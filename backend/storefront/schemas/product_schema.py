import re
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import Field, field_validator

from storefront.schemas.common import CamelModel

CATEGORY_ID_RE = re.compile(r"^[a-z0-9-]+$")


def normalize_category_id(value: Optional[str]) -> Optional[str]:
    """Lower-case slug with whitespace collapsed to '-'; None when unusable."""
    if not value:
        return None
    slug = re.sub(r"\s+", "-", value.strip().lower())
    if not slug:
        return None
    return slug if CATEGORY_ID_RE.match(slug) else None


def split_csv(value) -> List[str]:
    if not value:
        return []
    if isinstance(value, str):
        value = [value]
    entries = []
    for raw in value:
        entries.extend(part.strip() for part in re.split(r"[,\n]", str(raw)))
    return [e for e in entries if e]


class InventoryIn(CamelModel):
    on_hand: int = 0
    reserved: Optional[int] = None
    safety_stock: Optional[int] = None
    reorder_point: Optional[int] = None


class ProductIn(CamelModel):
    name: str = Field(..., min_length=1)
    sku: str = Field(..., min_length=1)
    description: Optional[str] = None
    product_details: Optional[List[str]] = None
    product_story: Optional[str] = None
    material_info: Optional[str] = None
    care_instructions: Optional[List[str]] = None
    features: Optional[List[str]] = None
    price: Decimal
    currency: Optional[str] = None
    status: Literal["draft", "active", "inactive"] = "active"
    colors: List[str] = Field(default_factory=list)
    sizes: List[str] = Field(default_factory=list)
    category: Optional[str] = None
    inventory: InventoryIn = Field(default_factory=InventoryIn)
    image_path: Optional[str] = None
    image_alt: Optional[str] = None

    @field_validator("colors", "sizes", mode="before")
    @classmethod
    def _split_csv(cls, value):
        return split_csv(value)

    @field_validator("category", mode="before")
    @classmethod
    def _normalize_category(cls, value):
        return normalize_category_id(value)


class CategoryIn(CamelModel):
    id: str
    label: str = Field(..., min_length=1)
    nav_label: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    sort_order: Optional[int] = None

    @field_validator("id")
    @classmethod
    def _normalize_id(cls, value):
        slug = normalize_category_id(value)
        if not slug:
            raise ValueError("Category id must contain alphanumeric characters")
        return slug

    @field_validator("label", "nav_label", "description")
    @classmethod
    def _strip(cls, value):
        return value.strip()
