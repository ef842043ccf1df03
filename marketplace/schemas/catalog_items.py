"""
Pydantic schemas for the catalog items resource.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from marketplace.db.models.category import FieldType
from marketplace.db.models.item import CatalogItemStatus

AttributeValue = Union[str, int, float, bool, None]

SORT_OPTIONS = ("newest", "price_asc", "price_desc")
STATUS_ALL = "all"


class CatalogItemCreate(BaseModel):
    """
    Schema for creating a catalog item.
    """

    category_id: int = Field(..., description="Category the item belongs to, fixed after creation")
    price: Optional[Decimal] = Field(None, ge=0, max_digits=12, decimal_places=2, description="Asking price")
    condition_id: Optional[int] = Field(None, description="Card condition")
    description: Optional[str] = Field(None, max_length=1000)
    is_graded: bool = Field(False, description="Whether the item is professionally graded")
    status: CatalogItemStatus = Field(CatalogItemStatus.DRAFT, description="Initial status, draft or listed")
    attributes: Dict[str, Any] = Field(default_factory=dict, description="Dynamic attributes by field name")


class CatalogItemUpdate(BaseModel):
    """
    Schema for updating a catalog item. The category cannot be changed.
    """

    model_config = ConfigDict(extra="forbid")

    price: Optional[Decimal] = Field(None, ge=0, max_digits=12, decimal_places=2)
    condition_id: Optional[int] = None
    description: Optional[str] = Field(None, max_length=1000)
    is_graded: Optional[bool] = None
    status: Optional[CatalogItemStatus] = None
    attributes: Optional[Dict[str, AttributeValue]] = Field(
        None, description="Attribute changes, a null value removes the attribute"
    )


class CatalogItemResponse(BaseModel):
    """
    Catalog item in a listing.
    """

    id: int
    category_id: int
    owner_id: int
    condition_id: Optional[int] = None
    title: Optional[str] = None
    slug: Optional[str] = None
    description: Optional[str] = None
    price: Optional[Decimal] = None
    is_graded: bool
    status: CatalogItemStatus
    attributes: Dict[str, str] = Field(default_factory=dict)
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @field_validator("attributes", mode="before")
    def default_attributes(cls, v: Any) -> Any:
        return v or {}


class ProjectedFieldResponse(BaseModel):
    """
    One labelled attribute of an item detail page.
    """

    name: str
    label: str
    field_type: FieldType
    value: str
    mark_for_popup: bool = False


class CatalogItemDetailResponse(CatalogItemResponse):
    """
    Catalog item detail with attributes labelled and ordered by its category schema.
    """

    category_name: Optional[str] = None
    category_slug: Optional[str] = None
    condition_name: Optional[str] = None
    details: List[ProjectedFieldResponse] = Field(default_factory=list)


class CatalogItemListResponse(BaseModel):
    """
    Paginated list.
    """

    items: List[CatalogItemResponse]
    total: int
    page: int
    page_size: int
    pages: int
    has_next_page: bool
    has_prev_page: bool


class CatalogSearchFilter(BaseModel):
    """
    Search parameters for the catalog query engine.
    """

    category_id: Optional[int] = None
    owner_id: Optional[int] = None
    status: Optional[str] = Field(None, description="Item status, or 'all' for privileged callers")
    dynamic_filters: Dict[str, str] = Field(default_factory=dict)
    sort: str = "newest"
    page: int = 1
    page_size: Optional[int] = None
    q: Optional[str] = Field(None, description="Free text over titles and text attributes")
    min_price: Optional[Decimal] = None
    max_price: Optional[Decimal] = None
    is_graded: Optional[bool] = None
    condition_id: Optional[int] = None

    @field_validator("q")
    def validate_search(cls, v: Optional[str]) -> Optional[str]:
        if v is not None:
            v = v.strip()
            return v or None
        return v
