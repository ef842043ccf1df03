"""
Pydantic schemas for categories, field definitions and card conditions.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from marketplace.db.models.category import FieldType, SchemaVariant

SLUG_PATTERN = r"^[a-z0-9]+(?:-[a-z0-9]+)*$"


class CategoryBase(BaseModel):
    """
    Base schema for category data.
    """

    name: str = Field(..., min_length=1, max_length=100, description="Display name")
    slug: str = Field(..., min_length=1, max_length=100, pattern=SLUG_PATTERN, description="Unique URL key")
    icon: Optional[str] = Field(None, max_length=255, description="Icon URL")
    is_active: bool = Field(True, description="Whether the category is listed")
    sort_order: int = Field(0, description="Display priority, lower first")
    has_grading: bool = Field(False, description="Whether items distinguish graded and ungraded variants")


class CategoryCreate(CategoryBase):
    """
    Schema for creating a category.
    """

    pass


class CategoryUpdate(BaseModel):
    """
    Schema for partially updating a category.
    """

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    slug: Optional[str] = Field(None, min_length=1, max_length=100, pattern=SLUG_PATTERN)
    icon: Optional[str] = Field(None, max_length=255)
    is_active: Optional[bool] = None
    sort_order: Optional[int] = None
    has_grading: Optional[bool] = None


class CategoryResponse(CategoryBase):
    """
    Schema for category response.
    """

    id: int = Field(..., description="Category ID")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class FieldDefinitionBase(BaseModel):
    """
    Base schema for field definition data.
    """

    label: Optional[str] = Field(None, max_length=100)
    field_type: FieldType = Field(FieldType.TEXT, description="Value type")
    options: Optional[List[str]] = Field(None, description="Allowed values for select fields")
    max_length: Optional[int] = Field(None, ge=1, description="Maximum text length")
    prefix: Optional[str] = Field(None, max_length=50, description="Prepended to the value in titles")
    is_required: bool = False
    priority: int = Field(0, description="Display order, lower first")
    mark_as_title: bool = False
    show_on_detail: bool = True
    mark_for_popup: bool = False
    additional_information: Optional[str] = None


class FieldDefinitionCreate(FieldDefinitionBase):
    """
    Schema for creating a field definition.
    """

    name: str = Field(..., min_length=1, max_length=100, pattern=r"^[a-z][a-z0-9_]*$")

    @model_validator(mode="after")
    def check_options(self) -> "FieldDefinitionCreate":
        if self.field_type == FieldType.SELECT and not self.options:
            raise ValueError("Select fields need at least one option")
        return self


class FieldDefinitionUpdate(BaseModel):
    """
    Schema for partially updating a field definition. The name is fixed because
    stored attribute bags are keyed by it.
    """

    label: Optional[str] = Field(None, max_length=100)
    field_type: Optional[FieldType] = None
    options: Optional[List[str]] = None
    max_length: Optional[int] = Field(None, ge=1)
    prefix: Optional[str] = Field(None, max_length=50)
    is_required: Optional[bool] = None
    priority: Optional[int] = None
    mark_as_title: Optional[bool] = None
    show_on_detail: Optional[bool] = None
    mark_for_popup: Optional[bool] = None
    additional_information: Optional[str] = None


class FieldDefinitionResponse(FieldDefinitionBase):
    """
    Schema for field definition response.
    """

    id: int
    category_id: int
    name: str

    model_config = {"from_attributes": True}


class FieldScopeUpdate(BaseModel):
    """
    Graded/ungraded applicability of one field.
    """

    is_graded: bool = False
    is_ungraded: bool = False

    @model_validator(mode="after")
    def check_any_flag(self) -> "FieldScopeUpdate":
        if not (self.is_graded or self.is_ungraded):
            raise ValueError("A scope must apply to graded or ungraded items")
        return self


class FieldScopeResponse(FieldScopeUpdate):
    id: int
    category_id: int
    field_name: str

    model_config = {"from_attributes": True}


class ResolvedFieldResponse(BaseModel):
    """
    One entry of a resolved schema.
    """

    name: str
    label: str
    field_type: FieldType
    options: Optional[List[str]] = None
    max_length: Optional[int] = None
    prefix: Optional[str] = None
    is_required: bool
    priority: int
    mark_as_title: bool
    show_on_detail: bool
    mark_for_popup: bool
    additional_information: Optional[str] = None

    model_config = {"from_attributes": True}


class ResolvedSchemaResponse(BaseModel):
    """
    Ordered fields applicable to a category and variant.
    """

    category_id: int
    variant: SchemaVariant
    title_field: Optional[str] = None
    fields: List[ResolvedFieldResponse]


class CardConditionResponse(BaseModel):
    id: int
    name: str
    category_id: Optional[int] = None
    is_active: bool

    model_config = {"from_attributes": True}

    @field_validator("name")
    def strip_name(cls, v: str) -> str:
        return v.strip()
