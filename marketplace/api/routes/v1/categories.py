"""
Category registry and field schema endpoints.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.api.dependencies import get_db_session
from marketplace.api.responses import Tags, read_error_responses
from marketplace.db.models import Category, SchemaVariant
from marketplace.schemas.categories import (
    CategoryResponse,
    ResolvedFieldResponse,
    ResolvedSchemaResponse,
)
from marketplace.services.categories import CategoryRegistry
from marketplace.services.field_schema import FieldSchemaResolver

router = APIRouter(tags=[Tags.CATEGORIES], responses=read_error_responses)


@router.get("/categories", response_model=List[CategoryResponse], summary="List active categories")
async def list_categories(
    owner_id: Optional[int] = Query(None, description="Only categories in which this owner lists items"),
    db: AsyncSession = Depends(get_db_session),
) -> List[Category]:
    """Active categories ordered by display priority, then name."""
    return await CategoryRegistry(db).list_active_categories(owner_id=owner_id)


@router.get("/categories/{id_or_slug}", response_model=CategoryResponse, summary="Get a category")
async def get_category(
    id_or_slug: str,
    db: AsyncSession = Depends(get_db_session),
) -> Category:
    """Get a category by numeric id or slug."""
    return await CategoryRegistry(db).get_category(id_or_slug)


@router.get(
    "/categories/{id_or_slug}/fields",
    response_model=ResolvedSchemaResponse,
    summary="Resolve the field schema of a category",
)
async def get_category_fields(
    id_or_slug: str,
    variant: SchemaVariant = Query(SchemaVariant.ANY, description="graded, ungraded or any"),
    db: AsyncSession = Depends(get_db_session),
) -> ResolvedSchemaResponse:
    """
    Ordered field definitions that apply to items of this category and variant.

    Clients build item forms from this response.
    """
    category = await CategoryRegistry(db).get_category(id_or_slug)
    schema = await FieldSchemaResolver(db).resolve(category.id, variant)
    title_field = schema.title_field
    return ResolvedSchemaResponse(
        category_id=schema.category_id,
        variant=schema.variant,
        title_field=title_field.name if title_field else None,
        fields=[ResolvedFieldResponse.model_validate(spec) for spec in schema.fields],
    )
