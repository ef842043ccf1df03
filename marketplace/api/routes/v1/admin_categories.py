"""
Admin endpoints for categories, field definitions and field scopes.
"""

from typing import List

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.api.dependencies import get_current_admin, get_db_session
from marketplace.api.responses import HTTP_201_CREATED, HTTP_204_NO_CONTENT, Tags, default_error_responses
from marketplace.db.models import Category, FieldDefinition, GradedUngradedField
from marketplace.schemas.auth import Identity
from marketplace.schemas.categories import (
    CategoryCreate,
    CategoryResponse,
    CategoryUpdate,
    FieldDefinitionCreate,
    FieldDefinitionResponse,
    FieldDefinitionUpdate,
    FieldScopeResponse,
    FieldScopeUpdate,
)
from marketplace.services.categories import CategoryRegistry
from marketplace.services.field_definitions import FieldDefinitionService

router = APIRouter(prefix="/admin", tags=[Tags.ADMIN], responses=default_error_responses)


@router.post("/categories", response_model=CategoryResponse, status_code=HTTP_201_CREATED)
async def create_category(
    payload: CategoryCreate,
    db: AsyncSession = Depends(get_db_session),
    current_admin: Identity = Depends(get_current_admin),
) -> Category:
    """Create a category."""
    return await CategoryRegistry(db).create_category(payload)


@router.patch("/categories/{category_id}", response_model=CategoryResponse)
async def update_category(
    category_id: int,
    payload: CategoryUpdate,
    db: AsyncSession = Depends(get_db_session),
    current_admin: Identity = Depends(get_current_admin),
) -> Category:
    """Partially update a category. The slug is fixed once items reference it."""
    return await CategoryRegistry(db).update_category(category_id, payload)


@router.get("/categories/{category_id}/fields", response_model=List[FieldDefinitionResponse])
async def list_fields(
    category_id: int,
    db: AsyncSession = Depends(get_db_session),
    current_admin: Identity = Depends(get_current_admin),
) -> List[FieldDefinition]:
    """All field definitions of a category, regardless of scope."""
    return await FieldDefinitionService(db).list_fields(category_id)


@router.post(
    "/categories/{category_id}/fields",
    response_model=FieldDefinitionResponse,
    status_code=HTTP_201_CREATED,
)
async def create_field(
    category_id: int,
    payload: FieldDefinitionCreate,
    db: AsyncSession = Depends(get_db_session),
    current_admin: Identity = Depends(get_current_admin),
) -> FieldDefinition:
    return await FieldDefinitionService(db).create_field(category_id, payload)


@router.patch("/categories/{category_id}/fields/{field_id}", response_model=FieldDefinitionResponse)
async def update_field(
    category_id: int,
    field_id: int,
    payload: FieldDefinitionUpdate,
    db: AsyncSession = Depends(get_db_session),
    current_admin: Identity = Depends(get_current_admin),
) -> FieldDefinition:
    return await FieldDefinitionService(db).update_field(category_id, field_id, payload)


@router.delete(
    "/categories/{category_id}/fields/{field_id}",
    status_code=HTTP_204_NO_CONTENT,
    response_class=Response,
)
async def delete_field(
    category_id: int,
    field_id: int,
    db: AsyncSession = Depends(get_db_session),
    current_admin: Identity = Depends(get_current_admin),
) -> Response:
    """Delete a field definition. Values already stored under its name are kept but no longer shown."""
    await FieldDefinitionService(db).delete_field(category_id, field_id)
    return Response(status_code=HTTP_204_NO_CONTENT)


@router.put("/categories/{category_id}/fields/{field_id}/scope", response_model=FieldScopeResponse)
async def set_field_scope(
    category_id: int,
    field_id: int,
    payload: FieldScopeUpdate,
    db: AsyncSession = Depends(get_db_session),
    current_admin: Identity = Depends(get_current_admin),
) -> GradedUngradedField:
    """Restrict a field to graded items, ungraded items, or both."""
    return await FieldDefinitionService(db).set_scope(category_id, field_id, payload)


@router.delete(
    "/categories/{category_id}/fields/{field_id}/scope",
    status_code=HTTP_204_NO_CONTENT,
    response_class=Response,
)
async def clear_field_scope(
    category_id: int,
    field_id: int,
    db: AsyncSession = Depends(get_db_session),
    current_admin: Identity = Depends(get_current_admin),
) -> Response:
    """Remove a field's scope so it applies to every item again."""
    await FieldDefinitionService(db).clear_scope(category_id, field_id)
    return Response(status_code=HTTP_204_NO_CONTENT)
