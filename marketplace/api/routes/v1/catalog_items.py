"""
Catalog item endpoints.
"""

from decimal import Decimal
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.api.dependencies import get_current_identity, get_db_session, get_optional_identity
from marketplace.api.responses import HTTP_201_CREATED, HTTP_204_NO_CONTENT, Tags, default_error_responses
from marketplace.schemas.auth import Identity
from marketplace.schemas.catalog_items import (
    CatalogItemCreate,
    CatalogItemDetailResponse,
    CatalogItemListResponse,
    CatalogItemUpdate,
    CatalogSearchFilter,
)
from marketplace.services.catalog_items import CatalogItemService
from marketplace.services.catalog_query import CatalogQueryEngine

router = APIRouter(tags=[Tags.CATALOG_ITEMS], responses=default_error_responses)

# camelCase spellings accepted alongside the snake_case names
QUERY_PARAM_ALIASES = {
    "categoryId": "category_id",
    "ownerId": "owner_id",
    "pageSize": "page_size",
    "minPrice": "min_price",
    "maxPrice": "max_price",
    "isGraded": "is_graded",
    "conditionId": "condition_id",
}

FIXED_QUERY_PARAMS = frozenset(
    {
        "category_id",
        "owner_id",
        "status",
        "sort",
        "page",
        "page_size",
        "q",
        "min_price",
        "max_price",
        "is_graded",
        "condition_id",
    }
    | set(QUERY_PARAM_ALIASES)
)


def dynamic_filters_from(request: Request) -> Dict[str, str]:
    """Query parameters that are not fixed search parameters filter on attributes."""
    return {
        key: value
        for key, value in request.query_params.items()
        if key not in FIXED_QUERY_PARAMS and value != ""
    }


def first_given(*values: Any) -> Any:
    return next((value for value in values if value is not None), None)


@router.get("/catalog-items", response_model=CatalogItemListResponse, summary="Search catalog items")
async def search_catalog_items(
    request: Request,
    category_id: Optional[int] = Query(None, description="Scope to a category, required for attribute filters"),
    owner_id: Optional[int] = Query(None, description="Only items of this owner"),
    status: Optional[str] = Query(None, description="Item status, defaults to listed"),
    sort: str = Query("newest", description="newest, price_asc or price_desc"),
    page: int = Query(1, ge=1),
    page_size: Optional[int] = Query(None, ge=1),
    q: Optional[str] = Query(None, description="Free text over titles and text attributes"),
    min_price: Optional[Decimal] = Query(None, ge=0),
    max_price: Optional[Decimal] = Query(None, ge=0),
    is_graded: Optional[bool] = Query(None),
    condition_id: Optional[int] = Query(None),
    category_id_alias: Optional[int] = Query(None, alias="categoryId"),
    owner_id_alias: Optional[int] = Query(None, alias="ownerId"),
    page_size_alias: Optional[int] = Query(None, alias="pageSize", ge=1),
    min_price_alias: Optional[Decimal] = Query(None, alias="minPrice", ge=0),
    max_price_alias: Optional[Decimal] = Query(None, alias="maxPrice", ge=0),
    is_graded_alias: Optional[bool] = Query(None, alias="isGraded"),
    condition_id_alias: Optional[int] = Query(None, alias="conditionId"),
    db: AsyncSession = Depends(get_db_session),
    caller: Optional[Identity] = Depends(get_optional_identity),
) -> CatalogItemListResponse:
    """
    Paginated search.

    Fixed parameters also accept their camelCase spelling (``categoryId``,
    ``pageSize``...). Any other query parameter is taken as an attribute filter
    on the category's dynamic fields, e.g. ``?category_id=1&language=EN``.
    """
    filters = CatalogSearchFilter(
        category_id=first_given(category_id, category_id_alias),
        owner_id=first_given(owner_id, owner_id_alias),
        status=status,
        dynamic_filters=dynamic_filters_from(request),
        sort=sort,
        page=page,
        page_size=first_given(page_size, page_size_alias),
        q=q,
        min_price=first_given(min_price, min_price_alias),
        max_price=first_given(max_price, max_price_alias),
        is_graded=first_given(is_graded, is_graded_alias),
        condition_id=first_given(condition_id, condition_id_alias),
    )
    return await CatalogQueryEngine(db).search(filters, caller)


@router.get("/catalog-items/{item_id}", response_model=CatalogItemDetailResponse, summary="Get a catalog item")
async def get_catalog_item(
    item_id: int,
    db: AsyncSession = Depends(get_db_session),
    caller: Optional[Identity] = Depends(get_optional_identity),
) -> CatalogItemDetailResponse:
    """Item detail with attributes labelled and ordered by its category schema."""
    return await CatalogItemService(db).get_item(item_id, caller)


@router.post(
    "/catalog-items",
    response_model=CatalogItemDetailResponse,
    status_code=HTTP_201_CREATED,
    summary="Create a catalog item",
)
async def create_catalog_item(
    payload: CatalogItemCreate,
    db: AsyncSession = Depends(get_db_session),
    caller: Identity = Depends(get_current_identity),
) -> CatalogItemDetailResponse:
    """Create an item owned by the caller."""
    return await CatalogItemService(db).create_item(payload, caller)


@router.patch("/catalog-items/{item_id}", response_model=CatalogItemDetailResponse, summary="Update a catalog item")
async def update_catalog_item(
    item_id: int,
    payload: CatalogItemUpdate,
    db: AsyncSession = Depends(get_db_session),
    caller: Identity = Depends(get_current_identity),
) -> CatalogItemDetailResponse:
    """
    Partially update an item. Attribute values set to null are removed.
    """
    return await CatalogItemService(db).update_item(item_id, payload, caller)


@router.delete(
    "/catalog-items/{item_id}",
    status_code=HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Withdraw a catalog item",
)
async def withdraw_catalog_item(
    item_id: int,
    db: AsyncSession = Depends(get_db_session),
    caller: Identity = Depends(get_current_identity),
) -> Response:
    """Withdraw an item. Items are never hard-deleted."""
    await CatalogItemService(db).withdraw_item(item_id, caller)
    return Response(status_code=HTTP_204_NO_CONTENT)
