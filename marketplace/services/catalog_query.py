"""
Catalog query engine.

Answers listing and search requests over catalog items, combining fixed
columns, dynamic attribute predicates, category scoping, ownership scoping and
status visibility.
"""

import time
from decimal import Decimal
from math import ceil
from typing import Any, List, Optional

from loguru import logger
from sqlalchemy import Numeric, Select, cast, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import ColumnElement

from marketplace.core.config import settings
from marketplace.core.exceptions import ForbiddenError, InvalidFilterError, NotFoundError
from marketplace.core.metrics import observe_catalog_search
from marketplace.core.tracing import create_span
from marketplace.db.models import CatalogItem, CatalogItemStatus, Category, FieldType, SchemaVariant
from marketplace.schemas.auth import Identity
from marketplace.schemas.catalog_items import (
    SORT_OPTIONS,
    STATUS_ALL,
    CatalogItemListResponse,
    CatalogItemResponse,
    CatalogSearchFilter,
)
from marketplace.schemas.field_schema import FieldSpec
from marketplace.services.attribute_store import FALSE_VALUES, TRUE_VALUES, normalize_value, parse_boolean
from marketplace.services.field_schema import FieldSchemaResolver
from marketplace.services.store import run_read


def clamp_page_size(page_size: Optional[int]) -> int:
    if page_size is None or page_size < 1:
        return settings.CATALOG_DEFAULT_PAGE_SIZE
    return min(page_size, settings.CATALOG_MAX_PAGE_SIZE)


def ordering_for(sort: str) -> List[Any]:
    """ORDER BY clauses for ``sort``. The id always comes last so pages are deterministic."""
    if sort == "price_asc":
        return [CatalogItem.price.asc().nulls_last(), CatalogItem.id.asc()]
    if sort == "price_desc":
        return [CatalogItem.price.desc().nulls_last(), CatalogItem.id.desc()]
    return [CatalogItem.created_at.desc(), CatalogItem.id.desc()]


def attribute_condition(spec: FieldSpec, value: str) -> ColumnElement[bool]:
    """
    Predicate matching items whose ``spec`` attribute equals the normalized
    filter ``value``.

    Stored booleans keep the token the seller sent, so they match any token of
    the same truth value. Numbers compare by value, so ``9.5`` matches ``9.50``.
    """
    stored = CatalogItem.attributes[spec.name].as_string()
    if spec.field_type == FieldType.BOOLEAN:
        tokens = TRUE_VALUES if parse_boolean(value) else FALSE_VALUES
        return func.lower(func.trim(stored)).in_(sorted(tokens))
    if spec.field_type == FieldType.NUMBER:
        return cast(stored, Numeric(asdecimal=True)) == Decimal(value)
    return stored == value


class CatalogQueryEngine:
    """Search over catalog items."""

    def __init__(self, db: AsyncSession, resolver: Optional[FieldSchemaResolver] = None):
        self.db = db
        self.resolver = resolver or FieldSchemaResolver(db)

    async def search(self, filters: CatalogSearchFilter, caller: Optional[Identity] = None) -> CatalogItemListResponse:
        """
        Run a paginated search.

        Raises ``InvalidFilterError`` for dynamic filters without a category or
        an unsupported sort, and ``ForbiddenError`` when a caller asks for
        non-listed items that are not theirs.
        """
        sort = filters.sort or "newest"
        if sort not in SORT_OPTIONS:
            raise InvalidFilterError(f"Unsupported sort '{sort}', expected one of: {', '.join(SORT_OPTIONS)}")
        if filters.dynamic_filters and filters.category_id is None:
            raise InvalidFilterError("Attribute filters require a category_id")
        if filters.min_price is not None and filters.max_price is not None and filters.min_price > filters.max_price:
            raise InvalidFilterError("min_price cannot be greater than max_price")

        page = max(filters.page, 1)
        page_size = clamp_page_size(filters.page_size)

        span_attributes = {"sort": sort, "page": page, "page_size": page_size}
        if filters.category_id is not None:
            span_attributes["category_id"] = filters.category_id

        with create_span("catalog.search", span_attributes):
            started = time.perf_counter()
            conditions = await self._build_conditions(filters, caller)

            count_query = select(func.count()).select_from(CatalogItem).where(*conditions)
            page_query: Select = (
                select(CatalogItem)
                .where(*conditions)
                .order_by(*ordering_for(sort))
                .offset((page - 1) * page_size)
                .limit(page_size)
            )

            total = await run_read(self.db, lambda: self._count(count_query), "catalog count")
            items = await run_read(self.db, lambda: self._fetch(page_query), "catalog search")

            elapsed = time.perf_counter() - started
            observe_catalog_search(elapsed, scoped=filters.category_id is not None)
            logger.bind(category_id=filters.category_id, total=total).debug(
                f"Catalog search returned {len(items)} of {total} items in {elapsed * 1000:.1f} ms"
            )

        pages = ceil(total / page_size) if total > 0 else 1
        return CatalogItemListResponse(
            items=[CatalogItemResponse.model_validate(item) for item in items],
            total=total,
            page=page,
            page_size=page_size,
            pages=pages,
            has_next_page=page < pages,
            has_prev_page=page > 1,
        )

    async def _build_conditions(
        self, filters: CatalogSearchFilter, caller: Optional[Identity]
    ) -> List[ColumnElement[bool]]:
        conditions: List[ColumnElement[bool]] = []

        statuses = self._visible_statuses(filters, caller)
        if statuses is not None:
            conditions.append(CatalogItem.status.in_([status.value for status in statuses]))

        if filters.category_id is not None:
            category = await run_read(
                self.db, lambda: self.db.get(Category, filters.category_id), "category lookup"
            )
            if category is None or (not category.is_active and not (caller and caller.is_admin)):
                raise NotFoundError("Category", filters.category_id)
            conditions.append(CatalogItem.category_id == category.id)
            conditions.extend(await self._attribute_conditions(category.id, filters))
        else:
            active_categories = select(Category.id).where(Category.is_active.is_(True))
            conditions.append(CatalogItem.category_id.in_(active_categories))

        if filters.owner_id is not None:
            conditions.append(CatalogItem.owner_id == filters.owner_id)
        if filters.q:
            conditions.append(CatalogItem.search_text.icontains(filters.q, autoescape=True))
        if filters.min_price is not None:
            conditions.append(CatalogItem.price >= filters.min_price)
        if filters.max_price is not None:
            conditions.append(CatalogItem.price <= filters.max_price)
        if filters.is_graded is not None:
            conditions.append(CatalogItem.is_graded.is_(filters.is_graded))
        if filters.condition_id is not None:
            conditions.append(CatalogItem.condition_id == filters.condition_id)

        return conditions

    async def _attribute_conditions(
        self, category_id: int, filters: CatalogSearchFilter
    ) -> List[ColumnElement[bool]]:
        if not filters.dynamic_filters:
            return []

        schema = await self.resolver.resolve(category_id, SchemaVariant.ANY)
        conditions: List[ColumnElement[bool]] = []
        ignored = []
        for name in sorted(filters.dynamic_filters):
            spec = schema.get(name)
            if spec is None:
                ignored.append(name)
                continue
            value, reason = normalize_value(spec, filters.dynamic_filters[name])
            if reason is not None:
                raise InvalidFilterError(f"Filter '{name}' {reason}")
            conditions.append(attribute_condition(spec, value))  # type: ignore[arg-type]

        if ignored:
            logger.debug(f"Ignoring filters unknown to category {category_id}: {ignored}")
        return conditions

    def _visible_statuses(
        self, filters: CatalogSearchFilter, caller: Optional[Identity]
    ) -> Optional[List[CatalogItemStatus]]:
        """
        Statuses the caller may see; ``None`` means every status.

        Listed items are public. Anything else needs an admin, or an owner
        searching their own items.
        """
        requested = filters.status or CatalogItemStatus.LISTED.value
        if requested != STATUS_ALL:
            try:
                status = CatalogItemStatus(requested)
            except ValueError:
                raise InvalidFilterError(f"Unknown status '{requested}'")
            if status == CatalogItemStatus.LISTED:
                return [status]

        privileged = caller is not None and (
            caller.is_admin or (filters.owner_id is not None and caller.owns(filters.owner_id))
        )
        if not privileged:
            raise ForbiddenError("Only the owner or an admin can see items that are not listed")

        return None if requested == STATUS_ALL else [CatalogItemStatus(requested)]

    async def _count(self, query: Select) -> int:
        return int((await self.db.scalar(query)) or 0)

    async def _fetch(self, query: Select) -> List[CatalogItem]:
        result = await self.db.execute(query)
        return list(result.scalars().all())
