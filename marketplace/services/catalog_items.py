"""Business logic for catalog items."""

from typing import Any, Dict, List, Optional

from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from marketplace.core.exceptions import (
    CatalogValidationError,
    FieldError,
    FieldErrorKind,
    ForbiddenError,
    NotFoundError,
)
from marketplace.core.metrics import record_catalog_item_event, time_db_query
from marketplace.db.models import (
    EDITABLE_STATUSES,
    STATUS_TRANSITIONS,
    CardCondition,
    CatalogItem,
    CatalogItemStatus,
    Category,
)
from marketplace.schemas.auth import Identity
from marketplace.schemas.catalog_items import (
    CatalogItemCreate,
    CatalogItemDetailResponse,
    CatalogItemUpdate,
    ProjectedFieldResponse,
)
from marketplace.services.attribute_store import (
    build_search_text,
    build_slug,
    check_attributes,
    derive_title,
    project_attributes,
)
from marketplace.services.field_schema import FieldSchemaResolver, variant_for
from marketplace.services.store import refresh_expired, run_read, run_write

CREATABLE_STATUSES = (CatalogItemStatus.DRAFT, CatalogItemStatus.LISTED)


def grading_unsupported_error(category_slug: str) -> FieldError:
    return FieldError(
        kind=FieldErrorKind.INVALID_FIELD_VALUE,
        field="is_graded",
        message=f"Category '{category_slug}' does not take graded items",
    )


def can_view(item: CatalogItem, caller: Optional[Identity]) -> bool:
    """Listed items are public, anything else only for its owner or an admin."""
    if item.status == CatalogItemStatus.LISTED.value:
        return True
    return caller is not None and (caller.is_admin or caller.owns(item.owner_id))


def merge_attributes(stored: Optional[Dict[str, Any]], changes: Dict[str, Any]) -> Dict[str, Any]:
    """Apply an attribute patch. A ``None`` value removes the key."""
    merged = dict(stored or {})
    for name, value in changes.items():
        if value is None:
            merged.pop(name, None)
        else:
            merged[name] = value
    return merged


class CatalogItemService:
    """Service for catalog item operations."""

    def __init__(self, db: AsyncSession, resolver: Optional[FieldSchemaResolver] = None):
        """Initialize with database session."""
        self.db = db
        self.resolver = resolver or FieldSchemaResolver(db)

    async def get_item(self, item_id: int, caller: Optional[Identity] = None) -> CatalogItemDetailResponse:
        """Get an item with its attributes projected through the category schema."""
        item = await self._load(item_id)
        if item is None or not can_view(item, caller):
            raise NotFoundError("Catalog item", item_id)
        return await self._detail(item)

    async def create_item(self, data: CatalogItemCreate, caller: Identity) -> CatalogItemDetailResponse:
        """
        Create an item owned by ``caller``.

        Every problem found is reported at once: inactive category, a status
        other than draft or listed, an unusable condition and attribute errors.
        """
        category = await run_read(self.db, lambda: self.db.get(Category, data.category_id), "category lookup")
        if category is None:
            raise NotFoundError("Category", data.category_id)

        category_id = data.category_id
        errors: List[FieldError] = []
        if not category.is_active:
            errors.append(
                FieldError(
                    kind=FieldErrorKind.CATEGORY_INACTIVE,
                    field="category_id",
                    message=f"Category '{category.slug}' is not accepting new items",
                )
            )
        if data.is_graded and not category.has_grading:
            errors.append(grading_unsupported_error(category.slug))
        if data.status not in CREATABLE_STATUSES:
            errors.append(
                FieldError(
                    kind=FieldErrorKind.INVALID_STATUS,
                    field="status",
                    message="New items must be draft or listed",
                )
            )
        errors.extend(await self._check_condition(data.condition_id, category_id))

        schema = await self.resolver.resolve(category_id, variant_for(data.is_graded))
        attributes, attribute_errors = check_attributes(schema, data.attributes)
        errors.extend(attribute_errors)
        if errors:
            raise CatalogValidationError(errors)

        title = derive_title(schema, attributes)
        item = CatalogItem(
            category_id=category_id,
            owner_id=caller.user_id,
            condition_id=data.condition_id,
            title=title,
            description=data.description,
            price=data.price,
            is_graded=data.is_graded,
            status=data.status.value,
            attributes=attributes,
            search_text=build_search_text(schema, title, attributes),
        )

        async def write() -> int:
            self.db.add(item)
            await self.db.flush()
            item.slug = build_slug(title, item.id)
            await self.db.commit()
            return item.id

        item_id = await run_write(self.db, write, "catalog item create")
        record_catalog_item_event("created")
        logger.info(f"User {caller.user_id} created catalog item {item_id} in category {category_id}")

        return await self._reload_detail(item_id)

    async def update_item(
        self, item_id: int, patch: CatalogItemUpdate, caller: Identity
    ) -> CatalogItemDetailResponse:
        """
        Partially update an item owned by ``caller``.

        Attribute changes merge onto the stored bag and the result is
        re-validated for the item's resulting variant.
        """
        item = await self._load(item_id)
        if item is None or not can_view(item, caller):
            raise NotFoundError("Catalog item", item_id)
        if not caller.owns(item.owner_id):
            raise ForbiddenError("Only the owner can edit this item")

        changes = patch.model_dump(exclude_unset=True)
        if not changes:
            raise CatalogValidationError.single(FieldErrorKind.INVALID_REQUEST, "No changes supplied")

        current = CatalogItemStatus(item.status)
        if current not in EDITABLE_STATUSES:
            raise CatalogValidationError.single(
                FieldErrorKind.ITEM_NOT_EDITABLE,
                f"Items that are {current.value} cannot be edited",
                field="status",
            )

        # Reads below may retry and expire ``item``.
        category_id = item.category_id
        category_slug = item.category.slug
        has_grading = item.category.has_grading
        is_graded = changes.get("is_graded")
        if is_graded is None:
            is_graded = item.is_graded
        merged = merge_attributes(item.attributes, changes.get("attributes") or {})

        errors: List[FieldError] = []
        new_status = changes.get("status")
        if new_status is not None and new_status != current and new_status not in STATUS_TRANSITIONS[current]:
            errors.append(
                FieldError(
                    kind=FieldErrorKind.INVALID_STATUS_TRANSITION,
                    field="status",
                    message=f"Cannot move an item from {current.value} to {new_status.value}",
                )
            )
        if changes.get("is_graded") and not has_grading:
            errors.append(grading_unsupported_error(category_slug))
        if "condition_id" in changes:
            errors.extend(await self._check_condition(changes["condition_id"], category_id))

        schema = await self.resolver.resolve(category_id, variant_for(is_graded))
        attributes, attribute_errors = check_attributes(schema, merged)
        errors.extend(attribute_errors)
        if errors:
            raise CatalogValidationError(errors)

        await refresh_expired(self.db, item)
        for key in ("price", "condition_id", "description"):
            if key in changes:
                setattr(item, key, changes[key])
        item.is_graded = is_graded
        if new_status is not None:
            item.status = new_status.value

        title = derive_title(schema, attributes)
        item.title = title
        item.slug = build_slug(title, item_id)
        item.attributes = attributes
        item.search_text = build_search_text(schema, title, attributes)

        await run_write(self.db, self.db.commit, "catalog item update")
        record_catalog_item_event("updated")
        if new_status is not None and new_status != current:
            record_catalog_item_event(new_status.value)
        logger.info(f"User {caller.user_id} updated catalog item {item_id}: {sorted(changes)}")

        return await self._reload_detail(item_id)

    async def withdraw_item(self, item_id: int, caller: Identity) -> None:
        """
        Withdraw an item. Withdrawing an already withdrawn item does nothing.
        """
        item = await self._load(item_id)
        if item is None or not can_view(item, caller):
            raise NotFoundError("Catalog item", item_id)
        if not (caller.is_admin or caller.owns(item.owner_id)):
            raise ForbiddenError("Only the owner or an admin can withdraw this item")

        current = CatalogItemStatus(item.status)
        if current == CatalogItemStatus.WITHDRAWN:
            return
        if CatalogItemStatus.WITHDRAWN not in STATUS_TRANSITIONS[current]:
            raise CatalogValidationError.single(
                FieldErrorKind.INVALID_STATUS_TRANSITION,
                f"Cannot withdraw an item that is {current.value}",
                field="status",
            )

        item.status = CatalogItemStatus.WITHDRAWN.value
        await run_write(self.db, self.db.commit, "catalog item withdraw")
        record_catalog_item_event(CatalogItemStatus.WITHDRAWN.value)
        logger.info(f"User {caller.user_id} withdrew catalog item {item_id}")

    @time_db_query("select", "catalog_items")
    async def _load(self, item_id: int) -> Optional[CatalogItem]:
        query = (
            select(CatalogItem)
            .where(CatalogItem.id == item_id)
            .options(selectinload(CatalogItem.category), selectinload(CatalogItem.condition))
            .execution_options(populate_existing=True)
        )
        return await run_read(self.db, lambda: self.db.scalar(query), "catalog item lookup")

    async def _reload_detail(self, item_id: int) -> CatalogItemDetailResponse:
        item = await self._load(item_id)
        if item is None:
            raise NotFoundError("Catalog item", item_id)
        return await self._detail(item)

    async def _detail(self, item: CatalogItem) -> CatalogItemDetailResponse:
        response = CatalogItemDetailResponse.model_validate(item)
        response.category_name = item.category.name if item.category else None
        response.category_slug = item.category.slug if item.category else None
        response.condition_name = item.condition.name if item.condition else None

        schema = await self.resolver.resolve(response.category_id, variant_for(response.is_graded))
        projection = project_attributes(schema, response.attributes)
        response.details = [
            ProjectedFieldResponse(
                name=spec.name,
                label=spec.label,
                field_type=spec.field_type,
                value=value,
                mark_for_popup=spec.mark_for_popup,
            )
            for spec, value in projection.fields
        ]
        return response

    async def _check_condition(self, condition_id: Optional[int], category_id: int) -> List[FieldError]:
        """A condition must exist, be active and be shared or belong to ``category_id``."""
        if condition_id is None:
            return []
        condition = await run_read(
            self.db, lambda: self.db.get(CardCondition, condition_id), "card condition lookup"
        )
        if condition is None or not condition.is_active:
            return [
                FieldError(
                    kind=FieldErrorKind.INVALID_FIELD_VALUE,
                    field="condition_id",
                    message=f"Card condition {condition_id} does not exist",
                )
            ]
        if condition.category_id is not None and condition.category_id != category_id:
            return [
                FieldError(
                    kind=FieldErrorKind.INVALID_FIELD_VALUE,
                    field="condition_id",
                    message=f"Card condition '{condition.name}' does not apply to this category",
                )
            ]
        return []
