"""Administration of category field definitions and their graded/ungraded scope."""

from typing import List, Optional

from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.core.exceptions import CatalogValidationError, FieldError, FieldErrorKind, NotFoundError
from marketplace.db.models import Category, FieldDefinition, FieldType, GradedUngradedField
from marketplace.schemas.categories import FieldDefinitionCreate, FieldDefinitionUpdate, FieldScopeUpdate
from marketplace.services.schema_cache import SchemaCache, schema_cache
from marketplace.services.store import refresh_expired, run_read, run_write


class FieldDefinitionService:
    """
    Create, update and delete field definitions.

    Keeps two invariants per category: field names are unique and at most one
    field is the title. Every write invalidates the category's cached schemas.
    """

    def __init__(self, db: AsyncSession, cache: Optional[SchemaCache] = None):
        self.db = db
        self.cache = cache if cache is not None else schema_cache

    async def list_fields(self, category_id: int) -> List[FieldDefinition]:
        await self._get_category(category_id)
        query = (
            select(FieldDefinition)
            .where(FieldDefinition.category_id == category_id)
            .order_by(FieldDefinition.priority.asc(), FieldDefinition.name.asc())
        )

        async def load() -> List[FieldDefinition]:
            return list((await self.db.execute(query)).scalars().all())

        return await run_read(self.db, load, "field listing")

    async def create_field(self, category_id: int, data: FieldDefinitionCreate) -> FieldDefinition:
        await self._get_category(category_id)

        errors: List[FieldError] = []
        duplicate = await self._find_by_name(category_id, data.name)
        if duplicate is not None:
            errors.append(
                FieldError(
                    kind=FieldErrorKind.DUPLICATE_FIELD_NAME,
                    field="name",
                    message=f"Field '{data.name}' already exists in this category",
                )
            )
        if data.mark_as_title:
            errors.extend(await self._check_title_free(category_id))
        if errors:
            raise CatalogValidationError(errors)

        definition = FieldDefinition(category_id=category_id, **data.model_dump(mode="json"))
        await self._commit(category_id, definition)
        logger.info(f"Created field '{definition.name}' in category {category_id}")
        return definition

    async def update_field(self, category_id: int, field_id: int, patch: FieldDefinitionUpdate) -> FieldDefinition:
        definition = await self._get_field(category_id, field_id)
        changes = patch.model_dump(exclude_unset=True, mode="json")
        field_type = changes.get("field_type") or definition.field_type
        options = changes["options"] if "options" in changes else definition.options

        errors: List[FieldError] = []
        if changes.get("mark_as_title") and not definition.mark_as_title:
            errors.extend(await self._check_title_free(category_id, exclude_id=field_id))
        if field_type == FieldType.SELECT.value and not options:
            errors.append(
                FieldError(
                    kind=FieldErrorKind.INVALID_FIELD_VALUE,
                    field="options",
                    message="Select fields need at least one option",
                )
            )
        if errors:
            raise CatalogValidationError(errors)

        await refresh_expired(self.db, definition)
        for key, value in changes.items():
            if value is None and key in ("field_type", "is_required", "priority", "mark_as_title",
                                         "show_on_detail", "mark_for_popup"):
                continue
            setattr(definition, key, value)

        await self._commit(category_id, definition)
        logger.info(f"Updated field '{definition.name}' in category {category_id}: {sorted(changes)}")
        return definition

    async def delete_field(self, category_id: int, field_id: int) -> None:
        definition = await self._get_field(category_id, field_id)
        name = definition.name
        scope = await self._find_scope(category_id, name)
        await refresh_expired(self.db, definition)

        async def write() -> None:
            if scope is not None:
                await self.db.delete(scope)
            await self.db.delete(definition)
            await self.db.commit()

        await run_write(self.db, write, "field delete")
        self.cache.invalidate(category_id)
        logger.info(f"Deleted field '{name}' from category {category_id}")

    async def set_scope(self, category_id: int, field_id: int, data: FieldScopeUpdate) -> GradedUngradedField:
        """Restrict a field to graded items, ungraded items, or mark it for both."""
        definition = await self._get_field(category_id, field_id)
        name = definition.name
        scope = await self._find_scope(category_id, name)
        if scope is None:
            scope = GradedUngradedField(category_id=category_id, field_name=name)
        scope.is_graded = data.is_graded
        scope.is_ungraded = data.is_ungraded

        await self._commit(category_id, scope)
        logger.info(
            f"Scoped field '{name}' in category {category_id}: "
            f"graded={data.is_graded} ungraded={data.is_ungraded}"
        )
        return scope

    async def clear_scope(self, category_id: int, field_id: int) -> None:
        """Remove a field's scope so it applies to every variant again."""
        definition = await self._get_field(category_id, field_id)
        name = definition.name
        scope = await self._find_scope(category_id, name)
        if scope is None:
            raise NotFoundError("Field scope", name)

        async def write() -> None:
            await self.db.delete(scope)
            await self.db.commit()

        await run_write(self.db, write, "field scope delete")
        self.cache.invalidate(category_id)

    async def _commit(self, category_id: int, instance: object) -> None:
        async def write() -> None:
            self.db.add(instance)
            await self.db.commit()
            await self.db.refresh(instance)

        await run_write(self.db, write, "field definition write")
        self.cache.invalidate(category_id)

    async def _check_title_free(self, category_id: int, exclude_id: Optional[int] = None) -> List[FieldError]:
        query = select(FieldDefinition.name).where(
            FieldDefinition.category_id == category_id,
            FieldDefinition.mark_as_title.is_(True),
        )
        if exclude_id is not None:
            query = query.where(FieldDefinition.id != exclude_id)
        current = await run_read(self.db, lambda: self.db.scalar(query), "title field check")
        if current is None:
            return []
        return [
            FieldError(
                kind=FieldErrorKind.DUPLICATE_TITLE_FIELD,
                field="mark_as_title",
                message=f"Field '{current}' is already the title of this category",
            )
        ]

    async def _get_category(self, category_id: int) -> Category:
        category = await run_read(self.db, lambda: self.db.get(Category, category_id), "category lookup")
        if category is None:
            raise NotFoundError("Category", category_id)
        return category

    async def _get_field(self, category_id: int, field_id: int) -> FieldDefinition:
        query = select(FieldDefinition).where(
            FieldDefinition.id == field_id, FieldDefinition.category_id == category_id
        )
        definition = await run_read(self.db, lambda: self.db.scalar(query), "field lookup")
        if definition is None:
            raise NotFoundError("Field", field_id)
        return definition

    async def _find_by_name(self, category_id: int, name: str) -> Optional[FieldDefinition]:
        query = select(FieldDefinition).where(
            FieldDefinition.category_id == category_id, FieldDefinition.name == name
        )
        return await run_read(self.db, lambda: self.db.scalar(query), "field lookup")

    async def _find_scope(self, category_id: int, field_name: str) -> Optional[GradedUngradedField]:
        query = select(GradedUngradedField).where(
            GradedUngradedField.category_id == category_id,
            GradedUngradedField.field_name == field_name,
        )
        return await run_read(self.db, lambda: self.db.scalar(query), "field scope lookup")
