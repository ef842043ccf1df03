"""
Field schema resolution.

The resolver is the single source of truth for which dynamic fields exist for
an item of a given category and variant. Nothing validates or renders an
attribute bag without asking it first.
"""

from typing import Iterable, Optional

from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.core.exceptions import NotFoundError
from marketplace.db.models import Category, FieldDefinition, GradedUngradedField, SchemaVariant
from marketplace.schemas.field_schema import FieldSpec, ResolvedSchema
from marketplace.services.schema_cache import SchemaCache, schema_cache
from marketplace.services.store import run_read


def variant_for(is_graded: bool) -> SchemaVariant:
    return SchemaVariant.GRADED if is_graded else SchemaVariant.UNGRADED


def build_schema(
    category_id: int,
    variant: SchemaVariant,
    definitions: Iterable[FieldDefinition],
    scopes: Iterable[GradedUngradedField],
) -> ResolvedSchema:
    """
    Select the definitions that apply to ``variant`` and order them.

    A definition applies when it has no scope row, or its scope row flags the
    requested variant. ``any`` accepts every definition. Ordering is by
    priority, then name, so the result is stable across calls.
    """
    scope_by_name = {scope.field_name: scope for scope in scopes}

    selected = []
    for definition in definitions:
        scope = scope_by_name.get(definition.name)
        if scope is None or scope.applies_to(variant):
            selected.append(FieldSpec.from_definition(definition))

    selected.sort(key=lambda spec: (spec.priority, spec.name))
    return ResolvedSchema(category_id=category_id, variant=variant, fields=tuple(selected))


class FieldSchemaResolver:
    """Resolves and caches category schemas."""

    def __init__(self, db: AsyncSession, cache: Optional[SchemaCache] = None):
        """Initialize with database session and the process-wide cache."""
        self.db = db
        self.cache = cache if cache is not None else schema_cache

    async def resolve(self, category_id: int, variant: SchemaVariant = SchemaVariant.ANY) -> ResolvedSchema:
        """Return the ordered fields of ``category_id`` for ``variant``."""
        variant = SchemaVariant(variant)
        cached = self.cache.get(category_id, variant)
        if cached is not None:
            return cached

        generation = self.cache.generation(category_id)
        schema = await run_read(self.db, lambda: self._load(category_id, variant), "schema resolution")
        self.cache.put(schema, generation)
        return schema

    async def _load(self, category_id: int, variant: SchemaVariant) -> ResolvedSchema:
        category_exists = await self.db.scalar(select(Category.id).where(Category.id == category_id))
        if category_exists is None:
            logger.warning(f"Schema requested for unknown category {category_id}")
            raise NotFoundError("Category", category_id)

        definitions = (
            await self.db.execute(select(FieldDefinition).where(FieldDefinition.category_id == category_id))
        ).scalars().all()
        scopes = (
            await self.db.execute(
                select(GradedUngradedField).where(GradedUngradedField.category_id == category_id)
            )
        ).scalars().all()

        schema = build_schema(category_id, variant, definitions, scopes)
        logger.debug(f"Resolved {len(schema.fields)} fields for category {category_id} ({variant.value})")
        return schema
