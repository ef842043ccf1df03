"""
Tests for field definition administration.
"""

from types import SimpleNamespace

import pytest
from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.core.exceptions import CatalogValidationError, FieldErrorKind, NotFoundError
from marketplace.db.models import FieldDefinition, FieldType, GradedUngradedField, SchemaVariant
from marketplace.schemas.categories import FieldDefinitionCreate, FieldDefinitionUpdate, FieldScopeUpdate
from marketplace.services.field_definitions import FieldDefinitionService
from marketplace.services.field_schema import FieldSchemaResolver
from marketplace.services.schema_cache import SchemaCache


@pytest.fixture
def cache() -> SchemaCache:
    return SchemaCache(ttl_seconds=30)


@pytest.fixture
def service(db_session: AsyncSession, cache: SchemaCache) -> FieldDefinitionService:
    return FieldDefinitionService(db_session, cache=cache)


@pytest.fixture
def resolver(db_session: AsyncSession, cache: SchemaCache) -> FieldSchemaResolver:
    return FieldSchemaResolver(db_session, cache=cache)


async def field_id(db_session: AsyncSession, category_id: int, name: str) -> int:
    return await db_session.scalar(
        select(FieldDefinition.id).where(FieldDefinition.category_id == category_id, FieldDefinition.name == name)
    )


async def test_create_field_is_visible_immediately(service, resolver, catalog: SimpleNamespace) -> None:
    before = await resolver.resolve(2)

    created = await service.create_field(2, FieldDefinitionCreate(name="team", label="Team", priority=0))
    after = await resolver.resolve(2)

    assert created.id is not None
    assert before.names == ("sport",)
    assert after.names == ("team", "sport")


async def test_duplicate_name_and_second_title_are_reported_together(service, catalog: SimpleNamespace) -> None:
    with pytest.raises(CatalogValidationError) as exc_info:
        await service.create_field(1, FieldDefinitionCreate(name="grade", mark_as_title=True))

    assert {error.kind for error in exc_info.value.errors} == {
        FieldErrorKind.DUPLICATE_FIELD_NAME,
        FieldErrorKind.DUPLICATE_TITLE_FIELD,
    }


async def test_update_to_second_title_is_rejected(service, catalog: SimpleNamespace, db_session: AsyncSession) -> None:
    grade_id = await field_id(db_session, 1, "grade")

    with pytest.raises(CatalogValidationError) as exc_info:
        await service.update_field(1, grade_id, FieldDefinitionUpdate(mark_as_title=True))

    assert exc_info.value.errors[0].kind == FieldErrorKind.DUPLICATE_TITLE_FIELD


async def test_move_title_between_fields(service, catalog: SimpleNamespace, db_session: AsyncSession) -> None:
    card_name_id = await field_id(db_session, 1, "card_name")
    grade_id = await field_id(db_session, 1, "grade")

    await service.update_field(1, card_name_id, FieldDefinitionUpdate(mark_as_title=False))
    updated = await service.update_field(1, grade_id, FieldDefinitionUpdate(mark_as_title=True, prefix="Grade"))

    assert updated.mark_as_title is True
    assert updated.prefix == "Grade"


async def test_select_field_needs_options(service, catalog: SimpleNamespace, db_session: AsyncSession) -> None:
    with pytest.raises(ValidationError):
        FieldDefinitionCreate(name="rarity", field_type=FieldType.SELECT)

    grade_id = await field_id(db_session, 1, "grade")
    with pytest.raises(CatalogValidationError):
        await service.update_field(1, grade_id, FieldDefinitionUpdate(field_type=FieldType.SELECT))


async def test_delete_field_invalidates_schema(
    service, resolver, catalog: SimpleNamespace, db_session: AsyncSession
) -> None:
    assert "autograph" in await resolver.resolve(1, SchemaVariant.GRADED)

    await service.delete_field(1, await field_id(db_session, 1, "autograph"))

    assert "autograph" not in await resolver.resolve(1, SchemaVariant.GRADED)
    assert await db_session.scalar(select(GradedUngradedField)) is None


async def test_set_and_clear_scope(service, resolver, catalog: SimpleNamespace, db_session: AsyncSession) -> None:
    year_id = await field_id(db_session, 1, "year")

    scope = await service.set_scope(1, year_id, FieldScopeUpdate(is_graded=False, is_ungraded=True))

    assert scope.field_name == "year"
    assert "year" not in await resolver.resolve(1, SchemaVariant.GRADED)
    assert "year" in await resolver.resolve(1, SchemaVariant.UNGRADED)

    await service.clear_scope(1, year_id)

    assert "year" in await resolver.resolve(1, SchemaVariant.GRADED)
    with pytest.raises(NotFoundError):
        await service.clear_scope(1, year_id)


async def test_unknown_field(service, catalog: SimpleNamespace, db_session: AsyncSession) -> None:
    sport_id = await field_id(db_session, 2, "sport")

    with pytest.raises(NotFoundError):
        await service.update_field(1, sport_id, FieldDefinitionUpdate(label="Sport"))
    with pytest.raises(NotFoundError):
        await service.list_fields(404)
