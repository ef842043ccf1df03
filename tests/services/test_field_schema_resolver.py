"""
Tests for field schema resolution.
"""

from types import SimpleNamespace

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.core.exceptions import NotFoundError
from marketplace.db.models import FieldDefinition, GradedUngradedField, SchemaVariant
from marketplace.services.field_schema import FieldSchemaResolver, build_schema, variant_for
from marketplace.services.schema_cache import SchemaCache


def make_definition(name: str, priority: int = 0, **kwargs) -> FieldDefinition:
    return FieldDefinition(category_id=1, name=name, priority=priority, **kwargs)


def test_build_schema_orders_by_priority_then_name() -> None:
    definitions = [
        make_definition("zeta", priority=1),
        make_definition("alpha", priority=2),
        make_definition("beta", priority=1),
    ]

    schema = build_schema(1, SchemaVariant.ANY, definitions, [])

    assert schema.names == ("beta", "zeta", "alpha")


def test_build_schema_applies_graded_scope() -> None:
    definitions = [make_definition("grade", priority=1), make_definition("autograph", priority=2)]
    scopes = [GradedUngradedField(category_id=1, field_name="autograph", is_graded=True, is_ungraded=False)]

    assert build_schema(1, SchemaVariant.UNGRADED, definitions, scopes).names == ("grade",)
    assert build_schema(1, SchemaVariant.GRADED, definitions, scopes).names == ("grade", "autograph")
    assert build_schema(1, SchemaVariant.ANY, definitions, scopes).names == ("grade", "autograph")


def test_variant_for() -> None:
    assert variant_for(True) == SchemaVariant.GRADED
    assert variant_for(False) == SchemaVariant.UNGRADED


async def test_resolve_trading_cards(db_session: AsyncSession, catalog: SimpleNamespace) -> None:
    resolver = FieldSchemaResolver(db_session, cache=SchemaCache(ttl_seconds=30))

    ungraded = await resolver.resolve(1, SchemaVariant.UNGRADED)
    graded = await resolver.resolve(1, SchemaVariant.GRADED)

    assert ungraded.names == ("grade", "card_name", "language", "first_edition", "year")
    assert graded.names == ("grade", "autograph", "card_name", "language", "first_edition", "year")
    assert graded.get("grade").is_required is True
    assert graded.title_field.name == "card_name"
    assert graded.get("language").options == ("EN", "JP", "DE")


async def test_resolve_is_deterministic(db_session: AsyncSession, catalog: SimpleNamespace) -> None:
    resolver = FieldSchemaResolver(db_session, cache=SchemaCache(ttl_seconds=0))

    first = await resolver.resolve(1, SchemaVariant.GRADED)
    second = await resolver.resolve(1, SchemaVariant.GRADED)

    assert first == second


async def test_resolve_category_without_fields(db_session: AsyncSession, catalog: SimpleNamespace) -> None:
    resolver = FieldSchemaResolver(db_session, cache=SchemaCache(ttl_seconds=30))

    schema = await resolver.resolve(3)

    assert schema.fields == ()
    assert schema.title_field is None


async def test_resolve_unknown_category(db_session: AsyncSession, catalog: SimpleNamespace) -> None:
    resolver = FieldSchemaResolver(db_session, cache=SchemaCache(ttl_seconds=30))

    with pytest.raises(NotFoundError):
        await resolver.resolve(999)


async def test_resolve_uses_cache_until_invalidated(db_session: AsyncSession, catalog: SimpleNamespace) -> None:
    cache = SchemaCache(ttl_seconds=30)
    resolver = FieldSchemaResolver(db_session, cache=cache)

    before = await resolver.resolve(2)
    db_session.add(FieldDefinition(category_id=2, name="team", priority=2))
    await db_session.commit()

    assert (await resolver.resolve(2)) is before

    cache.invalidate(2)
    after = await resolver.resolve(2)

    assert after.names == ("sport", "team")
