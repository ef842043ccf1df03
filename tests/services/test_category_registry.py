"""
Tests for the category registry.
"""

from types import SimpleNamespace

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.core.exceptions import CatalogValidationError, FieldErrorKind, NotFoundError
from marketplace.db.models import Category, SchemaVariant
from marketplace.schemas.categories import CategoryCreate, CategoryUpdate
from marketplace.services.categories import CategoryRegistry
from marketplace.services.schema_cache import SchemaCache
from marketplace.services.field_schema import FieldSchemaResolver


@pytest.fixture
def cache() -> SchemaCache:
    return SchemaCache(ttl_seconds=30)


@pytest.fixture
def registry(db_session: AsyncSession, cache: SchemaCache) -> CategoryRegistry:
    return CategoryRegistry(db_session, cache=cache)


async def test_get_category_by_id_or_slug(registry, catalog: SimpleNamespace) -> None:
    by_id = await registry.get_category(1)
    by_text_id = await registry.get_category("1")
    by_slug = await registry.get_category("trading-cards")

    assert by_id.id == by_text_id.id == by_slug.id == 1


async def test_get_inactive_category_is_allowed(registry, catalog: SimpleNamespace) -> None:
    category = await registry.get_category("retired")

    assert category.is_active is False


async def test_get_unknown_category(registry, catalog: SimpleNamespace) -> None:
    with pytest.raises(NotFoundError):
        await registry.get_category("no-such-thing")


async def test_list_active_categories_in_display_order(
    registry, catalog: SimpleNamespace, db_session: AsyncSession
) -> None:
    db_session.add(Category(name="Comics", slug="comics", sort_order=2))
    await db_session.commit()

    categories = await registry.list_active_categories()

    assert [category.slug for category in categories] == ["trading-cards", "comics", "sports-memorabilia"]


async def test_list_categories_for_owner(registry, catalog: SimpleNamespace, make_item) -> None:
    await make_item(category_id=2, owner_id=2)
    await make_item(category_id=1, owner_id=2, status="draft")
    await make_item(category_id=1, owner_id=1)

    categories = await registry.list_active_categories(owner_id=2)

    assert [category.slug for category in categories] == ["sports-memorabilia"]


async def test_create_category_rejects_duplicate_slug(registry, catalog: SimpleNamespace) -> None:
    created = await registry.create_category(CategoryCreate(name="Coins", slug="coins"))

    assert created.id is not None
    assert created.is_active is True

    with pytest.raises(CatalogValidationError) as exc_info:
        await registry.create_category(CategoryCreate(name="Coins again", slug="coins"))

    assert exc_info.value.errors[0].kind == FieldErrorKind.SLUG_TAKEN


async def test_update_category(registry, catalog: SimpleNamespace) -> None:
    updated = await registry.update_category(2, CategoryUpdate(name="Memorabilia", slug="memorabilia", is_active=False))

    assert (updated.name, updated.slug, updated.is_active) == ("Memorabilia", "memorabilia", False)


async def test_slug_is_fixed_once_items_reference_the_category(
    registry, catalog: SimpleNamespace, make_item
) -> None:
    await make_item(category_id=2, status="withdrawn")

    with pytest.raises(CatalogValidationError) as exc_info:
        await registry.update_category(2, CategoryUpdate(slug="memorabilia"))

    assert exc_info.value.errors[0].kind == FieldErrorKind.SLUG_IN_USE


async def test_slug_taken_by_another_category(registry, catalog: SimpleNamespace) -> None:
    with pytest.raises(CatalogValidationError) as exc_info:
        await registry.update_category(2, CategoryUpdate(slug="trading-cards"))

    assert exc_info.value.errors[0].kind == FieldErrorKind.SLUG_TAKEN


async def test_update_invalidates_cached_schemas(
    registry, cache: SchemaCache, catalog: SimpleNamespace, db_session: AsyncSession
) -> None:
    await FieldSchemaResolver(db_session, cache=cache).resolve(1, SchemaVariant.GRADED)
    assert cache.get(1, SchemaVariant.GRADED) is not None

    await registry.update_category(1, CategoryUpdate(sort_order=5))

    assert cache.get(1, SchemaVariant.GRADED) is None
