"""
Tests for the catalog query engine.
"""

from decimal import Decimal
from types import SimpleNamespace

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.core.exceptions import ForbiddenError, InvalidFilterError, NotFoundError
from marketplace.db.models import UserRole
from marketplace.schemas.auth import Identity
from marketplace.schemas.catalog_items import CatalogSearchFilter
from marketplace.services.catalog_query import CatalogQueryEngine, clamp_page_size

ALICE = Identity(user_id=1, role=UserRole.USER)
BOB = Identity(user_id=2, role=UserRole.USER)
ADMIN = Identity(user_id=3, role=UserRole.ADMIN)


@pytest.fixture
def engine(db_session: AsyncSession) -> CatalogQueryEngine:
    return CatalogQueryEngine(db_session)


async def test_dynamic_filter_scoped_to_category(engine, catalog: SimpleNamespace, make_item) -> None:
    older = await make_item(attributes={"grade": "PSA 9"}, age_minutes=10)
    newer = await make_item(attributes={"grade": "PSA 9"}, age_minutes=1)
    await make_item(attributes={"grade": "PSA 10"})
    await make_item(attributes={"grade": "PSA 9"}, status="draft")
    await make_item(category_id=2, attributes={"grade": "PSA 9"})

    result = await engine.search(
        CatalogSearchFilter(category_id=1, dynamic_filters={"grade": "PSA 9"}, page=1, page_size=20)
    )

    assert [item.id for item in result.items] == [newer.id, older.id]
    assert result.total == 2
    assert all(item.status.value == "listed" for item in result.items)


async def test_dynamic_filter_without_category_is_rejected(engine, catalog: SimpleNamespace) -> None:
    with pytest.raises(InvalidFilterError):
        await engine.search(CatalogSearchFilter(dynamic_filters={"grade": "PSA 9"}))


async def test_unknown_dynamic_filter_is_ignored(engine, catalog: SimpleNamespace, make_item) -> None:
    await make_item(attributes={"grade": "PSA 9"})

    result = await engine.search(CatalogSearchFilter(category_id=1, dynamic_filters={"colour": "red"}))

    assert result.total == 1


async def test_dynamic_filter_values_are_normalized(engine, catalog: SimpleNamespace, make_item) -> None:
    first = await make_item(attributes={"grade": "PSA 9", "first_edition": "1"})
    await make_item(attributes={"grade": "PSA 9", "first_edition": "0"})

    result = await engine.search(CatalogSearchFilter(category_id=1, dynamic_filters={"first_edition": "yes"}))

    assert [item.id for item in result.items] == [first.id]


async def test_invalid_dynamic_filter_value(engine, catalog: SimpleNamespace) -> None:
    with pytest.raises(InvalidFilterError):
        await engine.search(CatalogSearchFilter(category_id=1, dynamic_filters={"language": "FR"}))


@pytest.mark.parametrize(
    "filters",
    [
        CatalogSearchFilter(sort="cheapest"),
        CatalogSearchFilter(min_price=Decimal("10"), max_price=Decimal("5")),
        CatalogSearchFilter(status="lost"),
    ],
)
async def test_invalid_filters(engine, catalog: SimpleNamespace, filters: CatalogSearchFilter) -> None:
    with pytest.raises(InvalidFilterError):
        await engine.search(filters, ADMIN)


async def test_without_category_only_active_categories(engine, catalog: SimpleNamespace, make_item) -> None:
    visible = await make_item(category_id=2)
    await make_item(category_id=3)

    result = await engine.search(CatalogSearchFilter())

    assert [item.id for item in result.items] == [visible.id]


async def test_inactive_category_is_not_found(engine, catalog: SimpleNamespace) -> None:
    with pytest.raises(NotFoundError):
        await engine.search(CatalogSearchFilter(category_id=3))

    result = await engine.search(CatalogSearchFilter(category_id=3), ADMIN)
    assert result.total == 0


async def test_non_listed_requires_owner_or_admin(engine, catalog: SimpleNamespace, make_item) -> None:
    draft = await make_item(owner_id=1, status="draft")
    await make_item(owner_id=2, status="draft")

    with pytest.raises(ForbiddenError):
        await engine.search(CatalogSearchFilter(status="draft"))
    with pytest.raises(ForbiddenError):
        await engine.search(CatalogSearchFilter(status="draft", owner_id=1), BOB)
    with pytest.raises(ForbiddenError):
        await engine.search(CatalogSearchFilter(status="draft"), ALICE)

    own = await engine.search(CatalogSearchFilter(status="draft", owner_id=1), ALICE)
    everyone = await engine.search(CatalogSearchFilter(status="draft"), ADMIN)

    assert [item.id for item in own.items] == [draft.id]
    assert everyone.total == 2


async def test_status_all_for_owner(engine, catalog: SimpleNamespace, make_item) -> None:
    for status in ("draft", "listed", "sold", "withdrawn"):
        await make_item(owner_id=1, status=status)
    await make_item(owner_id=2)

    result = await engine.search(CatalogSearchFilter(status="all", owner_id=1), ALICE)

    assert result.total == 4
    assert {item.owner_id for item in result.items} == {1}


async def test_fixed_column_filters(engine, catalog: SimpleNamespace, make_item) -> None:
    match = await make_item(price=Decimal("25.00"), is_graded=True, condition_id=1, title="Blue-Eyes White Dragon")
    await make_item(price=Decimal("250.00"), is_graded=True, condition_id=1, title="Blue-Eyes Ultimate")
    await make_item(price=Decimal("20.00"), is_graded=False, condition_id=1, title="Blue-Eyes Toon")
    await make_item(price=Decimal("20.00"), is_graded=True, condition_id=2, title="Blue-Eyes Shining")

    result = await engine.search(
        CatalogSearchFilter(
            q="blue-eyes",
            min_price=Decimal("10"),
            max_price=Decimal("100"),
            is_graded=True,
            condition_id=1,
        )
    )

    assert [item.id for item in result.items] == [match.id]


async def test_free_text_escapes_wildcards(engine, catalog: SimpleNamespace, make_item) -> None:
    await make_item(title="Pikachu 100 percent")
    literal = await make_item(title="Pikachu 100%")

    result = await engine.search(CatalogSearchFilter(q="100%"))

    assert [item.id for item in result.items] == [literal.id]


async def test_price_sorting_ends_with_id(engine, catalog: SimpleNamespace, make_item) -> None:
    cheap = await make_item(price=Decimal("5"))
    tie_a = await make_item(price=Decimal("10"))
    tie_b = await make_item(price=Decimal("10"))
    unpriced = await make_item(price=None)

    ascending = await engine.search(CatalogSearchFilter(sort="price_asc"))
    descending = await engine.search(CatalogSearchFilter(sort="price_desc"))

    assert [item.id for item in ascending.items] == [cheap.id, tie_a.id, tie_b.id, unpriced.id]
    assert [item.id for item in descending.items] == [tie_b.id, tie_a.id, cheap.id, unpriced.id]


async def test_pagination_metadata(engine, catalog: SimpleNamespace, make_item) -> None:
    for _ in range(5):
        await make_item()

    first = await engine.search(CatalogSearchFilter(page=1, page_size=2))
    last = await engine.search(CatalogSearchFilter(page=3, page_size=2))
    beyond = await engine.search(CatalogSearchFilter(page=4, page_size=2))

    assert (first.total, first.pages, first.has_next_page, first.has_prev_page) == (5, 3, True, False)
    assert len(last.items) == 1
    assert (last.has_next_page, last.has_prev_page) == (False, True)
    assert beyond.items == []
    assert beyond.total == 5


async def test_pages_never_overlap(engine, catalog: SimpleNamespace, make_item) -> None:
    created = [await make_item() for _ in range(7)]

    seen = []
    for page in range(1, 4):
        result = await engine.search(CatalogSearchFilter(page=page, page_size=3))
        seen.extend(item.id for item in result.items)

    assert sorted(seen) == sorted(item.id for item in created)
    assert len(seen) == len(set(seen))


async def test_empty_result(engine, catalog: SimpleNamespace) -> None:
    result = await engine.search(CatalogSearchFilter(category_id=1))

    assert result.items == []
    assert (result.total, result.pages, result.has_next_page) == (0, 1, False)


def test_clamp_page_size() -> None:
    assert clamp_page_size(None) == 20
    assert clamp_page_size(0) == 20
    assert clamp_page_size(50) == 50
    assert clamp_page_size(10_000) == 100


async def test_boolean_filter_matches_any_token_of_same_truth(
    engine, catalog: SimpleNamespace, make_item
) -> None:
    spelled = await make_item(attributes={"grade": "PSA 9", "first_edition": "Yes"})
    flagged = await make_item(attributes={"grade": "PSA 9", "first_edition": "true"})
    await make_item(attributes={"grade": "PSA 9", "first_edition": "no"})

    result = await engine.search(CatalogSearchFilter(category_id=1, dynamic_filters={"first_edition": "1"}))

    assert {item.id for item in result.items} == {spelled.id, flagged.id}


async def test_number_filter_compares_by_value(engine, catalog: SimpleNamespace, make_item) -> None:
    padded = await make_item(attributes={"grade": "PSA 9", "year": "1999.0"})
    await make_item(attributes={"grade": "PSA 9", "year": "2000"})

    result = await engine.search(CatalogSearchFilter(category_id=1, dynamic_filters={"year": "1999"}))

    assert [item.id for item in result.items] == [padded.id]
