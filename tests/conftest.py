import os

os.environ["ENABLE_TRACING"] = "false"
os.environ["JSON_LOGS"] = "false"
os.environ.setdefault("TEST_DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("POSTGRES_SERVER", "localhost")
os.environ.setdefault("POSTGRES_USER", "postgres")
os.environ.setdefault("POSTGRES_PASSWORD", "postgres")
os.environ.setdefault("POSTGRES_DB", "marketplace_test")

from datetime import datetime, timedelta, timezone  # noqa: E402
from types import SimpleNamespace  # noqa: E402
from typing import Any, AsyncGenerator, Callable, Dict  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from marketplace.api.dependencies import get_db_session  # noqa: E402
from marketplace.core.security import create_access_token  # noqa: E402
from marketplace.db.models import (  # noqa: E402
    CardCondition,
    CatalogItem,
    Category,
    FieldDefinition,
    GradedUngradedField,
    User,
    UserRole,
)
from marketplace.db.session import Base  # noqa: E402
from marketplace.main import app  # noqa: E402
from marketplace.services.attribute_store import build_slug  # noqa: E402
from marketplace.services.schema_cache import schema_cache  # noqa: E402

TEST_DATABASE_URL = os.environ["TEST_DATABASE_URL"]

ALICE_ID = 1
BOB_ID = 2
ADMIN_ID = 3


@pytest.fixture(autouse=True)
def reset_schema_cache() -> None:
    schema_cache.clear()
    yield
    schema_cache.clear()


@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    # Create engine and sessionmaker inside the fixture
    if TEST_DATABASE_URL.startswith("sqlite"):
        test_engine = create_async_engine(
            TEST_DATABASE_URL,
            echo=False,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    else:
        test_engine = create_async_engine(TEST_DATABASE_URL, echo=False)
    test_async_session = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    # Create tables
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    async with test_async_session() as session:
        yield session
    # Drop all tables
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await test_engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db_session] = override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides = {}


@pytest.fixture
def auth_headers() -> Callable[..., Dict[str, str]]:
    def _headers(user_id: int, role: str = UserRole.USER.value) -> Dict[str, str]:
        token = create_access_token(user_id, role=role)
        return {"Authorization": f"Bearer {token}"}

    return _headers


async def seed_catalog(session: AsyncSession) -> SimpleNamespace:
    """
    Trading Cards (id 1) with ``grade`` required and ``autograph`` graded-only,
    an active second category and an inactive third one.
    """
    session.add_all(
        [
            User(id=ALICE_ID, username="alice", email="alice@example.com", role=UserRole.USER.value),
            User(id=BOB_ID, username="bob", email="bob@example.com", role=UserRole.USER.value),
            User(id=ADMIN_ID, username="admin", email="admin@example.com", role=UserRole.ADMIN.value),
        ]
    )

    cards = Category(id=1, name="Trading Cards", slug="trading-cards", sort_order=1, has_grading=True)
    memorabilia = Category(id=2, name="Sports Memorabilia", slug="sports-memorabilia", sort_order=2)
    retired = Category(id=3, name="Retired", slug="retired", sort_order=0, is_active=False)
    session.add_all([cards, memorabilia, retired])

    session.add_all(
        [
            FieldDefinition(category_id=1, name="grade", label="Grade", field_type="text", is_required=True, priority=1),
            FieldDefinition(category_id=1, name="autograph", label="Autograph", field_type="text", priority=2),
            FieldDefinition(
                category_id=1,
                name="card_name",
                label="Card Name",
                field_type="text",
                priority=3,
                mark_as_title=True,
                max_length=80,
            ),
            FieldDefinition(
                category_id=1,
                name="language",
                label="Language",
                field_type="select",
                options=["EN", "JP", "DE"],
                priority=4,
                mark_for_popup=True,
            ),
            FieldDefinition(category_id=1, name="first_edition", label="1st Edition", field_type="boolean", priority=5),
            FieldDefinition(
                category_id=1, name="year", label="Year", field_type="number", priority=6, show_on_detail=False
            ),
            FieldDefinition(category_id=2, name="sport", label="Sport", field_type="text", priority=1),
            GradedUngradedField(category_id=1, field_name="autograph", is_graded=True, is_ungraded=False),
        ]
    )

    session.add_all(
        [
            CardCondition(id=1, name="Mint"),
            CardCondition(id=2, name="Near Mint"),
            CardCondition(id=3, name="Slabbed", category_id=1),
            CardCondition(id=4, name="Poor", is_active=False),
        ]
    )
    await session.commit()

    return SimpleNamespace(
        cards=cards,
        memorabilia=memorabilia,
        retired=retired,
        alice_id=ALICE_ID,
        bob_id=BOB_ID,
        admin_id=ADMIN_ID,
    )


async def add_item(session: AsyncSession, **overrides: Any) -> CatalogItem:
    """Insert an item directly, bypassing validation."""
    values: Dict[str, Any] = {
        "category_id": 1,
        "owner_id": ALICE_ID,
        "status": "listed",
        "is_graded": False,
        "attributes": {},
    }
    values.update(overrides)
    title = values.pop("title", None)
    offset = values.pop("age_minutes", 0)

    item = CatalogItem(title=title, **values)
    item.search_text = " ".join([title or ""] + [str(v) for v in values["attributes"].values()]).strip()
    if offset:
        item.created_at = datetime.now(timezone.utc).replace(tzinfo=None) - timedelta(minutes=offset)
    session.add(item)
    await session.flush()
    item.slug = build_slug(title, item.id)
    await session.commit()
    await session.refresh(item)
    return item


@pytest_asyncio.fixture(scope="function")
async def catalog(db_session: AsyncSession) -> SimpleNamespace:
    return await seed_catalog(db_session)


@pytest.fixture
def make_item(db_session: AsyncSession) -> Callable[..., Any]:
    async def _make(**overrides: Any) -> CatalogItem:
        return await add_item(db_session, **overrides)

    return _make
