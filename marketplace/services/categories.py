"""Business logic for the category registry."""

from typing import List, Optional, Union

from loguru import logger
from sqlalchemy import exists, select
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.core.exceptions import CatalogValidationError, FieldError, FieldErrorKind, NotFoundError
from marketplace.db.models import CatalogItem, CatalogItemStatus, Category
from marketplace.schemas.categories import CategoryCreate, CategoryUpdate
from marketplace.services.schema_cache import SchemaCache, schema_cache
from marketplace.services.store import refresh_expired, run_read, run_write


class CategoryRegistry:
    """Service for category-related operations."""

    def __init__(self, db: AsyncSession, cache: Optional[SchemaCache] = None):
        """Initialize with database session."""
        self.db = db
        self.cache = cache if cache is not None else schema_cache

    async def get_category(self, id_or_slug: Union[int, str]) -> Category:
        """Get a category by numeric id or by slug."""
        key = str(id_or_slug).strip()
        if key.isdigit():
            query = select(Category).where(Category.id == int(key))
        else:
            query = select(Category).where(Category.slug == key)

        category = await run_read(self.db, lambda: self.db.scalar(query), "category lookup")
        if category is None:
            raise NotFoundError("Category", key)
        return category

    async def list_active_categories(self, owner_id: Optional[int] = None) -> List[Category]:
        """
        Active categories by display priority, then name.

        With ``owner_id``, only categories in which that owner has a listed item.
        """
        query = select(Category).where(Category.is_active.is_(True))
        if owner_id is not None:
            query = query.where(
                exists().where(
                    CatalogItem.category_id == Category.id,
                    CatalogItem.owner_id == owner_id,
                    CatalogItem.status == CatalogItemStatus.LISTED.value,
                )
            )
        query = query.order_by(Category.sort_order.asc(), Category.name.asc(), Category.id.asc())

        async def load() -> List[Category]:
            result = await self.db.execute(query)
            return list(result.scalars().all())

        return await run_read(self.db, load, "category listing")

    async def create_category(self, data: CategoryCreate) -> Category:
        """Create a new category."""
        await self._ensure_slug_free(data.slug)

        category = Category(**data.model_dump())

        async def write() -> Category:
            self.db.add(category)
            await self.db.commit()
            await self.db.refresh(category)
            return category

        await run_write(self.db, write, "category create")
        logger.info(f"Created category {category.id} ({category.slug})")
        return category

    async def update_category(self, category_id: int, patch: CategoryUpdate) -> Category:
        """
        Partially update a category.

        The slug cannot change once any catalog item references the category.
        """
        category = await self.get_category(category_id)
        category_id = category.id
        changes = patch.model_dump(exclude_unset=True)

        new_slug = changes.get("slug")
        if new_slug is not None and new_slug != category.slug:
            errors: List[FieldError] = []
            referenced = await run_read(
                self.db,
                lambda: self.db.scalar(select(exists().where(CatalogItem.category_id == category_id))),
                "category reference check",
            )
            if referenced:
                errors.append(
                    FieldError(
                        kind=FieldErrorKind.SLUG_IN_USE,
                        field="slug",
                        message="Slug cannot change while catalog items reference the category",
                    )
                )
            elif await self._slug_taken(new_slug, exclude_id=category_id):
                errors.append(
                    FieldError(kind=FieldErrorKind.SLUG_TAKEN, field="slug", message="Slug already exists")
                )
            if errors:
                raise CatalogValidationError(errors)

        await refresh_expired(self.db, category)
        for key, value in changes.items():
            if value is None and key in ("name", "slug", "is_active", "sort_order", "has_grading"):
                continue
            setattr(category, key, value)

        async def write() -> Category:
            await self.db.commit()
            await self.db.refresh(category)
            return category

        await run_write(self.db, write, "category update")
        self.cache.invalidate(category_id)
        logger.info(f"Updated category {category_id}: {sorted(changes)}")
        return category

    async def _slug_taken(self, slug: str, exclude_id: Optional[int] = None) -> bool:
        query = select(Category.id).where(Category.slug == slug)
        if exclude_id is not None:
            query = query.where(Category.id != exclude_id)
        found = await run_read(self.db, lambda: self.db.scalar(query), "slug check")
        return found is not None

    async def _ensure_slug_free(self, slug: str) -> None:
        if await self._slug_taken(slug):
            raise CatalogValidationError.single(FieldErrorKind.SLUG_TAKEN, "Slug already exists", field="slug")
