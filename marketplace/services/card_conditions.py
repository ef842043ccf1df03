"""Business logic for card conditions."""

from typing import List, Optional

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.core.exceptions import NotFoundError
from marketplace.db.models import CardCondition
from marketplace.services.store import run_read


class CardConditionService:
    """Service for card condition lookups."""

    def __init__(self, db: AsyncSession):
        """Initialize with database session."""
        self.db = db

    async def list_conditions(self, category_id: Optional[int] = None) -> List[CardCondition]:
        """Active conditions shared by all categories, plus those of ``category_id``, by name."""
        query = select(CardCondition).where(CardCondition.is_active.is_(True))
        if category_id is not None:
            query = query.where(or_(CardCondition.category_id.is_(None), CardCondition.category_id == category_id))
        else:
            query = query.where(CardCondition.category_id.is_(None))
        query = query.order_by(CardCondition.name.asc(), CardCondition.id.asc())

        async def load() -> List[CardCondition]:
            result = await self.db.execute(query)
            return list(result.scalars().all())

        return await run_read(self.db, load, "card condition listing")

    async def get_condition(self, condition_id: int) -> CardCondition:
        condition = await run_read(
            self.db, lambda: self.db.get(CardCondition, condition_id), "card condition lookup"
        )
        if condition is None:
            raise NotFoundError("Card condition", condition_id)
        return condition
