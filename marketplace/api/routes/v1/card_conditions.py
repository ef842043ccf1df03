from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.api.dependencies import get_db_session
from marketplace.api.responses import Tags, read_error_responses
from marketplace.db.models import CardCondition
from marketplace.schemas.categories import CardConditionResponse
from marketplace.services.card_conditions import CardConditionService

router = APIRouter(tags=[Tags.CARD_CONDITIONS], responses=read_error_responses)


@router.get("/card-conditions", response_model=List[CardConditionResponse], summary="List card conditions")
async def list_card_conditions(
    category_id: Optional[int] = Query(None, description="Include conditions specific to this category"),
    db: AsyncSession = Depends(get_db_session),
) -> List[CardCondition]:
    """Active conditions shared by all categories, plus those of ``category_id``."""
    return await CardConditionService(db).list_conditions(category_id)


@router.get("/card-conditions/{condition_id}", response_model=CardConditionResponse, summary="Get a card condition")
async def get_card_condition(
    condition_id: int,
    db: AsyncSession = Depends(get_db_session),
) -> CardCondition:
    return await CardConditionService(db).get_condition(condition_id)
