from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from fenceline.app.api.deps import get_cache, get_session
from fenceline.app.schemas import DeliveryRuleCreate, DeliveryRuleResponse
from fenceline.app.services.cache import CacheService
from fenceline.app.services.rules import RuleService

router = APIRouter()


@router.get("", response_model=List[DeliveryRuleResponse])
async def list_rules(
    session: AsyncSession = Depends(get_session),
    cache: CacheService = Depends(get_cache),
):
    return await RuleService(session, cache).list_rules()


@router.post("", response_model=DeliveryRuleResponse, status_code=201)
async def create_rule(
    data: DeliveryRuleCreate,
    session: AsyncSession = Depends(get_session),
    cache: CacheService = Depends(get_cache),
):
    rule = await RuleService(session, cache).create_rule(data.name, data.logic)
    await session.commit()
    return rule
