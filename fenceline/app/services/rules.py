# fenceline/app/services/rules.py
"""Delivery rule catalogue. Rules are referenced by fences and never interpreted here."""
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fenceline.app.core.logging import get_logger
from fenceline.app.models.delivery_rule import DeliveryRule
from fenceline.app.services.cache import CacheService

logger = get_logger(__name__)


class RuleService:
    def __init__(self, session: AsyncSession, cache: Optional[CacheService] = None):
        self.session = session
        self.cache = cache

    async def list_rules(self) -> List[Dict[str, Any]]:
        """All rules ordered by id, served from cache when warm."""
        if self.cache is not None:
            cached = await self.cache.get_rules()
            if cached is not None:
                return cached

        result = await self.session.execute(select(DeliveryRule).order_by(DeliveryRule.id))
        rules = [self._rule_to_dict(r) for r in result.scalars().all()]

        if self.cache is not None:
            await self.cache.set_rules(rules)
        return rules

    async def create_rule(self, name: str, logic: int) -> Dict[str, Any]:
        rule = DeliveryRule(name=name, logic=logic)
        self.session.add(rule)
        await self.session.flush()
        if self.cache is not None:
            await self.cache.invalidate_rules()
        logger.info("Delivery rule created", rule_id=rule.id, name=name)
        return self._rule_to_dict(rule)

    @staticmethod
    def _rule_to_dict(rule: DeliveryRule) -> Dict[str, Any]:
        return {"id": rule.id, "name": rule.name, "logic": rule.logic}
