# fenceline/app/services/delivery_range.py
"""Delivery range evaluation: is a point inside any of a merchant's fences?"""
from dataclasses import dataclass
from typing import Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from fenceline.app.core.logging import get_logger
from fenceline.app.services.geometry import to_point_expression
from fenceline.app.services.spatial import get_spatial_backend

try:
    from fenceline.app.core.metrics import delivery_checks_total
except ImportError:
    delivery_checks_total = None

logger = get_logger(__name__)


@dataclass(frozen=True)
class DeliveryCheckResult:
    is_deliverable: bool
    rule_id: Optional[int] = None
    fence_id: Optional[int] = None

    @property
    def message(self) -> str:
        if self.is_deliverable:
            return "Address is within delivery range."
        return "Address is outside delivery range."


class DeliveryRangeService:
    """
    Membership is geodetic: polygons are covered on the sphere (boundary
    included), circles use the geodesic distance to the center, inclusive of
    the radius.

    When fences overlap, whichever matching fence the storage returns first
    decides the rule. No priority is defined between overlapping fences.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.spatial = get_spatial_backend(session)

    async def check(self, point: Sequence[float], merchant_id: str) -> DeliveryCheckResult:
        point_geom = to_point_expression(point)
        match = await self.spatial.find_covering_fence(self.session, point_geom, merchant_id)

        if match is None:
            result = DeliveryCheckResult(is_deliverable=False)
        else:
            result = DeliveryCheckResult(is_deliverable=True, rule_id=match.rule_id, fence_id=match.id)

        logger.debug(
            "Delivery range checked",
            merchant_id=merchant_id,
            lng=point_geom.geometry.x,
            lat=point_geom.geometry.y,
            deliverable=result.is_deliverable,
            fence_id=result.fence_id,
        )
        if delivery_checks_total:
            delivery_checks_total.labels(result="inside" if result.is_deliverable else "outside").inc()
        return result
