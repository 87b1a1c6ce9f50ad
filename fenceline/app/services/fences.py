# fenceline/app/services/fences.py
"""
Fence service - create/read/update/delete of a merchant's delivery fences.

Every operation is scoped by merchant: a fence owned by someone else is
reported exactly like a fence that does not exist. Geometry always goes
through the geometry codec, so a fence is never written with coordinates the
codec rejected.
"""
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fenceline.app.core.constants import ShapeType
from fenceline.app.core.exceptions import ServiceError
from fenceline.app.core.logging import get_logger
from fenceline.app.models.delivery_rule import DeliveryRule
from fenceline.app.models.fence import Fence
from fenceline.app.models.merchant import Merchant
from fenceline.app.services.geometry import (
    StorageGeometry,
    decode_from_storage,
    encode_for_storage,
    parse_shape_type,
)
from fenceline.app.services.merchants import MerchantNotFoundError
from fenceline.app.services.spatial import get_spatial_backend

try:
    from fenceline.app.core.metrics import fence_mutations_total
except ImportError:
    fence_mutations_total = None

logger = get_logger(__name__)


class FenceServiceError(ServiceError):
    """Base exception for fence service errors."""


class FenceNotFoundError(FenceServiceError):
    def __init__(self, fence_id: int):
        super().__init__(f"Fence {fence_id} not found", 404)


class InvalidRadiusError(FenceServiceError):
    def __init__(self, radius: Any):
        super().__init__(f"Circle radius must be greater than 0, got {radius}", 400)


class DeliveryRuleNotFoundError(FenceServiceError):
    def __init__(self, rule_id: int):
        super().__init__(f"Delivery rule {rule_id} not found", 400)


class FenceService:
    """Service class for fence operations. Caller commits the session."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.spatial = get_spatial_backend(session)

    async def list_fences(self, merchant_id: str) -> List[Dict[str, Any]]:
        """All fences of a merchant, ordered by id."""
        result = await self.session.execute(
            self._select_with_geojson()
            .where(Fence.merchant_id == merchant_id)
            .order_by(Fence.id)
        )
        return [self._fence_to_dict(fence, geojson) for fence, geojson in result.all()]

    async def get_fence(self, fence_id: int, merchant_id: str) -> Dict[str, Any]:
        return await self._load(fence_id, merchant_id)

    async def create_fence(self, merchant_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create a fence from console data:
        ``fence_name, fence_desc, rule_id, shape_type, coordinates, radius``.
        """
        shape_type, storage, radius = await self._prepare(data)
        if await self.session.get(Merchant, merchant_id) is None:
            raise MerchantNotFoundError(merchant_id)
        fence = Fence(
            merchant_id=merchant_id,
            fence_name=data["fence_name"],
            fence_desc=data.get("fence_desc"),
            rule_id=data.get("rule_id"),
            shape_type=shape_type.value,
            radius=radius,
            geom=self.spatial.geometry_value(storage),
        )
        self.session.add(fence)
        await self.session.flush()

        logger.info(
            "Fence created",
            fence_id=fence.id,
            merchant_id=merchant_id,
            shape_type=shape_type.value,
            vertices=len(storage.coordinates),
        )
        if fence_mutations_total:
            fence_mutations_total.labels(operation="create").inc()
        return await self._load(fence.id, merchant_id)

    async def update_fence(self, fence_id: int, merchant_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Replace a fence. Fields missing from ``data`` are reset, not kept:
        callers send the complete fence.
        """
        fence = await self._get_fence(fence_id, merchant_id)
        if fence is None:
            raise FenceNotFoundError(fence_id)

        shape_type, storage, radius = await self._prepare(data)
        fence.fence_name = data["fence_name"]
        fence.fence_desc = data.get("fence_desc")
        fence.rule_id = data.get("rule_id")
        fence.shape_type = shape_type.value
        fence.radius = radius
        fence.geom = self.spatial.geometry_value(storage)
        await self.session.flush()

        logger.info("Fence updated", fence_id=fence_id, merchant_id=merchant_id, shape_type=shape_type.value)
        if fence_mutations_total:
            fence_mutations_total.labels(operation="update").inc()
        return await self._load(fence_id, merchant_id)

    async def delete_fence(self, fence_id: int, merchant_id: str) -> None:
        fence = await self._get_fence(fence_id, merchant_id)
        if fence is None:
            raise FenceNotFoundError(fence_id)
        await self.session.delete(fence)
        await self.session.flush()

        logger.info("Fence deleted", fence_id=fence_id, merchant_id=merchant_id)
        if fence_mutations_total:
            fence_mutations_total.labels(operation="delete").inc()

    async def _prepare(self, data: Dict[str, Any]) -> tuple[ShapeType, StorageGeometry, float]:
        """Validate and encode everything before anything touches the session."""
        shape_type = parse_shape_type(data.get("shape_type"))
        storage = encode_for_storage(shape_type, data.get("coordinates") or [])

        radius = data.get("radius")
        radius = float(radius) if radius is not None else 0.0
        if shape_type == ShapeType.CIRCLE and not radius > 0:
            raise InvalidRadiusError(radius)

        rule_id = data.get("rule_id")
        if rule_id is not None and await self.session.get(DeliveryRule, rule_id) is None:
            raise DeliveryRuleNotFoundError(rule_id)

        return shape_type, storage, radius

    def _select_with_geojson(self):
        return select(Fence, self.spatial.geojson_column(Fence.geom).label("geojson"))

    async def _get_fence(self, fence_id: int, merchant_id: str) -> Optional[Fence]:
        result = await self.session.execute(
            select(Fence).where(
                Fence.id == fence_id,
                Fence.merchant_id == merchant_id,
            )
        )
        return result.scalar_one_or_none()

    async def _load(self, fence_id: int, merchant_id: str) -> Dict[str, Any]:
        result = await self.session.execute(
            self._select_with_geojson().where(
                Fence.id == fence_id,
                Fence.merchant_id == merchant_id,
            )
        )
        row = result.first()
        if row is None:
            raise FenceNotFoundError(fence_id)
        fence, geojson = row
        return self._fence_to_dict(fence, geojson)

    def _fence_to_dict(self, fence: Fence, geojson: Optional[str]) -> Dict[str, Any]:
        return {
            "id": fence.id,
            "merchant_id": fence.merchant_id,
            "fence_name": fence.fence_name,
            "fence_desc": fence.fence_desc,
            "rule_id": fence.rule_id,
            "shape_type": fence.shape_type,
            "coordinates": decode_from_storage(fence.shape_type, self.spatial.to_geojson(geojson)),
            "radius": float(fence.radius or 0),
        }
