# fenceline/app/services/merchants.py
"""Merchant profile and map configuration."""
from typing import Any, Dict, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fenceline.app.core.exceptions import ServiceError
from fenceline.app.core.logging import get_logger
from fenceline.app.models.merchant import Merchant
from fenceline.app.services.geometry import decode_point, encode_point_for_storage
from fenceline.app.services.spatial import get_spatial_backend

logger = get_logger(__name__)


class MerchantServiceError(ServiceError):
    """Base exception for merchant service errors."""


class MerchantNotFoundError(MerchantServiceError):
    def __init__(self, merchant_id: str):
        super().__init__(f"Merchant {merchant_id} not found", 404)


class MerchantService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.spatial = get_spatial_backend(session)

    async def register_merchant(
        self,
        merchant_id: str,
        name: str,
        location: Optional[Sequence[float]] = None,
    ) -> Dict[str, Any]:
        merchant = Merchant(id=merchant_id, name=name)
        if location is not None:
            merchant.center_location = self.spatial.geometry_value(encode_point_for_storage(location))
        self.session.add(merchant)
        await self.session.flush()
        logger.info("Merchant registered", merchant_id=merchant_id)
        return await self.get_config(merchant_id)

    async def get_config(self, merchant_id: str) -> Dict[str, Any]:
        """Merchant id and shop location ``[lng, lat]`` (``[0, 0]`` when unset)."""
        result = await self.session.execute(
            select(Merchant.id, self.spatial.geojson_column(Merchant.center_location))
            .where(Merchant.id == merchant_id)
        )
        row = result.first()
        if row is None:
            raise MerchantNotFoundError(merchant_id)
        location = decode_point(self.spatial.to_geojson(row[1]))
        return {
            "merchant_id": row[0],
            "location": location or [0.0, 0.0],
        }
