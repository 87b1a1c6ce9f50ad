# fenceline/app/services/spatial.py
"""
Spatial backends: how geometries are written, read back and compared for the
storage engine behind a session.

PostGIS does the work in SQL (``ST_MakeValid``/``ST_AsGeoJSON``/``ST_Covers``/
``ST_DWithin`` on geography). Engines without a spatial extension store WKT
and compare in process with the same geodetic semantics (see core.geodesy).
"""
from typing import Any, Optional

from shapely import wkt as shapely_wkt
from sqlalchemy import and_, func, or_, select
from sqlalchemy.engine import Row
from sqlalchemy.ext.asyncio import AsyncSession

from fenceline.app.core.constants import ShapeType
from fenceline.app.core.geodesy import spherical_covers, within_radius
from fenceline.app.core.logging import get_logger
from fenceline.app.models.fence import Fence
from fenceline.app.services.geometry import (
    StorageGeometry,
    decode_from_storage,
    polygon_parts,
    wkt_to_geojson,
)

logger = get_logger(__name__)


class SpatialBackend:
    """Interface shared by the PostGIS and portable implementations."""

    name = "abstract"

    def geometry_value(self, storage: StorageGeometry) -> Any:
        """Value to assign to a geography column."""
        raise NotImplementedError

    def geojson_column(self, column):
        """Select-list expression yielding the column's geometry as GeoJSON (or its raw form)."""
        raise NotImplementedError

    def to_geojson(self, value: Optional[str]) -> Optional[str]:
        """Post-process a value selected through ``geojson_column``."""
        raise NotImplementedError

    async def find_covering_fence(
        self,
        session: AsyncSession,
        point: StorageGeometry,
        merchant_id: str,
    ) -> Optional[Row]:
        """First fence of ``merchant_id`` containing ``point``; row has ``id`` and ``rule_id``."""
        raise NotImplementedError


class PostgisBackend(SpatialBackend):
    name = "postgis"

    def geometry_value(self, storage: StorageGeometry) -> Any:
        return storage.to_sql()

    def geojson_column(self, column):
        return func.ST_AsGeoJSON(column)

    def to_geojson(self, value: Optional[str]) -> Optional[str]:
        return value

    async def find_covering_fence(
        self,
        session: AsyncSession,
        point: StorageGeometry,
        merchant_id: str,
    ) -> Optional[Row]:
        point_expr = point.to_sql()
        stmt = (
            select(Fence.id, Fence.rule_id)
            .where(
                Fence.merchant_id == merchant_id,
                or_(
                    and_(
                        Fence.shape_type == ShapeType.POLYGON.value,
                        func.ST_Covers(Fence.geom, point_expr),
                    ),
                    and_(
                        Fence.shape_type == ShapeType.CIRCLE.value,
                        func.ST_DWithin(Fence.geom, point_expr, Fence.radius),
                    ),
                ),
            )
            .limit(1)
        )
        result = await session.execute(stmt)
        return result.first()


class PortableBackend(SpatialBackend):
    name = "portable"

    def geometry_value(self, storage: StorageGeometry) -> Any:
        return storage.repaired_wkt()

    def geojson_column(self, column):
        return column

    def to_geojson(self, value: Optional[str]) -> Optional[str]:
        return wkt_to_geojson(value)

    async def find_covering_fence(
        self,
        session: AsyncSession,
        point: StorageGeometry,
        merchant_id: str,
    ) -> Optional[Row]:
        result = await session.execute(
            select(Fence.id, Fence.rule_id, Fence.shape_type, Fence.radius, Fence.geom)
            .where(Fence.merchant_id == merchant_id)
        )
        target = [point.geometry.x, point.geometry.y]
        for row in result.all():
            if not row.geom:
                continue
            if row.shape_type == ShapeType.POLYGON.value:
                # A repaired fence may be several polygons; each part counts
                parts = polygon_parts(shapely_wkt.loads(row.geom))
                if any(spherical_covers(list(part.exterior.coords), target) for part in parts):
                    return row
                continue
            vertices = decode_from_storage(row.shape_type, wkt_to_geojson(row.geom))
            if vertices and within_radius(target, vertices[0], row.radius or 0.0):
                return row
        return None


_POSTGIS = PostgisBackend()
_PORTABLE = PortableBackend()


def get_spatial_backend(session: AsyncSession) -> SpatialBackend:
    """Pick the backend matching the engine the session is bound to."""
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        return _POSTGIS
    return _PORTABLE
