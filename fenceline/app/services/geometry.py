# fenceline/app/services/geometry.py
"""
Geometry codec.

Translates between the three representations a fence goes through:

- the coordinate arrays the merchant console sends (``[[lng, lat], ...]``),
- WKT on the way into storage (bound as a parameter, never spliced into SQL),
- GeoJSON on the way out of storage.
"""
import json
import math
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence

from geoalchemy2 import Geography
from shapely import wkt as shapely_wkt
from shapely.geometry import GeometryCollection, MultiPolygon, Point, Polygon, mapping, shape
from shapely.geometry.base import BaseGeometry
from shapely.validation import make_valid
from sqlalchemy import cast, func

from fenceline.app.core.constants import (
    LAT_MAX,
    LAT_MIN,
    LNG_MAX,
    LNG_MIN,
    MIN_POLYGON_VERTICES,
    SRID,
    ShapeType,
)
from fenceline.app.core.exceptions import ServiceError

Coordinates = List[float]


class GeometryError(ServiceError):
    """Base exception for geometry encoding errors."""


class InvalidShapeTypeError(GeometryError):
    def __init__(self, shape_type: Any):
        super().__init__(f"Unsupported shape type: {shape_type}", 400)


class MissingCenterPointError(GeometryError):
    def __init__(self):
        super().__init__("Circle shape requires a center point", 400)


class InsufficientPolygonVerticesError(GeometryError):
    def __init__(self, count: int):
        super().__init__(
            f"Polygon requires at least {MIN_POLYGON_VERTICES} vertices, got {count}", 400
        )


class InvalidCoordinatesError(GeometryError):
    def __init__(self, value: Any):
        super().__init__(f"Invalid coordinates: {value!r}; expected [longitude, latitude]", 400)


@dataclass(frozen=True)
class StorageGeometry:
    """A geometry ready to be written, plus how the database must treat it."""

    geometry: BaseGeometry
    shape_type: Optional[ShapeType] = None
    repair: bool = False

    @property
    def wkt(self) -> str:
        return self.geometry.wkt

    @property
    def coordinates(self) -> List[Coordinates]:
        """Vertices as written: the closed ring for polygons, the center for points."""
        if isinstance(self.geometry, Polygon):
            return [list(c) for c in self.geometry.exterior.coords]
        return [list(self.geometry.coords[0])]

    def to_sql(self):
        """
        PostGIS expression: ``ST_GeomFromText(:wkt, 4326)``, wrapped in
        ``ST_MakeValid`` for polygons and cast to geography.
        """
        expr = func.ST_GeomFromText(self.wkt, SRID)
        if self.repair:
            expr = func.ST_MakeValid(expr)
        return cast(expr, Geography(srid=SRID))

    def repaired_wkt(self) -> str:
        """WKT after the same validity repair ``to_sql`` asks PostGIS for."""
        if self.repair and not self.geometry.is_valid:
            return make_valid(self.geometry).wkt
        return self.wkt


def parse_shape_type(value: Any) -> ShapeType:
    if isinstance(value, ShapeType):
        return value
    try:
        return ShapeType(value)
    except ValueError:
        raise InvalidShapeTypeError(value)


def validate_coordinates(value: Any) -> Coordinates:
    """Check a single ``[lng, lat]`` pair and return it as floats."""
    if not isinstance(value, (list, tuple)) or len(value) != 2:
        raise InvalidCoordinatesError(value)
    lng, lat = value
    if isinstance(lng, bool) or isinstance(lat, bool):
        raise InvalidCoordinatesError(value)
    try:
        lng, lat = float(lng), float(lat)
    except (TypeError, ValueError):
        raise InvalidCoordinatesError(value)
    if not (math.isfinite(lng) and math.isfinite(lat)):
        raise InvalidCoordinatesError(value)
    if not (LNG_MIN <= lng <= LNG_MAX and LAT_MIN <= lat <= LAT_MAX):
        raise InvalidCoordinatesError(value)
    return [lng, lat]


def close_ring(vertices: Sequence[Sequence[float]]) -> List[Coordinates]:
    """Return the ring with its first vertex repeated at the end (at most once)."""
    ring = [list(v) for v in vertices]
    if ring and ring[0] != ring[-1]:
        ring.append(list(ring[0]))
    return ring


def encode_for_storage(shape_type: Any, vertices: Sequence[Sequence[float]]) -> StorageGeometry:
    """
    Build the storable geometry for a fence.

    Polygon rings are closed if the client sent them open and are flagged for
    validity repair. Circles keep only their center; the radius is a separate
    column.
    """
    shape_type = parse_shape_type(shape_type)
    vertices = vertices or []

    if shape_type == ShapeType.CIRCLE:
        if len(vertices) == 0:
            raise MissingCenterPointError()
        center = validate_coordinates(vertices[0])
        return StorageGeometry(geometry=Point(center), shape_type=shape_type)

    points = [validate_coordinates(v) for v in vertices]
    ring = close_ring(points)
    # The closing vertex does not count towards the minimum
    distinct = len(ring) - 1 if ring else 0
    if distinct < MIN_POLYGON_VERTICES:
        raise InsufficientPolygonVerticesError(distinct)
    return StorageGeometry(geometry=Polygon(ring), shape_type=shape_type, repair=True)


def to_point_expression(coords: Sequence[float]) -> StorageGeometry:
    """Single point for ad-hoc spatial comparisons (delivery checks)."""
    return StorageGeometry(geometry=Point(validate_coordinates(coords)))


def encode_point_for_storage(coords: Sequence[float]) -> StorageGeometry:
    """Single point persisted on orders and merchants."""
    return to_point_expression(coords)


def polygon_parts(geometry: BaseGeometry) -> List[Polygon]:
    """Every polygon inside ``geometry``; ST_MakeValid / make_valid may split a self-intersecting ring."""
    if isinstance(geometry, Polygon):
        return [geometry]
    if isinstance(geometry, (MultiPolygon, GeometryCollection)):
        parts: List[Polygon] = []
        for part in geometry.geoms:
            parts.extend(polygon_parts(part))
        return parts
    return []


def _outer_polygon(geometry: BaseGeometry) -> Optional[Polygon]:
    parts = polygon_parts(geometry)
    return parts[0] if parts else None


def decode_from_storage(shape_type: Any, geojson_text: Optional[str]) -> List[Coordinates]:
    """
    Turn stored GeoJSON back into the console's vertex list.

    Polygons return their outer ring only (holes are dropped). Circles return
    a one-element list holding the center. A null geometry decodes to ``[]``.
    """
    shape_type = parse_shape_type(shape_type)
    if not geojson_text:
        return []

    geometry = shape(json.loads(geojson_text))
    if geometry.is_empty:
        return []

    if shape_type == ShapeType.POLYGON:
        polygon = _outer_polygon(geometry)
        if polygon is None:
            return []
        return [list(c) for c in polygon.exterior.coords]

    if isinstance(geometry, Point):
        return [[geometry.x, geometry.y]]
    return [list(geometry.coords[0])]


def decode_point(geojson_text: Optional[str]) -> Optional[Coordinates]:
    """GeoJSON Point → ``[lng, lat]``; ``None`` for a null geometry."""
    if not geojson_text:
        return None
    geometry = shape(json.loads(geojson_text))
    if geometry.is_empty:
        return None
    return [geometry.x, geometry.y]


def wkt_to_geojson(wkt_text: Optional[str]) -> Optional[str]:
    """Stored WKT → GeoJSON text, the portable stand-in for ``ST_AsGeoJSON``."""
    if not wkt_text:
        return None
    return json.dumps(mapping(shapely_wkt.loads(wkt_text)))
