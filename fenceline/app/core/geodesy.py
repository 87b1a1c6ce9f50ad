"""
Geodetic membership tests evaluated in process.

Used when the storage engine has no spatial extension. Semantics follow the
PostGIS geography predicates used on the database path:

- circle: WGS-84 geodesic distance to the center, inclusive of the radius
  (``ST_DWithin`` on geography measures on the spheroid);
- polygon: edges are great-circle arcs, boundary counts as inside
  (``ST_Covers`` on geography).

The polygon test projects the ring with a gnomonic projection centred on the
tested point. Gnomonic projections map great circles to straight lines, so a
planar covers test in the projected plane is exactly the spherical test.
"""
import math
from typing import Sequence

from pyproj import Geod, Proj
from shapely.geometry import Point, Polygon
from shapely.validation import make_valid

from fenceline.app.core.constants import EARTH_RADIUS_M

_WGS84 = Geod(ellps="WGS84")
_SPHERE = Geod(a=EARTH_RADIUS_M, b=EARTH_RADIUS_M)

# A gnomonic projection only covers the hemisphere around its centre
_HEMISPHERE_ARC_M = math.pi * EARTH_RADIUS_M / 2

# Projected-plane slack (metres at the tangent point) for points on an edge
_COVER_TOLERANCE_M = 1e-6


def geodesic_distance(a: Sequence[float], b: Sequence[float]) -> float:
    """Distance in metres between two (lng, lat) points on the WGS-84 spheroid."""
    _, _, distance = _WGS84.inv(a[0], a[1], b[0], b[1])
    return distance


def within_radius(point: Sequence[float], center: Sequence[float], radius_m: float) -> bool:
    return geodesic_distance(point, center) <= radius_m


def spherical_covers(ring: Sequence[Sequence[float]], point: Sequence[float]) -> bool:
    """
    True if ``point`` lies inside or on the boundary of the spherical polygon
    whose outer ring is ``ring`` (closed or open, (lng, lat) pairs).

    Rings with a vertex a quarter of the globe or more away from the point are
    reported as not covering it; delivery fences are city scale.
    """
    lng, lat = point[0], point[1]
    lons = [float(v[0]) for v in ring]
    lats = [float(v[1]) for v in ring]
    if len(lons) < 3:
        return False

    _, _, arcs = _SPHERE.inv([lng] * len(lons), [lat] * len(lats), lons, lats)
    if max(arcs) >= _HEMISPHERE_ARC_M:
        return False

    gnomonic = Proj(proj="gnom", lat_0=lat, lon_0=lng, R=EARTH_RADIUS_M)
    xs, ys = gnomonic(lons, lats)
    projected = Polygon(list(zip(xs, ys)))
    if not projected.is_valid:
        projected = make_valid(projected)
    return projected.distance(Point(0.0, 0.0)) <= _COVER_TOLERANCE_M
