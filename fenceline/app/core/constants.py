"""
Shared constants for the backend application.
"""
from enum import Enum

# ---------------------------------------------------------------------------
# Spatial reference
# ---------------------------------------------------------------------------
# WGS 84; all stored geometries are geography(…, 4326)
SRID = 4326

# Mean earth radius (IUGG), used for spherical projections
EARTH_RADIUS_M = 6371008.8

LNG_MIN, LNG_MAX = -180.0, 180.0
LAT_MIN, LAT_MAX = -90.0, 90.0

MIN_POLYGON_VERTICES = 3


class ShapeType(str, Enum):
    """Fence geometry tag. Wire values match the merchant console."""

    POLYGON = "polygon"
    CIRCLE = "circle"


# ---------------------------------------------------------------------------
# Order statuses
# ---------------------------------------------------------------------------
class OrderStatus(str, Enum):
    PENDING = "pending"
    PICKED_UP = "pickedUp"
    SHIPPING = "shipping"
    ARRIVED = "arrived"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


ORDER_STATUS_TRANSITIONS: dict[OrderStatus, tuple[OrderStatus, ...]] = {
    OrderStatus.PENDING: (OrderStatus.PICKED_UP, OrderStatus.CANCELLED),
    OrderStatus.PICKED_UP: (OrderStatus.SHIPPING, OrderStatus.CANCELLED),
    OrderStatus.SHIPPING: (OrderStatus.ARRIVED,),
    OrderStatus.ARRIVED: (OrderStatus.DELIVERED,),
    OrderStatus.DELIVERED: (),
    OrderStatus.CANCELLED: (),
}

# Statuses during which a courier position may be reported
TRACKABLE_ORDER_STATUSES = (OrderStatus.PICKED_UP, OrderStatus.SHIPPING, OrderStatus.ARRIVED)

# ---------------------------------------------------------------------------
# Order list pagination
# ---------------------------------------------------------------------------
MAX_PAGE_SIZE = 100

# OFFSET is bound as a signed 64-bit integer
MAX_QUERY_OFFSET = 2**63 - 1
