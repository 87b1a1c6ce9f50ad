# fenceline/app/services/__init__.py
"""
Services layer for business logic.
Keeps API endpoints thin and business logic testable and reusable.
"""

from fenceline.app.services.geometry import (
    GeometryError,
    InvalidShapeTypeError,
    MissingCenterPointError,
    InsufficientPolygonVerticesError,
    InvalidCoordinatesError,
    encode_for_storage,
    decode_from_storage,
)
from fenceline.app.services.fences import (
    FenceService,
    FenceServiceError,
    FenceNotFoundError,
    InvalidRadiusError,
    DeliveryRuleNotFoundError,
)
from fenceline.app.services.delivery_range import (
    DeliveryRangeService,
    DeliveryCheckResult,
)
from fenceline.app.services.order_query import (
    OrderQueryBuilder,
    OrderQueryError,
    OrderListQuery,
    InvalidSortColumnError,
    InvalidPaginationError,
)
from fenceline.app.services.orders import (
    OrderService,
    OrderServiceError,
    OrderNotFoundError,
    OutsideDeliveryRangeError,
    InvalidOrderStatusError,
)
from fenceline.app.services.merchants import (
    MerchantService,
    MerchantServiceError,
    MerchantNotFoundError,
)
from fenceline.app.services.rules import RuleService
from fenceline.app.services.cache import CacheService

__all__ = [
    # Geometry codec
    "GeometryError",
    "InvalidShapeTypeError",
    "MissingCenterPointError",
    "InsufficientPolygonVerticesError",
    "InvalidCoordinatesError",
    "encode_for_storage",
    "decode_from_storage",
    # Fence service
    "FenceService",
    "FenceServiceError",
    "FenceNotFoundError",
    "InvalidRadiusError",
    "DeliveryRuleNotFoundError",
    # Delivery range
    "DeliveryRangeService",
    "DeliveryCheckResult",
    # Order listing
    "OrderQueryBuilder",
    "OrderQueryError",
    "OrderListQuery",
    "InvalidSortColumnError",
    "InvalidPaginationError",
    # Order service
    "OrderService",
    "OrderServiceError",
    "OrderNotFoundError",
    "OutsideDeliveryRangeError",
    "InvalidOrderStatusError",
    # Merchant service
    "MerchantService",
    "MerchantServiceError",
    "MerchantNotFoundError",
    # Rules
    "RuleService",
    # Cache service
    "CacheService",
]
