# fenceline/app/services/orders.py
"""
Order service - handles all order-related business logic.

An order is only created when the recipient lies inside one of the
merchant's fences; the matching fence's rule is stamped on the order and
never changes afterwards, nor do the recipient coordinates.
"""
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fenceline.app.core.constants import (
    ORDER_STATUS_TRANSITIONS,
    TRACKABLE_ORDER_STATUSES,
    OrderStatus,
)
from fenceline.app.core.exceptions import ServiceError
from fenceline.app.core.logging import get_logger
from fenceline.app.models.order import Order
from fenceline.app.services.delivery_range import DeliveryRangeService
from fenceline.app.services.geometry import encode_point_for_storage, validate_coordinates
from fenceline.app.services.order_query import OrderListQuery, OrderQueryBuilder, order_to_dict
from fenceline.app.services.spatial import get_spatial_backend

# Import metrics
try:
    from fenceline.app.core.metrics import orders_created_total, orders_rejected_out_of_range_total
except ImportError:
    # Metrics not available (e.g., in tests)
    orders_created_total = None
    orders_rejected_out_of_range_total = None

logger = get_logger(__name__)


class OrderServiceError(ServiceError):
    """Base exception for order service errors."""


class OrderNotFoundError(OrderServiceError):
    def __init__(self, order_id: str):
        super().__init__(f"Order {order_id} not found", 404)


class OutsideDeliveryRangeError(OrderServiceError):
    """Expected business outcome: the recipient is not covered by any fence."""

    def __init__(self, coords: Sequence[float]):
        super().__init__(
            f"Recipient address {list(coords)} is outside of the delivery range",
            422,
            error_code="DELIVERY_OUT_OF_RANGE",
        )


class InvalidOrderStatusError(OrderServiceError):
    def __init__(self, order_id: str, current_status: str, requested_status: str):
        super().__init__(
            f"Order {order_id} cannot move from '{current_status}' to '{requested_status}'",
            409,
        )


class OrderService:
    """Service class for order operations. Caller commits the session."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.spatial = get_spatial_backend(session)
        self.query_builder = OrderQueryBuilder(self.spatial)

    async def create_order(
        self,
        merchant_id: str,
        user_id: str,
        amount: Decimal,
        recipient_name: str,
        recipient_address: str,
        recipient_coords: Sequence[float],
    ) -> Dict[str, Any]:
        """
        Create an order after checking the delivery range.

        Raises:
            InvalidCoordinatesError: If the coordinates are malformed
            OutsideDeliveryRangeError: If no fence of the merchant covers the recipient
        """
        coords = validate_coordinates(recipient_coords)
        check = await DeliveryRangeService(self.session).check(coords, merchant_id)
        if not check.is_deliverable:
            logger.info("Order refused: outside delivery range", merchant_id=merchant_id, coords=coords)
            if orders_rejected_out_of_range_total:
                orders_rejected_out_of_range_total.labels(merchant_id=merchant_id).inc()
            raise OutsideDeliveryRangeError(coords)

        order = Order(
            user_id=user_id,
            merchant_id=merchant_id,
            amount=amount,
            status=OrderStatus.PENDING.value,
            rule_id=check.rule_id,
            recipient_name=recipient_name,
            recipient_address=recipient_address,
            recipient_coords=self.spatial.geometry_value(encode_point_for_storage(coords)),
            is_abnormal=False,
        )
        self.session.add(order)
        await self.session.flush()

        logger.info(
            "Order created",
            order_id=order.id,
            merchant_id=merchant_id,
            rule_id=check.rule_id,
            fence_id=check.fence_id,
        )
        if orders_created_total:
            orders_created_total.labels(merchant_id=merchant_id).inc()
        return await self.get_order(order.id, merchant_id)

    async def get_order(self, order_id: str, merchant_id: str) -> Dict[str, Any]:
        result = await self.session.execute(
            select(
                Order,
                self.spatial.geojson_column(Order.recipient_coords),
                self.spatial.geojson_column(Order.current_position),
            ).where(Order.id == order_id, Order.merchant_id == merchant_id)
        )
        row = result.first()
        if row is None:
            raise OrderNotFoundError(order_id)
        order, recipient_geojson, position_geojson = row
        return order_to_dict(
            order,
            self.spatial.to_geojson(recipient_geojson),
            self.spatial.to_geojson(position_geojson),
        )

    async def list_orders(self, query: OrderListQuery, merchant_id: str) -> Dict[str, Any]:
        return await self.query_builder.execute(self.session, query, merchant_id)

    async def update_status(self, order_id: str, merchant_id: str, new_status: Any) -> Dict[str, Any]:
        order = await self._get_order(order_id, merchant_id)
        current = OrderStatus(order.status)
        try:
            requested = OrderStatus(new_status)
        except ValueError:
            raise InvalidOrderStatusError(order_id, current.value, str(new_status))
        if requested not in ORDER_STATUS_TRANSITIONS[current]:
            raise InvalidOrderStatusError(order_id, current.value, requested.value)

        order.status = requested.value
        order.last_update_time = datetime.now()
        await self.session.flush()
        logger.info(
            "Order status changed",
            order_id=order_id,
            merchant_id=merchant_id,
            old_status=current.value,
            new_status=requested.value,
        )
        return await self.get_order(order_id, merchant_id)

    async def record_position(self, order_id: str, merchant_id: str, coords: Sequence[float]) -> Dict[str, Any]:
        """Store the courier's latest position and extend the travelled route."""
        position = validate_coordinates(coords)
        order = await self._get_order(order_id, merchant_id)
        if OrderStatus(order.status) not in TRACKABLE_ORDER_STATUSES:
            raise InvalidOrderStatusError(order_id, order.status, "tracking")

        order.current_position = self.spatial.geometry_value(encode_point_for_storage(position))
        # Reassign so the JSON column is flagged dirty
        order.route_path = list(order.route_path or []) + [position]
        order.last_update_time = datetime.now()
        await self.session.flush()
        return await self.get_order(order_id, merchant_id)

    async def flag_abnormal(self, order_id: str, merchant_id: str, reason: Optional[str]) -> Dict[str, Any]:
        order = await self._get_order(order_id, merchant_id)
        order.is_abnormal = True
        order.abnormal_reason = reason
        order.last_update_time = datetime.now()
        await self.session.flush()
        logger.warning("Order flagged abnormal", order_id=order_id, merchant_id=merchant_id, reason=reason)
        return await self.get_order(order_id, merchant_id)

    async def _get_order(self, order_id: str, merchant_id: str) -> Order:
        result = await self.session.execute(
            select(Order).where(Order.id == order_id, Order.merchant_id == merchant_id)
        )
        order = result.scalar_one_or_none()
        if order is None:
            raise OrderNotFoundError(order_id)
        return order
