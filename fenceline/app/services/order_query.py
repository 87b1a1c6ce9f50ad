# fenceline/app/services/order_query.py
"""
Order list query builder.

Builds two statements from one filter list: a page query and a count query.
Every user-supplied value reaches SQL as a bound parameter. The sort column
comes only from ``SORT_COLUMNS``; a sort field outside it is rejected before
any statement is built.
"""
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from sqlalchemy import String, bindparam, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Select
from sqlalchemy.sql.elements import ColumnElement

from fenceline.app.core.constants import MAX_PAGE_SIZE, MAX_QUERY_OFFSET
from fenceline.app.core.exceptions import ServiceError
from fenceline.app.models.order import Order
from fenceline.app.services.geometry import decode_point
from fenceline.app.services.spatial import SpatialBackend, get_spatial_backend

# API field -> orders column
SORT_COLUMNS: Dict[str, str] = {
    "createTime": "create_time",
    "amount": "amount",
    "status": "status",
    "recipientName": "recipient_name",
}
DEFAULT_SORT_BY = "createTime"
DEFAULT_SORT_DIRECTION = "DESC"

LIKE_ESCAPE = "/"


class OrderQueryError(ServiceError):
    """Base exception for order listing errors."""


class InvalidSortColumnError(OrderQueryError):
    def __init__(self, sort_by: Any):
        super().__init__(f"Invalid sort column: {sort_by}", 400)


class InvalidPaginationError(OrderQueryError):
    def __init__(self, page: Any, page_size: Any):
        super().__init__(
            f"Invalid pagination parameters: page={page}, pageSize={page_size} "
            f"(page >= 1, 1 <= pageSize <= {MAX_PAGE_SIZE})",
            400,
        )


@dataclass
class OrderListQuery:
    page: int = 1
    page_size: int = 20
    user_id: Optional[str] = None
    status: Optional[str] = None
    search_query: Optional[str] = None
    sort_by: str = DEFAULT_SORT_BY
    sort_direction: str = DEFAULT_SORT_DIRECTION

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


@dataclass(frozen=True)
class OrderListStatements:
    count: Select
    data: Select
    sort_column: str
    sort_direction: str
    offset: int


def normalize_sort_direction(direction: Optional[str]) -> str:
    """Only a literal ``asc`` (any case) sorts ascending; anything else is DESC."""
    if isinstance(direction, str) and direction.upper() == "ASC":
        return "ASC"
    return "DESC"


def resolve_sort_column(sort_by: Any) -> str:
    if not isinstance(sort_by, str) or sort_by not in SORT_COLUMNS:
        raise InvalidSortColumnError(sort_by)
    return SORT_COLUMNS[sort_by]


def escape_like(value: str) -> str:
    """Make ``%`` and ``_`` in user text match literally."""
    return (
        value.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )


def validate_pagination(page: Any, page_size: Any) -> None:
    if (
        not isinstance(page, int)
        or not isinstance(page_size, int)
        or isinstance(page, bool)
        or isinstance(page_size, bool)
        or page < 1
        or not 1 <= page_size <= MAX_PAGE_SIZE
        or (page - 1) * page_size > MAX_QUERY_OFFSET
    ):
        raise InvalidPaginationError(page, page_size)


def order_to_dict(
    order: Order,
    recipient_geojson: Optional[str],
    position_geojson: Optional[str],
) -> Dict[str, Any]:
    """Order row + GeoJSON columns → API dict. GeoJSON must already be normalized."""
    return {
        "id": order.id,
        "user_id": order.user_id,
        "merchant_id": order.merchant_id,
        "create_time": order.create_time,
        "amount": float(order.amount) if order.amount is not None else 0.0,
        "status": order.status,
        "recipient_name": order.recipient_name,
        "recipient_address": order.recipient_address,
        "recipient_coords": decode_point(recipient_geojson) or [0.0, 0.0],
        "current_position": decode_point(position_geojson),
        "route_path": order.route_path,
        "last_update_time": order.last_update_time,
        "is_abnormal": bool(order.is_abnormal),
        "abnormal_reason": order.abnormal_reason,
        "rule_id": order.rule_id,
    }


class OrderQueryBuilder:
    def __init__(self, spatial: SpatialBackend):
        self.spatial = spatial

    def filters(self, query: OrderListQuery, merchant_id: str) -> List[ColumnElement]:
        # Merchant scoping is always the first predicate
        clauses: List[ColumnElement] = [Order.merchant_id == merchant_id]
        if query.user_id:
            clauses.append(Order.user_id == query.user_id)
        if query.status:
            clauses.append(Order.status == query.status)
        if query.search_query:
            # One parameter shared by both columns
            pattern = bindparam(
                "search_pattern",
                value=f"%{escape_like(query.search_query)}%",
                type_=String,
            )
            clauses.append(
                or_(
                    Order.recipient_name.ilike(pattern, escape=LIKE_ESCAPE),
                    Order.recipient_address.ilike(pattern, escape=LIKE_ESCAPE),
                )
            )
        return clauses

    def build(self, query: OrderListQuery, merchant_id: str) -> OrderListStatements:
        sort_column_name = resolve_sort_column(query.sort_by)
        validate_pagination(query.page, query.page_size)
        direction = normalize_sort_direction(query.sort_direction)

        clauses = self.filters(query, merchant_id)
        sort_column = Order.__table__.c[sort_column_name]
        ordering = sort_column.asc() if direction == "ASC" else sort_column.desc()

        count_stmt = select(func.count()).select_from(Order).where(*clauses)
        data_stmt = (
            select(
                Order,
                self.spatial.geojson_column(Order.recipient_coords).label("recipient_geojson"),
                self.spatial.geojson_column(Order.current_position).label("position_geojson"),
            )
            .where(*clauses)
            # id breaks ties so pages never overlap
            .order_by(ordering, Order.id.asc())
            .limit(query.page_size)
            .offset(query.offset)
        )
        return OrderListStatements(
            count=count_stmt,
            data=data_stmt,
            sort_column=sort_column_name,
            sort_direction=direction,
            offset=query.offset,
        )

    async def execute(self, session: AsyncSession, query: OrderListQuery, merchant_id: str) -> Dict[str, Any]:
        statements = self.build(query, merchant_id)

        total_count = (await session.execute(statements.count)).scalar_one()
        result = await session.execute(statements.data)
        orders = [
            order_to_dict(
                order,
                self.spatial.to_geojson(recipient_geojson),
                self.spatial.to_geojson(position_geojson),
            )
            for order, recipient_geojson, position_geojson in result.all()
        ]
        return {
            "orders": orders,
            "total_count": int(total_count),
            "current_page": query.page,
            "page_size": query.page_size,
        }


def get_order_query_builder(session: AsyncSession) -> OrderQueryBuilder:
    return OrderQueryBuilder(get_spatial_backend(session))
