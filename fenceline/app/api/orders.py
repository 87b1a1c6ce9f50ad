from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from fenceline.app.api.deps import get_merchant_id, get_session
from fenceline.app.api.errors import handle_service_error
from fenceline.app.core.exceptions import ServiceError
from fenceline.app.core.limiter import limiter
from fenceline.app.core.logging import get_logger
from fenceline.app.core.settings import get_settings
from fenceline.app.schemas import (
    AbnormalFlag,
    DeliveryCheckResponse,
    OrderCreate,
    OrderListResponse,
    OrderResponse,
    OrderStatusUpdate,
    PositionUpdate,
)
from fenceline.app.services.delivery_range import DeliveryRangeService
from fenceline.app.services.order_query import DEFAULT_SORT_BY, DEFAULT_SORT_DIRECTION, OrderListQuery
from fenceline.app.services.orders import OrderService

router = APIRouter()
logger = get_logger(__name__)


# Declared before /{order_id} so the path is not taken for an order id
@router.get("/check-delivery", response_model=DeliveryCheckResponse)
@limiter.limit(get_settings().DELIVERY_CHECK_RATE_LIMIT)
async def check_delivery(
    request: Request,
    lng: float,
    lat: float,
    merchant_id: str = Depends(get_merchant_id),
    session: AsyncSession = Depends(get_session),
):
    try:
        result = await DeliveryRangeService(session).check([lng, lat], merchant_id)
    except ServiceError as e:
        handle_service_error(e)
    return {
        "is_deliverable": result.is_deliverable,
        "rule_id": result.rule_id,
        "message": result.message,
    }


@router.post("", response_model=OrderResponse, status_code=201)
async def create_order(
    data: OrderCreate,
    merchant_id: str = Depends(get_merchant_id),
    session: AsyncSession = Depends(get_session),
):
    logger.info("Creating order", user_id=data.user_id, amount=float(data.amount))
    service = OrderService(session)
    try:
        order = await service.create_order(
            merchant_id=merchant_id,
            user_id=data.user_id,
            amount=data.amount,
            recipient_name=data.recipient_name,
            recipient_address=data.recipient_address,
            recipient_coords=data.recipient_coords,
        )
        await session.commit()
        return order
    except ServiceError as e:
        await session.rollback()
        logger.warning(
            "Order creation failed",
            user_id=data.user_id,
            error=e.message,
            error_code=e.status_code,
        )
        handle_service_error(e)


@router.get("", response_model=OrderListResponse)
async def list_orders(
    page: int = 1,
    page_size: Optional[int] = Query(None, alias="pageSize"),
    user_id: Optional[str] = Query(None, alias="userId"),
    status: Optional[str] = None,
    search_query: Optional[str] = Query(None, alias="searchQuery"),
    sort_by: str = Query(DEFAULT_SORT_BY, alias="sortBy"),
    sort_direction: str = Query(DEFAULT_SORT_DIRECTION, alias="sortDirection"),
    merchant_id: str = Depends(get_merchant_id),
    session: AsyncSession = Depends(get_session),
):
    query = OrderListQuery(
        page=page,
        page_size=page_size if page_size is not None else get_settings().DEFAULT_PAGE_SIZE,
        user_id=user_id,
        status=status,
        search_query=search_query,
        sort_by=sort_by,
        sort_direction=sort_direction,
    )
    try:
        return await OrderService(session).list_orders(query, merchant_id)
    except ServiceError as e:
        handle_service_error(e)


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: str,
    merchant_id: str = Depends(get_merchant_id),
    session: AsyncSession = Depends(get_session),
):
    try:
        return await OrderService(session).get_order(order_id, merchant_id)
    except ServiceError as e:
        handle_service_error(e)


@router.post("/{order_id}/status", response_model=OrderResponse)
async def update_order_status(
    order_id: str,
    data: OrderStatusUpdate,
    merchant_id: str = Depends(get_merchant_id),
    session: AsyncSession = Depends(get_session),
):
    service = OrderService(session)
    try:
        order = await service.update_status(order_id, merchant_id, data.status)
        await session.commit()
        return order
    except ServiceError as e:
        await session.rollback()
        handle_service_error(e)


@router.post("/{order_id}/position", response_model=OrderResponse)
async def record_order_position(
    order_id: str,
    data: PositionUpdate,
    merchant_id: str = Depends(get_merchant_id),
    session: AsyncSession = Depends(get_session),
):
    service = OrderService(session)
    try:
        order = await service.record_position(order_id, merchant_id, data.coordinates)
        await session.commit()
        return order
    except ServiceError as e:
        await session.rollback()
        handle_service_error(e)


@router.post("/{order_id}/abnormal", response_model=OrderResponse)
async def flag_order_abnormal(
    order_id: str,
    data: AbnormalFlag,
    merchant_id: str = Depends(get_merchant_id),
    session: AsyncSession = Depends(get_session),
):
    service = OrderService(session)
    try:
        order = await service.flag_abnormal(order_id, merchant_id, data.reason)
        await session.commit()
        return order
    except ServiceError as e:
        await session.rollback()
        handle_service_error(e)
