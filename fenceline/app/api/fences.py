from typing import List

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from fenceline.app.api.deps import get_merchant_id, get_session
from fenceline.app.api.errors import handle_service_error
from fenceline.app.core.exceptions import ServiceError
from fenceline.app.core.logging import get_logger
from fenceline.app.schemas import FenceCreate, FenceResponse
from fenceline.app.services.fences import FenceService

router = APIRouter()
logger = get_logger(__name__)


@router.get("", response_model=List[FenceResponse])
async def list_fences(
    merchant_id: str = Depends(get_merchant_id),
    session: AsyncSession = Depends(get_session),
):
    return await FenceService(session).list_fences(merchant_id)


@router.post("", response_model=FenceResponse, status_code=201)
async def create_fence(
    data: FenceCreate,
    merchant_id: str = Depends(get_merchant_id),
    session: AsyncSession = Depends(get_session),
):
    service = FenceService(session)
    try:
        fence = await service.create_fence(merchant_id, data.model_dump())
        await session.commit()
        return fence
    except ServiceError as e:
        await session.rollback()
        logger.warning("Fence creation failed", error=e.message, error_code=e.status_code)
        handle_service_error(e)


@router.get("/{fence_id}", response_model=FenceResponse)
async def get_fence(
    fence_id: int,
    merchant_id: str = Depends(get_merchant_id),
    session: AsyncSession = Depends(get_session),
):
    try:
        return await FenceService(session).get_fence(fence_id, merchant_id)
    except ServiceError as e:
        handle_service_error(e)


@router.put("/{fence_id}", response_model=FenceResponse)
async def update_fence(
    fence_id: int,
    data: FenceCreate,
    merchant_id: str = Depends(get_merchant_id),
    session: AsyncSession = Depends(get_session),
):
    service = FenceService(session)
    try:
        fence = await service.update_fence(fence_id, merchant_id, data.model_dump())
        await session.commit()
        return fence
    except ServiceError as e:
        await session.rollback()
        logger.warning("Fence update failed", fence_id=fence_id, error=e.message, error_code=e.status_code)
        handle_service_error(e)


@router.delete("/{fence_id}", status_code=204)
async def delete_fence(
    fence_id: int,
    merchant_id: str = Depends(get_merchant_id),
    session: AsyncSession = Depends(get_session),
):
    service = FenceService(session)
    try:
        await service.delete_fence(fence_id, merchant_id)
        await session.commit()
    except ServiceError as e:
        await session.rollback()
        handle_service_error(e)
    return Response(status_code=204)
