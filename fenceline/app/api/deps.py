from typing import AsyncGenerator
from fastapi import Header, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from fenceline.app.core.database import async_session
from fenceline.app.core.logging import bind_request_context, clear_request_context
from fenceline.app.services.cache import CacheService


# One database session per request
async def get_session() -> AsyncGenerator[AsyncSession, None]:
    async with async_session() as session:
        yield session


# Cache service per request
async def get_cache() -> AsyncGenerator[CacheService, None]:
    redis = await CacheService.get_redis()
    yield CacheService(redis)


# Identity of the calling merchant; every service call is scoped by it
async def get_merchant_id(
    x_merchant_id: str = Header(..., alias="X-Merchant-Id"),
) -> AsyncGenerator[str, None]:
    merchant_id = x_merchant_id.strip()
    if not merchant_id:
        raise HTTPException(status_code=401, detail="Missing merchant identity")
    bind_request_context(merchant_id=merchant_id)
    try:
        yield merchant_id
    finally:
        clear_request_context()
