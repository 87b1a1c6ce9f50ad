from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from fenceline.app.api.deps import get_merchant_id, get_session
from fenceline.app.api.errors import handle_service_error
from fenceline.app.schemas import MerchantConfigResponse
from fenceline.app.services.merchants import MerchantService, MerchantServiceError

router = APIRouter()


@router.get("/config", response_model=MerchantConfigResponse)
async def get_merchant_config(
    merchant_id: str = Depends(get_merchant_id),
    session: AsyncSession = Depends(get_session),
):
    """Shop location used to centre the fence editor map."""
    try:
        return await MerchantService(session).get_config(merchant_id)
    except MerchantServiceError as e:
        handle_service_error(e)
