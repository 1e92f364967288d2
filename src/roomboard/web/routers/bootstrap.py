from fastapi import APIRouter

from roomboard.core.modules.filter.models import ListingBootstrap
from roomboard.web.deps import AppDep, OptionalAuthTokenDep

router = APIRouter(tags=["listing"])


@router.get(
    "/bootstrap",
    summary="Listing bootstrap",
    description="Caller's admin level and visibility tier together with the available filter choices.",
    operation_id="getBootstrap",
)
async def get_bootstrap(app: AppDep, auth_token: OptionalAuthTokenDep) -> ListingBootstrap:
    return await app.get_bootstrap(auth_token)
