from fastapi import APIRouter
from pydantic import BaseModel, Field

from roomboard.core.modules.user.models import UserView
from roomboard.web.deps import AppDep, AuthTokenDep
from roomboard.web.openapi import error_responses

router = APIRouter(prefix="/profile", tags=["profile"])


class ChangePasswordRequest(BaseModel):
    old_password: str = Field(..., min_length=1, description="Current password")
    new_password: str = Field(..., min_length=1, description="Replacement password, at least 6 characters")


@router.get(
    "",
    summary="Current account",
    operation_id="getCurrentUserProfile",
    response_description="Signed-in user with admin level",
    responses=error_responses(401),
)
async def get_profile(app: AppDep, auth_token: AuthTokenDep) -> UserView:
    return await app.get_current_user(auth_token)


@router.post(
    "/change-password",
    summary="Change own password",
    description="Sessions on other devices stay signed in.",
    operation_id="changePassword",
    status_code=204,
    response_description="Password changed",
    responses=error_responses((400, "Wrong current password or weak new password"), 401),
)
async def change_password(body: ChangePasswordRequest, app: AppDep, auth_token: AuthTokenDep) -> None:
    await app.change_password(auth_token, body.old_password, body.new_password)
