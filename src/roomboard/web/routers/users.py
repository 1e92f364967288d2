"""Account management for tier-1 administrators."""

from fastapi import APIRouter
from pydantic import BaseModel, Field

from roomboard.core.modules.user.models import AdminLevel, UserView
from roomboard.web.deps import AppDep, AuthTokenDep
from roomboard.web.openapi import error_responses

router = APIRouter(prefix="/users", tags=["users"])

ADMIN_LEVEL_HELP = "0 = regular user, 1 = administrator, 2 = staff"


class NewUser(BaseModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)
    admin_level: AdminLevel = Field(AdminLevel.NONE, description=ADMIN_LEVEL_HELP)


class AdminLevelChange(BaseModel):
    admin_level: AdminLevel = Field(..., description=ADMIN_LEVEL_HELP)


@router.get(
    "",
    summary="List accounts",
    operation_id="listUsers",
    responses=error_responses(401, 403),
)
async def list_users(app: AppDep, auth_token: AuthTokenDep) -> list[UserView]:
    return await app.get_all_users(auth_token)


@router.post(
    "",
    summary="Create account",
    operation_id="createUser",
    status_code=201,
    responses=error_responses((400, "Invalid or taken username, or weak password"), 401, 403),
)
async def create_user(body: NewUser, app: AppDep, auth_token: AuthTokenDep) -> UserView:
    return await app.create_user(auth_token, body.username, body.password, body.admin_level)


@router.put(
    "/{username}/admin-level",
    summary="Change admin level",
    description="Administrators cannot change their own level.",
    operation_id="setUserAdminLevel",
    responses=error_responses((400, "Own account"), 401, 403, (404, "User not found")),
)
async def set_admin_level(username: str, body: AdminLevelChange, app: AppDep, auth_token: AuthTokenDep) -> UserView:
    return await app.set_user_admin_level(auth_token, username, body.admin_level)


@router.delete(
    "/{username}",
    summary="Delete account",
    description="Also ends every session of the account. Administrators cannot delete themselves.",
    operation_id="deleteUser",
    status_code=204,
    responses=error_responses((400, "Own account"), 401, 403, (404, "User not found")),
)
async def delete_user(username: str, app: AppDep, auth_token: AuthTokenDep) -> None:
    await app.delete_user(auth_token, username)
