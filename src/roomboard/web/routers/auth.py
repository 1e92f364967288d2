from fastapi import APIRouter, Request, Response
from pydantic import BaseModel, Field

from roomboard.core.modules.device.tokens import DEVICE_TOKEN_COOKIE
from roomboard.web.cookies import apply_device_cookies, clear_auth_cookie, clear_device_cookies, set_auth_cookie
from roomboard.web.deps import AppDep, ConfigDep, DeviceContextDep, OptionalAuthTokenDep
from roomboard.web.openapi import error_responses

router = APIRouter(tags=["auth"])


class LoginRequest(BaseModel):
    """Authentication request."""

    username: str = Field(..., description="Username for authentication")
    password: str = Field(..., description="Password for authentication")
    evict_oldest: bool = Field(
        False, description="Sign out the oldest device when the device limit is reached (user confirmed)"
    )


class LoginResponse(BaseModel):
    """Authentication response."""

    token: str = Field(..., description="Authentication token for subsequent requests")


@router.post(
    "/auth/login",
    summary="Authenticate user",
    description=(
        "Authenticate with username and password. The requesting device is registered; "
        "when the account is already active on the maximum number of devices the request "
        "fails with 409 unless `evict_oldest` is set."
    ),
    operation_id="login",
    response_description="Successfully authenticated",
    responses=error_responses((401, "Invalid credentials"), 409),
)
async def login(
    login_data: LoginRequest, app: AppDep, config: ConfigDep, device: DeviceContextDep, response: Response
) -> LoginResponse:
    """Authenticate user, register the device and create a session."""
    token = await app.login(login_data.username, login_data.password, device, evict_oldest=login_data.evict_oldest)

    set_auth_cookie(response, token, config)
    apply_device_cookies(response, device.set_cookies, config)

    return LoginResponse(token=token)


@router.post(
    "/auth/logout",
    summary="End session",
    description="Invalidate the current authentication session and this device's session.",
    operation_id="logout",
    status_code=204,
    response_description="Successfully logged out",
)
async def logout(
    request: Request, app: AppDep, config: ConfigDep, auth_token: OptionalAuthTokenDep, response: Response
) -> None:
    await app.logout(auth_token, request.cookies.get(DEVICE_TOKEN_COOKIE))
    clear_auth_cookie(response, config)
    clear_device_cookies(response, config)
