from fastapi import APIRouter, Request, Response
from pydantic import BaseModel, Field

from roomboard.core.modules.device.models import DeviceSessionView, RegisterOutcome
from roomboard.core.modules.device.tokens import DEVICE_TOKEN_COOKIE, hash_device_token
from roomboard.errors import DeviceLimitError
from roomboard.web.cookies import apply_device_cookies, clear_device_cookies
from roomboard.web.deps import AppDep, AuthTokenDep, ConfigDep, DeviceContextDep
from roomboard.web.openapi import error_responses

router = APIRouter(tags=["device"])


class RegisterDeviceRequest(BaseModel):
    """Explicit device registration."""

    evict_oldest: bool = Field(False, description="Sign out the oldest device to make room (user confirmed)")


class RegisterDeviceResponse(BaseModel):
    outcome: RegisterOutcome = Field(..., description="Registration outcome")


@router.post(
    "/device/register",
    summary="Register this device",
    description="Register the requesting device for the signed-in account, optionally evicting the oldest device.",
    operation_id="registerDevice",
    response_description="Device registered",
    responses=error_responses(401, 409),
)
async def register_device(
    data: RegisterDeviceRequest,
    app: AppDep,
    config: ConfigDep,
    auth_token: AuthTokenDep,
    device: DeviceContextDep,
    response: Response,
) -> RegisterDeviceResponse:
    outcome = await app.register_device(auth_token, device, evict_oldest=data.evict_oldest)
    if outcome == RegisterOutcome.LIMIT_REACHED:
        raise DeviceLimitError(f"Already signed in on {app.device_gate.max_devices} devices")
    apply_device_cookies(response, device.set_cookies, config)
    return RegisterDeviceResponse(outcome=outcome)


@router.get(
    "/device/sessions",
    summary="List device sessions",
    description="Live device sessions of the signed-in account.",
    operation_id="listDeviceSessions",
    responses=error_responses(401),
)
async def list_device_sessions(request: Request, app: AppDep, auth_token: AuthTokenDep) -> list[DeviceSessionView]:
    device_token = request.cookies.get(DEVICE_TOKEN_COOKIE)
    current_hash = hash_device_token(device_token) if device_token else None
    return await app.get_device_sessions(auth_token, current_hash)


@router.delete(
    "/device/sessions/{device_id}",
    summary="Sign out a device",
    description="Revoke one of the signed-in account's device sessions.",
    operation_id="revokeDeviceSession",
    status_code=204,
    response_description="Device signed out",
    responses=error_responses(401, (404, "Device not found")),
)
async def revoke_device_session(device_id: str, app: AppDep, auth_token: AuthTokenDep) -> None:
    await app.revoke_device(auth_token, device_id)


@router.post(
    "/device/logout",
    summary="Release this device",
    description="Revoke this device's session (best-effort) and clear the device cookies.",
    operation_id="logoutDevice",
    status_code=204,
    response_description="Device released",
)
async def logout_device(request: Request, app: AppDep, config: ConfigDep, response: Response) -> None:
    await app.logout_device(request.cookies.get(DEVICE_TOKEN_COOKIE))
    clear_device_cookies(response, config)
