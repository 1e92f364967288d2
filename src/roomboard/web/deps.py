from typing import Annotated, cast

from fastapi import Depends, Request, Response
from fastapi.security import APIKeyCookie, HTTPAuthorizationCredentials, HTTPBearer

from roomboard.app import App
from roomboard.config import Config
from roomboard.core.modules.device.gate import DeviceContext, DeviceGate
from roomboard.core.modules.device.tokens import DEVICE_ID_COOKIE, DEVICE_TOKEN_COOKIE
from roomboard.core.modules.session.models import AuthToken
from roomboard.errors import AuthenticationError, DeviceRejectedError
from roomboard.web.cookies import AUTH_COOKIE, apply_device_cookies

# Security schemes
bearer_scheme = HTTPBearer(auto_error=False)
cookie_scheme = APIKeyCookie(name=AUTH_COOKIE, auto_error=False)


async def get_app(request: Request) -> App:
    return cast(App, request.app.state.app)


async def get_config(request: Request) -> Config:
    return cast(Config, request.app.state.config)


async def get_device_gate(app: Annotated[App, Depends(get_app)]) -> DeviceGate:
    return app.device_gate


async def get_optional_auth_token(
    app: Annotated[App, Depends(get_app)],
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)] = None,
    token_cookie: Annotated[str | None, Depends(cookie_scheme)] = None,
) -> AuthToken | None:
    """Valid auth token from the Authorization Bearer header or cookie, or None."""

    # Check Bearer token first (preferred)
    if credentials and credentials.scheme == "Bearer":
        auth_token = AuthToken(credentials.credentials)
        if await app.is_auth_token_valid(auth_token):
            return auth_token

    # Fallback to cookie
    if token_cookie:
        auth_token = AuthToken(token_cookie)
        if await app.is_auth_token_valid(auth_token):
            return auth_token

    return None


async def get_auth_token(
    auth_token: Annotated[AuthToken | None, Depends(get_optional_auth_token)],
) -> AuthToken:
    if auth_token is None:
        raise AuthenticationError
    return auth_token


async def get_device_context(request: Request) -> DeviceContext:
    """Device cookies of the request; the identity is filled in by the consumer."""
    return DeviceContext(
        user_id=None,
        device_token=request.cookies.get(DEVICE_TOKEN_COOKIE) or None,
        device_id=request.cookies.get(DEVICE_ID_COOKIE) or None,
    )


async def enforce_device_gate(
    response: Response,
    app: Annotated[App, Depends(get_app)],
    config: Annotated[Config, Depends(get_config)],
    gate: Annotated[DeviceGate, Depends(get_device_gate)],
    auth_token: Annotated[AuthToken | None, Depends(get_optional_auth_token)],
    device: Annotated[DeviceContext, Depends(get_device_context)],
) -> None:
    """Run the device gate for protected routes.

    Anonymous requests pass untouched. A rejected device is turned into a
    redirect by the DeviceRejectedError handler.
    """
    user = await app.get_optional_user(auth_token)
    if user is None:
        return
    device.user_id = user.id
    device.auth_token = auth_token

    decision = await gate.check(device)
    if not decision.allowed:
        raise DeviceRejectedError(decision.marker or "kicked")
    apply_device_cookies(response, decision.set_cookies, config)


# Type aliases for dependencies
AppDep = Annotated[App, Depends(get_app)]
ConfigDep = Annotated[Config, Depends(get_config)]
AuthTokenDep = Annotated[AuthToken, Depends(get_auth_token)]
OptionalAuthTokenDep = Annotated[AuthToken | None, Depends(get_optional_auth_token)]
DeviceContextDep = Annotated[DeviceContext, Depends(get_device_context)]
DeviceGateDep = Depends(enforce_device_gate)
