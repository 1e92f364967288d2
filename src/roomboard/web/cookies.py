"""Cookie attributes shared by the auth and device cookies."""

from starlette.responses import Response

from roomboard.config import Config
from roomboard.core.modules.device.tokens import DEVICE_ID_COOKIE, DEVICE_TOKEN_COOKIE

AUTH_COOKIE = "auth_token"


def _set(response: Response, key: str, value: str, config: Config, max_age: int) -> None:
    response.set_cookie(
        key=key,
        value=value,
        httponly=True,
        samesite="lax",
        secure=config.production,
        path="/",
        max_age=max_age,
    )


def _clear(response: Response, key: str, config: Config) -> None:
    # Empty value with max_age=0
    response.delete_cookie(key, path="/", secure=config.production, httponly=True, samesite="lax")


def set_auth_cookie(response: Response, token: str, config: Config) -> None:
    _set(response, AUTH_COOKIE, token, config, config.session_max_age)


def clear_auth_cookie(response: Response, config: Config) -> None:
    _clear(response, AUTH_COOKIE, config)


def apply_device_cookies(response: Response, values: dict[str, str], config: Config) -> None:
    for key, value in values.items():
        _set(response, key, value, config, config.device_cookie_max_age)


def clear_device_cookies(response: Response, config: Config) -> None:
    _clear(response, DEVICE_TOKEN_COOKIE, config)
    _clear(response, DEVICE_ID_COOKIE, config)
