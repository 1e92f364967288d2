import structlog
from fastapi import Request
from fastapi.responses import JSONResponse, RedirectResponse, Response

from roomboard.config import Config
from roomboard.errors import DeviceRejectedError, UserError
from roomboard.web.cookies import clear_auth_cookie, clear_device_cookies

logger = structlog.get_logger(__name__)


def error_json(status_code: int, message: str, error_type: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"message": message, "type": error_type})


async def user_error_handler(request: Request, exc: Exception) -> Response:
    if not isinstance(exc, UserError):
        return await general_exception_handler(request, exc)
    return error_json(exc.status_code, str(exc), exc.error_type)


async def device_rejected_handler(request: Request, exc: Exception) -> Response:
    """Redirect a rejected device home with `auth=<marker>`, signed out and without device cookies."""
    marker = exc.marker if isinstance(exc, DeviceRejectedError) else "kicked"
    config: Config = request.app.state.config
    response = RedirectResponse(url=f"/?auth={marker}", status_code=303)
    clear_device_cookies(response, config)
    clear_auth_cookie(response, config)
    return response


async def general_exception_handler(request: Request, exc: Exception) -> Response:
    logger.exception("unexpected_error", error=str(exc))
    return error_json(500, "An unexpected error occurred.", "internal_server_error")
