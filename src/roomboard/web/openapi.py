from typing import Any

from fastapi import FastAPI
from fastapi.openapi.utils import get_openapi
from pydantic import BaseModel, Field


def set_custom_openapi(app: FastAPI) -> None:
    def custom_openapi() -> dict[str, Any]:
        if app.openapi_schema:
            return app.openapi_schema

        openapi_schema = get_openapi(
            title="RoomBoard API",
            version="0.1.0",
            summary="Rental room listings with tiered visibility and a per-user device limit",
            routes=app.routes,
        )

        openapi_schema.setdefault("components", {})["securitySchemes"] = {
            "BearerAuth": {
                "type": "http",
                "scheme": "bearer",
                "description": "Bearer token authentication (preferred)",
            },
            "AuthTokenCookie": {
                "type": "apiKey",
                "in": "cookie",
                "name": "auth_token",
                "description": "Authentication token stored in cookie",
            },
        }
        openapi_schema["security"] = [{"BearerAuth": []}, {"AuthTokenCookie": []}]

        # Anonymous visitors may call these
        public_endpoints = {
            ("POST", "/api/v1/auth/login"),
            ("GET", "/api/v1/bootstrap"),
            ("GET", "/api/v1/rooms"),
            ("GET", "/api/v1/rooms/{room_id}"),
        }
        for path, path_item in openapi_schema["paths"].items():
            for method, operation in path_item.items():
                if (method.upper(), path) in public_endpoints:
                    operation["security"] = []

        app.openapi_schema = openapi_schema
        return app.openapi_schema

    app.openapi = custom_openapi  # type: ignore[method-assign]


class ErrorResponse(BaseModel):
    """Standard error response format."""

    message: str = Field(..., description="Human-readable error message")
    type: str = Field(..., description="Machine-readable error type")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {"message": "Invalid username or password", "type": "authentication_error"},
                {"message": "Room not found", "type": "not_found"},
                {"message": "Already signed in on 2 devices", "type": "device_limit_reached"},
            ]
        }
    }


DEFAULT_ERROR_DESCRIPTIONS = {
    400: "Invalid request",
    401: "Not authenticated",
    403: "Admin privileges required",
    404: "Not found",
    409: "Device limit reached",
}


def error_responses(*errors: int | tuple[int, str]) -> dict[int | str, dict[str, Any]]:
    """`responses` entries for a route's error statuses, given as a code or a (code, description) pair."""
    responses: dict[int | str, dict[str, Any]] = {}
    for error in errors:
        status, description = error if isinstance(error, tuple) else (error, DEFAULT_ERROR_DESCRIPTIONS[error])
        responses[status] = {"model": ErrorResponse, "description": description}
    return responses
