from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from roomboard.app import App
from roomboard.config import Config
from roomboard.errors import DeviceRejectedError, UserError
from roomboard.web.deps import DeviceGateDep
from roomboard.web.error_handlers import device_rejected_handler, general_exception_handler, user_error_handler
from roomboard.web.openapi import set_custom_openapi
from roomboard.web.routers import (
    auth_router,
    bootstrap_router,
    device_router,
    profile_router,
    rooms_router,
    users_router,
)


def create_fastapi_app(app_instance: App, config: Config) -> FastAPI:
    """Create and configure FastAPI application."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
        """FastAPI application lifespan management."""
        async with app_instance.lifespan():
            yield

    app = FastAPI(
        title="RoomBoard API",
        lifespan=lifespan,
        openapi_tags=[],  # Tags will be added by custom OpenAPI function
    )
    # Set before startup so handlers can reach them even without a lifespan run
    app.state.app = app_instance
    app.state.config = config

    if config.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=config.cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        return {"status": "healthy"}

    # Sign-in and device management stay reachable for a rejected device
    app.include_router(auth_router, prefix="/api/v1")
    app.include_router(device_router, prefix="/api/v1")

    # Every other authenticated request passes the device gate
    gated = [DeviceGateDep]
    app.include_router(bootstrap_router, prefix="/api/v1", dependencies=gated)
    app.include_router(rooms_router, prefix="/api/v1", dependencies=gated)
    app.include_router(profile_router, prefix="/api/v1", dependencies=gated)
    app.include_router(users_router, prefix="/api/v1", dependencies=gated)

    app.add_exception_handler(DeviceRejectedError, device_rejected_handler)
    app.add_exception_handler(UserError, user_error_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    set_custom_openapi(app)

    return app
