from __future__ import annotations

from collections.abc import AsyncGenerator, Iterator
from contextlib import asynccontextmanager
from typing import Any
from urllib.parse import urlparse

import structlog
from pymongo import AsyncMongoClient
from pymongo.asynchronous.database import AsyncDatabase

from roomboard.config import Config

logger = structlog.get_logger(__name__)


class Service:
    """Base class for services with direct database access."""

    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        self.database = database
        self._core: Core | None = None

    async def on_start(self) -> None:
        """Create indexes and warm caches on application startup."""

    async def on_stop(self) -> None:
        """Release resources on application shutdown."""

    @property
    def core(self) -> Core:
        if self._core is None:
            raise RuntimeError("Core not set for service")
        return self._core

    def set_core(self, core: Core) -> None:
        self._core = core


class Services:
    """All services of the application, started in declaration order and stopped in reverse.

    Users come first so sessions can resolve them; the device store comes
    last because nothing else depends on it.
    """

    # Imported here: the service modules import Service from this module
    from roomboard.core.modules.access.service import AccessService  # noqa: PLC0415
    from roomboard.core.modules.device.service import DeviceService  # noqa: PLC0415
    from roomboard.core.modules.room.service import RoomService  # noqa: PLC0415
    from roomboard.core.modules.session.service import SessionService  # noqa: PLC0415
    from roomboard.core.modules.user.service import UserService  # noqa: PLC0415

    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        self.user = self.UserService(database)
        self.session = self.SessionService(database)
        self.access = self.AccessService(database)
        self.room = self.RoomService(database)
        self.device = self.DeviceService(database)

    def __iter__(self) -> Iterator[Service]:
        return iter((self.user, self.session, self.access, self.room, self.device))

    def set_core(self, core: Core) -> None:
        for service in self:
            service.set_core(core)

    async def start_all(self) -> None:
        for service in self:
            await service.on_start()
            logger.debug("service_started", service=type(service).__name__)

    async def stop_all(self) -> None:
        for service in reversed(list(self)):
            await service.on_stop()


class Core:
    """Container providing config, database, and all service instances."""

    config: Config
    mongo_client: AsyncMongoClient[dict[str, Any]]
    database: AsyncDatabase[dict[str, Any]]
    services: Services

    def __init__(self, config: Config) -> None:
        self.config = config
        # UUID ids are stored as standard binary; datetimes come back UTC-aware for cursor comparisons
        self.mongo_client = AsyncMongoClient(config.database_url, uuidRepresentation="standard", tz_aware=True)
        self.database = self.mongo_client.get_database(urlparse(config.database_url).path[1:])
        self.services = Services(self.database)
        self.services.set_core(self)

    @asynccontextmanager
    async def lifespan(self) -> AsyncGenerator[None]:
        """Start services for the application lifetime, closing MongoDB afterwards."""
        await self.services.start_all()
        logger.info("core_started", database=self.database.name)
        try:
            yield
        finally:
            await self.services.stop_all()
            await self.mongo_client.aclose()
            logger.info("core_stopped")
