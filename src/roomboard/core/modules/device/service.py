from datetime import datetime, timedelta
from typing import Any
from uuid import UUID

import structlog
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.errors import DuplicateKeyError, PyMongoError

from roomboard.core.core import Service
from roomboard.core.modules.device.models import DeviceRegistry, DeviceSession, RegisterStatus
from roomboard.errors import DeviceStoreError, TokenHashConflictError
from roomboard.utils import now

logger = structlog.get_logger(__name__)


class DeviceService(Service):
    """MongoDB-backed device session store.

    Each user has one registry document holding the user's live devices, so
    "count live devices, then insert" is a single conditional update and two
    simultaneous first-seen requests cannot exceed the limit.
    """

    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        super().__init__(database)
        self._collection = database.get_collection("device_sessions")

    async def on_start(self) -> None:
        """Create indexes on startup."""
        # A token hash belongs to at most one device of one user
        await self._collection.create_index(
            [("devices.token_hash", 1)],
            unique=True,
            partialFilterExpression={"devices.token_hash": {"$exists": True}},
        )

    @property
    def _idle_cutoff(self) -> datetime:
        return now() - timedelta(seconds=self.core.config.device_cookie_max_age)

    async def validate(self, user_id: UUID, token_hash: str) -> bool:
        """Whether the hash belongs to a live device of the user; touches its last_seen_at."""
        try:
            result = await self._collection.update_one(
                {
                    "_id": user_id,
                    "devices": {"$elemMatch": {"token_hash": token_hash, "last_seen_at": {"$gte": self._idle_cutoff}}},
                },
                {"$set": {"devices.$.last_seen_at": now()}},
            )
        except PyMongoError as e:
            raise DeviceStoreError("Device session validation failed") from e
        return result.matched_count > 0

    async def register(
        self, user_id: UUID, device_id: str, token_hash: str, max_devices: int, evict_oldest: bool
    ) -> RegisterStatus:
        """Register a device for a user under the device limit.

        With evict_oldest the least recently created devices are dropped so
        the new one fits; otherwise a full registry reports LIMIT_REACHED.

        Raises:
            TokenHashConflictError: If the hash is already registered
            DeviceStoreError: On any other database failure
        """
        entry = DeviceSession(device_id=device_id, token_hash=token_hash).model_dump()
        try:
            await self._collection.update_one({"_id": user_id}, {"$setOnInsert": {"devices": []}}, upsert=True)
            # Idle sessions have expired with their cookies; they no longer count against the limit
            await self._collection.update_one(
                {"_id": user_id}, {"$pull": {"devices": {"last_seen_at": {"$lt": self._idle_cutoff}}}}
            )

            if evict_oldest:
                result = await self._collection.update_one(
                    {"_id": user_id, "devices.token_hash": {"$ne": token_hash}},
                    {"$push": {"devices": {"$each": [entry], "$sort": {"created_at": 1}, "$slice": -max_devices}}},
                )
            else:
                result = await self._collection.update_one(
                    {
                        "_id": user_id,
                        "devices.token_hash": {"$ne": token_hash},
                        f"devices.{max_devices - 1}": {"$exists": False},
                    },
                    {"$push": {"devices": entry}},
                )

            if result.matched_count == 0:
                doc = await self._collection.find_one({"_id": user_id, "devices.token_hash": token_hash}, {"_id": 1})
                if doc is not None:
                    raise TokenHashConflictError("Device token hash already registered")
                logger.info("device_limit_reached", user_id=user_id, max_devices=max_devices)
                return RegisterStatus.LIMIT_REACHED
        except DuplicateKeyError as e:
            raise TokenHashConflictError("Device token hash already registered") from e
        except PyMongoError as e:
            raise DeviceStoreError("Device registration failed") from e

        logger.info("device_registered", user_id=user_id, device_id=device_id, evict_oldest=evict_oldest)
        return RegisterStatus.OK

    async def revoke(self, token_hash: str) -> None:
        """Remove the device holding this hash; revoking an unknown hash is a no-op."""
        try:
            await self._collection.update_one(
                {"devices.token_hash": token_hash}, {"$pull": {"devices": {"token_hash": token_hash}}}
            )
        except PyMongoError as e:
            raise DeviceStoreError("Device session revoke failed") from e

    async def revoke_device(self, user_id: UUID, device_id: str) -> bool:
        """Remove one of the user's own devices by id; returns whether it existed."""
        result = await self._collection.update_one(
            {"_id": user_id, "devices.device_id": device_id}, {"$pull": {"devices": {"device_id": device_id}}}
        )
        return result.modified_count > 0

    async def list_sessions(self, user_id: UUID) -> list[DeviceSession]:
        doc = await self._collection.find_one({"_id": user_id})
        if doc is None:
            return []
        return DeviceRegistry.model_validate(doc).devices
