"""Device session models."""

from datetime import datetime
from enum import StrEnum
from uuid import UUID

from pydantic import BaseModel, Field

from roomboard.core.db import MongoModel
from roomboard.utils import now

MAX_DEVICES = 2


class RegisterStatus(StrEnum):
    """Result reported by the session store for a registration."""

    OK = "ok"
    LIMIT_REACHED = "limit_reached"


class RegisterOutcome(StrEnum):
    """Result of the gate's bounded register-with-rotation step."""

    OK = "ok"
    COLLISION = "collision"  # Token hash still conflicting after the single rotation
    LIMIT_REACHED = "limit_reached"
    FATAL = "fatal"  # Any other store failure


class DeviceSession(BaseModel):
    """One authenticated client device, embedded in the user's DeviceRegistry."""

    device_id: str
    token_hash: str  # base64url SHA-256 of the cookie token; the raw token never reaches the server store
    created_at: datetime = Field(default_factory=now)
    last_seen_at: datetime = Field(default_factory=now)


class DeviceRegistry(MongoModel):
    """Live device sessions of one user; `id` is the user id.

    Keeping all sessions of a user in one document makes the device limit a
    single conditional update. Indexed on devices.token_hash - unique.
    """

    devices: list[DeviceSession] = Field(default_factory=list)


class DeviceSessionView(BaseModel):
    """Device session as shown to its owner."""

    device_id: str = Field(..., description="Device identifier")
    created_at: datetime = Field(..., description="First registration time")
    last_seen_at: datetime = Field(..., description="Last validated request")
    current: bool = Field(..., description="Whether this is the requesting device")

    @classmethod
    def from_domain(cls, session: DeviceSession, current_hash: str | None) -> "DeviceSessionView":
        return cls(
            device_id=session.device_id,
            created_at=session.created_at,
            last_seen_at=session.last_seen_at,
            current=session.token_hash == current_hash,
        )
