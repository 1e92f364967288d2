from datetime import datetime
from typing import NewType
from uuid import UUID

from pydantic import Field

from roomboard.core.db import MongoModel
from roomboard.utils import now

AuthToken = NewType("AuthToken", str)


class Session(MongoModel):
    """Signed-in browser or API client.

    Indexed on auth_token (unique), user_id, and created_at (TTL). Separate
    from device sessions: the device gate decides on its own whether the
    browser holding this token may use it.
    """

    user_id: UUID
    auth_token: AuthToken
    created_at: datetime = Field(default_factory=now)
