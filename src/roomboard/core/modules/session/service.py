import secrets
from datetime import datetime, timedelta
from typing import Any
from uuid import UUID

import structlog
from pymongo.asynchronous.database import AsyncDatabase

from roomboard.core.core import Service
from roomboard.core.modules.session.models import AuthToken, Session
from roomboard.core.modules.user.models import User
from roomboard.errors import AuthenticationError
from roomboard.utils import ensure_utc, now

logger = structlog.get_logger(__name__)


class SessionService(Service):
    """Auth-token sessions.

    Token lookups are cached as (user id, expiry); the user itself is always
    read from UserService so admin level changes apply immediately.
    """

    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        super().__init__(database)
        self._collection = database.get_collection("sessions")
        self._tokens: dict[AuthToken, tuple[UUID, datetime]] = {}

    @property
    def _max_age(self) -> timedelta:
        return timedelta(seconds=self.core.config.session_max_age)

    async def on_start(self) -> None:
        await self._collection.create_index([("auth_token", 1)], unique=True)
        await self._collection.create_index([("user_id", 1)])
        # MongoDB removes expired sessions; the cache checks expiry itself
        await self._collection.create_index([("created_at", 1)], expireAfterSeconds=self.core.config.session_max_age)

    async def create_session(self, user_id: UUID) -> AuthToken:
        session = Session(user_id=user_id, auth_token=AuthToken(secrets.token_urlsafe(32)))
        await self._collection.insert_one(session.to_mongo())
        self._tokens[session.auth_token] = (user_id, session.created_at + self._max_age)
        logger.info("session_created", user_id=user_id)
        return session.auth_token

    async def _resolve_user_id(self, auth_token: AuthToken) -> UUID | None:
        cached = self._tokens.get(auth_token)
        if cached is None:
            document = await self._collection.find_one({"auth_token": auth_token})
            if document is None:
                return None
            cached = (document["user_id"], ensure_utc(document["created_at"]) + self._max_age)
            self._tokens[auth_token] = cached

        user_id, expires_at = cached
        if expires_at <= now():
            self._tokens.pop(auth_token, None)
            return None
        return user_id

    async def get_authenticated_user(self, auth_token: AuthToken) -> User:
        user_id = await self._resolve_user_id(auth_token)
        if user_id is None or not self.core.services.user.has_user(user_id):
            raise AuthenticationError("Invalid or expired session")
        return self.core.services.user.get_user(user_id)

    async def is_auth_token_valid(self, auth_token: AuthToken) -> bool:
        try:
            await self.get_authenticated_user(auth_token)
        except AuthenticationError:
            return False
        return True

    async def invalidate_session(self, auth_token: AuthToken) -> None:
        """Sign out one session; unknown tokens are ignored."""
        self._tokens.pop(auth_token, None)
        await self._collection.delete_one({"auth_token": auth_token})
        logger.info("session_invalidated")

    async def invalidate_user_sessions(self, user_id: UUID) -> int:
        """Sign out every session of a user; returns how many were deleted."""
        self._tokens = {token: entry for token, entry in self._tokens.items() if entry[0] != user_id}
        result = await self._collection.delete_many({"user_id": user_id})
        logger.info("user_sessions_invalidated", user_id=user_id, count=result.deleted_count)
        return result.deleted_count
