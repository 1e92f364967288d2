from typing import Any
from uuid import UUID

import bcrypt
import structlog
from pymongo.asynchronous.database import AsyncDatabase

from roomboard.core.core import Service
from roomboard.core.modules.user.models import AdminLevel, User
from roomboard.core.modules.user.validators import validate_password, validate_username
from roomboard.errors import AuthenticationError, NotFoundError, ValidationError

logger = structlog.get_logger(__name__)

BOOTSTRAP_ADMIN = "admin"


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode()


def password_matches(user: User, password: str) -> bool:
    return bcrypt.checkpw(password.encode(), user.password_hash.encode())


class UserService(Service):
    """User accounts, fully cached in memory and keyed by id."""

    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        super().__init__(database)
        self._collection = database.get_collection("users")
        self._users: dict[UUID, User] = {}

    async def on_start(self) -> None:
        await self._collection.create_index([("username", 1)], unique=True)
        self._users = {user.id: user for user in await User.from_cursor(self._collection.find())}
        await self.ensure_admin_user_exists()
        logger.debug("users_loaded", count=len(self._users))

    def find_by_username(self, username: str) -> User | None:
        for user in self._users.values():
            if user.username == username:
                return user
        return None

    def get_user_by_username(self, username: str) -> User:
        user = self.find_by_username(username)
        if user is None:
            raise NotFoundError(f"User '{username}' not found")
        return user

    def get_user(self, user_id: UUID) -> User:
        try:
            return self._users[user_id]
        except KeyError:
            raise NotFoundError(f"User '{user_id}' not found") from None

    def has_user(self, user_id: UUID) -> bool:
        return user_id in self._users

    def get_all_users(self) -> list[User]:
        return sorted(self._users.values(), key=lambda user: user.username)

    def authenticate(self, username: str, password: str) -> User:
        """Return the user for valid credentials; unknown names and wrong passwords fail alike."""
        user = self.find_by_username(username)
        if user is None or not password_matches(user, password):
            logger.info("login_failed", username=username)
            raise AuthenticationError("Invalid username or password")
        return user

    async def create_user(self, username: str, password: str, admin_level: AdminLevel = AdminLevel.NONE) -> User:
        validate_username(username)
        validate_password(password)
        if self.find_by_username(username) is not None:
            raise ValidationError(f"User '{username}' already exists")

        user = User(username=username, password_hash=hash_password(password), admin_level=admin_level)
        await self._collection.insert_one(user.to_mongo())
        self._users[user.id] = user
        logger.info("user_created", username=username, admin_level=int(admin_level))
        return user

    async def change_password(self, user_id: UUID, old_password: str, new_password: str) -> None:
        user = self.get_user(user_id)
        if not password_matches(user, old_password):
            raise ValidationError("Invalid current password")
        validate_password(new_password)
        await self._update(user, password_hash=hash_password(new_password))
        logger.info("password_changed", username=user.username)

    async def set_admin_level(self, user_id: UUID, admin_level: AdminLevel) -> User:
        user = self.get_user(user_id)
        updated = await self._update(user, admin_level=admin_level)
        logger.info("admin_level_changed", username=user.username, admin_level=int(admin_level))
        return updated

    async def delete_user(self, user_id: UUID) -> None:
        user = self.get_user(user_id)
        await self._collection.delete_one({"_id": user_id})
        del self._users[user_id]
        logger.info("user_deleted", username=user.username)

    async def ensure_admin_user_exists(self) -> None:
        """Create the tier-1 "admin" account on first start when ROOMBOARD_ADMIN_PASSWORD is set."""
        password = self.core.config.admin_password
        if password and self.find_by_username(BOOTSTRAP_ADMIN) is None:
            await self.create_user(BOOTSTRAP_ADMIN, password, AdminLevel.L1)

    async def _update(self, user: User, **changes: Any) -> User:
        updated = user.model_copy(update=changes)
        stored = updated.to_mongo()
        await self._collection.update_one({"_id": user.id}, {"$set": {key: stored[key] for key in changes}})
        self._users[user.id] = updated
        return updated
