from enum import IntEnum, StrEnum
from uuid import UUID

from pydantic import BaseModel, Field

from roomboard.core.db import MongoModel


class AdminLevel(IntEnum):
    """Stored privilege level of a user account."""

    NONE = 0
    L1 = 1  # Full administrator: all columns, may delete rooms and manage users
    L2 = 2  # Staff: internal columns without contact links, may create and edit rooms


class RoleTier(StrEnum):
    """Visibility level used by the room query service."""

    PUBLIC = "public"
    ADMIN_L1 = "admin_l1"
    ADMIN_L2 = "admin_l2"

    @classmethod
    def from_admin_level(cls, level: int | None) -> "RoleTier":
        if level == AdminLevel.L1:
            return cls.ADMIN_L1
        if level == AdminLevel.L2:
            return cls.ADMIN_L2
        return cls.PUBLIC


class User(MongoModel):
    """User domain model with credentials."""

    username: str
    password_hash: str  # bcrypt hash
    admin_level: AdminLevel = AdminLevel.NONE

    @property
    def role_tier(self) -> RoleTier:
        return RoleTier.from_admin_level(self.admin_level)


class UserView(BaseModel):
    """User account information (API representation)."""

    id: UUID = Field(..., description="User ID")
    username: str = Field(..., description="Username")
    admin_level: AdminLevel = Field(..., description="0 = regular user, 1 = administrator, 2 = staff")

    @classmethod
    def from_domain(cls, user: User) -> "UserView":
        """Create view model from domain model."""
        return cls(id=user.id, username=user.username, admin_level=user.admin_level)
