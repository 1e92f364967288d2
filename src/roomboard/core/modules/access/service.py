from roomboard.core.core import Service
from roomboard.core.modules.session.models import AuthToken
from roomboard.core.modules.user.models import AdminLevel, RoleTier, User
from roomboard.errors import AccessDeniedError, AuthenticationError


class AccessService(Service):
    async def ensure_authenticated(self, auth_token: AuthToken) -> User:
        return await self.core.services.session.get_authenticated_user(auth_token)

    async def ensure_admin(self, auth_token: AuthToken) -> User:
        """Ensure the user is an administrator of either tier."""
        user = await self.core.services.session.get_authenticated_user(auth_token)
        if user.admin_level == AdminLevel.NONE:
            raise AccessDeniedError("Admin privileges required")
        return user

    async def ensure_admin_l1(self, auth_token: AuthToken) -> User:
        """Ensure the user is a tier-1 administrator, raise AccessDeniedError if not."""
        user = await self.core.services.session.get_authenticated_user(auth_token)
        if user.admin_level != AdminLevel.L1:
            raise AccessDeniedError("Administrator privileges required")
        return user

    async def resolve_role_tier(self, auth_token: AuthToken | None) -> RoleTier:
        """Role tier for listing queries; anonymous or stale tokens browse as public."""
        if auth_token is None:
            return RoleTier.PUBLIC
        try:
            user = await self.core.services.session.get_authenticated_user(auth_token)
        except AuthenticationError:
            return RoleTier.PUBLIC
        return user.role_tier
