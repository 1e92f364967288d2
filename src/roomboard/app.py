from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from uuid import UUID

from roomboard.config import Config
from roomboard.core.core import Core
from roomboard.core.modules.device.gate import DeviceContext, DeviceGate
from roomboard.core.modules.device.models import DeviceSessionView, RegisterOutcome
from roomboard.core.modules.filter.models import ListingBootstrap
from roomboard.core.modules.listing.cursor import encode_cursor
from roomboard.core.modules.listing.engine import fetch_rooms_page
from roomboard.core.modules.listing.models import PageRequest
from roomboard.core.modules.room.models import PublicRoomRow, Room, RoomCreate, RoomRow, RoomUpdate
from roomboard.core.modules.session.models import AuthToken
from roomboard.core.modules.user.models import AdminLevel, User, UserView
from roomboard.core.pagination import CursorPage
from roomboard.errors import AuthenticationError, DeviceLimitError, NotFoundError, ValidationError


class App:
    """Facade for all application operations, validates permissions before delegating to Core."""

    def __init__(self, config: Config) -> None:
        self._core = Core(config)
        self.device_gate = DeviceGate(
            store=self._core.services.device,
            sign_out=self._core.services.session.invalidate_session,
            max_devices=config.max_devices,
        )

    @asynccontextmanager
    async def lifespan(self) -> AsyncGenerator[None]:
        """Application lifespan management - delegates to Core."""
        async with self._core.lifespan():
            yield

    async def is_auth_token_valid(self, auth_token: AuthToken) -> bool:
        return await self._core.services.session.is_auth_token_valid(auth_token)

    async def get_optional_user(self, auth_token: AuthToken | None) -> User | None:
        """Authenticated user for the token, or None for anonymous / expired tokens."""
        if auth_token is None:
            return None
        try:
            return await self._core.services.session.get_authenticated_user(auth_token)
        except AuthenticationError:
            return None

    # --- auth ---

    async def login(self, username: str, password: str, device: DeviceContext, evict_oldest: bool = False) -> AuthToken:
        """Authenticate user, register the device, and create a session.

        A third device is refused with DeviceLimitError unless the user confirmed
        evicting the oldest device.
        """
        user = self._core.services.user.authenticate(username, password)

        device.user_id = user.id
        outcome = await self.device_gate.sign_in_device(device, evict_oldest=evict_oldest)
        if outcome == RegisterOutcome.LIMIT_REACHED:
            raise DeviceLimitError(f"Already signed in on {self.device_gate.max_devices} devices")
        # Other outcomes are store faults; the gate retries registration on the next request

        auth_token = await self._core.services.session.create_session(user.id)
        device.auth_token = auth_token
        return auth_token

    async def logout(self, auth_token: AuthToken | None, device_token: str | None) -> None:
        """Revoke this device's session (best-effort) and invalidate the auth session."""
        await self.device_gate.logout(device_token)
        if auth_token is not None:
            await self._core.services.session.invalidate_session(auth_token)

    # --- device sessions ---

    async def logout_device(self, device_token: str | None) -> None:
        """Sign this device out of the device limit without ending the auth session."""
        await self.device_gate.logout(device_token)

    async def register_device(self, auth_token: AuthToken, device: DeviceContext, evict_oldest: bool) -> RegisterOutcome:
        """Explicitly register the requesting device; eviction only on user confirmation."""
        user = await self._core.services.access.ensure_authenticated(auth_token)
        device.user_id = user.id
        device.auth_token = auth_token
        return await self.device_gate.sign_in_device(device, evict_oldest=evict_oldest)

    async def get_device_sessions(self, auth_token: AuthToken, current_hash: str | None) -> list[DeviceSessionView]:
        user = await self._core.services.access.ensure_authenticated(auth_token)
        sessions = await self._core.services.device.list_sessions(user.id)
        return [DeviceSessionView.from_domain(session, current_hash) for session in sessions]

    async def revoke_device(self, auth_token: AuthToken, device_id: str) -> None:
        user = await self._core.services.access.ensure_authenticated(auth_token)
        if not await self._core.services.device.revoke_device(user.id, device_id):
            raise NotFoundError(f"Device not found: {device_id}")

    # --- listing ---

    async def get_bootstrap(self, auth_token: AuthToken | None) -> ListingBootstrap:
        user = await self.get_optional_user(auth_token)
        role_tier = await self._core.services.access.resolve_role_tier(auth_token)
        options = await self._core.services.room.get_filter_options()
        return ListingBootstrap(
            admin_level=int(user.admin_level) if user else 0,
            role_tier=role_tier.value,
            filters=options,
        )

    async def list_rooms(self, auth_token: AuthToken | None, request: PageRequest) -> CursorPage[RoomRow]:
        """One page of rooms for the caller's role tier; the tier in the request is ignored."""
        request.role_tier = await self._core.services.access.resolve_role_tier(auth_token)
        page = await fetch_rooms_page(self._core.services.room, request, self._core.services.room.aliases)
        return CursorPage[RoomRow](
            items=page.rows,
            next_cursor=encode_cursor(page.next_cursor) if page.next_cursor else None,
            limit=request.limit,
            total=page.total,
        )

    async def get_room(self, auth_token: AuthToken | None, room_id: UUID) -> PublicRoomRow:
        role_tier = await self._core.services.access.resolve_role_tier(auth_token)
        return await self._core.services.room.get_room_row(room_id, role_tier)

    async def create_room(self, auth_token: AuthToken, data: RoomCreate) -> Room:
        """Create a room (administrators and staff)."""
        await self._core.services.access.ensure_admin(auth_token)
        return await self._core.services.room.create_room(data)

    async def update_room(self, auth_token: AuthToken, room_id: UUID, data: RoomUpdate) -> Room:
        """Update a room (administrators and staff)."""
        await self._core.services.access.ensure_admin(auth_token)
        return await self._core.services.room.update_room(room_id, data)

    async def delete_room(self, auth_token: AuthToken, room_id: UUID) -> None:
        """Delete a room (tier-1 administrators only)."""
        await self._core.services.access.ensure_admin_l1(auth_token)
        await self._core.services.room.delete_room(room_id)

    # --- users ---

    async def get_current_user(self, auth_token: AuthToken) -> UserView:
        current_user = await self._core.services.access.ensure_authenticated(auth_token)
        return UserView.from_domain(current_user)

    async def change_password(self, auth_token: AuthToken, old_password: str, new_password: str) -> None:
        current_user = await self._core.services.access.ensure_authenticated(auth_token)
        await self._core.services.user.change_password(current_user.id, old_password, new_password)

    async def get_all_users(self, auth_token: AuthToken) -> list[UserView]:
        await self._core.services.access.ensure_admin_l1(auth_token)
        return [UserView.from_domain(user) for user in self._core.services.user.get_all_users()]

    async def create_user(self, auth_token: AuthToken, username: str, password: str, admin_level: AdminLevel) -> UserView:
        """Create a new user (tier-1 administrators only)."""
        await self._core.services.access.ensure_admin_l1(auth_token)
        user = await self._core.services.user.create_user(username, password, admin_level)
        return UserView.from_domain(user)

    async def set_user_admin_level(self, auth_token: AuthToken, username: str, admin_level: AdminLevel) -> UserView:
        current_user = await self._core.services.access.ensure_admin_l1(auth_token)
        user = self._core.services.user.get_user_by_username(username)
        if user.id == current_user.id:
            raise ValidationError("Cannot change your own admin level")
        updated = await self._core.services.user.set_admin_level(user.id, admin_level)
        return UserView.from_domain(updated)

    async def delete_user(self, auth_token: AuthToken, username: str) -> None:
        """Delete a user and end all of their sessions (tier-1 administrators only)."""
        current_user = await self._core.services.access.ensure_admin_l1(auth_token)
        user = self._core.services.user.get_user_by_username(username)
        if user.id == current_user.id:
            raise ValidationError("Cannot delete yourself")
        await self._core.services.session.invalidate_user_sessions(user.id)
        await self._core.services.user.delete_user(user.id)
