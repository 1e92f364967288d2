"""Per-request device limit enforcement.

Request flow for an authenticated identity:

    cookies missing       -> generate device token / device id cookies
    validate(user, hash)  -> live: pass, nothing else this request
    register(no eviction) -> limit_reached: reject, auth=kicked
                          -> hash conflict: rotate token once, register again
    validate again        -> not live: reject, auth=limit

Store failures fail open (the request passes, the fault is logged). Only
an exceeded device limit denies access.
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Protocol
from uuid import UUID

import structlog

from roomboard.core.modules.device.models import MAX_DEVICES, DeviceSession, RegisterOutcome, RegisterStatus
from roomboard.core.modules.device.tokens import (
    DEVICE_ID_COOKIE,
    DEVICE_TOKEN_COOKIE,
    generate_device_id,
    generate_device_token,
    hash_device_token,
)
from roomboard.core.modules.session.models import AuthToken
from roomboard.errors import TokenHashConflictError

logger = structlog.get_logger(__name__)

KICKED_MARKER = "kicked"  # Registration refused: the identity already has MAX_DEVICES live devices
LIMIT_MARKER = "limit"  # Registered, but the device did not validate afterwards

# Token rotations allowed after a hash conflict before registration is given up
MAX_TOKEN_ROTATIONS = 1


class DeviceSessionStore(Protocol):
    """Session store operations used by the gate."""

    async def validate(self, user_id: UUID, token_hash: str) -> bool: ...

    async def register(
        self, user_id: UUID, device_id: str, token_hash: str, max_devices: int, evict_oldest: bool
    ) -> RegisterStatus: ...

    async def revoke(self, token_hash: str) -> None: ...

    async def list_sessions(self, user_id: UUID) -> list[DeviceSession]: ...


@dataclass
class DeviceContext:
    """Device state of one request, threaded through the gate.

    `set_cookies` collects cookie values the response must write.
    """

    user_id: UUID | None
    auth_token: AuthToken | None = None
    device_token: str | None = None
    device_id: str | None = None
    set_cookies: dict[str, str] = field(default_factory=dict)

    def ensure_cookies(self) -> None:
        """Generate whichever device cookie is missing."""
        if not self.device_token:
            self.device_token = generate_device_token()
            self.set_cookies[DEVICE_TOKEN_COOKIE] = self.device_token
        if not self.device_id:
            self.device_id = generate_device_id()
            self.set_cookies[DEVICE_ID_COOKIE] = self.device_id

    def rotate_token(self) -> None:
        self.device_token = generate_device_token()
        self.set_cookies[DEVICE_TOKEN_COOKIE] = self.device_token

    @property
    def token_hash(self) -> str | None:
        return hash_device_token(self.device_token) if self.device_token else None


@dataclass
class GateDecision:
    allowed: bool
    marker: str | None = None  # Redirect marker when not allowed
    set_cookies: dict[str, str] = field(default_factory=dict)
    clear_cookies: bool = False
    failed_open: bool = False


class DeviceGate:
    """Limits each identity to `max_devices` concurrently valid devices."""

    def __init__(
        self,
        store: DeviceSessionStore,
        sign_out: Callable[[AuthToken], Awaitable[None]] | None = None,
        max_devices: int = MAX_DEVICES,
    ) -> None:
        self.store = store
        self._sign_out = sign_out
        self.max_devices = max_devices

    async def check(self, context: DeviceContext) -> GateDecision:
        """Decide whether the request may proceed."""
        if context.user_id is None:
            return GateDecision(allowed=True)

        context.ensure_cookies()
        try:
            return await self._enforce(context)
        except Exception:
            logger.warning("device_gate_failed_open", user_id=context.user_id, exc_info=True)
            return GateDecision(allowed=True, set_cookies=context.set_cookies, failed_open=True)

    async def _enforce(self, context: DeviceContext) -> GateDecision:
        if await self.store.validate(context.user_id, hash_device_token(context.device_token or "")):
            return GateDecision(allowed=True, set_cookies=context.set_cookies)

        outcome = await self.register_device(context, evict_oldest=False)
        if outcome == RegisterOutcome.LIMIT_REACHED:
            return await self._reject(context, KICKED_MARKER)
        if outcome != RegisterOutcome.OK:
            logger.warning("device_gate_failed_open", user_id=context.user_id, outcome=outcome)
            return GateDecision(allowed=True, set_cookies=context.set_cookies, failed_open=True)

        if not await self.store.validate(context.user_id, hash_device_token(context.device_token or "")):
            return await self._reject(context, LIMIT_MARKER)
        return GateDecision(allowed=True, set_cookies=context.set_cookies)

    async def sign_in_device(self, context: DeviceContext, evict_oldest: bool) -> RegisterOutcome:
        """Registration for an explicit sign-in; a device that is already live keeps its slot."""
        if context.user_id is None:
            raise ValueError("Device registration requires an authenticated identity")
        context.ensure_cookies()
        try:
            if await self.store.validate(context.user_id, hash_device_token(context.device_token or "")):
                return RegisterOutcome.OK
        except Exception:
            logger.warning("device_validate_failed", user_id=context.user_id, exc_info=True)
            return RegisterOutcome.FATAL
        return await self.register_device(context, evict_oldest)

    async def register_device(self, context: DeviceContext, evict_oldest: bool) -> RegisterOutcome:
        """Register the context's device, rotating the token at most once on a hash conflict.

        `evict_oldest` must only be True for an explicit, user-confirmed request.
        """
        if context.user_id is None:
            raise ValueError("Device registration requires an authenticated identity")
        context.ensure_cookies()

        for attempt in range(MAX_TOKEN_ROTATIONS + 1):
            token_hash = hash_device_token(context.device_token or "")
            try:
                status = await self.store.register(
                    context.user_id, context.device_id or "", token_hash, self.max_devices, evict_oldest
                )
            except TokenHashConflictError:
                if attempt == MAX_TOKEN_ROTATIONS:
                    logger.warning("device_token_conflict_repeated", user_id=context.user_id)
                    return RegisterOutcome.COLLISION
                logger.info("device_token_rotated", user_id=context.user_id, device_id=context.device_id)
                context.rotate_token()
                continue
            except Exception:
                logger.exception("device_register_failed", user_id=context.user_id)
                return RegisterOutcome.FATAL

            if status == RegisterStatus.LIMIT_REACHED:
                return RegisterOutcome.LIMIT_REACHED
            return RegisterOutcome.OK

        return RegisterOutcome.COLLISION

    async def _reject(self, context: DeviceContext, marker: str) -> GateDecision:
        """Sign the identity out of this request's session and drop the device cookies."""
        logger.info("device_rejected", user_id=context.user_id, marker=marker)
        if self._sign_out is not None and context.auth_token is not None:
            try:
                await self._sign_out(context.auth_token)
            except Exception:
                logger.warning("device_sign_out_failed", user_id=context.user_id, exc_info=True)
        return GateDecision(allowed=False, marker=marker, clear_cookies=True)

    async def logout(self, device_token: str | None) -> None:
        """Best-effort revoke of this device's session; never raises."""
        if not device_token:
            return
        try:
            await self.store.revoke(hash_device_token(device_token))
        except Exception:
            logger.warning("device_revoke_failed", exc_info=True)
