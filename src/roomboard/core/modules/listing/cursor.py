"""Opaque cursor tokens.

A token is base64url (unpadded) JSON of a cursor object with a `kind`
discriminant. Decoding is always done against the active sort mode: a
cursor of the wrong shape, or one that does not parse, decodes to None so
that pagination restarts from the first page.
"""

import json
from typing import Any
from uuid import UUID

import structlog

from roomboard.core.modules.filter.models import SortMode
from roomboard.core.modules.listing.models import CompositeCursor, ScalarCursor
from roomboard.utils import b64url_decode, b64url_encode, parse_instant

logger = structlog.get_logger(__name__)


def encode_cursor(cursor: CompositeCursor | ScalarCursor) -> str:
    payload = cursor.model_dump(mode="json")
    return b64url_encode(json.dumps(payload, separators=(",", ":")).encode("utf-8"))


def _parse_uuid(value: Any) -> UUID | None:
    if isinstance(value, UUID):
        return value
    if not isinstance(value, str):
        return None
    try:
        return UUID(value.strip())
    except ValueError:
        return None


def _load_token(token: str) -> dict[str, Any] | None:
    """Token payload as a dict; a bare id is accepted as a scalar cursor."""
    token = token.strip()
    if not token:
        return None
    bare_id = _parse_uuid(token)
    if bare_id is not None:
        return {"kind": "scalar", "id": str(bare_id)}
    try:
        payload = json.loads(b64url_decode(token))
    except (ValueError, UnicodeDecodeError):
        return None
    return payload if isinstance(payload, dict) else None


def _from_payload(payload: dict[str, Any], sort_mode: SortMode) -> CompositeCursor | ScalarCursor | None:
    cursor_id = _parse_uuid(payload.get("id"))
    if cursor_id is None:
        return None

    kind = payload.get("kind")
    if sort_mode.is_price:
        if kind != "scalar":
            return None
        return ScalarCursor(id=cursor_id)

    if kind != "composite":
        return None
    updated_at = parse_instant(payload.get("updated_at"))
    created_at = parse_instant(payload.get("created_at"))
    if updated_at is None or created_at is None:
        return None
    return CompositeCursor(id=cursor_id, updated_at=updated_at, created_at=created_at)


def decode_cursor(
    cursor: str | CompositeCursor | ScalarCursor | None, sort_mode: SortMode
) -> CompositeCursor | ScalarCursor | None:
    """Decode a cursor for the active sort mode, or None when absent, malformed, or of the wrong shape."""
    if cursor is None:
        return None
    if isinstance(cursor, (CompositeCursor, ScalarCursor)):
        payload = cursor.model_dump()
    else:
        payload = _load_token(cursor)
        if payload is None:
            logger.debug("cursor_malformed", sort_mode=sort_mode)
            return None

    decoded = _from_payload(payload, sort_mode)
    if decoded is None:
        logger.debug("cursor_rejected", sort_mode=sort_mode, kind=payload.get("kind"))
    return decoded
