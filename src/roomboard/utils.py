import base64
from datetime import UTC, datetime


def now() -> datetime:
    return datetime.now(UTC)


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes (MongoDB returns naive UTC) and convert aware ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def parse_instant(value: object) -> datetime | None:
    """Parse an ISO 8601 timestamp into an aware UTC datetime, or None if it does not parse."""
    if isinstance(value, datetime):
        return ensure_utc(value)
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    return ensure_utc(parsed)


def b64url_encode(data: bytes) -> str:
    """Base64url without padding."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def b64url_decode(value: str) -> bytes:
    """Inverse of b64url_encode; raises ValueError on malformed input."""
    padding = "=" * (-len(value) % 4)
    return base64.urlsafe_b64decode(value + padding)
