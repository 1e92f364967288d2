"""Device cookie names and token helpers."""

import hashlib
import secrets

from roomboard.utils import b64url_encode

DEVICE_TOKEN_COOKIE = "device_token"
DEVICE_ID_COOKIE = "device_id"

DEVICE_TOKEN_BYTES = 32
DEVICE_ID_BYTES = 12


def generate_device_token() -> str:
    return b64url_encode(secrets.token_bytes(DEVICE_TOKEN_BYTES))


def generate_device_id() -> str:
    return b64url_encode(secrets.token_bytes(DEVICE_ID_BYTES))


def hash_device_token(token: str) -> str:
    """SHA-256 of the raw token, base64url without padding. Only the hash is stored server-side."""
    return b64url_encode(hashlib.sha256(token.encode("utf-8")).digest())
