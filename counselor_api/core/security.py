# counselor_api/core/security.py
import secrets

SHARE_TOKEN_BYTES = 32


def generate_share_token() -> str:
    """Opaque, URL-safe and unguessable (256 bits of randomness)."""
    return secrets.token_urlsafe(SHARE_TOKEN_BYTES)
