"""Signed OAuth state tokens.

Learn: The `state` parameter round-trips through the provider and must
come back unchanged, or someone is trying to splice their own callback
into our user's browser (login CSRF). We make it a short-lived HS256 JWT
signed with the session secret, and also drop it in a cookie; the
callback requires both to match and the signature to verify.
"""

import secrets
from datetime import datetime, timedelta, timezone

import jwt

STATE_ALGORITHM = "HS256"


class TokenError(Exception):
    """Raised when token creation/verification fails."""


def create_state_token(secret: str, expires_seconds: int = 600) -> str:
    """Create a signed, single-purpose OAuth state token."""
    now = datetime.now(timezone.utc)
    payload = {
        "type": "oauth_state",
        "nonce": secrets.token_urlsafe(16),
        "iat": now,
        "exp": now + timedelta(seconds=expires_seconds),
    }
    return jwt.encode(payload, secret, algorithm=STATE_ALGORITHM)


def verify_state_token(token: str, secret: str) -> dict:
    """Verify and decode a state token.

    Returns the payload dict on success.
    Raises TokenError on failure.
    """
    try:
        payload = jwt.decode(token, secret, algorithms=[STATE_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise TokenError("State has expired")
    except jwt.InvalidTokenError as e:
        raise TokenError(f"Invalid state: {e}")
    if payload.get("type") != "oauth_state":
        raise TokenError("Not a state token")
    return payload
