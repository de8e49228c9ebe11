"""Security utilities for JWT session tokens and invitation tokens."""

import secrets
from datetime import datetime, timedelta, timezone
from uuid import UUID

import jwt

from caretrack.core.config import settings


# =============================================================================
# Session Token (JWT in cookie or bearer header)
# =============================================================================

def create_session_token(user_id: UUID, role: str) -> str:
    """
    Create signed session JWT.

    Always signs with current secret (JWT_SECRET). The identity provider
    owns sign-in; this only mints the token the API trusts afterwards.
    """
    payload = {
        "sub": str(user_id),
        "role": role,
        "iat": datetime.now(timezone.utc),
        "exp": datetime.now(timezone.utc) + timedelta(hours=settings.JWT_EXPIRES_HOURS),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm="HS256")


def decode_session_token(token: str) -> dict:
    """
    Decode and verify session JWT.

    Tries current secret first, then previous (for rotation support).

    Raises:
        jwt.InvalidTokenError: If token invalid with all secrets
    """
    last_error = None
    for secret in settings.jwt_secrets:
        try:
            return jwt.decode(token, secret, algorithms=["HS256"])
        except jwt.InvalidTokenError as e:
            last_error = e
            continue
    raise last_error  # type: ignore


# =============================================================================
# Invitation Tokens
# =============================================================================

def generate_invite_token() -> str:
    """Generate cryptographically random invite token (32 bytes, URL-safe base64)."""
    return secrets.token_urlsafe(32)


def build_invite_link(token: str) -> str:
    """Link the invitee opens to complete caretaker signup."""
    return f"{settings.FRONTEND_URL.rstrip('/')}/accept-invite?token={token}"
