"""JWT token creation and verification.

Learn: JWT (JSON Web Token) provides stateless authentication. The hub
has no user store; whoever issues tokens decides the subscriber key
(`sub`) and the scopes. `streamhub token` mints one for local testing.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from streamhub.config import settings


class TokenError(Exception):
    """Raised when token creation/verification fails."""


def create_access_token(
    subject: str,
    scopes: Optional[list[str]] = None,
    expires_minutes: Optional[int] = None,
) -> str:
    """Create a JWT access token for `subject`."""
    if not subject:
        raise TokenError("Token subject must not be empty")
    now = datetime.now(timezone.utc)
    expires = now + timedelta(
        minutes=expires_minutes or settings.access_token_expire_minutes
    )
    payload = {
        "sub": subject,
        "type": "access",
        "scopes": scopes or [],
        "exp": expires,
        "iat": now,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def verify_token(token: str) -> dict:
    """Verify and decode a JWT token.

    Returns the payload dict on success.
    Raises TokenError on failure.
    """
    try:
        payload = jwt.decode(
            token, settings.jwt_secret, algorithms=[settings.jwt_algorithm]
        )
    except jwt.ExpiredSignatureError:
        raise TokenError("Token has expired")
    except jwt.InvalidTokenError as e:
        raise TokenError(f"Invalid token: {e}")
    if payload.get("type") != "access" or not payload.get("sub"):
        raise TokenError("Invalid token: not an access token")
    return payload
