"""FastAPI auth dependencies.

Learn: These are used as Depends() in route handlers to extract
and validate the current identity from the request.

Two places a token can come from:
1. Authorization: Bearer <jwt> header (publishers, CLI, fetch-based clients)
2. ?token=<jwt> query param (browser EventSource can't set headers)
"""

from typing import Optional

from fastapi import Depends, Header, HTTPException, Query

from streamhub.auth.jwt import TokenError, verify_token

ADMIN_SCOPE = "admin"


class CurrentIdentity:
    """Represents the authenticated identity making the request.

    Learn: `subject` is the subscriber key a stream opened by this
    identity registers under.
    """

    def __init__(
        self,
        subject: str,
        scopes: Optional[list[str]] = None,
    ):
        self.subject = subject
        self.scopes = scopes or []

    def has_scope(self, scope: str) -> bool:
        """Check if this identity has a given scope."""
        return "all" in self.scopes or scope in self.scopes


async def get_current_user_optional(
    authorization: Optional[str] = Header(None),
    token: Optional[str] = Query(None),
) -> Optional[CurrentIdentity]:
    """Extract current identity (optional — returns None if no auth).

    Learn: This is the "soft" auth dependency. The stream endpoint uses it
    directly so development mode can fall back to a query-param subscriber.
    For mandatory auth, use get_current_user instead.
    """
    if authorization and authorization.startswith("Bearer "):
        return _authenticate_jwt(authorization[7:])

    if token:
        return _authenticate_jwt(token)

    return None


async def get_current_user(
    identity: Optional[CurrentIdentity] = Depends(get_current_user_optional),
) -> CurrentIdentity:
    """Extract current identity (required — 401 if no auth)."""
    if not identity:
        raise HTTPException(
            status_code=401,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return identity


async def require_admin(
    identity: CurrentIdentity = Depends(get_current_user),
) -> CurrentIdentity:
    """Require the admin scope (403 otherwise)."""
    if not identity.has_scope(ADMIN_SCOPE):
        raise HTTPException(status_code=403, detail="Admin scope required")
    return identity


def _authenticate_jwt(token: str) -> CurrentIdentity:
    """Authenticate via JWT token."""
    try:
        payload = verify_token(token)
        return CurrentIdentity(
            subject=str(payload["sub"]),
            scopes=list(payload.get("scopes") or []),
        )
    except TokenError as e:
        raise HTTPException(
            status_code=401,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        )
