"""
Security utilities for request authentication.

Identity is delegated to the hosted identity provider. A request is
authenticated when it carries a provider session token, either in the session
cookie set by POST /api/sessions or as an Authorization Bearer header, and the
provider resolves that token to a user.
"""

import logging
from dataclasses import dataclass, field
from typing import Any

from fastapi import Header, HTTPException, Request, status

from luxai.core.config import settings
from luxai.services.identity_service import IdentityProviderError, identity_service

logger = logging.getLogger("luxai.security")


@dataclass
class UserContext:
    """
    The authenticated caller.

    Attributes:
        user_id: Identity-provider user ID, used as the owner of every row
        session_token: Provider session token the request was authenticated with
        email: User's email, when the provider returns one
        profile: Raw user record from the provider
    """

    user_id: str
    session_token: str | None = None
    email: str | None = None
    profile: dict[str, Any] = field(default_factory=dict)


def _extract_bearer_token(authorization: str | None) -> str | None:
    """Extract Bearer token from Authorization header."""
    if not authorization:
        return None
    parts = authorization.split(" ", 1)
    if len(parts) == 2 and parts[0].lower() == "bearer":
        return parts[1]
    return None


def get_session_token(request: Request, authorization: str | None = None) -> str | None:
    """Session cookie first, then Bearer header."""
    return request.cookies.get(settings.SESSION_COOKIE_NAME) or _extract_bearer_token(authorization)


def _unauthorized() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Unauthorized",
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    request: Request,
    authorization: str | None = Header(None),
) -> UserContext:
    """
    Resolve the caller through the identity provider.

    Raises:
        HTTPException: 401 if the token is missing, invalid, or cannot be checked.
    """
    token = get_session_token(request, authorization)
    if not token:
        raise _unauthorized()

    try:
        user = await identity_service.get_user(token)
    except IdentityProviderError:
        # Cannot vouch for the caller, so treat as unauthenticated
        raise _unauthorized() from None

    if not user:
        raise _unauthorized()

    return UserContext(
        user_id=str(user["id"]),
        session_token=token,
        email=user.get("email"),
        profile=user,
    )
