"""
Session endpoints backed by the hosted identity provider.

The provider runs the OAuth dance. This API only hands out the provider's
redirect URL, exchanges the returned code for a session token stored in an
httpOnly cookie, and revokes that token on logout.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from luxai.core.config import settings
from luxai.core.security import UserContext, get_current_user, get_session_token
from luxai.schemas.auth import RedirectUrlResponse, SessionCreateRequest
from luxai.schemas.chat import SuccessResponse
from luxai.services.identity_service import IdentityProviderError, identity_service

router = APIRouter()
logger = logging.getLogger("luxai.auth")


def _set_session_cookie(response: Response, value: str, max_age: int) -> None:
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=value,
        max_age=max_age,
        path="/",
        httponly=True,
        secure=settings.SESSION_COOKIE_SECURE,
        samesite="none",
    )


@router.get("/oauth/{provider}/redirect_url", response_model=RedirectUrlResponse)
async def oauth_redirect_url(provider: str) -> RedirectUrlResponse:
    """Where the front end should send the browser to log in."""
    try:
        redirect_url = await identity_service.get_oauth_redirect_url(provider)
    except IdentityProviderError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Identity provider unavailable") from e
    return RedirectUrlResponse(redirectUrl=redirect_url)


@router.post("/sessions", response_model=SuccessResponse)
async def create_session(request: SessionCreateRequest, response: Response) -> SuccessResponse:
    """
    Exchange the OAuth authorization code for a session cookie.

    **Request Body:**
    ```json
    {"code": "<authorization code from the provider callback>"}
    ```
    """
    if not request.code:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No authorization code provided")

    try:
        session_token = await identity_service.exchange_code_for_session_token(request.code)
    except IdentityProviderError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized") from e

    _set_session_cookie(response, session_token, settings.SESSION_COOKIE_MAX_AGE_SECONDS)
    return SuccessResponse()


@router.get("/users/me")
async def get_me(user_ctx: UserContext = Depends(get_current_user)) -> dict:
    """The identity provider's record for the current user."""
    return user_ctx.profile


@router.get("/logout", response_model=SuccessResponse)
async def logout(request: Request, response: Response) -> SuccessResponse:
    """Revoke the session at the provider and clear the cookie."""
    session_token = get_session_token(request, request.headers.get("Authorization"))
    if session_token:
        try:
            await identity_service.delete_session(session_token)
        except IdentityProviderError:
            # The cookie is cleared either way; the provider expires the token on its own
            logger.warning("Session revocation failed; clearing cookie anyway")

    _set_session_cookie(response, "", 0)
    return SuccessResponse()
