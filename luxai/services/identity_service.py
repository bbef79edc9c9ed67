"""
Client for the hosted identity provider.

Authentication is fully delegated: the provider runs the OAuth flow, issues
opaque session tokens and resolves them back to a user. This service only
speaks its HTTP API.
"""

import logging
from typing import Any

import httpx

from luxai.core.config import settings

logger = logging.getLogger("luxai.identity")


class IdentityProviderError(Exception):
    """The identity provider was unreachable or answered with an error."""


class IdentityService:
    """
    Thin async wrapper over the identity provider API.

    Endpoints used (relative to IDENTITY_API_URL):
    - GET    /oauth/{provider}/redirect_url
    - POST   /sessions            {"code": ...} -> {"session_token": ...}
    - GET    /users/me            (Bearer session token)
    - DELETE /sessions/current    (Bearer session token)
    """

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None):
        # Custom transport lets tests answer without a network.
        self.transport = transport

    @property
    def is_configured(self) -> bool:
        return settings.identity_configured

    def _client(self) -> httpx.AsyncClient:
        if not self.is_configured:
            raise IdentityProviderError("Identity provider not configured")
        return httpx.AsyncClient(
            base_url=settings.IDENTITY_API_URL.rstrip("/"),
            headers={"x-api-key": settings.IDENTITY_API_KEY},
            timeout=settings.IDENTITY_TIMEOUT_SECONDS,
            transport=self.transport,
        )

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            async with self._client() as client:
                response = await client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.error("Identity provider request %s %s failed: %s", method, path, e)
            raise IdentityProviderError(f"Identity provider request failed: {e}") from e
        return response

    async def get_oauth_redirect_url(self, provider: str | None = None) -> str:
        """Ask the provider where to send the browser to start an OAuth login."""
        provider = provider or settings.OAUTH_PROVIDER
        response = await self._request("GET", f"/oauth/{provider}/redirect_url")
        if response.status_code != 200:
            logger.error("Redirect URL lookup failed with status %s", response.status_code)
            raise IdentityProviderError("Could not obtain OAuth redirect URL")
        return response.json()["redirect_url"]

    async def exchange_code_for_session_token(self, code: str) -> str:
        """Trade an OAuth authorization code for a provider session token."""
        response = await self._request("POST", "/sessions", json={"code": code})
        if response.status_code not in (200, 201):
            logger.warning("OAuth code exchange rejected with status %s", response.status_code)
            raise IdentityProviderError("OAuth code exchange failed")
        return response.json()["session_token"]

    async def get_user(self, session_token: str) -> dict[str, Any] | None:
        """
        Resolve a session token to the provider's user record.

        Returns:
            User dict (always containing "id") or None if the token is invalid.

        Raises:
            IdentityProviderError: provider unreachable or answered 5xx.
        """
        response = await self._request(
            "GET",
            "/users/me",
            headers={"Authorization": f"Bearer {session_token}"},
        )
        if response.status_code in (401, 403, 404):
            return None
        if response.status_code != 200:
            logger.error("User lookup failed with status %s", response.status_code)
            raise IdentityProviderError("User lookup failed")

        user = response.json()
        if not user or "id" not in user:
            return None
        return user

    async def delete_session(self, session_token: str) -> None:
        """Revoke a session token at the provider."""
        response = await self._request(
            "DELETE",
            "/sessions/current",
            headers={"Authorization": f"Bearer {session_token}"},
        )
        if response.status_code >= 400 and response.status_code != 404:
            logger.warning("Session revocation answered status %s", response.status_code)


# Global instance
identity_service = IdentityService()
