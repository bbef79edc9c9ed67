"""
Tests for the identity provider client and the session routes built on it.

The provider itself is replaced by httpx.MockTransport, so requests and
responses are checked without a network.
"""

import json

import httpx
import pytest

from luxai.core.config import settings
from luxai.services.identity_service import IdentityProviderError, IdentityService, identity_service


def make_service(monkeypatch, handler) -> IdentityService:
    monkeypatch.setattr(settings, "IDENTITY_API_URL", "https://identity.example.com/v1/")
    monkeypatch.setattr(settings, "IDENTITY_API_KEY", "provider-key")
    return IdentityService(transport=httpx.MockTransport(handler))


class TestIdentityService:
    @pytest.mark.asyncio
    async def test_get_user_sends_token_and_api_key(self, monkeypatch):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers.get("Authorization")
            seen["api_key"] = request.headers.get("x-api-key")
            return httpx.Response(200, json={"id": "user-1", "email": "u@example.com"})

        service = make_service(monkeypatch, handler)
        user = await service.get_user("tok-123")

        assert user == {"id": "user-1", "email": "u@example.com"}
        assert seen["url"] == "https://identity.example.com/v1/users/me"
        assert seen["auth"] == "Bearer tok-123"
        assert seen["api_key"] == "provider-key"

    @pytest.mark.asyncio
    async def test_get_user_invalid_token_returns_none(self, monkeypatch):
        service = make_service(monkeypatch, lambda request: httpx.Response(401, json={"error": "bad token"}))
        assert await service.get_user("expired") is None

    @pytest.mark.asyncio
    async def test_get_user_provider_error_raises(self, monkeypatch):
        service = make_service(monkeypatch, lambda request: httpx.Response(500))
        with pytest.raises(IdentityProviderError):
            await service.get_user("tok")

    @pytest.mark.asyncio
    async def test_network_failure_raises(self, monkeypatch):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        service = make_service(monkeypatch, handler)
        with pytest.raises(IdentityProviderError):
            await service.get_user("tok")

    @pytest.mark.asyncio
    async def test_exchange_code(self, monkeypatch):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.method == "POST"
            assert request.url.path == "/v1/sessions"
            assert json.loads(request.read()) == {"code": "abc"}
            return httpx.Response(200, json={"session_token": "new-session"})

        service = make_service(monkeypatch, handler)
        assert await service.exchange_code_for_session_token("abc") == "new-session"

    @pytest.mark.asyncio
    async def test_redirect_url(self, monkeypatch):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/v1/oauth/google/redirect_url"
            return httpx.Response(200, json={"redirect_url": "https://accounts.example.com/auth"})

        service = make_service(monkeypatch, handler)
        assert await service.get_oauth_redirect_url("google") == "https://accounts.example.com/auth"

    @pytest.mark.asyncio
    async def test_unconfigured_provider_raises(self, monkeypatch):
        monkeypatch.setattr(settings, "IDENTITY_API_URL", None)
        monkeypatch.setattr(settings, "IDENTITY_API_KEY", None)
        with pytest.raises(IdentityProviderError):
            await IdentityService().get_user("tok")


class TestSessionRoutes:
    def test_create_session_sets_cookie(self, client, monkeypatch):
        async def exchange(code):
            assert code == "oauth-code"
            return "token-alice"

        monkeypatch.setattr(identity_service, "exchange_code_for_session_token", exchange)

        response = client.post("/api/sessions", json={"code": "oauth-code"})

        assert response.status_code == 200
        assert response.json() == {"success": True}
        cookie = response.headers["set-cookie"]
        assert f"{settings.SESSION_COOKIE_NAME}=token-alice" in cookie
        assert "HttpOnly" in cookie
        assert "SameSite=none" in cookie

    def test_create_session_without_code(self, client):
        response = client.post("/api/sessions", json={})
        assert response.status_code == 400
        assert response.json()["detail"] == "No authorization code provided"

    def test_rejected_code_is_unauthorized(self, client, monkeypatch):
        async def exchange(code):
            raise IdentityProviderError("OAuth code exchange failed")

        monkeypatch.setattr(identity_service, "exchange_code_for_session_token", exchange)
        response = client.post("/api/sessions", json={"code": "stale"})
        assert response.status_code == 401

    def test_users_me_with_cookie(self, client):
        client.cookies.set(settings.SESSION_COOKIE_NAME, "token-bob")
        response = client.get("/api/users/me")
        assert response.status_code == 200
        assert response.json()["id"] == "bob"

    def test_users_me_without_session(self, client):
        response = client.get("/api/users/me")
        assert response.status_code == 401

    def test_provider_outage_is_unauthorized(self, client, monkeypatch):
        async def get_user(token):
            raise IdentityProviderError("down")

        monkeypatch.setattr(identity_service, "get_user", get_user)
        response = client.get("/api/users/me", headers={"Authorization": "Bearer token-alice"})
        assert response.status_code == 401

    def test_logout_revokes_and_clears_cookie(self, client, monkeypatch):
        revoked = []

        async def delete_session(token):
            revoked.append(token)

        monkeypatch.setattr(identity_service, "delete_session", delete_session)
        client.cookies.set(settings.SESSION_COOKIE_NAME, "token-alice")

        response = client.get("/api/logout")

        assert response.status_code == 200
        assert revoked == ["token-alice"]
        assert 'Max-Age=0' in response.headers["set-cookie"]

    def test_redirect_url_route(self, client, monkeypatch):
        async def redirect_url(provider):
            return f"https://accounts.example.com/{provider}"

        monkeypatch.setattr(identity_service, "get_oauth_redirect_url", redirect_url)
        response = client.get("/api/oauth/google/redirect_url")
        assert response.status_code == 200
        assert response.json() == {"redirectUrl": "https://accounts.example.com/google"}
