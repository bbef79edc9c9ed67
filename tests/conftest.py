from types import SimpleNamespace

import httpx
import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from luxai.api.deps import get_openai_client
from luxai.main import app
from luxai.services.database import database
from luxai.services.identity_service import identity_service

# Session tokens the fake identity provider accepts
USERS = {
    "token-alice": {"id": "alice", "email": "alice@example.com"},
    "token-bob": {"id": "bob", "email": "bob@example.com"},
}


# Helper mocks for OpenAI objects
class MockDelta:
    def __init__(self, role=None, content=None):
        self.role = role
        self.content = content


class MockChoice:
    def __init__(self, delta):
        self.delta = delta


class MockChunk:
    def __init__(self, delta):
        self.choices = [MockChoice(delta)]


class FakeStream:
    """Async-iterable stand-in for openai.AsyncStream."""

    def __init__(self, tokens, fail_after=None):
        self.tokens = list(tokens)
        self.fail_after = fail_after
        self.closed = False

    def __aiter__(self):
        return self._chunks()

    async def _chunks(self):
        for index, token in enumerate(self.tokens):
            if self.fail_after is not None and index == self.fail_after:
                raise RuntimeError("upstream connection reset")
            yield MockChunk(MockDelta(role="assistant" if index == 0 else None, content=token))
        if self.fail_after is not None and self.fail_after >= len(self.tokens):
            raise RuntimeError("upstream connection reset")

    async def close(self):
        self.closed = True


class FakeCompletions:
    def __init__(self):
        self.calls = []
        self.stream = FakeStream([])
        self.open_error = None
        self.before_open = None

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.before_open:
            await self.before_open(kwargs)
        if self.open_error:
            raise self.open_error
        return self.stream


class FakeOpenAI:
    def __init__(self):
        self.completions = FakeCompletions()
        self.chat = SimpleNamespace(completions=self.completions)

    def reply_with(self, tokens, fail_after=None) -> FakeStream:
        self.completions.stream = FakeStream(tokens, fail_after=fail_after)
        return self.completions.stream


def auth_headers(user: str) -> dict:
    return {"Authorization": f"Bearer token-{user}"}


@pytest.fixture(autouse=True)
def fake_identity(monkeypatch):
    """Resolve tokens from USERS instead of calling the identity provider."""

    async def get_user(session_token):
        return USERS.get(session_token)

    monkeypatch.setattr(identity_service, "get_user", get_user)
    return USERS


@pytest.fixture
def fake_openai():
    return FakeOpenAI()


@pytest.fixture
def client():
    app.dependency_overrides.clear()
    return TestClient(app)


@pytest_asyncio.fixture
async def db():
    """Fresh in-memory database per test."""
    connected = await database.connect("sqlite+aiosqlite://")
    assert connected
    yield database
    await database.close()


@pytest_asyncio.fixture
async def api(db, fake_openai):
    """Async HTTP client bound to the app, with the fake completion API installed."""
    app.dependency_overrides[get_openai_client] = lambda: fake_openai
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as http:
        yield http
    app.dependency_overrides.clear()


@pytest.fixture
def alice():
    return auth_headers("alice")


@pytest.fixture
def bob():
    return auth_headers("bob")
