"""Shared fixtures: a local profile endpoint and screen session doubles."""

import asyncio
import json
from dataclasses import dataclass, field
from typing import Any

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

from epub_downloader.models.profile import UserProfile
from epub_downloader.storage.cookie_store import CookieStore
from epub_downloader.tui.models.base import SessionContext

ACTIVE_PROFILE: dict[str, Any] = {
    "id": 12345,
    "email": "ada@example.com",
    "first_name": "Ada",
    "last_name": "Lovelace",
    "username": "ada",
    "subscription": {
        "active": True,
        "type": "individual",
        "expires_at": "2027-01-01T00:00:00Z",
    },
    "created_at": "2020-05-17T09:30:00Z",
}


def profile_body(active: bool = True, **overrides: Any) -> bytes:
    data = {**ACTIVE_PROFILE, **overrides}
    data["subscription"] = {**ACTIVE_PROFILE["subscription"], "active": active}
    return json.dumps(data).encode()


@dataclass
class ProfileEndpoint:
    """What the fake endpoint answers, and what it saw."""

    status: int = 200
    body: bytes = field(default_factory=profile_body)
    delay: float = 0.0
    requests: list[dict[str, Any]] = field(default_factory=list)
    url: str = ""

    def serve_profile(self, active: bool = True, **overrides: Any) -> None:
        self.status = 200
        self.body = profile_body(active, **overrides)


@pytest_asyncio.fixture
async def profile_endpoint():
    endpoint = ProfileEndpoint()

    async def me(request: web.Request) -> web.Response:
        endpoint.requests.append(
            {"cookies": dict(request.cookies), "headers": dict(request.headers)}
        )
        if endpoint.delay:
            await asyncio.sleep(endpoint.delay)
        return web.Response(
            status=endpoint.status,
            body=endpoint.body,
            content_type="application/json",
        )

    app = web.Application()
    app.router.add_get("/api/v1/me/", me)
    server = TestServer(app)
    await server.start_server()
    endpoint.url = str(server.make_url("")).rstrip("/")
    yield endpoint
    await server.close()


class FakeClient:
    """Stands in for APIClient in screen tests."""

    def __init__(self, profile=None, error: BaseException | None = None):
        self.profile = profile
        self.error = error
        self.cookies: list = []
        self.validations = 0

    def set_cookies(self, cookies) -> None:
        self.cookies = list(cookies)

    async def validate_session(self, timeout: float | None = None):
        self.validations += 1
        if self.error is not None:
            raise self.error
        return self.profile


@pytest.fixture
def profile() -> UserProfile:
    return UserProfile.model_validate(ACTIVE_PROFILE)


@pytest.fixture
def fake_client(profile: UserProfile) -> FakeClient:
    return FakeClient(profile)


@pytest.fixture
def session(fake_client: FakeClient, tmp_path) -> SessionContext:
    return SessionContext(fake_client, CookieStore(tmp_path / "cookies.json"))
