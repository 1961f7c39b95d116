"""Tests for the API client against a local profile endpoint."""

import json

import pytest

from epub_downloader.api import client as client_module
from epub_downloader.api.client import APIClient
from epub_downloader.api.rate_limiter import RateLimiter
from epub_downloader.exceptions import (
    AppValidationError,
    AuthenticationError,
    ErrorCode,
    NetworkError,
)
from epub_downloader.models.cookie import SessionCookie
from epub_downloader.storage.cookie_store import parse_cookies

COOKIES = [SessionCookie(name="orm-jwt", value="token-1")]


@pytest.mark.asyncio
async def test_validate_session_returns_profile(profile_endpoint) -> None:
    async with APIClient(COOKIES, base_url=profile_endpoint.url) as client:
        profile = await client.validate_session()

    assert profile.id == "12345"
    assert profile.display_name == "Ada Lovelace"
    assert profile.subscription.active is True
    assert profile.subscription.expires_at.year == 2027


@pytest.mark.asyncio
async def test_request_presents_cookies_and_headers(profile_endpoint) -> None:
    async with APIClient(COOKIES, base_url=profile_endpoint.url) as client:
        await client.validate_session()

    seen = profile_endpoint.requests[0]
    assert seen["cookies"] == {"orm-jwt": "token-1"}
    assert seen["headers"]["Accept"] == "application/json"
    assert seen["headers"]["User-Agent"] == client_module.USER_AGENT


@pytest.mark.asyncio
async def test_set_cookies_replaces_jar(profile_endpoint) -> None:
    async with APIClient(COOKIES, base_url=profile_endpoint.url) as client:
        await client.validate_session()
        client.set_cookies([SessionCookie(name="orm-jwt", value="token-2")])
        await client.validate_session()

    assert profile_endpoint.requests[1]["cookies"] == {"orm-jwt": "token-2"}


@pytest.mark.asyncio
async def test_401_is_session_expired(profile_endpoint) -> None:
    profile_endpoint.status = 401
    profile_endpoint.body = b'{"detail": "Invalid token."}'

    async with APIClient(COOKIES, base_url=profile_endpoint.url) as client:
        with pytest.raises(AuthenticationError) as exc_info:
            await client.validate_session()

    assert exc_info.value.code is ErrorCode.SESSION_EXPIRED
    assert exc_info.value.retryable is False


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [403, 429, 500, 503])
async def test_other_status_is_retryable_api_error(profile_endpoint, status) -> None:
    profile_endpoint.status = status

    async with APIClient(COOKIES, base_url=profile_endpoint.url) as client:
        with pytest.raises(NetworkError) as exc_info:
            await client.validate_session()

    assert exc_info.value.code is ErrorCode.API
    assert exc_info.value.retryable is True
    assert str(status) in exc_info.value.message


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body",
    [
        b"<html>login</html>",
        b"[]",
        json.dumps({"id": 1, "subscription": {"active": "maybe"}}).encode(),
        json.dumps({"id": 1, "subscription": "individual"}).encode(),
    ],
)
async def test_undecodable_profile_is_validation_error(profile_endpoint, body) -> None:
    profile_endpoint.body = body

    async with APIClient(COOKIES, base_url=profile_endpoint.url) as client:
        with pytest.raises(AppValidationError) as exc_info:
            await client.validate_session()

    assert exc_info.value.code is ErrorCode.VALIDATION
    assert exc_info.value.retryable is False


@pytest.mark.asyncio
async def test_inactive_subscription_is_rejected(profile_endpoint) -> None:
    profile_endpoint.serve_profile(active=False)

    async with APIClient(COOKIES, base_url=profile_endpoint.url) as client:
        with pytest.raises(AuthenticationError) as exc_info:
            await client.validate_session()

    assert exc_info.value.code is ErrorCode.NO_SUBSCRIPTION
    assert exc_info.value.retryable is False


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body",
    [
        {"id": "1", "email": "x@y"},
        {"id": "1", "email": "x@y", "subscription": {"type": "individual"}},
    ],
)
async def test_profile_without_entitlement_is_no_subscription(
    profile_endpoint, body
) -> None:
    """A well-formed profile that carries no subscription data is not entitled."""
    profile_endpoint.body = json.dumps(body).encode()

    async with APIClient(COOKIES, base_url=profile_endpoint.url) as client:
        with pytest.raises(AuthenticationError) as exc_info:
            await client.validate_session()

    assert exc_info.value.code is ErrorCode.NO_SUBSCRIPTION


@pytest.mark.asyncio
async def test_connection_failure_is_network_error() -> None:
    async with APIClient(COOKIES, base_url="http://127.0.0.1:1") as client:
        with pytest.raises(NetworkError) as exc_info:
            await client.validate_session()

    assert exc_info.value.code is ErrorCode.NETWORK
    assert exc_info.value.retryable is True
    assert exc_info.value.cause is not None


@pytest.mark.asyncio
async def test_slow_response_is_timeout(profile_endpoint, monkeypatch) -> None:
    monkeypatch.setattr(client_module, "REQUEST_TIMEOUT", 0.05)
    profile_endpoint.delay = 0.5

    async with APIClient(COOKIES, base_url=profile_endpoint.url) as client:
        with pytest.raises(NetworkError) as exc_info:
            await client.validate_session()

    assert exc_info.value.code is ErrorCode.TIMEOUT


@pytest.mark.asyncio
async def test_limiter_deadline_fails_before_request(profile_endpoint) -> None:
    limiter = RateLimiter(rate=1, burst=1)
    async with APIClient(
        COOKIES, base_url=profile_endpoint.url, rate_limiter=limiter
    ) as client:
        await client.validate_session()
        with pytest.raises(NetworkError) as exc_info:
            await client.validate_session(timeout=0.01)

    assert exc_info.value.code is ErrorCode.RATE_LIMIT
    assert len(profile_endpoint.requests) == 1


def test_unsendable_cookie_name_is_rejected() -> None:
    with pytest.raises(AuthenticationError) as exc_info:
        APIClient([SessionCookie(name="bad name;", value="x")])
    assert exc_info.value.code is ErrorCode.INVALID_COOKIES


@pytest.mark.asyncio
async def test_import_then_validate_scenario(profile_endpoint) -> None:
    """Import a partial export, validate it, then see it expire."""
    cookies = parse_cookies(
        json.dumps(
            [
                {"name": "orm-jwt", "value": "token-1", "path": "/"},
                {"name": "orm-rt"},
            ]
        )
    )
    assert len(cookies) == 1

    async with APIClient(cookies, base_url=profile_endpoint.url) as client:
        profile = await client.validate_session()
        assert profile.email == "ada@example.com"

        profile_endpoint.status = 401
        with pytest.raises(AuthenticationError) as exc_info:
            await client.validate_session()

    assert exc_info.value.code is ErrorCode.SESSION_EXPIRED
    assert exc_info.value.retryable is False
