"""
Async client for the O'Reilly Learning API with cookie authentication and
a global request-rate ceiling.
"""

import asyncio
import json
import time
from dataclasses import dataclass, field
from http.cookies import CookieError, Morsel
from typing import Any, Iterable, Optional

import aiohttp
from pydantic import ValidationError
from yarl import URL

from epub_downloader.exceptions import (
    AppValidationError,
    ErrorCode,
    invalid_cookies,
    make,
    network_error,
    no_subscription,
    request_timeout,
    session_expired,
)
from epub_downloader.models.cookie import SameSite, SessionCookie
from epub_downloader.models.profile import UserProfile
from epub_downloader.utils.structured_logger import APILogger, StructuredLogger

from .rate_limiter import RateLimiter

BASE_URL = "https://learning.oreilly.com"
PROFILE_PATH = "/api/v1/me/"
USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
REQUEST_TIMEOUT = 30


@dataclass
class APIResponse:
    """A fully read HTTP response."""

    status: int
    body: bytes = b""
    headers: dict[str, str] = field(default_factory=dict)

    def json(self) -> Any:
        return json.loads(self.body)


def _to_morsel(cookie: SessionCookie) -> Morsel:
    morsel: Morsel = Morsel()
    morsel.set(cookie.name, cookie.value, cookie.value)
    if cookie.domain:
        morsel["domain"] = cookie.domain
    if cookie.path:
        morsel["path"] = cookie.path
    if cookie.max_age > 0:
        morsel["max-age"] = str(cookie.max_age)
    if cookie.secure:
        morsel["secure"] = True
    if cookie.http_only:
        morsel["httponly"] = True
    if cookie.same_site is not SameSite.DEFAULT:
        morsel["samesite"] = cookie.same_site.value
    return morsel


class APIClient:
    """
    Async client for the O'Reilly Learning API.

    Features:
    - Cookie jar bound to the service origin
    - Token bucket rate limiting shared by every request of this client
    - Fixed 30s request timeout
    - Failures classified into the application's error taxonomy
    """

    def __init__(
        self,
        cookies: Iterable[SessionCookie] = (),
        rate_limit_rps: float = 10,
        base_url: str = BASE_URL,
        logger: Optional[StructuredLogger] = None,
        max_connections: int = 5,
        rate_limiter: Optional[RateLimiter] = None,
    ):
        """
        Initializes the API client.

        Args:
            cookies: Session cookies presented with every request.
            rate_limit_rps: Maximum requests per second.
            base_url: Service origin, overridable for tests.
            logger: Logging context for request events.
            max_connections: Concurrency ceiling, used to size the connection pool.
            rate_limiter: A limiter to use instead of building one.
        """
        self.base_url = base_url.rstrip("/")
        self.max_connections = max_connections
        self._logger = logger or StructuredLogger.disabled()
        self._api_log = APILogger(self._logger)
        self._rate_limiter = rate_limiter or RateLimiter(rate=rate_limit_rps, burst=1)

        self._cookies: list[SessionCookie] = []
        self._morsels: list[tuple[str, Morsel]] = []
        self._cookie_jar: Optional[aiohttp.CookieJar] = None
        self._session: Optional[aiohttp.ClientSession] = None
        self.set_cookies(cookies)

    @property
    def cookies(self) -> list[SessionCookie]:
        return list(self._cookies)

    @property
    def rate_limiter(self) -> RateLimiter:
        return self._rate_limiter

    def set_cookies(self, cookies: Iterable[SessionCookie]) -> None:
        """
        Replaces the cookies presented to the service.

        Raises:
            AuthenticationError: If a cookie name cannot be sent in a header.
        """
        cookies = list(cookies)
        try:
            morsels = [(c.name, _to_morsel(c)) for c in cookies]
        except CookieError as e:
            raise invalid_cookies(f"cookie cannot be sent: {e}") from e

        self._cookies = cookies
        self._morsels = morsels
        if self._cookie_jar is not None:
            self._cookie_jar.clear()
            self._load_cookie_jar()

    def _load_cookie_jar(self) -> None:
        if self._morsels:
            self._cookie_jar.update_cookies(
                self._morsels, response_url=URL(self.base_url)
            )

    async def _initialize_session(self) -> None:
        """Ensures an active aiohttp session is available."""
        if self._session is None or self._session.closed:
            if self._cookie_jar is None:
                # unsafe=True lets the jar hold cookies for IP-addressed origins
                self._cookie_jar = aiohttp.CookieJar(unsafe=True)
                self._load_cookie_jar()
            connector = aiohttp.TCPConnector(
                limit=self.max_connections * 2,
                limit_per_host=self.max_connections,
                ttl_dns_cache=300,
            )
            self._session = aiohttp.ClientSession(
                connector=connector,
                cookie_jar=self._cookie_jar,
                headers={
                    "Accept": "application/json",
                    "Accept-Language": "en-US,en;q=0.9",
                    "User-Agent": USER_AGENT,
                },
                timeout=aiohttp.ClientTimeout(total=REQUEST_TIMEOUT),
            )

    async def close(self) -> None:
        """Gracefully closes the aiohttp session."""
        if self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self) -> "APIClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def request(
        self, method: str, path: str, timeout: Optional[float] = None
    ) -> APIResponse:
        """
        Makes a rate-limited, authenticated call and reads the whole response.

        Args:
            method: HTTP method.
            path: Path relative to the service origin.
            timeout: Longest the caller will wait for a rate limiter slot. The
            HTTP call itself is always bound by the fixed request timeout.

        Raises:
            NetworkError: On rate limiter deadline (NET_003), transport failure
            (NET_001), or request timeout (NET_004).
        """
        await self._initialize_session()

        waited = await self._rate_limiter.acquire(timeout)
        if waited:
            self._api_log.rate_limit_wait(path, waited)

        self._api_log.request_started(method, path)
        start_time = time.monotonic()

        try:
            async with self._session.request(method, self.base_url + path) as r:
                body = await r.read()
                response = APIResponse(r.status, body, dict(r.headers))
        except asyncio.TimeoutError as e:
            err = request_timeout(f"{method} {path} timed out after {REQUEST_TIMEOUT}s")
            err.__cause__ = e
            self._api_log.request_failed(path, err, self._elapsed_ms(start_time))
            raise err from e
        except aiohttp.ClientError as e:
            err = network_error(f"request failed: {method} {path}")
            err.__cause__ = e
            self._api_log.request_failed(path, err, self._elapsed_ms(start_time))
            raise err from e

        self._api_log.request_completed(
            path, response.status, self._elapsed_ms(start_time)
        )
        return response

    @staticmethod
    def _elapsed_ms(start_time: float) -> float:
        return (time.monotonic() - start_time) * 1000

    async def validate_session(self, timeout: Optional[float] = None) -> UserProfile:
        """
        Checks that the cookies belong to a live session with an active subscription.

        The profile is fetched fresh on every call.

        Raises:
            AuthenticationError: AUTH_001 on HTTP 401, AUTH_003 when the
            subscription is inactive.
            NetworkError: NET_002 on any other non-200 status, or a transport
            failure from ``request``.
            AppValidationError: VAL_001 when the body is not a valid profile.
        """
        response = await self.request("GET", PROFILE_PATH, timeout=timeout)

        if response.status == 401:
            err = session_expired()
            self._logger.log_error("session_invalid", err, status_code=401)
            raise err

        if response.status != 200:
            err = make(
                ErrorCode.API,
                f"unexpected status code: {response.status}",
                "The O'Reilly service returned an unexpected response. Try again.",
                retryable=True,
            )
            self._logger.log_error("session_invalid", err, status_code=response.status)
            raise err

        try:
            profile = UserProfile.model_validate_json(response.body)
        except ValidationError as e:
            err = AppValidationError(
                ErrorCode.VALIDATION,
                "failed to decode profile response",
                "The O'Reilly service returned data that could not be read.",
                retryable=False,
                cause=e,
            )
            self._logger.log_error("session_invalid", err)
            raise err from e

        if not profile.subscription.active:
            err = no_subscription()
            self._logger.log_error("session_invalid", err, email=profile.email)
            raise err

        self._logger.info(
            "session_validated",
            email=profile.email,
            subscription_type=profile.subscription.type,
        )
        return profile
