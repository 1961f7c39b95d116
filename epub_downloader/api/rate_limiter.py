"""
Provides a token bucket rate limiter that caps the request rate to the API.
"""

import asyncio
import time
from typing import Awaitable, Callable, Optional

from epub_downloader.exceptions import rate_limited


class RateLimiter:
    """
    Token bucket holding at most ``burst`` tokens, refilled at ``rate`` per second.

    Each acquisition reserves one token synchronously, so concurrent tasks on
    the same loop never race on the bucket, and then sleeps until the token
    exists. Admission order is not guaranteed to be FIFO; only the aggregate
    rate is bounded.
    """

    def __init__(
        self,
        rate: float = 10.0,
        burst: int = 1,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Initializes the rate limiter.

        Args:
            rate: Tokens added per second.
            burst: Bucket capacity.
            clock: Monotonic time source, replaceable for simulated time.
            sleep: Coroutine used to wait, replaceable for simulated time.
        """
        if rate <= 0:
            raise ValueError("rate must be positive")
        if burst < 1:
            raise ValueError("burst must be at least 1")
        self.rate = float(rate)
        self.burst = burst
        self._clock = clock
        self._sleep = sleep
        self._tokens = float(burst)
        self._last = clock()
        # Admission time of the most recent reservation
        self._last_event = self._last

    def _advance(self, now: float) -> float:
        """Returns the token count at ``now`` without mutating state."""
        elapsed = max(0.0, now - self._last)
        return min(float(self.burst), self._tokens + elapsed * self.rate)

    def reserve(self, max_wait: Optional[float] = None) -> Optional[float]:
        """
        Takes one token and returns how long the caller must wait for it.

        Returns None, leaving the bucket untouched, when the wait would exceed
        ``max_wait``.
        """
        now = self._clock()
        tokens = self._advance(now) - 1.0
        wait = -tokens / self.rate if tokens < 0 else 0.0
        if max_wait is not None and wait > max_wait:
            return None
        self._tokens = tokens
        self._last = now
        self._last_event = now + wait
        return wait

    def _cancel_reservation(self, admit_at: float) -> None:
        """
        Gives back the slot reserved for ``admit_at``.

        Reservations made after it keep their admission times, so only the part
        of the token that none of them depends on is restored.
        """
        now = self._clock()
        if admit_at <= now:
            return
        restore = 1.0 - (self._last_event - admit_at) * self.rate
        if restore <= 0:
            return
        self._tokens = min(float(self.burst), self._advance(now) + restore)
        self._last = now
        if admit_at == self._last_event:
            self._last_event = max(now, admit_at - 1.0 / self.rate)

    async def acquire(self, timeout: Optional[float] = None) -> float:
        """
        Waits until a request may proceed.

        Args:
            timeout: Longest the caller is willing to wait, in seconds.

        Returns:
            The time spent waiting.

        Raises:
            NetworkError: If the wait would outlive ``timeout``.
        """
        wait = self.reserve(max_wait=timeout)
        if wait is None:
            raise rate_limited(
                f"rate limiter wait exceeds deadline of {timeout:.3f}s"
            )
        admit_at = self._last_event
        if wait > 0:
            try:
                await self._sleep(wait)
            except asyncio.CancelledError:
                self._cancel_reservation(admit_at)
                raise
        return wait
