"""Tests for the token bucket, driven by a simulated clock."""

import asyncio

import pytest

from epub_downloader.api.rate_limiter import RateLimiter
from epub_downloader.exceptions import ErrorCode, NetworkError


class FakeClock:
    """Simulated time. ``sleep`` advances the clock instead of waiting."""

    def __init__(self) -> None:
        self.now = 0.0
        self.wakeups: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.now += seconds
        self.wakeups.append(self.now)


def _limiter(clock: FakeClock, rate: float = 10.0) -> RateLimiter:
    return RateLimiter(rate=rate, burst=1, clock=clock, sleep=clock.sleep)


@pytest.mark.asyncio
async def test_sequential_requests_honor_rate_ceiling() -> None:
    clock = FakeClock()
    limiter = _limiter(clock)
    completed = []

    for _ in range(30):
        await limiter.acquire()
        completed.append(clock.now)

    assert clock.now >= 2.9 - 1e-9
    assert len(set(round(t, 6) for t in completed)) == 30


@pytest.mark.asyncio
async def test_concurrent_requests_are_spread_out() -> None:
    """Reservations made in the same instant get distinct admission times."""
    clock = FakeClock()
    targets = []

    async def record_target(seconds: float) -> None:
        targets.append(clock.now + seconds)

    limiter = RateLimiter(rate=10, burst=1, clock=clock, sleep=record_target)
    waits = await asyncio.gather(*(limiter.acquire() for _ in range(30)))

    assert sorted(waits) == pytest.approx([i / 10 for i in range(30)])
    # First caller is admitted immediately and does not sleep
    assert len(targets) == 29
    assert max(targets) == pytest.approx(2.9)
    assert len(set(round(t, 6) for t in targets)) == 29


@pytest.mark.asyncio
async def test_bucket_refills_after_idle() -> None:
    clock = FakeClock()
    limiter = _limiter(clock)

    assert await limiter.acquire() == 0
    clock.now += 5
    assert await limiter.acquire() == 0
    assert await limiter.acquire() == pytest.approx(0.1)


@pytest.mark.asyncio
async def test_wait_beyond_deadline_fails_without_consuming() -> None:
    clock = FakeClock()
    limiter = _limiter(clock, rate=1)
    await limiter.acquire()

    with pytest.raises(NetworkError) as exc_info:
        await limiter.acquire(timeout=0.5)

    assert exc_info.value.code is ErrorCode.RATE_LIMIT
    assert exc_info.value.retryable is True
    # The failed call left the bucket as it was
    assert limiter.reserve() == pytest.approx(1.0)


@pytest.mark.asyncio
async def test_cancelled_wait_returns_token() -> None:
    clock = FakeClock()
    started = asyncio.Event()

    async def block(seconds: float) -> None:
        started.set()
        await asyncio.Event().wait()

    limiter = RateLimiter(rate=10, burst=1, clock=clock, sleep=block)
    await limiter.acquire()
    task = asyncio.create_task(limiter.acquire())
    await started.wait()

    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert limiter.reserve() == pytest.approx(0.1)


class BlockingSleep:
    """Records each requested wait and blocks until cancelled."""

    def __init__(self) -> None:
        self.waits: list[float] = []
        self.changed = asyncio.Event()

    async def __call__(self, seconds: float) -> None:
        self.waits.append(seconds)
        self.changed.set()
        await asyncio.Event().wait()

    async def wait_for(self, count: int) -> None:
        while len(self.waits) < count:
            self.changed.clear()
            await self.changed.wait()


async def _two_waiters(clock: FakeClock) -> tuple[RateLimiter, list[asyncio.Task]]:
    sleep = BlockingSleep()
    limiter = RateLimiter(rate=10, burst=1, clock=clock, sleep=sleep)
    await limiter.acquire()
    first = asyncio.create_task(limiter.acquire())
    second = asyncio.create_task(limiter.acquire())
    await sleep.wait_for(2)
    assert sleep.waits == [pytest.approx(0.1), pytest.approx(0.2)]
    return limiter, [first, second]


async def _cancel(task: asyncio.Task) -> None:
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task


@pytest.mark.asyncio
async def test_cancelling_middle_waiter_keeps_later_slot_distinct() -> None:
    clock = FakeClock()
    limiter, (middle, last) = await _two_waiters(clock)

    clock.now = 0.05
    await _cancel(middle)

    # The waiter admitted at 0.2 still holds its slot, so the next one
    # lands after it instead of sharing it.
    wait = limiter.reserve()
    assert clock.now + wait == pytest.approx(0.3)
    await _cancel(last)


@pytest.mark.asyncio
async def test_cancelling_last_waiter_reuses_its_slot() -> None:
    clock = FakeClock()
    limiter, (middle, last) = await _two_waiters(clock)

    clock.now = 0.05
    await _cancel(last)

    wait = limiter.reserve()
    assert clock.now + wait == pytest.approx(0.2)
    await _cancel(middle)


@pytest.mark.parametrize(("rate", "burst"), [(0, 1), (-1, 1), (10, 0)])
def test_rejects_invalid_configuration(rate: float, burst: int) -> None:
    with pytest.raises(ValueError):
        RateLimiter(rate=rate, burst=burst)
