import asyncio

import httpx
import pytest

from vuesync.core.exceptions import RateLimitError
from vuesync.infrastructure.vue.throttle import RateLimiter, ThrottledTransport


class FakeClock:
    """Monotonic clock that only moves when something sleeps on it."""

    def __init__(self):
        self.now = 0.0
        self.sleeps = []
        self.cancel_next = False

    def __call__(self) -> float:
        return self.now

    async def sleep(self, delay: float) -> None:
        if self.cancel_next:
            self.cancel_next = False
            raise asyncio.CancelledError()
        self.sleeps.append(delay)
        self.now += delay


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def limiter(clock):
    return RateLimiter(10, clock=clock, sleep=clock.sleep)


def test_rate_must_be_positive():
    with pytest.raises(ValueError):
        RateLimiter(0)


@pytest.mark.asyncio
async def test_first_call_is_immediate_then_paced(clock, limiter):
    for _ in range(3):
        await limiter.wait()

    assert clock.sleeps == [pytest.approx(0.1), pytest.approx(0.1)]
    assert clock.now == pytest.approx(0.2)


@pytest.mark.asyncio
async def test_idle_time_does_not_build_a_burst(clock, limiter):
    await limiter.wait()
    clock.now = 5.0
    await limiter.wait()
    await limiter.wait()

    assert clock.sleeps == [pytest.approx(0.1)]


@pytest.mark.asyncio
async def test_deadline_fails_without_taking_the_slot(clock, limiter):
    await limiter.wait()

    with pytest.raises(RateLimitError):
        await limiter.wait(deadline=0.05)

    await limiter.wait()
    assert clock.sleeps == [pytest.approx(0.1)]


@pytest.mark.asyncio
async def test_cancelled_wait_gives_the_slot_back(clock, limiter):
    await limiter.wait()

    clock.cancel_next = True
    with pytest.raises(asyncio.CancelledError):
        await limiter.wait()

    await limiter.wait()
    assert clock.sleeps == [pytest.approx(0.1)]


@pytest.mark.asyncio
async def test_transport_waits_before_each_request(clock, limiter):
    hits = []

    def handler(request: httpx.Request) -> httpx.Response:
        hits.append(clock.now)
        return httpx.Response(200, json={})

    transport = ThrottledTransport(limiter, base=httpx.MockTransport(handler))
    async with httpx.AsyncClient(transport=transport) as client:
        for _ in range(3):
            await client.get("https://api.example.test/")

    assert hits == [pytest.approx(0.0), pytest.approx(0.1), pytest.approx(0.2)]


@pytest.mark.asyncio
async def test_transport_passes_deadline_extension(clock, limiter):
    transport = ThrottledTransport(limiter, base=httpx.MockTransport(lambda r: httpx.Response(200)))
    async with httpx.AsyncClient(transport=transport) as client:
        await client.get("https://api.example.test/")
        with pytest.raises(RateLimitError):
            await client.get("https://api.example.test/", extensions={"deadline": 0.01})
