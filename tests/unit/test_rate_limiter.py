"""
@file: test_rate_limiter.py
@description: Unit-тесты token bucket (webinar_sync/services/rate_limiter.py)
@dependencies: pytest
"""

import pytest

from webinar_sync.services.rate_limiter import RateLimiter


class FakeTime:
    """Часы и sleep, которые двигают время вместо ожидания"""

    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def clock(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.mark.asyncio
async def test_burst_is_free_then_rate_applies():
    fake = FakeTime()
    limiter = RateLimiter(rate_per_second=2, burst=3, clock=fake.clock, sleep=fake.sleep)

    for _ in range(3):
        assert await limiter.acquire() == 0

    waited = await limiter.acquire()

    assert waited == pytest.approx(0.5)
    assert fake.sleeps == [pytest.approx(0.5)]


@pytest.mark.asyncio
async def test_tokens_refill_over_time_up_to_burst():
    fake = FakeTime()
    limiter = RateLimiter(rate_per_second=1, burst=2, clock=fake.clock, sleep=fake.sleep)

    await limiter.acquire()
    await limiter.acquire()
    assert limiter.available == pytest.approx(0)

    fake.now += 10
    assert limiter.available == pytest.approx(2)
    assert await limiter.acquire() == 0
    assert fake.sleeps == []
