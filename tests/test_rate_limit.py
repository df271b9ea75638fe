from datetime import datetime, timedelta

import pytest

from app.errors import RateLimitExceeded
from app.services.rate_limit_service import AiRateLimiter, MemoryRateLimitStore, RateLimitConfig


class Clock:
    def __init__(self, now=datetime(2024, 5, 15, 12, 0, 0)):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


def make_limiter(per_minute=2, per_hour=5, per_day=10):
    clock = Clock()
    store = MemoryRateLimitStore()
    limiter = AiRateLimiter(
        store=store,
        limits=RateLimitConfig(
            max_requests_per_minute=per_minute,
            max_requests_per_hour=per_hour,
            max_requests_per_day=per_day,
        ),
        clock=clock,
    )
    return limiter, store, clock


def test_minute_window_refuses_then_recovers():
    limiter, _, clock = make_limiter()

    assert limiter.check("u1", "gradeAnswer").remaining == 1
    assert limiter.check("u1", "gradeAnswer").allowed
    refused = limiter.check("u1", "gradeAnswer")
    assert not refused.allowed
    assert refused.retry_after == 60

    clock.advance(seconds=61)
    assert limiter.check("u1", "gradeAnswer").allowed


def test_hour_window_applies_across_minutes():
    limiter, _, clock = make_limiter(per_minute=10, per_hour=3)

    for _ in range(3):
        assert limiter.check("u1", "sendMessage").allowed
        clock.advance(minutes=2)

    refused = limiter.check("u1", "sendMessage")
    assert not refused.allowed
    assert refused.retry_after == 54 * 60


def test_limits_are_per_user_and_operation():
    limiter, _, _ = make_limiter(per_minute=1)

    assert limiter.check("u1", "gradeAnswer").allowed
    assert limiter.check("u1", "transcribeAudio").allowed
    assert limiter.check("u2", "gradeAnswer").allowed
    assert not limiter.check("u1", "gradeAnswer").allowed


def test_enforce_raises_with_retry_after():
    limiter, _, _ = make_limiter(per_minute=1)
    limiter.enforce("u1", "generateQuestions")

    with pytest.raises(RateLimitExceeded) as exc_info:
        limiter.enforce("u1", "generateQuestions")
    assert exc_info.value.retry_after == 60


def test_reset_clears_counters():
    limiter, _, _ = make_limiter(per_minute=1)
    limiter.check("u1", "gradeAnswer")

    limiter.reset("u1", "gradeAnswer")
    assert limiter.check("u1", "gradeAnswer").allowed


def test_cleanup_removes_entries_after_daily_window():
    limiter, store, clock = make_limiter()
    limiter.check("u1", "gradeAnswer")
    clock.advance(hours=1)
    limiter.check("u2", "gradeAnswer")

    clock.advance(hours=23, seconds=1)
    assert limiter.cleanup_expired_entries() == 1
    assert len(store) == 1


def test_check_sweeps_lazily():
    limiter, store, clock = make_limiter()
    limiter.check("u1", "gradeAnswer")

    clock.advance(days=2)
    limiter.check("u2", "gradeAnswer")

    assert len(store) == 1
