# tests/test_rate_limiter.py
import pytest

from mealplanner.services.errors import RateLimitError
from mealplanner.services.rate_limiter import InMemoryRateLimitStore, RateLimiter, rate_limit_key


class FakeClock:

    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


def test_allows_up_to_limit_then_rejects(clock):
    limiter = RateLimiter(limit=3, window_seconds=60, clock=clock)
    remaining = [limiter.check("k").remaining for _ in range(3)]
    assert remaining == [2, 1, 0]
    status = limiter.check("k")
    assert not status.allowed
    assert status.remaining == 0
    assert status.reset_at == 1060.0


def test_window_resets_after_expiry(clock):
    limiter = RateLimiter(limit=1, window_seconds=60, clock=clock)
    assert limiter.check("k").allowed
    assert not limiter.check("k").allowed
    clock.now = 1060.0
    # reset only once strictly past reset_at
    assert not limiter.check("k").allowed
    clock.now = 1060.5
    status = limiter.check("k")
    assert status.allowed
    assert status.reset_at == 1120.5


def test_keys_are_independent(clock):
    limiter = RateLimiter(limit=1, window_seconds=60, clock=clock)
    assert limiter.check("a").allowed
    assert limiter.check("b").allowed
    assert not limiter.check("a").allowed


def test_enforce_raises(clock):
    limiter = RateLimiter(limit=1, window_seconds=60, clock=clock)
    limiter.enforce("k")
    with pytest.raises(RateLimitError) as ei:
        limiter.enforce("k", operation="/api/meal-plan/generate")
    assert ei.value.status_code == 429
    assert ei.value.remaining == 0
    assert ei.value.reset_at == 1060.0


def test_default_limit_from_settings():
    limiter = RateLimiter()
    assert limiter.limit >= 1
    assert limiter.window_seconds > 0


def test_limits_from_injected_config(test_settings):
    config = test_settings.model_copy(
        update={"rate_limit_rpm": 5, "rate_limit_window_seconds": 30, "rate_limit_max_keys": 7}
    )
    limiter = RateLimiter(config=config)
    assert limiter.limit == 5
    assert limiter.window_seconds == 30.0
    assert limiter.store.capacity == 7

    overridden = RateLimiter(limit=2, config=config)
    assert overridden.limit == 2
    assert overridden.window_seconds == 30.0


def test_store_is_bounded(clock):
    store = InMemoryRateLimitStore(max_keys=3, clock=clock)
    limiter = RateLimiter(limit=5, window_seconds=60, store=store, clock=clock)
    for key in ("a", "b", "c", "d"):
        limiter.check(key)
    assert store.count() == 3
    assert store.get("a") is None
    assert store.get("d") is not None


def test_store_sweeps_expired_first(clock):
    store = InMemoryRateLimitStore(max_keys=2, clock=clock)
    limiter = RateLimiter(limit=5, window_seconds=60, store=store, clock=clock)
    limiter.check("old")
    clock.now += 30
    limiter.check("fresh")
    clock.now += 40  # "old" expired, "fresh" still live
    limiter.check("new")
    assert store.get("old") is None
    assert store.get("fresh") is not None
    assert store.count() == 2


@pytest.mark.parametrize(
    "user_id,forwarded,host,expected",
    [
        ("u1", "1.2.3.4", "5.6.7.8", "meal-generation:user:u1"),
        (None, "1.2.3.4, 10.0.0.1", "5.6.7.8", "meal-generation:ip:1.2.3.4"),
        ("  ", None, "5.6.7.8", "meal-generation:ip:5.6.7.8"),
        (None, None, None, "meal-generation:ip:127.0.0.1"),
    ],
)
def test_rate_limit_key(user_id, forwarded, host, expected):
    assert rate_limit_key(user_id, forwarded, host) == expected


def test_limit_two_window_cycle(clock):
    limiter = RateLimiter(limit=2, window_seconds=600, clock=clock)
    assert [limiter.check("k").remaining for _ in range(2)] == [1, 0]
    assert not limiter.check("k").allowed
    clock.now += 601
    status = limiter.check("k")
    assert status.allowed
    assert status.remaining == 1
