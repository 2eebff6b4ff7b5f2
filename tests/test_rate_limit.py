import pytest

from email_extractor.errors import ConfigError
from email_extractor.rate_limit import RateLimitStore


def test_rejects_requests_over_limit_within_window(clock) -> None:
    store = RateLimitStore(limit=2, window_seconds=60, clock=clock)
    first = store.hit("1.1.1.1")
    second = store.hit("1.1.1.1")
    third = store.hit("1.1.1.1")

    assert (first.allowed, first.remaining) == (True, 1)
    assert (second.allowed, second.remaining) == (True, 0)
    assert third.allowed is False
    assert third.retry_after == 60
    assert third.reset_at == clock.now + 60

    clock.advance(30)
    assert store.hit("1.1.1.1").retry_after == 30


def test_window_resets_after_it_elapses(clock) -> None:
    store = RateLimitStore(limit=1, window_seconds=60, clock=clock)
    assert store.hit("ip").allowed is True
    assert store.hit("ip").allowed is False
    clock.advance(61)
    decision = store.hit("ip")
    assert decision.allowed is True
    assert decision.remaining == 0


def test_keys_are_counted_independently(clock) -> None:
    store = RateLimitStore(limit=1, window_seconds=60, clock=clock)
    assert store.hit("a").allowed is True
    assert store.hit("b").allowed is True
    assert store.hit("a").allowed is False


def test_sweep_evicts_windows_older_than_two_windows(clock) -> None:
    store = RateLimitStore(limit=5, window_seconds=60, clock=clock)
    store.hit("stale")
    clock.advance(50)
    store.hit("fresh")
    clock.advance(75)

    assert store.sweep() == 1
    assert len(store) == 1


def test_invalid_limits_are_rejected() -> None:
    with pytest.raises(ConfigError):
        RateLimitStore(limit=0, window_seconds=60)
    with pytest.raises(ConfigError):
        RateLimitStore(limit=1, window_seconds=0)
