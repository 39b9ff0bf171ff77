"""Tests for the sliding-window submission limiter."""

import threading

from fraudintake.intake.rate_limiter import SubmissionRateLimiter


class _Clock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def _limiter(clock: _Clock, **kwargs) -> SubmissionRateLimiter:
    return SubmissionRateLimiter(clock=clock, cleanup_probability=0.0, **kwargs)


def test_first_attempt_is_admitted():
    limiter = _limiter(_Clock())
    decision = limiter.check_and_record("ip:203.0.113.5")
    assert decision.allowed is True
    assert decision.retry_after_seconds is None


def test_window_cap_rejects_sixth_attempt_with_retry_hint():
    clock = _Clock()
    limiter = _limiter(clock)

    for _ in range(5):
        assert limiter.check_and_record("ip:203.0.113.5").allowed is True
        clock.advance(10)

    decision = limiter.check_and_record("ip:203.0.113.5")
    assert decision.allowed is False
    # Oldest entry is 50s old, so it leaves the 600s window in 550s.
    assert decision.retry_after_seconds == 550


def test_min_interval_rejects_regardless_of_window_count():
    clock = _Clock()
    limiter = _limiter(clock)

    assert limiter.check_and_record("ip:198.51.100.7").allowed is True
    clock.advance(3.2)
    decision = limiter.check_and_record("ip:198.51.100.7")
    assert decision.allowed is False
    assert decision.retry_after_seconds == 7


def test_rejected_attempts_do_not_consume_quota():
    clock = _Clock()
    limiter = _limiter(clock)

    limiter.check_and_record("k")
    clock.advance(1)
    assert limiter.check_and_record("k").allowed is False
    clock.advance(9)
    assert limiter.check_and_record("k").allowed is True


def test_window_expiry_readmits_key():
    clock = _Clock()
    limiter = _limiter(clock)
    for _ in range(5):
        limiter.check_and_record("k")
        clock.advance(10)
    assert limiter.check_and_record("k").allowed is False

    clock.advance(600)
    assert limiter.check_and_record("k").allowed is True


def test_keys_are_independent():
    limiter = _limiter(_Clock())
    assert limiter.check_and_record("ip:1.1.1.1").allowed is True
    assert limiter.check_and_record("ip:8.8.8.8").allowed is True
    assert limiter.check_and_record("ip:1.1.1.1").allowed is False


def test_sweep_drops_idle_keys():
    clock = _Clock()
    limiter = _limiter(clock)
    limiter.check_and_record("old")
    clock.advance(601)
    limiter.check_and_record("fresh")

    assert limiter.sweep() == 1
    assert limiter.tracked_keys() == 1


def test_opportunistic_cleanup_bounds_key_space():
    clock = _Clock()
    limiter = SubmissionRateLimiter(clock=clock, cleanup_min_keys=10, cleanup_probability=1.0)
    for i in range(10):
        limiter.check_and_record(f"k{i}")
    clock.advance(601)

    limiter.check_and_record("new")
    assert limiter.tracked_keys() == 1


def test_concurrent_callers_never_exceed_window_cap():
    limiter = SubmissionRateLimiter(min_interval_seconds=0, cleanup_probability=0.0)
    results: list[bool] = []
    results_lock = threading.Lock()

    def worker():
        decision = limiter.check_and_record("shared")
        with results_lock:
            results.append(decision.allowed)

    threads = [threading.Thread(target=worker) for _ in range(50)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert results.count(True) == 5
    assert len(results) == 50
