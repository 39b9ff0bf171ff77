"""Sliding-window admission control for report submissions."""

from __future__ import annotations

import math
import random
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Optional

SUBMISSION_WINDOW_SECONDS = 10 * 60
MAX_SUBMISSIONS_PER_WINDOW = 5
MIN_SUBMISSION_INTERVAL_SECONDS = 10

# Opportunistic sweep of idle keys (memory valve, not a TTL).
CLEANUP_MIN_KEYS = 100
CLEANUP_PROBABILITY = 0.02


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    retry_after_seconds: Optional[int] = None


@dataclass
class SubmissionRateLimiter:
    """
    Per-key sliding window limiter.

    Each key keeps the timestamps of admitted attempts inside `window_seconds`.
    An attempt is rejected when the previous admitted attempt is younger than
    `min_interval_seconds`, or when `max_per_window` attempts are already in
    the window. State lives in this process only.
    """

    window_seconds: float = SUBMISSION_WINDOW_SECONDS
    max_per_window: int = MAX_SUBMISSIONS_PER_WINDOW
    min_interval_seconds: float = MIN_SUBMISSION_INTERVAL_SECONDS
    cleanup_min_keys: int = CLEANUP_MIN_KEYS
    cleanup_probability: float = CLEANUP_PROBABILITY
    clock: Callable[[], float] = time.monotonic
    _windows: dict[str, list[float]] = field(default_factory=dict, init=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False)

    def check_and_record(self, key: str) -> RateLimitDecision:
        """Admit and record an attempt for `key`, or explain when to retry."""
        with self._lock:
            now = self.clock()
            self._maybe_cleanup(now)

            timestamps = self._active(self._windows.get(key, []), now)
            if timestamps:
                elapsed = now - timestamps[-1]
                if elapsed < self.min_interval_seconds:
                    self._store(key, timestamps)
                    return RateLimitDecision(
                        allowed=False,
                        retry_after_seconds=max(1, math.ceil(self.min_interval_seconds - elapsed)),
                    )

            if len(timestamps) >= self.max_per_window:
                oldest = timestamps[0] if timestamps else None
                retry_after = (
                    math.ceil(self.window_seconds - (now - oldest)) if oldest is not None else 60
                )
                self._store(key, timestamps)
                return RateLimitDecision(allowed=False, retry_after_seconds=max(1, retry_after))

            timestamps.append(now)
            self._windows[key] = timestamps
            return RateLimitDecision(allowed=True)

    def tracked_keys(self) -> int:
        with self._lock:
            return len(self._windows)

    def reset(self) -> None:
        with self._lock:
            self._windows.clear()

    def sweep(self) -> int:
        """Drop every key with nothing left in the window. Returns keys removed."""
        with self._lock:
            return self._sweep(self.clock())

    def _active(self, timestamps: list[float], now: float) -> list[float]:
        return [t for t in timestamps if now - t < self.window_seconds]

    def _store(self, key: str, timestamps: list[float]) -> None:
        if timestamps:
            self._windows[key] = timestamps
        else:
            self._windows.pop(key, None)

    def _maybe_cleanup(self, now: float) -> None:
        if len(self._windows) < self.cleanup_min_keys:
            return
        if random.random() > self.cleanup_probability:
            return
        self._sweep(now)

    def _sweep(self, now: float) -> int:
        removed = 0
        for key in list(self._windows.keys()):
            active = self._active(self._windows[key], now)
            if active:
                self._windows[key] = active
            else:
                del self._windows[key]
                removed += 1
        return removed
