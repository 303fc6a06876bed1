# lam/device/sampler.py
from __future__ import annotations

import time
from typing import Callable, Optional


class Sampler:
    """
    Fixed-rate sample scheduler for the control loop.

    due() answers "take a sample this tick?". The next deadline is computed
    from the rate in force when a sample fires, so a rate change applies
    from the next decision on. A non-positive rate never samples.
    """

    def __init__(self, *, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._next_at: Optional[float] = None

    @staticmethod
    def interval_for(rate_hz: int) -> Optional[float]:
        if rate_hz <= 0:
            return None
        return 1.0 / rate_hz

    def due(self, rate_hz: int) -> bool:
        interval = self.interval_for(rate_hz)
        if interval is None:
            return False

        now = self._clock()
        if self._next_at is not None and now < self._next_at:
            return False

        # fell behind by more than a period: don't burst to catch up
        if self._next_at is None or now - self._next_at >= interval:
            self._next_at = now + interval
        else:
            self._next_at += interval
        return True

    def reset(self) -> None:
        self._next_at = None
