# lam/device/led.py
from __future__ import annotations

import time
from typing import Callable, Dict, Optional, Protocol

from .state import LedPattern


class DigitalOutput(Protocol):
    def value(self, level: int) -> None: ...


class RecordingOutput:
    """Keeps the last level written; stands in for the LED pin."""

    def __init__(self) -> None:
        self.level = 0
        self.writes = 0

    def value(self, level: int) -> None:
        self.level = 1 if level else 0
        self.writes += 1


class LedIndicator:
    """
    Drives the status LED from a LedPattern.

    Blinking is time-driven: the output toggles when the time since the
    last toggle reaches the pattern's half-period. SOLID and OFF write a
    steady level.
    """

    def __init__(
        self,
        output: Optional[DigitalOutput] = None,
        *,
        fast_period_s: float = 0.2,
        slow_period_s: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.output = output or RecordingOutput()
        self._periods: Dict[LedPattern, float] = {
            LedPattern.FAST_BLINK: float(fast_period_s),
            LedPattern.SLOW_BLINK: float(slow_period_s),
        }
        self._clock = clock
        self._pattern = LedPattern.OFF
        self._on = False
        self._last_toggle = clock()
        self.output.value(0)

    @property
    def pattern(self) -> LedPattern:
        return self._pattern

    @property
    def is_on(self) -> bool:
        return self._on

    def _write(self, on: bool) -> None:
        self._on = on
        self.output.value(1 if on else 0)

    def update(self, pattern: LedPattern) -> None:
        now = self._clock()
        if pattern is not self._pattern:
            self._pattern = pattern
            self._last_toggle = now
            self._write(pattern is not LedPattern.OFF)
            return

        if pattern is LedPattern.SOLID:
            if not self._on:
                self._write(True)
            return
        if pattern is LedPattern.OFF:
            if self._on:
                self._write(False)
            return

        if now - self._last_toggle >= self._periods[pattern] / 2.0:
            self._last_toggle = now
            self._write(not self._on)
