# lam/device/button.py
from __future__ import annotations

import time
from typing import Callable, Optional, Protocol

from lam.protocol.defs import RESET_HOLD_S


class DigitalInput(Protocol):
    """A GPIO input. Pulled up, so 0 means pressed."""

    def value(self) -> int: ...


class SimulatedButton:
    def __init__(self) -> None:
        self._level = 1

    def value(self) -> int:
        return self._level

    def press(self) -> None:
        self._level = 0

    def release(self) -> None:
        self._level = 1


class ResetButton:
    """
    Long-press detector for the reset button.

    Sampled once per control-loop tick. The press starts on the first tick
    the input reads low; poll() returns True once, on the first tick at
    which the input has stayed low for hold_s. The button must be released
    before it can fire again.
    """

    def __init__(
        self,
        pin: DigitalInput,
        *,
        hold_s: float = RESET_HOLD_S,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.pin = pin
        self.hold_s = float(hold_s)
        self._clock = clock
        self._pressed_at: Optional[float] = None
        self._fired = False

    @property
    def pressed(self) -> bool:
        return self._pressed_at is not None

    def held_for(self) -> float:
        if self._pressed_at is None:
            return 0.0
        return self._clock() - self._pressed_at

    def poll(self) -> bool:
        now = self._clock()
        if self.pin.value() != 0:
            self._pressed_at = None
            self._fired = False
            return False

        if self._pressed_at is None:
            self._pressed_at = now
        if self._fired:
            return False
        if now - self._pressed_at >= self.hold_s:
            self._fired = True
            return True
        return False
