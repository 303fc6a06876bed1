# lam/protocol/_internal/heartbeat.py
from __future__ import annotations

import logging
import threading
from typing import Callable, Optional


class HeartbeatTimer(threading.Thread):
    """
    Fixed-interval periodic timer.

    The first tick fires one interval after start(); ticks never overlap
    because the callback runs on this thread.
    """

    def __init__(
        self,
        interval_s: float,
        callback: Callable[[], None],
        *,
        logger: Optional[logging.Logger] = None,
        name: str = "lam-heartbeat",
    ):
        super().__init__(daemon=True, name=name)
        if interval_s <= 0:
            raise ValueError(f"heartbeat interval must be > 0 (got {interval_s})")
        self.interval_s = float(interval_s)
        self._callback = callback
        self._log = logger or logging.getLogger(__name__)
        self._stop_event = threading.Event()

    @property
    def cancelled(self) -> bool:
        return self._stop_event.is_set()

    def run(self) -> None:
        while not self._stop_event.wait(self.interval_s):
            try:
                self._callback()
            except Exception:
                self._log.exception("HEARTBEAT_CALLBACK_ERROR")

    def cancel(self, *, join_timeout: float | None = 1.0) -> None:
        self._stop_event.set()
        if join_timeout is not None and self.is_alive() and threading.current_thread() is not self:
            self.join(join_timeout)
