# lam/protocol/_internal/rx_worker.py
from __future__ import annotations

import logging
import threading
from typing import Protocol

from lam.transport.errors import TransportClosedError, TransportIOError


class RxPump(Protocol):
    _log: logging.Logger

    def _pump_rx(self) -> None: ...

    def _on_rx_fatal(self, exc: BaseException) -> None: ...


class RxWorker(threading.Thread):
    """Thread that continuously receives datagrams and feeds the owning session."""

    def __init__(self, owner: RxPump, *, name: str = "lam-rx"):
        super().__init__(daemon=True, name=name)
        self.owner = owner
        self._stop_event = threading.Event()

    @property
    def stopping(self) -> bool:
        return self._stop_event.is_set()

    def run(self) -> None:
        while not self._stop_event.is_set():
            try:
                self.owner._pump_rx()
            except TransportIOError as e:
                # closed under us on teardown is expected; anything else ends the session
                if not self._stop_event.is_set():
                    if not isinstance(e, TransportClosedError):
                        self.owner._log.warning("RX_TRANSPORT_ERROR err=%s", e)
                    self.owner._on_rx_fatal(e)
                return
            except Exception:
                self.owner._log.exception("RX_WORKER_EXCEPTION")
                self._stop_event.wait(0.01)

    def stop(self, *, join_timeout: float | None = 1.0) -> None:
        self._stop_event.set()
        if join_timeout is not None and self.is_alive() and threading.current_thread() is not self:
            self.join(join_timeout)
