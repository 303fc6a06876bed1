# lam/interfaces/status_sink.py
from __future__ import annotations

from typing import Protocol

from lam.runtime.state import StatusUpdate


class StatusSink(Protocol):
    """
    Receives every status datagram, parsed or not.

    update.snapshot is the last good snapshot; update.ok tells whether
    this particular datagram parsed.
    """
    def on_status(self, update: StatusUpdate) -> None: ...
    def close(self) -> None: ...
