# lam/runtime/state.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from lam.model.status import StatusSnapshot
from lam.transport.base import Address


class SessionState(str, Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    LISTENING = "listening"
    DISCONNECTED = "disconnected"
    CLOSED = "closed"


@dataclass(frozen=True)
class StatusUpdate:
    """
    Delivered on every non-telemetry datagram.

    snapshot is the session's held snapshot after the update: the new one
    when ok, the previous one (possibly None) when the text did not parse.
    """
    raw: str
    snapshot: Optional[StatusSnapshot]
    ok: bool
    error: Optional[str] = None


@dataclass(frozen=True)
class Disconnected:
    """Delivered once when a listening session declares the device lost."""
    remote: Optional[Address]
    reason: str
    silence_s: Optional[float] = None


@dataclass(frozen=True)
class SessionStatus:
    """
    A snapshot of the full session status, safe to share across threads.
    """
    state: SessionState
    remote: Optional[Address]
    local: Optional[Address]
    snapshot: Optional[StatusSnapshot]
    status_raw: Optional[str]
    last_status_age_s: Optional[float]
    liveness_timeout_s: float
    last_error: Optional[str] = None

    @property
    def connected(self) -> bool:
        return (
            self.state is SessionState.LISTENING
            and self.last_status_age_s is not None
            and self.last_status_age_s < self.liveness_timeout_s
        )

    @property
    def streaming(self) -> bool:
        return self.snapshot is not None and self.snapshot.streaming
