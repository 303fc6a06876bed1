# lam/protocol/dispatch.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

from lam.model.status import StatusSnapshot, decode_status
from lam.model.telemetry import TelemetryFrame, decode_frame, is_telemetry

from .errors import StatusParseError


@dataclass(frozen=True)
class TelemetryMessage:
    frame: TelemetryFrame


@dataclass(frozen=True)
class StatusMessage:
    """
    A non-telemetry datagram.

    raw is always set (undecodable bytes are replaced); exactly one of
    snapshot / error is set.
    """
    raw: str
    snapshot: Optional[StatusSnapshot] = None
    error: Optional[StatusParseError] = None

    @property
    def ok(self) -> bool:
        return self.snapshot is not None


InboundMessage = Union[TelemetryMessage, StatusMessage]


def decode_datagram(payload: bytes) -> InboundMessage:
    """
    Route one device->host datagram by length.

    Exactly TELEMETRY_FRAME_SIZE bytes is telemetry; anything else goes to
    the status decoder. Never raises for malformed input.
    """
    if is_telemetry(payload):
        return TelemetryMessage(decode_frame(payload))

    raw = bytes(payload).decode("utf-8", errors="replace")
    try:
        return StatusMessage(raw=raw, snapshot=decode_status(payload))
    except StatusParseError as e:
        return StatusMessage(raw=raw, error=e)
