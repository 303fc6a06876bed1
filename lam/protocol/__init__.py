# protocol/__init__.py

from .errors import (
    CommandFormatError,
    DecodeError,
    ProtocolError,
    SendFailed,
    StatusParseError,
    TelemetryDecodeError,
)

__all__ = [
    "ProtocolError", "DecodeError",
    "TelemetryDecodeError", "StatusParseError",
    "CommandFormatError", "SendFailed",
]
