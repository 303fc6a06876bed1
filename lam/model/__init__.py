from .telemetry import (
    TELEMETRY_FRAME_SIZE,
    TelemetryFrame,
    decode_frame,
    encode_frame,
    is_telemetry,
)
from .status import StatusSnapshot, decode_status, encode_status
from .commands import Command, encode_command, parse_command

__all__ = ["TELEMETRY_FRAME_SIZE",
           "TelemetryFrame",
           "decode_frame",
           "encode_frame",
           "is_telemetry",
           "StatusSnapshot",
           "decode_status",
           "encode_status",
           "Command",
           "encode_command",
           "parse_command"]
