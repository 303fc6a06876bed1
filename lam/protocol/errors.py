# lam/protocol/errors.py

class ProtocolError(Exception):
    """Base for protocol-level failures (framing/parse/command semantics)."""

class DecodeError(ProtocolError):
    pass

class TelemetryDecodeError(DecodeError):
    def __init__(self, length: int, expected: int):
        super().__init__(f"telemetry frame must be {expected} bytes, got {length}")
        self.length = length
        self.expected = expected

class StatusParseError(DecodeError):
    def __init__(self, reason: str, raw: str = ""):
        super().__init__(f"status parse failed ({reason})")
        self.reason = reason
        self.raw = raw

class CommandFormatError(ProtocolError):
    pass

class SendFailed(ProtocolError):
    def __init__(self, cmd: str, reason: str = "send_failed"):
        super().__init__(f"{cmd} send failed ({reason})")
        self.cmd = cmd
        self.reason = reason
