# lam/interfaces/telemetry_sink.py
from typing import Protocol

from lam.model.telemetry import TelemetryFrame


class TelemetrySink(Protocol):
    def on_telemetry(self, frame: TelemetryFrame) -> None: ...
    def close(self) -> None: ...
