from .status_sink import StatusSink
from .telemetry_sink import TelemetrySink

__all__ = ["StatusSink", "TelemetrySink"]
