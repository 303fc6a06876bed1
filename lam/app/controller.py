# lam/app/controller.py
from __future__ import annotations

import logging
import threading
from typing import Callable, List, Optional

from lam.app.config import LamConfig
from lam.core.errors import ConfigError, DeviceConnectError, LamError, ProtocolCommunicationError
from lam.interfaces import StatusSink, TelemetrySink
from lam.model.status import StatusSnapshot
from lam.model.telemetry import TelemetryFrame
from lam.protocol.errors import ProtocolError
from lam.runtime.discovery import DiscoveredDevice, ServiceResolver, ZeroconfResolver, wait_for_device
from lam.runtime.session import HostSession, TransportFactory
from lam.runtime.state import Disconnected, SessionState, SessionStatus, StatusUpdate
from lam.transport.base import DatagramTransport
from lam.transport.registry import TransportDriverRegistry


def registry_transport_factory(registry: TransportDriverRegistry, driver: str) -> TransportFactory:
    if not registry.has(driver):
        raise ConfigError(
            f"unknown transport driver '{driver}'",
            hint=f"Available drivers: {', '.join(registry.drivers())}",
        )

    def _make(remote_host: str, remote_port: int, local_port: int) -> DatagramTransport:
        return registry.create(driver, remote_host=remote_host, remote_port=remote_port, local_port=local_port)

    return _make


class LamController:
    """
    App-level controller: discover a device, run a HostSession against it,
    fan events out to sinks.

    With session.auto_reconnect the controller re-discovers and
    re-initializes after every disconnect. The work happens on a
    supervisor thread, never on the thread that reported the loss.

    stop() closes the session and all sinks. A later start() builds a
    fresh HostSession when the controller created the first one; an
    injected session is single-use and start() then raises
    ProtocolCommunicationError. Sinks must be added again after stop().
    """

    def __init__(
        self,
        config: Optional[LamConfig] = None,
        *,
        resolver: Optional[ServiceResolver] = None,
        registry: Optional[TransportDriverRegistry] = None,
        session: Optional[HostSession] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._config = config or LamConfig()
        self._log = logger or logging.getLogger(__name__)
        self._resolver: ServiceResolver = resolver or ZeroconfResolver(logger=self._log)

        self._owns_session = session is None
        if session is None:
            self._transport_factory = registry_transport_factory(
                registry or TransportDriverRegistry.default(), self._config.session.driver
            )
            session = self._new_session()
        self._session = session

        self._telemetry_sinks: List[TelemetrySink] = []
        self._status_sinks: List[StatusSink] = []
        self._unsubscribe: List[Callable[[], None]] = []

        self._device: Optional[DiscoveredDevice] = None
        self._stop = threading.Event()
        self._lost = threading.Event()
        self._supervisor: Optional[threading.Thread] = None
        self.reconnects = 0

    # ---------------- properties ----------------
    @property
    def config(self) -> LamConfig:
        return self._config

    @property
    def session(self) -> HostSession:
        return self._session

    @property
    def device(self) -> Optional[DiscoveredDevice]:
        return self._device

    # ---------------- sinks ----------------
    def add_telemetry_sink(self, sink: TelemetrySink) -> None:
        if sink not in self._telemetry_sinks:
            self._telemetry_sinks.append(sink)

    def add_status_sink(self, sink: StatusSink) -> None:
        if sink not in self._status_sinks:
            self._status_sinks.append(sink)

    def remove_sink(self, sink: object) -> None:
        if sink in self._telemetry_sinks:
            self._telemetry_sinks.remove(sink)  # type: ignore[arg-type]
        if sink in self._status_sinks:
            self._status_sinks.remove(sink)  # type: ignore[arg-type]

    # ---------------- lifecycle ----------------
    def start(self, device: Optional[DiscoveredDevice] = None, *, max_attempts: Optional[int] = None) -> DiscoveredDevice:
        """
        Discover (unless a device is given) and initialize the session.

        Raises DeviceConnectError when discovery gives up or the transport
        cannot be bound.
        """
        if self._session.state is SessionState.CLOSED:
            if not self._owns_session:
                raise ProtocolCommunicationError(
                    "Session is closed.",
                    hint="Pass a new HostSession or let the controller create one.",
                )
            self._session = self._new_session()

        self._stop.clear()
        self._lost.clear()
        self._subscribe_once()

        if device is None:
            device = self._discover(max_attempts=max_attempts)
            if device is None:
                raise DeviceConnectError(
                    "No device found.",
                    hint=f"Is the device powered and advertising {self._config.session.service_type}?",
                )

        try:
            self._connect(device)
        except Exception:
            try:
                self.stop()
            except Exception:
                self._log.exception("CONTROLLER_STOP_AFTER_START_FAIL")
            raise

        if self._config.session.auto_reconnect and self._supervisor is None:
            self._supervisor = threading.Thread(target=self._supervise, name="lam-supervisor", daemon=True)
            self._supervisor.start()
        return device

    def stop(self) -> None:
        self._stop.set()
        self._lost.set()

        for unsub in self._unsubscribe:
            try:
                unsub()
            except Exception:
                self._log.exception("UNSUBSCRIBE_ERROR")
        self._unsubscribe.clear()

        try:
            self._session.teardown()
        except Exception:
            self._log.exception("SESSION_TEARDOWN_ERROR")

        sup, self._supervisor = self._supervisor, None
        if sup is not None and sup is not threading.current_thread():
            sup.join(timeout=2.0)

        for s in list(self._telemetry_sinks) + list(self._status_sinks):
            try:
                s.close()
            except Exception:
                self._log.exception("SINK_CLOSE_ERROR")
        self._telemetry_sinks.clear()
        self._status_sinks.clear()

    def __enter__(self) -> "LamController":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()

    # ---------------- internals ----------------
    def _new_session(self) -> HostSession:
        sc = self._config.session
        return HostSession(
            transport_factory=self._transport_factory,
            heartbeat_interval_s=sc.heartbeat_interval_s,
            liveness_timeout_s=sc.liveness_timeout_s,
            logger=self._log.getChild("session"),
        )

    def _discover(self, *, max_attempts: Optional[int] = None) -> Optional[DiscoveredDevice]:
        sc = self._config.session
        return wait_for_device(
            self._resolver,
            sc.service_type,
            timeout_s=sc.discovery_timeout_s,
            retry_delay_s=sc.discovery_retry_s,
            max_attempts=max_attempts,
            stop_event=self._stop,
            logger=self._log,
        )

    def _connect(self, device: DiscoveredDevice) -> None:
        self._log.info("CONTROLLER_CONNECT device=%s", device)
        self._session.initialize(device.address, device.port, self._config.session.local_port)
        self._device = device

    def _subscribe_once(self) -> None:
        if self._unsubscribe:
            return

        def _on_telemetry(frame: TelemetryFrame) -> None:
            for s in list(self._telemetry_sinks):
                try:
                    s.on_telemetry(frame)
                except Exception:
                    self._log.exception("SINK_ON_TELEMETRY_ERROR")

        def _on_status(update: StatusUpdate) -> None:
            for s in list(self._status_sinks):
                try:
                    s.on_status(update)
                except Exception:
                    self._log.exception("SINK_ON_STATUS_ERROR")

        def _on_disconnected(event: Disconnected) -> None:
            self._log.warning("DEVICE_LOST reason=%s", event.reason)
            self._lost.set()

        self._unsubscribe = [
            self._session.subscribe_telemetry(_on_telemetry),
            self._session.subscribe_status(_on_status),
            self._session.subscribe_disconnected(_on_disconnected),
        ]

    def _supervise(self) -> None:
        retry_s = self._config.session.discovery_retry_s
        while not self._stop.is_set():
            self._lost.wait()
            if self._stop.is_set():
                return
            self._lost.clear()

            self._log.info("RECONNECT_START")
            device = self._discover()
            if device is None:
                continue
            try:
                self._connect(device)
            except (LamError, ProtocolError) as e:
                if self._stop.is_set():
                    return
                self._log.warning("RECONNECT_FAILED err=%s", e)
                self._lost.set()
                self._stop.wait(retry_s)
                continue
            self.reconnects += 1
            self._log.info("RECONNECT_OK device=%s", device)

    # ---------------- passthrough ops ----------------
    def status(self) -> SessionStatus:
        return self._session.status()

    def wait_for_status(self, timeout: Optional[float] = None) -> Optional[StatusSnapshot]:
        return self._session.wait_for_status(timeout)

    def get_status(self) -> None:
        self._session.get_status()

    def start_streaming(self) -> None:
        self._session.start_streaming()

    def stop_streaming(self) -> None:
        self._session.stop_streaming()

    def set_sampling_rate(self, rate_hz: int) -> None:
        self._session.set_sampling_rate(rate_hz)

    def reset_device(self) -> None:
        self._session.reset_device()

    def disconnect_device(self) -> None:
        self._session.disconnect_device()
