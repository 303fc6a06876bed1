# lam/device/controller.py
from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional

from lam.app.config import DeviceConfig
from lam.model.status import StatusSnapshot
from lam.model.telemetry import TelemetryFrame, encode_frame
from lam.protocol.defs import COMMAND_BUFFER_SIZE
from lam.transport.base import DatagramTransport
from lam.transport.errors import TransportError, TransportIOError
from lam.transport.udp import UDPTransport

from .advertiser import Advertiser
from .button import ResetButton, SimulatedButton
from .credentials import CredentialStore
from .interpreter import CommandInterpreter, Effect
from .led import DigitalOutput, LedIndicator
from .network import NetworkInterface, access_point_name, derive_port
from .provisioning import ProvisioningHandler, ProvisioningServer
from .sampler import Sampler
from .sensor import ImuSensor, SimulatedImu
from .state import Credentials, DeviceMode, DeviceState, LedPattern, led_pattern_for

# local_port -> unopened listener
DeviceTransportFactory = Callable[[int], DatagramTransport]


def udp_listener_factory(bind_host: str = "0.0.0.0") -> DeviceTransportFactory:
    def _make(port: int) -> DatagramTransport:
        return UDPTransport(local_host=bind_host, local_port=port, buffer_size=COMMAND_BUFFER_SIZE)
    return _make


class DeviceController:
    """
    Device-side mode machine and cooperative control loop.

    Setup:  access point + provisioning endpoint, LED fast blink.
    Normal: network joined, UDP listener on the MAC-derived port,
            discovery advertised until a host connects.

    Each tick() checks the reset button, advances the LED, expires a
    silent peer, reads at most one pending command and emits at most one
    telemetry frame. A status reply never reports a peer whose window
    has expired. Only connect_to_network() blocks, and only on mode transitions.
    """

    def __init__(
        self,
        config: Optional[DeviceConfig] = None,
        *,
        network: NetworkInterface,
        credentials: CredentialStore,
        transport_factory: Optional[DeviceTransportFactory] = None,
        advertiser: Optional[Advertiser] = None,
        sensor: Optional[ImuSensor] = None,
        button: Optional[ResetButton] = None,
        led_output: Optional[DigitalOutput] = None,
        provisioning: Optional[ProvisioningServer] = None,
        clock: Callable[[], float] = time.monotonic,
        logger: Optional[logging.Logger] = None,
    ):
        self.config = config or DeviceConfig()
        self.network = network
        self.store = credentials
        self.advertiser = advertiser
        self.provisioning = provisioning
        self._transport_factory = transport_factory or udp_listener_factory(self.config.bind_host)
        self._clock = clock
        self._log = logger or logging.getLogger(__name__)

        self.sensor: ImuSensor = sensor or SimulatedImu(clock=clock)
        self.button = button or ResetButton(SimulatedButton(), hold_s=self.config.reset_hold_s, clock=clock)
        self.led = LedIndicator(led_output, clock=clock)
        self.sampler = Sampler(clock=clock)
        self.interpreter = CommandInterpreter(
            default_sampling_rate=self.config.default_sampling_rate,
            logger=self._log.getChild("cmd"),
        )
        self.provisioning_handler = ProvisioningHandler(
            credentials, on_saved=self._on_provisioned, logger=self._log.getChild("provisioning")
        )

        self.state = DeviceState(
            sampling_rate=self.config.default_sampling_rate,
            default_sampling_rate=self.config.default_sampling_rate,
            mac=network.mac,
            device_type=self.config.device_type,
        )
        self._transport: Optional[DatagramTransport] = None
        self._pending: Optional[Credentials] = None
        self._reconnect = threading.Event()
        self._booted = False

        self.frames_sent = 0
        self.status_sent = 0

    # ---------------- properties ----------------
    @property
    def transport(self) -> Optional[DatagramTransport]:
        return self._transport

    @property
    def service_name(self) -> str:
        return access_point_name(self.state.mac, self.config.device_type)

    # ---------------- mode transitions ----------------
    def boot(self) -> None:
        self.state.booted_at = self._clock()
        self._booted = True
        self._log.info("DEVICE_BOOT mac=%s", self.state.mac)

        creds = self.store.load()
        if creds is None:
            self.enter_setup()
            return
        self.connect_to_network(creds)

    def connect_to_network(self, credentials: Credentials) -> bool:
        """
        Join the network and enter Normal mode. Blocks for up to
        connect_timeout_s. On failure the device always ends in Setup.
        """
        self._stop_provisioning()
        self._stop_advertising()
        self._close_transport()
        self.network.stop_access_point()

        self._log.info("NETWORK_CONNECT ssid=%s timeout_s=%.1f", credentials.ssid, self.config.connect_timeout_s)
        ip = self.network.connect(credentials.ssid, credentials.password, self.config.connect_timeout_s)
        if ip is None:
            self._log.warning("NETWORK_CONNECT_FAILED ssid=%s (clearing credentials)", credentials.ssid)
            self.store.clear()
            self.state.reset_to_defaults()
            self.enter_setup()
            return False

        port = derive_port(self.state.mac, self.config.base_port, self.config.fleet_size)
        transport = self._transport_factory(port)
        try:
            transport.open()
        except TransportError as e:
            self._log.error("LISTENER_BIND_FAILED port=%d err=%s", port, e)
            self.network.disconnect()
            self.enter_setup()
            return False

        self._transport = transport

        st = self.state
        st.mode = DeviceMode.NORMAL
        st.configured = True
        st.credentials = credentials
        st.local_ip = ip
        st.port = port
        st.connected = False
        st.streaming = False
        st.peer_address = None
        st.peer_port = None
        st.last_heartbeat_at = None
        self.sampler.reset()

        self._log.info("DEVICE_MODE mode=normal ip=%s port=%d", ip, port)
        self._start_advertising()
        return True

    def enter_setup(self) -> None:
        self._close_transport()
        self._stop_advertising()

        st = self.state
        st.mode = DeviceMode.SETUP
        st.connected = False
        st.streaming = False
        st.local_ip = self.network.start_access_point(self.service_name)
        self._reconnect.clear()
        self._pending = None

        if self.provisioning is not None:
            self.provisioning.start(self.provisioning_handler)
        self._log.info("DEVICE_MODE mode=setup ap=%s ip=%s", self.service_name, st.local_ip)

    def reset_to_setup(self) -> None:
        """Long-press reset: wipe credentials and drop to Setup from any mode."""
        self._log.warning("RESET_BUTTON held_s=%.1f (clearing credentials)", self.button.held_for())
        self.store.clear()
        self._close_transport()
        self._stop_advertising()
        self.network.disconnect()
        self.state.reset_to_defaults()
        self.sampler.reset()
        self.enter_setup()

    def _on_provisioned(self, credentials: Credentials) -> None:
        # called from the provisioning server thread; the control loop picks it up
        self._pending = credentials
        self._reconnect.set()

    # ---------------- control loop ----------------
    def tick(self) -> None:
        now = self._clock()

        if self.button.poll():
            self.reset_to_setup()

        pattern = led_pattern_for(self.state)
        self.led.update(pattern)
        self.state.led = pattern

        if self.state.mode is DeviceMode.SETUP:
            if self._reconnect.is_set():
                self._reconnect.clear()
                creds, self._pending = self._pending, None
                if creds is not None:
                    self.connect_to_network(creds)
            return

        self._check_peer(now)
        self._poll_command(now)

        if self.state.streaming and self.sampler.due(self.state.sampling_rate):
            self._send_frame(now)

    def run(self, stop_event: Optional[threading.Event] = None, tick_s: Optional[float] = None) -> None:
        stop_event = stop_event or threading.Event()
        tick_s = self.config.tick_s if tick_s is None else tick_s
        if not self._booted:
            self.boot()
        try:
            while not stop_event.is_set():
                self.tick()
                stop_event.wait(tick_s)
        finally:
            self.shutdown()

    def shutdown(self) -> None:
        self._stop_provisioning()
        self._stop_advertising()
        self._close_transport()
        self.network.stop_access_point()
        self.led.update(LedPattern.OFF)
        self.state.led = LedPattern.OFF
        self._log.info("DEVICE_SHUTDOWN")

    def _poll_command(self, now: float) -> None:
        if self._transport is None:
            return
        try:
            dg = self._transport.receive(timeout=0)
        except TransportIOError as e:
            self._log.warning("CMD_RECEIVE_FAILED err=%s", e)
            return
        if dg is None:
            return

        for effect in self.interpreter.handle(self.state, dg.payload, dg.address, now):
            if effect is Effect.SEND_STATUS:
                self.send_status()
            elif effect is Effect.STOP_ADVERTISING:
                self._stop_advertising()
            elif effect is Effect.START_ADVERTISING:
                self._start_advertising()

    def _check_peer(self, now: float) -> None:
        st = self.state
        if not st.connected or st.last_heartbeat_at is None:
            return
        silence = now - st.last_heartbeat_at
        if silence > self.config.peer_timeout_s:
            st.connected = False
            self._log.warning("PEER_TIMEOUT silence_s=%.1f", silence)
            self._start_advertising()

    def _send_frame(self, now: float) -> None:
        peer = self.state.peer
        if peer is None or self._transport is None:
            return
        reading = self.sensor.read()
        frame = TelemetryFrame(
            *reading.accel,
            *reading.gyro,
            *reading.mag,
            timestamp_ms=(now - self.state.booted_at) * 1000.0,
        )
        try:
            self._transport.send(encode_frame(frame), peer)
        except TransportIOError as e:
            self._log.warning("TELEMETRY_SEND_FAILED peer=%s:%d err=%s", peer[0], peer[1], e)
            return
        self.frames_sent += 1

    # ---------------- status ----------------
    def status_snapshot(self) -> StatusSnapshot:
        st = self.state
        if st.last_heartbeat_at is None:
            last_ms = -1
        else:
            last_ms = int((self._clock() - st.last_heartbeat_at) * 1000)
        return StatusSnapshot(
            ip=st.local_ip,
            remote_ip=st.peer_address or "",
            port=st.port,
            streaming=st.streaming,
            sampling_rate=st.sampling_rate,
            last_connection_ms=last_ms,
            connected=st.connected,
            mode=st.mode.value,
            mac=st.mac,
            device_type=st.device_type,
        )

    def send_status(self) -> bool:
        peer = self.state.peer
        if peer is None or self._transport is None:
            return False
        payload = self.status_snapshot().to_json().encode("utf-8")
        try:
            self._transport.send(payload, peer)
        except TransportIOError as e:
            self._log.warning("STATUS_SEND_FAILED peer=%s:%d err=%s", peer[0], peer[1], e)
            return False
        self.status_sent += 1
        return True

    # ---------------- helpers ----------------
    def _start_advertising(self) -> None:
        st = self.state
        if st.advertising or st.mode is not DeviceMode.NORMAL:
            return
        if self.advertiser is not None:
            try:
                self.advertiser.start(self.service_name, st.local_ip, st.port)
            except Exception:
                self._log.exception("ADVERTISE_FAILED")
                return
        st.advertising = True

    def _stop_advertising(self) -> None:
        st = self.state
        if not st.advertising:
            return
        if self.advertiser is not None:
            try:
                self.advertiser.stop()
            except Exception:
                self._log.exception("ADVERTISE_STOP_FAILED")
        st.advertising = False

    def _stop_provisioning(self) -> None:
        if self.provisioning is not None and self.provisioning.running:
            self.provisioning.stop()

    def _close_transport(self) -> None:
        transport, self._transport = self._transport, None
        if transport is not None:
            transport.close()
