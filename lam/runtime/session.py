# lam/runtime/session.py
from __future__ import annotations

import logging
import threading
import time
from dataclasses import replace
from typing import Any, Callable, List, Optional, Tuple

from lam.core.errors import DeviceConnectError, ProtocolCommunicationError
from lam.model import commands as cmd
from lam.model.commands import encode_command
from lam.model.status import StatusSnapshot
from lam.model.telemetry import TelemetryFrame
from lam.protocol.defs import HEARTBEAT_INTERVAL_S, LIVENESS_MULTIPLIER
from lam.protocol.dispatch import TelemetryMessage, decode_datagram
from lam.protocol.errors import SendFailed
from lam.protocol._internal.heartbeat import HeartbeatTimer
from lam.protocol._internal.rx_worker import RxWorker
from lam.runtime.state import Disconnected, SessionState, SessionStatus, StatusUpdate
from lam.transport.base import Address, DatagramTransport
from lam.transport.errors import TransportClosedError, TransportError, TransportIOError
from lam.transport.udp import UDPTransport

TelemetryCallback = Callable[[TelemetryFrame], None]
StatusCallback = Callable[[StatusUpdate], None]
DisconnectedCallback = Callable[[Disconnected], None]

# (remote_host, remote_port, local_port) -> unopened transport
TransportFactory = Callable[[str, int, int], DatagramTransport]


def udp_transport_factory(remote_host: str, remote_port: int, local_port: int) -> DatagramTransport:
    return UDPTransport(remote_host, remote_port, local_port=local_port)


class HostSession:
    """
    Host-side session with one device.

    initialize() binds a transport, starts the receive loop and a periodic
    heartbeat (ping + getStatus). A status datagram parsed successfully is
    the only liveness evidence; after liveness_timeout_s of silence the
    session notifies "disconnected" and stops. It does not reconnect on its
    own: call initialize() again.

    Threading: the receive loop and heartbeat run on their own threads.
    Mutable fields are guarded by one lock; notifications are delivered
    outside it but under a dispatch lock and tagged with a generation so
    nothing is delivered after teardown()/disconnect.
    """

    def __init__(
        self,
        *,
        transport_factory: Optional[TransportFactory] = None,
        heartbeat_interval_s: float = HEARTBEAT_INTERVAL_S,
        liveness_timeout_s: Optional[float] = None,
        recv_timeout_s: float = 0.1,
        clock: Callable[[], float] = time.monotonic,
        logger: Optional[logging.Logger] = None,
    ):
        if heartbeat_interval_s <= 0:
            raise ValueError("heartbeat_interval_s must be > 0")
        if liveness_timeout_s is None:
            liveness_timeout_s = heartbeat_interval_s * LIVENESS_MULTIPLIER
        if liveness_timeout_s <= heartbeat_interval_s:
            raise ValueError("liveness_timeout_s must exceed heartbeat_interval_s")

        self._transport_factory = transport_factory or udp_transport_factory
        self.heartbeat_interval_s = float(heartbeat_interval_s)
        self.liveness_timeout_s = float(liveness_timeout_s)
        self._recv_timeout_s = float(recv_timeout_s)
        self._clock = clock
        self._log = logger or logging.getLogger(__name__)

        self._lock = threading.RLock()
        self._status_cond = threading.Condition(self._lock)
        self._dispatch_lock = threading.RLock()
        self._generation = 0

        self._state = SessionState.IDLE
        self._transport: Optional[DatagramTransport] = None
        self._rx: Optional[RxWorker] = None
        self._heartbeat: Optional[HeartbeatTimer] = None

        self._remote: Optional[Address] = None
        self._started_at: Optional[float] = None
        self._last_status_at: Optional[float] = None
        self._status_count = 0
        self._snapshot: Optional[StatusSnapshot] = None
        self._status_raw: Optional[str] = None
        self._last_error: Optional[str] = None

        self._telemetry_cbs: List[TelemetryCallback] = []
        self._status_cbs: List[StatusCallback] = []
        self._disconnected_cbs: List[DisconnectedCallback] = []

    # ---------------- properties ----------------
    @property
    def state(self) -> SessionState:
        with self._lock:
            return self._state

    @property
    def status_snapshot(self) -> Optional[StatusSnapshot]:
        with self._lock:
            return self._snapshot

    @property
    def status_raw(self) -> Optional[str]:
        with self._lock:
            return self._status_raw

    @property
    def last_error(self) -> Optional[str]:
        with self._lock:
            return self._last_error

    @property
    def remote(self) -> Optional[Address]:
        with self._lock:
            return self._remote

    # ---------------- lifecycle ----------------
    def initialize(self, address: str, port: int, local_port: int = 0) -> None:
        """
        Bind the transport, start listening and heartbeating.

        Also used to re-arm a session after a disconnect. Raises
        DeviceConnectError if the transport cannot be opened, SendFailed if
        the first heartbeat cannot be sent (the session stays listening).
        """
        with self._lock:
            if self._state is SessionState.CLOSED:
                raise ProtocolCommunicationError(
                    "Session is closed.",
                    hint="Create a new HostSession after teardown().",
                )
            old = self._detach_locked()
            self._state = SessionState.CONNECTING
            self._generation += 1
        self._stop_parts(old)

        self._log.info("SESSION_INIT remote=%s:%d local_port=%d", address, int(port), int(local_port))
        transport = self._transport_factory(address, int(port), int(local_port))
        try:
            transport.open()
        except TransportError as e:
            with self._lock:
                if self._state is SessionState.CONNECTING:
                    self._state = SessionState.IDLE
                self._last_error = str(e)
            self._log.warning("SESSION_INIT_FAILED err=%s", e)
            raise DeviceConnectError(
                "Could not open datagram transport.",
                hint=str(e),
                details={"remote": f"{address}:{port}", "local_port": int(local_port)},
            ) from None

        with self._lock:
            if self._state is not SessionState.CONNECTING:
                # torn down while opening
                closed_early = True
            else:
                closed_early = False
                self._transport = transport
                self._remote = (address, int(port))
                self._started_at = self._clock()
                self._last_status_at = None
                self._last_error = None
                self._state = SessionState.LISTENING
                self._rx = RxWorker(self)
                self._heartbeat = HeartbeatTimer(
                    self.heartbeat_interval_s, self._on_heartbeat, logger=self._log
                )
                rx, hb = self._rx, self._heartbeat

        if closed_early:
            transport.close()
            return

        rx.start()
        hb.start()
        self._log.info("SESSION_LISTENING local=%s", transport.local_address)
        self.send_heartbeat()

    def teardown(self) -> None:
        """Cancel heartbeat, stop the receive loop, release the transport. Idempotent."""
        with self._lock:
            if self._state is SessionState.CLOSED:
                return
            self._state = SessionState.CLOSED
            self._generation += 1
            parts = self._detach_locked()
            self._status_cond.notify_all()
        self._stop_parts(parts)

        # wait out a notification already in flight on another thread
        with self._dispatch_lock:
            pass
        self._log.info("SESSION_TEARDOWN")

    def status(self) -> SessionStatus:
        with self._lock:
            transport = self._transport
            age = (
                self._clock() - self._last_status_at
                if self._last_status_at is not None
                else None
            )
            return SessionStatus(
                state=self._state,
                remote=self._remote,
                local=transport.local_address if transport is not None else None,
                snapshot=self._snapshot,
                status_raw=self._status_raw,
                last_status_age_s=age,
                liveness_timeout_s=self.liveness_timeout_s,
                last_error=self._last_error,
            )

    def wait_for_status(self, timeout: Optional[float] = None) -> Optional[StatusSnapshot]:
        """Block until the next successfully parsed status (or timeout)."""
        with self._status_cond:
            start = self._status_count
            self._status_cond.wait_for(
                lambda: self._status_count > start or self._state is SessionState.CLOSED,
                timeout=timeout,
            )
            return self._snapshot if self._status_count > start else None

    # ---------------- commands (fire-and-forget) ----------------
    def send_command(self, name: str, *args: Any) -> None:
        data = encode_command(name, *args)
        with self._lock:
            transport = self._transport
        if transport is None:
            raise ProtocolCommunicationError(
                f"Cannot send '{name}': session not initialized.",
                hint="Call initialize(address, port) first.",
            )

        try:
            transport.send(data)
        except TransportClosedError:
            raise SendFailed(name, "transport_closed") from None
        except TransportIOError as e:
            raise SendFailed(name, str(e)) from None
        self._log.debug("CMD_SENT cmd=%s", data.decode("ascii"))

    def send_heartbeat(self) -> None:
        self.send_command(cmd.PING)
        self.get_status()

    def get_status(self) -> None:
        self.send_command(cmd.GET_STATUS)

    def start_streaming(self) -> None:
        self._log.info("START_STREAMING")
        self.send_command(cmd.START_STREAMING)

    def stop_streaming(self) -> None:
        self._log.info("STOP_STREAMING")
        self.send_command(cmd.STOP_STREAMING)

    def set_sampling_rate(self, rate_hz: int) -> None:
        self._log.info("SET_SAMPLING_RATE rate_hz=%d", int(rate_hz))
        self.send_command(cmd.SET_SAMPLING_RATE, int(rate_hz))

    def reset_device(self) -> None:
        self.send_command(cmd.RESET)

    def disconnect_device(self) -> None:
        self.send_command(cmd.DISCONNECT)

    # ---------------- observers ----------------
    def subscribe_telemetry(self, cb: TelemetryCallback) -> Callable[[], None]:
        return self._subscribe(self._telemetry_cbs, cb)

    def subscribe_status(self, cb: StatusCallback) -> Callable[[], None]:
        return self._subscribe(self._status_cbs, cb)

    def subscribe_disconnected(self, cb: DisconnectedCallback) -> Callable[[], None]:
        return self._subscribe(self._disconnected_cbs, cb)

    def _subscribe(self, cbs: list, cb: Callable) -> Callable[[], None]:
        with self._lock:
            cbs.append(cb)

        def _unsubscribe() -> None:
            with self._lock:
                if cb in cbs:
                    cbs.remove(cb)

        return _unsubscribe

    def _notify(self, generation: int, cbs: list, event: Any, tag: str) -> None:
        with self._dispatch_lock:
            with self._lock:
                if generation != self._generation:
                    return
            for cb in cbs:
                try:
                    cb(event)
                except Exception:
                    self._log.exception("%s_CALLBACK_ERROR", tag)

    # ---------------- receive path (RxWorker thread) ----------------
    def _pump_rx(self) -> None:
        with self._lock:
            transport = self._transport
            generation = self._generation
        if transport is None:
            raise TransportClosedError("session transport detached")

        datagram = transport.receive(self._recv_timeout_s)
        if datagram is None:
            return

        msg = decode_datagram(datagram.payload)

        if isinstance(msg, TelemetryMessage):
            with self._lock:
                if generation != self._generation:
                    return
                cbs = list(self._telemetry_cbs)
            self._notify(generation, cbs, msg.frame, "TELEMETRY")
            return

        with self._lock:
            if generation != self._generation:
                return
            self._status_raw = msg.raw
            if msg.ok:
                self._snapshot = msg.snapshot
                self._last_status_at = self._clock()
                self._status_count += 1
                self._status_cond.notify_all()
            update = StatusUpdate(
                raw=msg.raw,
                snapshot=self._snapshot,
                ok=msg.ok,
                error=str(msg.error) if msg.error is not None else None,
            )
            cbs = list(self._status_cbs)

        if not msg.ok:
            self._log.warning("STATUS_PARSE_FAILED len=%d err=%s", len(datagram.payload), msg.error)
        self._notify(generation, cbs, update, "STATUS")

    def _on_rx_fatal(self, exc: BaseException) -> None:
        with self._lock:
            generation = self._generation
            self._last_error = str(exc)
        self._declare_disconnected(generation, f"transport_error: {exc}")

    # ---------------- heartbeat (HeartbeatTimer thread) ----------------
    def _on_heartbeat(self) -> None:
        with self._lock:
            if self._state is not SessionState.LISTENING:
                return
            generation = self._generation
            # assume lost until the reply to this heartbeat says otherwise
            if self._snapshot is not None:
                self._snapshot = replace(self._snapshot, connected=False, streaming=False)

        try:
            self.send_heartbeat()
        except SendFailed as e:
            self._log.warning("HEARTBEAT_SEND_FAILED err=%s", e)
            if e.reason == "transport_closed":
                with self._lock:
                    self._last_error = str(e)
                self._declare_disconnected(generation, "transport_closed")
                return
        except ProtocolCommunicationError:
            # detached between the state check and the send
            return

        with self._lock:
            if generation != self._generation or self._state is not SessionState.LISTENING:
                return

            reference = self._last_status_at if self._last_status_at is not None else self._started_at
            silence = self._clock() - reference if reference is not None else 0.0
            if silence <= self.liveness_timeout_s:
                return

        self._log.warning(
            "HEARTBEAT_STALE silence_s=%.2f threshold_s=%.2f", silence, self.liveness_timeout_s
        )
        self._declare_disconnected(generation, "liveness_timeout", silence_s=silence)

    def _declare_disconnected(
        self,
        generation: int,
        reason: str,
        *,
        silence_s: Optional[float] = None,
    ) -> None:
        with self._lock:
            if generation != self._generation or self._state is not SessionState.LISTENING:
                return
            self._state = SessionState.DISCONNECTED
            self._generation += 1
            new_generation = self._generation
            parts = self._detach_locked()
            event = Disconnected(remote=self._remote, reason=reason, silence_s=silence_s)
            cbs = list(self._disconnected_cbs)

        self._log.warning("SESSION_DISCONNECTED reason=%s", reason)
        self._stop_parts(parts)
        self._notify(new_generation, cbs, event, "DISCONNECTED")

    # ---------------- internals ----------------
    def _detach_locked(
        self,
    ) -> Tuple[Optional[HeartbeatTimer], Optional[RxWorker], Optional[DatagramTransport]]:
        parts = (self._heartbeat, self._rx, self._transport)
        self._heartbeat = None
        self._rx = None
        self._transport = None
        return parts

    def _stop_parts(
        self,
        parts: Tuple[Optional[HeartbeatTimer], Optional[RxWorker], Optional[DatagramTransport]],
    ) -> None:
        heartbeat, rx, transport = parts
        if heartbeat is not None:
            heartbeat.cancel(join_timeout=None)
        if rx is not None:
            rx.stop(join_timeout=None)
        if transport is not None:
            try:
                # unblocks a receive in progress
                transport.close()
            except Exception:
                self._log.exception("TRANSPORT_CLOSE_FAILED")
        if rx is not None:
            rx.stop(join_timeout=1.0)
        if heartbeat is not None:
            heartbeat.cancel(join_timeout=1.0)

    def __enter__(self) -> "HostSession":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.teardown()
