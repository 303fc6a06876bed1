# lam/cli/commands.py
from __future__ import annotations

import logging
import threading
import time
from pathlib import Path
from typing import Optional

from lam.app.config import LamConfig
from lam.app.controller import LamController
from lam.device import (
    CredentialStore,
    Credentials,
    DeviceController,
    ProvisioningServer,
    SimulatedImu,
    SimulatedNetwork,
)
from lam.device.advertiser import ZeroconfAdvertiser
from lam.interfaces import StatusSink, TelemetrySink
from lam.model.telemetry import TelemetryFrame
from lam.runtime.discovery import DiscoveredDevice, ZeroconfResolver, discover_devices
from lam.runtime.state import SessionStatus, StatusUpdate


# ---------------- Sinks ----------------

class PrintTelemetrySink(TelemetrySink):
    """Print telemetry frames to stdout."""
    def __init__(self, *, csv: bool = False):
        self._csv = csv

    def on_telemetry(self, frame: TelemetryFrame) -> None:
        if self._csv:
            print(frame.to_csv_row())
            return
        pitch, roll = frame.orientation()
        print(
            f"t={frame.timestamp_ms:.0f}ms accel={_fmt(frame.accel)} gyro={_fmt(frame.gyro)} "
            f"pitch={pitch:.1f} roll={roll:.1f}"
        )

    def close(self) -> None:
        return None


class PrintStatusSink(StatusSink):
    def on_status(self, update: StatusUpdate) -> None:
        if not update.ok:
            print(f"STATUS (unparsed) {update.raw!r}: {update.error}")

    def close(self) -> None:
        return None


def _fmt(v) -> str:
    return "(" + ", ".join(f"{x:.2f}" for x in v) + ")"


# ---------------- Logging ----------------

def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def configure_file_logging(app_log_path: Path) -> None:
    """
    Add a file handler to the root logger (idempotent).
    """
    root = logging.getLogger()
    app_log_path.parent.mkdir(parents=True, exist_ok=True)
    target = str(app_log_path.resolve())

    for h in root.handlers:
        if isinstance(h, logging.FileHandler) and getattr(h, "baseFilename", None) == target:
            return

    fh = logging.FileHandler(app_log_path, encoding="utf-8", delay=True)
    fh.setLevel(logging.INFO)
    fh.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s"))
    root.addHandler(fh)

    if root.level > logging.INFO:
        root.setLevel(logging.INFO)


# ---------------- Status printing ----------------

def print_status(st: SessionStatus) -> None:
    remote = f"{st.remote[0]}:{st.remote[1]}" if st.remote else "-"
    age = f"{st.last_status_age_s:.2f}s" if st.last_status_age_s is not None else "-"
    print(f"Session:   state={st.state.value} remote={remote} connected={st.connected} last_status={age}")
    if st.last_error:
        print(f"Error:     {st.last_error}")

    s = st.snapshot
    if s is None:
        print("Device:    (no status received)")
        return
    last = f"{s.last_connection_ms}ms" if s.last_connection_ms >= 0 else "never"
    print(f"Device:    type={s.device_type or '-'} mac={s.mac or '-'} mode={s.mode or '-'}")
    print(f"Network:   ip={s.ip or '-'} port={s.port} peer={s.remote_ip or '-'} last_ping={last}")
    print(f"Stream:    streaming={s.streaming} rate_hz={s.sampling_rate} connected={s.connected}")


# ---------------- Commands ----------------

def _target(args) -> Optional[DiscoveredDevice]:
    if args.address is None:
        return None
    return DiscoveredDevice(name=args.address, address=args.address, port=int(args.port))


def cmd_discover(cfg: LamConfig, *, timeout_s: float) -> int:
    devices = discover_devices(ZeroconfResolver(), cfg.session.service_type, timeout_s=timeout_s)
    if not devices:
        print("No devices found.")
        return 0
    print("Devices:")
    for d in devices:
        print(f"  - {d}")
    return 0


def cmd_status(cfg: LamConfig, args) -> int:
    controller = LamController(cfg)
    controller.start(_target(args), max_attempts=args.attempts)
    try:
        controller.wait_for_status(args.timeout)
        print_status(controller.status())
        return 0
    finally:
        controller.stop()


def cmd_stream(cfg: LamConfig, args) -> int:
    controller = LamController(cfg)
    controller.add_telemetry_sink(PrintTelemetrySink(csv=args.csv))
    controller.add_status_sink(PrintStatusSink())

    device = controller.start(_target(args), max_attempts=args.attempts)
    print(f"Device:    {device}")
    try:
        if args.rate is not None:
            controller.set_sampling_rate(args.rate)
        controller.start_streaming()

        deadline = time.monotonic() + args.secs if args.secs is not None else None
        while deadline is None or time.monotonic() < deadline:
            time.sleep(0.1)
    except KeyboardInterrupt:
        pass
    finally:
        try:
            controller.stop_streaming()
        except Exception:
            logging.getLogger(__name__).exception("STOP_STREAMING_FAILED")
        controller.stop()
    return 0


def cmd_device(cfg: LamConfig, args) -> int:
    dc = cfg.device
    store = CredentialStore(args.credentials or dc.credentials_path)
    if args.ssid:
        store.save(Credentials(ssid=args.ssid, password=args.password))

    advertiser = None if args.no_advertise else ZeroconfAdvertiser(
        service_type=dc.service_type, device_type=dc.device_type
    )
    device = DeviceController(
        dc,
        network=SimulatedNetwork(mac=args.mac, ip=args.ip),
        credentials=store,
        advertiser=advertiser,
        sensor=SimulatedImu(),
        provisioning=ProvisioningServer(dc.provisioning_host, dc.provisioning_port),
    )

    stop = threading.Event()
    if args.secs is not None:
        timer = threading.Timer(args.secs, stop.set)
        timer.daemon = True
        timer.start()

    print(f"Device {args.mac} running (Ctrl+C to stop)")
    try:
        device.run(stop)
    except KeyboardInterrupt:
        stop.set()
    finally:
        if advertiser is not None:
            advertiser.close()
    return 0
