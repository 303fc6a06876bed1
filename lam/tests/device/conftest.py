from __future__ import annotations

import pytest

from lam.app.config import DeviceConfig
from lam.device.button import ResetButton, SimulatedButton
from lam.device.controller import DeviceController
from lam.device.credentials import CredentialStore
from lam.device.network import SimulatedNetwork
from lam.transport.loopback import LoopbackNetwork

DEVICE_MAC = "24:6F:28:00:00:03"
DEVICE_IP = "192.168.1.20"
HOST = ("192.168.1.5", 40000)


class FakeClock:
    def __init__(self, t: float = 1000.0):
        self.t = t

    def __call__(self) -> float:
        return self.t

    def advance(self, dt: float) -> None:
        self.t += dt


class FakeAdvertiser:
    def __init__(self):
        self.active = None
        self.starts = []
        self.stops = 0

    def start(self, name, address, port):
        self.active = (name, address, port)
        self.starts.append(self.active)

    def stop(self):
        self.active = None
        self.stops += 1


class FakeSensor:
    def __init__(self):
        from lam.device.sensor import ImuReading
        self.reading = ImuReading(accel=(0.0, 0.0, 9.8), gyro=(0.1, 0.2, 0.3))
        self.reads = 0

    def read(self):
        self.reads += 1
        return self.reading


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def net():
    return LoopbackNetwork()


@pytest.fixture
def store(tmp_path):
    return CredentialStore(tmp_path / "creds.yml")


@pytest.fixture
def wifi():
    return SimulatedNetwork(mac=DEVICE_MAC, ip=DEVICE_IP, networks={"Home": "secret123"})


@pytest.fixture
def advertiser():
    return FakeAdvertiser()


@pytest.fixture
def button():
    return SimulatedButton()


@pytest.fixture
def sensor():
    return FakeSensor()


@pytest.fixture
def make_device(net, store, wifi, advertiser, button, sensor, clock):
    def _make(**overrides) -> DeviceController:
        kw = dict(
            network=wifi,
            credentials=store,
            transport_factory=lambda port: net.endpoint((DEVICE_IP, port)),
            advertiser=advertiser,
            sensor=sensor,
            button=ResetButton(button, hold_s=5.0, clock=clock),
            clock=clock,
        )
        kw.update(overrides)
        return DeviceController(DeviceConfig(), **kw)

    return _make


@pytest.fixture
def host(net):
    ep = net.endpoint(HOST)
    ep.open()
    yield ep
    ep.close()
