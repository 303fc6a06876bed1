from __future__ import annotations

import pytest

import lam.runtime.session as session_mod
from lam.runtime.session import HostSession
from lam.transport.loopback import LoopbackNetwork

DEVICE_ADDR = ("10.0.0.9", 5003)


class FakeClock:
    def __init__(self, t: float = 100.0):
        self.t = t

    def __call__(self) -> float:
        return self.t

    def advance(self, dt: float) -> None:
        self.t += dt


class ManualTimer:
    """Stands in for HeartbeatTimer; tests fire ticks by hand."""
    instances: list = []

    def __init__(self, interval_s, callback, *, logger=None, name="lam-heartbeat"):
        self.interval_s = interval_s
        self.callback = callback
        self.started = False
        self.cancelled = False
        ManualTimer.instances.append(self)

    def start(self):
        self.started = True

    def cancel(self, *, join_timeout=1.0):
        self.cancelled = True


def drain(ep) -> list:
    out = []
    while True:
        dg = ep.receive(timeout=0)
        if dg is None:
            return out
        out.append(dg.payload)


@pytest.fixture
def net():
    return LoopbackNetwork()


@pytest.fixture
def device(net):
    ep = net.endpoint(DEVICE_ADDR)
    ep.open()
    yield ep
    ep.close()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def manual_timer(monkeypatch):
    ManualTimer.instances = []
    monkeypatch.setattr(session_mod, "HeartbeatTimer", ManualTimer)
    return ManualTimer


@pytest.fixture
def session(net, clock, manual_timer):
    def factory(host, port, local_port):
        return net.endpoint(("127.0.0.1", local_port), (host, port))

    s = HostSession(transport_factory=factory, heartbeat_interval_s=2.0, clock=clock)
    yield s
    s.teardown()
