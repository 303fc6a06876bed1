from __future__ import annotations

import pytest

from lam.transport.base import DatagramTransport
from lam.transport.errors import TransportError
from lam.transport.registry import TransportDriverRegistry
from lam.transport.udp import UDPTransport


class DummyTransport(DatagramTransport):
    def __init__(self, *, x: int = 0):
        self.x = x

    def open(self) -> None: ...
    def close(self) -> None: ...

    @property
    def is_open(self) -> bool:
        return False

    @property
    def local_address(self):
        return None

    def send(self, data: bytes, address=None) -> int: return len(data)
    def receive(self, timeout=None): return None


def test_registry_has_and_get_case_insensitive():
    reg = TransportDriverRegistry({"DUMMY": DummyTransport})

    assert reg.has("dummy") is True
    assert reg.has("DuMmY") is True
    assert reg.get("dummy") is DummyTransport


def test_registry_get_unknown_raises():
    reg = TransportDriverRegistry({})
    with pytest.raises(TransportError):
        reg.get("udp")


def test_registry_create_instantiates_with_params():
    reg = TransportDriverRegistry({"dummy": DummyTransport})

    t = reg.create("DUMMY", x=42)
    assert isinstance(t, DummyTransport)
    assert t.x == 42


def test_default_registry_has_udp():
    reg = TransportDriverRegistry.default()
    assert reg.drivers() == ["udp"]
    assert reg.get("UDP") is UDPTransport


def test_register_adds_driver():
    reg = TransportDriverRegistry.default()
    reg.register("Loopback", DummyTransport)
    assert reg.drivers() == ["loopback", "udp"]
