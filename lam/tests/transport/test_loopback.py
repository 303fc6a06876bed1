from __future__ import annotations

import threading
import time

import pytest

from lam.transport.errors import TransportClosedError, TransportIOError, TransportOpenError
from lam.transport.loopback import LoopbackNetwork


def test_datagram_delivered_with_sender_address():
    net = LoopbackNetwork()
    a = net.endpoint(("10.0.0.1", 5000))
    b = net.endpoint(("10.0.0.2", 0), ("10.0.0.1", 5000))
    a.open()
    b.open()

    b.send(b"ping")
    dg = a.receive(timeout=0.1)

    assert dg is not None
    assert dg.payload == b"ping"
    assert dg.address == b.local_address


def test_port_zero_is_auto_assigned():
    net = LoopbackNetwork()
    a = net.endpoint(("h", 0))
    b = net.endpoint(("h", 0))
    a.open()
    b.open()
    assert a.local_address != b.local_address
    assert a.local_address[1] != 0


def test_double_bind_fails():
    net = LoopbackNetwork()
    net.endpoint(("h", 5000)).open()
    with pytest.raises(TransportOpenError):
        net.endpoint(("h", 5000)).open()


def test_send_to_unbound_address_is_dropped():
    net = LoopbackNetwork()
    a = net.endpoint(("h", 1))
    a.open()
    assert a.send(b"x", ("h", 9999)) == 1
    assert net.is_bound(("h", 9999)) is False


def test_receive_poll_returns_none_when_empty():
    net = LoopbackNetwork()
    a = net.endpoint(("h", 1))
    a.open()
    assert a.receive(timeout=0) is None


def test_send_without_destination_raises():
    net = LoopbackNetwork()
    a = net.endpoint(("h", 1))
    a.open()
    with pytest.raises(TransportIOError):
        a.send(b"x")


def test_use_before_open_raises_io_error():
    a = LoopbackNetwork().endpoint(("h", 1))
    with pytest.raises(TransportIOError):
        a.receive(timeout=0)


def test_close_unblocks_receive_with_closed_error():
    net = LoopbackNetwork()
    a = net.endpoint(("h", 1))
    a.open()

    errors = []

    def _rx():
        try:
            a.receive(timeout=2.0)
        except TransportClosedError as e:
            errors.append(e)

    t = threading.Thread(target=_rx)
    t.start()
    time.sleep(0.05)
    a.close()
    t.join(timeout=1.0)

    assert not t.is_alive()
    assert len(errors) == 1
    assert net.is_bound(("h", 1)) is False


def test_after_close_send_raises_closed():
    net = LoopbackNetwork()
    a = net.endpoint(("h", 1), ("h", 2))
    a.open()
    a.close()
    a.close()
    with pytest.raises(TransportClosedError):
        a.send(b"x")


def test_context_manager_opens_and_closes():
    net = LoopbackNetwork()
    with net.endpoint(("h", 7)) as ep:
        assert ep.is_open
        assert net.is_bound(("h", 7))
    assert not net.is_bound(("h", 7))
