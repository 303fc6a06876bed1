# lam/transport/loopback.py
from __future__ import annotations

import logging
import queue
import threading
from typing import Dict, Optional

from .base import Address, Datagram, DatagramTransport
from .errors import TransportClosedError, TransportIOError, TransportOpenError

_CLOSED = object()


class LoopbackNetwork:
    """
    In-memory datagram segment.

    Endpoints bind an (ip, port) address; datagrams sent to an address with
    no bound endpoint are dropped, like UDP to a closed port.
    """

    def __init__(self, *, queue_size: int = 256, logger: Optional[logging.Logger] = None):
        self._queue_size = int(queue_size)
        self._log = logger or logging.getLogger(__name__)
        self._lock = threading.Lock()
        self._bound: Dict[Address, "LoopbackTransport"] = {}
        self._next_port = 40000

    def endpoint(
        self,
        local_address: Address,
        remote_address: Optional[Address] = None,
    ) -> "LoopbackTransport":
        return LoopbackTransport(self, local_address, remote_address)

    def _bind(self, ep: "LoopbackTransport", address: Address) -> Address:
        with self._lock:
            host, port = address
            if port == 0:
                while (host, self._next_port) in self._bound:
                    self._next_port += 1
                port = self._next_port
                self._next_port += 1
            addr = (host, int(port))
            if addr in self._bound:
                raise TransportOpenError(f"loopback address {addr[0]}:{addr[1]} already bound")
            self._bound[addr] = ep
            return addr

    def _unbind(self, address: Address) -> None:
        with self._lock:
            self._bound.pop(address, None)

    def _deliver(self, dest: Address, datagram: Datagram) -> bool:
        with self._lock:
            ep = self._bound.get((dest[0], int(dest[1])))
        if ep is None:
            self._log.debug("LOOPBACK_DROP dest=%s:%d len=%d", dest[0], dest[1], len(datagram.payload))
            return False
        return ep._enqueue(datagram)

    def is_bound(self, address: Address) -> bool:
        with self._lock:
            return address in self._bound


class LoopbackTransport(DatagramTransport):
    """One endpoint on a LoopbackNetwork."""

    def __init__(
        self,
        network: LoopbackNetwork,
        local_address: Address,
        remote_address: Optional[Address] = None,
    ):
        self._network = network
        self._requested = (local_address[0], int(local_address[1]))
        self._remote = remote_address
        self._address: Optional[Address] = None
        self._inbox: "queue.Queue[object]" = queue.Queue(maxsize=network._queue_size)
        self._closed = False

    def open(self) -> None:
        if self._address is not None:
            return
        self._address = self._network._bind(self, self._requested)
        self._closed = False

    def close(self) -> None:
        if self._address is None:
            self._closed = True
            return
        self._network._unbind(self._address)
        self._address = None
        self._closed = True
        try:
            self._inbox.put_nowait(_CLOSED)
        except queue.Full:
            pass

    @property
    def is_open(self) -> bool:
        return self._address is not None

    @property
    def local_address(self) -> Optional[Address]:
        return self._address

    def _require_open(self) -> Address:
        if self._address is None:
            if self._closed:
                raise TransportClosedError("loopback transport closed")
            raise TransportIOError("loopback transport not open")
        return self._address

    def _enqueue(self, datagram: Datagram) -> bool:
        try:
            self._inbox.put_nowait(datagram)
            return True
        except queue.Full:
            return False

    def send(self, data: bytes, address: Optional[Address] = None) -> int:
        local = self._require_open()
        target = address or self._remote
        if target is None:
            raise TransportIOError("send without destination (no remote endpoint configured)")
        self._network._deliver(target, Datagram(bytes(data), local))
        return len(data)

    def receive(self, timeout: Optional[float] = None) -> Optional[Datagram]:
        self._require_open()
        try:
            if timeout is not None and timeout <= 0:
                item = self._inbox.get_nowait()
            else:
                item = self._inbox.get(timeout=timeout)
        except queue.Empty:
            return None

        if item is _CLOSED or self._address is None:
            raise TransportClosedError("loopback transport closed during receive")
        return item  # type: ignore[return-value]
