# lam/transport/udp.py
from __future__ import annotations

import socket
import threading
from typing import Optional

from .base import Address, Datagram, DatagramTransport
from .errors import TransportClosedError, TransportIOError, TransportOpenError


class UDPTransport(DatagramTransport):
    """
    UDP datagram transport on a plain socket.

    The host side passes remote_host/remote_port so send() needs no address;
    the device side binds a fixed local_port and replies to explicit peers.
    """

    def __init__(
        self,
        remote_host: Optional[str] = None,
        remote_port: Optional[int] = None,
        *,
        local_host: str = "0.0.0.0",
        local_port: int = 0,
        buffer_size: int = 1024,
        reuse_address: bool = True,
    ):
        self.remote_host = remote_host
        self.remote_port = remote_port
        self.local_host = local_host
        self.local_port = int(local_port)
        self.buffer_size = int(buffer_size)
        self.reuse_address = reuse_address

        self.sock: Optional[socket.socket] = None
        self._remote: Optional[Address] = None
        self._closed = False
        self._lock = threading.Lock()

    def open(self) -> None:
        if self.sock is not None:
            return
        try:
            if self.remote_host is not None and self.remote_port is not None:
                self._remote = (socket.gethostbyname(self.remote_host), int(self.remote_port))

            sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
            if self.reuse_address:
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((self.local_host, self.local_port))
        except OSError as e:
            self.sock = None
            raise TransportOpenError(
                f"could not bind UDP {self.local_host}:{self.local_port}: {e}"
            ) from None

        self.sock = sock
        self._closed = False

    def close(self) -> None:
        with self._lock:
            sock, self.sock = self.sock, None
            self._closed = True
        if sock is not None:
            try:
                # wake a recvfrom() blocked on another thread
                sock.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass
            finally:
                sock.close()

    @property
    def is_open(self) -> bool:
        return self.sock is not None

    @property
    def local_address(self) -> Optional[Address]:
        sock = self.sock
        if sock is None:
            return None
        try:
            host, port = sock.getsockname()[:2]
        except OSError:
            return None
        return (host, port)

    @property
    def remote_address(self) -> Optional[Address]:
        return self._remote

    def _require_sock(self) -> socket.socket:
        sock = self.sock
        if sock is None:
            if self._closed:
                raise TransportClosedError("UDP transport closed")
            raise TransportIOError("UDP transport not open")
        return sock

    def send(self, data: bytes, address: Optional[Address] = None) -> int:
        sock = self._require_sock()
        target = address or self._remote
        if target is None:
            raise TransportIOError("send without destination (no remote endpoint configured)")

        try:
            return sock.sendto(bytes(data), target)
        except OSError as e:
            if self.sock is None:
                raise TransportClosedError("UDP transport closed during send") from None
            raise TransportIOError(f"UDP send to {target[0]}:{target[1]} failed: {e}") from None

    def receive(self, timeout: Optional[float] = None) -> Optional[Datagram]:
        sock = self._require_sock()
        try:
            sock.settimeout(timeout)
            payload, addr = sock.recvfrom(self.buffer_size)
        except (socket.timeout, BlockingIOError):
            return None
        except OSError as e:
            if self.sock is None:
                raise TransportClosedError("UDP transport closed during receive") from None
            raise TransportIOError(f"UDP receive failed: {e}") from None

        if not payload and self.sock is None:
            # shutdown() makes a blocked recvfrom return an empty read
            raise TransportClosedError("UDP transport closed during receive")
        return Datagram(payload, (addr[0], addr[1]))
