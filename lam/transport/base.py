from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, NamedTuple, Optional, Tuple

Address = Tuple[str, int]


class Datagram(NamedTuple):
    payload: bytes
    address: Address


class DatagramTransport(ABC):
    """
    Abstract datagram transport (UDP socket, in-memory loopback, ...).

    Contract:
      - open()/close() manage the underlying endpoint. close() is idempotent
        and unblocks a receive() in progress on another thread.
      - send(data, address) sends one datagram; address defaults to the
        remote endpoint given at construction. Returns bytes sent.
      - receive(timeout) returns the next Datagram, or None if nothing
        arrived within timeout (timeout=0 polls, None blocks).
      - After close(), send/receive raise TransportClosedError.
    """

    @abstractmethod
    def open(self) -> None: ...

    @abstractmethod
    def close(self) -> None: ...

    @property
    @abstractmethod
    def is_open(self) -> bool: ...

    @property
    @abstractmethod
    def local_address(self) -> Optional[Address]: ...

    @abstractmethod
    def send(self, data: bytes, address: Optional[Address] = None) -> int: ...

    @abstractmethod
    def receive(self, timeout: Optional[float] = None) -> Optional[Datagram]: ...

    def __enter__(self) -> "DatagramTransport":
        self.open()
        return self

    def __exit__(self, exc_type: type | None, exc_val: BaseException | None, exc_tb: Any) -> None:
        self.close()
