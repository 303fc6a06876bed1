from .base import Address, Datagram, DatagramTransport
from .errors import TransportClosedError, TransportError, TransportIOError, TransportOpenError
from .loopback import LoopbackNetwork, LoopbackTransport
from .registry import TransportDriverRegistry
from .udp import UDPTransport

__all__ = [
    "Address", "Datagram", "DatagramTransport",
    "TransportError", "TransportOpenError", "TransportIOError", "TransportClosedError",
    "LoopbackNetwork", "LoopbackTransport",
    "TransportDriverRegistry",
    "UDPTransport",
]
