from __future__ import annotations

from typing import Callable, Dict

from .base import DatagramTransport
from .errors import TransportError
from .udp import UDPTransport

TransportCtor = Callable[..., DatagramTransport]


class TransportDriverRegistry:
    """
    Maps driver keys -> callables building a DatagramTransport.

    Keys are case-insensitive. The loopback driver is bound to one
    LoopbackNetwork, so it is registered by whoever owns that network
    (tests, the in-process demo) rather than by default().
    """

    def __init__(self, drivers: Dict[str, TransportCtor]):
        self._drivers: Dict[str, TransportCtor] = {k.lower(): v for k, v in drivers.items()}

    @classmethod
    def default(cls) -> "TransportDriverRegistry":
        return cls(drivers={"udp": UDPTransport})

    def register(self, driver: str, ctor: TransportCtor) -> None:
        self._drivers[driver.lower()] = ctor

    def has(self, driver: str) -> bool:
        return driver.lower() in self._drivers

    def drivers(self) -> list[str]:
        return sorted(self._drivers)

    def get(self, driver: str) -> TransportCtor:
        key = driver.lower()
        if key not in self._drivers:
            raise TransportError(f"Transport driver '{driver}' not registered")
        return self._drivers[key]

    def create(self, driver: str, **params) -> DatagramTransport:
        """
        Instantiate (but do not open) a transport by driver key.
        """
        return self.get(driver)(**params)
