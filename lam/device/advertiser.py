# lam/device/advertiser.py
from __future__ import annotations

import logging
import socket
from typing import Optional, Protocol

from zeroconf import ServiceInfo, Zeroconf

from lam.protocol.defs import DEVICE_TYPE, SERVICE_TYPE


class Advertiser(Protocol):
    """Announces (or stops announcing) the device's service on the local segment."""

    def start(self, name: str, address: str, port: int) -> None: ...

    def stop(self) -> None: ...


class ZeroconfAdvertiser:
    """
    DNS-SD announcement via python-zeroconf.

    start() is idempotent for the same (name, address, port); a different
    tuple re-registers.
    """

    def __init__(
        self,
        *,
        service_type: str = SERVICE_TYPE,
        device_type: str = DEVICE_TYPE,
        zeroconf: Optional[Zeroconf] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.service_type = service_type
        self.device_type = device_type
        self._zc = zeroconf
        self._owns_zc = zeroconf is None
        self._info: Optional[ServiceInfo] = None
        self._key: Optional[tuple] = None
        self._log = logger or logging.getLogger(__name__)

    def start(self, name: str, address: str, port: int) -> None:
        key = (name, address, int(port))
        if self._info is not None:
            if self._key == key:
                return
            self.stop()

        info = ServiceInfo(
            self.service_type,
            f"{name}.{self.service_type}",
            addresses=[socket.inet_aton(address)],
            port=int(port),
            properties={"deviceType": self.device_type},
        )

        if self._zc is None:
            self._zc = Zeroconf()
        self._zc.register_service(info)
        self._info = info
        self._key = key
        self._log.info("ADVERTISE_START name=%s addr=%s:%d", name, address, port)

    def stop(self) -> None:
        if self._info is None or self._zc is None:
            return
        info, self._info = self._info, None
        self._key = None
        self._zc.unregister_service(info)
        self._log.info("ADVERTISE_STOP name=%s", info.name)

    def close(self) -> None:
        self.stop()
        if self._owns_zc and self._zc is not None:
            self._zc.close()
            self._zc = None
