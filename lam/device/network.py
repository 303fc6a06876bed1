# lam/device/network.py
from __future__ import annotations

import logging
import threading
from typing import List, Mapping, Optional, Protocol, Tuple

from lam.protocol.defs import BASE_PORT, FLEET_SIZE


class NetworkInterface(Protocol):
    """Station + access-point radio as the controller sees it."""

    @property
    def mac(self) -> str: ...

    def connect(self, ssid: str, password: str, timeout_s: float) -> Optional[str]:
        """Associate with a network; return the local IP, or None on failure/timeout."""
        ...

    def disconnect(self) -> None: ...

    def start_access_point(self, name: str) -> str:
        """Host a local access point; return its IP."""
        ...

    def stop_access_point(self) -> None: ...


def _mac_bytes(mac: str) -> List[int]:
    parts = mac.replace("-", ":").split(":")
    if len(parts) != 6:
        raise ValueError(f"invalid MAC address {mac!r}")
    try:
        return [int(p, 16) for p in parts]
    except ValueError:
        raise ValueError(f"invalid MAC address {mac!r}") from None


def derive_port(mac: str, base_port: int = BASE_PORT, fleet_size: int = FLEET_SIZE) -> int:
    """Listening port for this device: base_port + (last MAC byte % fleet_size)."""
    if fleet_size <= 0:
        raise ValueError("fleet_size must be > 0")
    return int(base_port) + _mac_bytes(mac)[-1] % int(fleet_size)


def access_point_name(mac: str, prefix: str = "LAM") -> str:
    b = _mac_bytes(mac)
    return f"{prefix}-{b[-2]:02X}{b[-1]:02X}"


class SimulatedNetwork:
    """
    In-process stand-in for the WiFi radio.

    networks maps ssid -> password; None accepts any credentials.
    An association slower than the caller's timeout fails.
    """

    def __init__(
        self,
        *,
        mac: str = "24:6F:28:00:00:01",
        ip: str = "127.0.0.1",
        ap_ip: str = "192.168.4.1",
        networks: Optional[Mapping[str, str]] = None,
        connect_delay_s: float = 0.0,
        logger: Optional[logging.Logger] = None,
    ):
        _mac_bytes(mac)
        self._mac = mac
        self.ip = ip
        self.ap_ip = ap_ip
        self.networks = dict(networks) if networks is not None else None
        self.connect_delay_s = float(connect_delay_s)
        self._log = logger or logging.getLogger(__name__)

        self.attempts: List[Tuple[str, str]] = []
        self.associated: Optional[str] = None
        self.access_point: Optional[str] = None

    @property
    def mac(self) -> str:
        return self._mac

    def connect(self, ssid: str, password: str, timeout_s: float) -> Optional[str]:
        self.attempts.append((ssid, password))
        self._log.info("WIFI_CONNECT ssid=%s timeout_s=%.1f", ssid, timeout_s)

        if self.connect_delay_s > 0:
            threading.Event().wait(min(self.connect_delay_s, timeout_s))
            if self.connect_delay_s > timeout_s:
                self._log.warning("WIFI_TIMEOUT ssid=%s", ssid)
                return None

        if self.networks is not None and self.networks.get(ssid) != password:
            self._log.warning("WIFI_REJECTED ssid=%s", ssid)
            return None

        self.associated = ssid
        return self.ip

    def disconnect(self) -> None:
        self.associated = None

    def start_access_point(self, name: str) -> str:
        self.access_point = name
        return self.ap_ip

    def stop_access_point(self) -> None:
        self.access_point = None
