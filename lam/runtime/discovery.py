# lam/runtime/discovery.py
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import List, Optional, Protocol

from zeroconf import ServiceBrowser, ServiceListener, Zeroconf

from lam.protocol.defs import SERVICE_TYPE


@dataclass(frozen=True)
class DiscoveredDevice:
    name: str
    address: str
    port: int

    def __str__(self) -> str:
        return f"{self.name} ({self.address}:{self.port})"


class ServiceResolver(Protocol):
    """Resolves devices advertising service_type on the local segment."""

    def resolve(self, service_type: str, timeout_s: float) -> List[DiscoveredDevice]: ...


class _NameCollector(ServiceListener):
    """Collects service instance names seen by a ServiceBrowser."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._names: List[str] = []

    def names(self) -> List[str]:
        with self._lock:
            return list(self._names)

    def add_service(self, zc: Zeroconf, type_: str, name: str) -> None:
        with self._lock:
            if name not in self._names:
                self._names.append(name)

    def update_service(self, zc: Zeroconf, type_: str, name: str) -> None:
        self.add_service(zc, type_, name)

    def remove_service(self, zc: Zeroconf, type_: str, name: str) -> None:
        with self._lock:
            if name in self._names:
                self._names.remove(name)


class ZeroconfResolver:
    """
    mDNS/DNS-SD resolver backed by python-zeroconf.

    Browses for timeout_s, then resolves each service name seen.
    """

    def __init__(self, *, logger: Optional[logging.Logger] = None):
        self._log = logger or logging.getLogger(__name__)

    def resolve(self, service_type: str, timeout_s: float) -> List[DiscoveredDevice]:
        collector = _NameCollector()
        zc = Zeroconf()
        try:
            browser = ServiceBrowser(zc, service_type, collector)
            threading.Event().wait(timeout_s)
            browser.cancel()

            out: List[DiscoveredDevice] = []
            seen = collector.names()
            for name in seen:
                info = zc.get_service_info(service_type, name, timeout=int(max(timeout_s, 0.5) * 1000))
                if info is None or not info.port:
                    self._log.debug("MDNS_UNRESOLVED name=%s", name)
                    continue
                for addr in info.parsed_addresses():
                    display = name[: -len(service_type) - 1] if name.endswith("." + service_type) else name
                    out.append(DiscoveredDevice(name=display, address=addr, port=int(info.port)))
            return out
        finally:
            zc.close()


def discover_devices(
    resolver: ServiceResolver,
    service_type: str = SERVICE_TYPE,
    *,
    timeout_s: float = 3.0,
    logger: Optional[logging.Logger] = None,
) -> List[DiscoveredDevice]:
    log = logger or logging.getLogger(__name__)
    log.info("DISCOVERY_START service=%s timeout_s=%.1f", service_type, timeout_s)
    devices = list(resolver.resolve(service_type, timeout_s))
    log.info("DISCOVERY_DONE count=%d", len(devices))
    return devices


def wait_for_device(
    resolver: ServiceResolver,
    service_type: str = SERVICE_TYPE,
    *,
    timeout_s: float = 3.0,
    retry_delay_s: float = 1.0,
    max_attempts: Optional[int] = None,
    stop_event: Optional[threading.Event] = None,
    logger: Optional[logging.Logger] = None,
) -> Optional[DiscoveredDevice]:
    """
    Discover until at least one device answers; return the first.

    An empty result is not an error, only a reason to try again. Returns
    None when max_attempts is exhausted or stop_event is set.
    """
    log = logger or logging.getLogger(__name__)
    stop_event = stop_event or threading.Event()
    attempt = 0

    while not stop_event.is_set():
        attempt += 1
        try:
            devices = discover_devices(resolver, service_type, timeout_s=timeout_s, logger=log)
        except OSError as e:
            log.warning("DISCOVERY_FAILED attempt=%d err=%s", attempt, e)
            devices = []

        if devices:
            return devices[0]

        if max_attempts is not None and attempt >= max_attempts:
            break
        log.info("DISCOVERY_RETRY attempt=%d", attempt)
        stop_event.wait(retry_delay_s)

    return None
