from .discovery import DiscoveredDevice, ServiceResolver, ZeroconfResolver, discover_devices, wait_for_device
from .session import HostSession, udp_transport_factory
from .state import Disconnected, SessionState, SessionStatus, StatusUpdate

__all__ = [
    "DiscoveredDevice", "ServiceResolver", "ZeroconfResolver", "discover_devices", "wait_for_device",
    "HostSession", "udp_transport_factory",
    "Disconnected", "SessionState", "SessionStatus", "StatusUpdate",
]
