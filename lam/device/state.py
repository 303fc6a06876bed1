# lam/device/state.py
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from lam.protocol.defs import DEFAULT_SAMPLING_RATE_HZ, DEVICE_TYPE
from lam.transport.base import Address


class DeviceMode(str, Enum):
    SETUP = "setup"
    NORMAL = "normal"


class LedPattern(str, Enum):
    FAST_BLINK = "fast_blink"
    SLOW_BLINK = "slow_blink"
    SOLID = "solid"
    OFF = "off"


@dataclass(frozen=True)
class Credentials:
    ssid: str
    password: str

    def __repr__(self) -> str:
        return f"Credentials(ssid={self.ssid!r}, password=***)"


@dataclass
class DeviceState:
    """
    Everything the device controller mutates, in one place.

    Written only by the command interpreter, the network connection
    routine and the reset-button path of DeviceController.
    """
    mode: DeviceMode = DeviceMode.SETUP
    configured: bool = False
    credentials: Optional[Credentials] = None

    peer_address: Optional[str] = None
    peer_port: Optional[int] = None
    connected: bool = False
    last_heartbeat_at: Optional[float] = None

    streaming: bool = False
    sampling_rate: int = DEFAULT_SAMPLING_RATE_HZ
    default_sampling_rate: int = DEFAULT_SAMPLING_RATE_HZ

    led: LedPattern = LedPattern.OFF
    advertising: bool = False

    local_ip: str = ""
    port: int = 0
    mac: str = ""
    device_type: str = DEVICE_TYPE
    booted_at: float = field(default=0.0)

    @property
    def peer(self) -> Optional[Address]:
        if self.peer_address is None or self.peer_port is None:
            return None
        return (self.peer_address, self.peer_port)

    def reset_to_defaults(self) -> None:
        """Back to an unconfigured Setup device. Hardware identity and boot time survive."""
        self.mode = DeviceMode.SETUP
        self.configured = False
        self.credentials = None
        self.peer_address = None
        self.peer_port = None
        self.connected = False
        self.last_heartbeat_at = None
        self.streaming = False
        self.sampling_rate = self.default_sampling_rate
        self.advertising = False
        self.local_ip = ""
        self.port = 0


def led_pattern_for(state: DeviceState) -> LedPattern:
    """
    Setup            -> fast blink
    Normal, no peer  -> slow blink
    Normal, peer up  -> solid
    """
    if state.mode is DeviceMode.SETUP:
        return LedPattern.FAST_BLINK
    if state.connected:
        return LedPattern.SOLID
    return LedPattern.SLOW_BLINK
