from .state import Credentials, DeviceMode, DeviceState, LedPattern, led_pattern_for
from .credentials import CredentialStore
from .network import NetworkInterface, SimulatedNetwork, access_point_name, derive_port
from .sensor import ImuReading, ImuSensor, SimulatedImu
from .button import ResetButton, SimulatedButton
from .led import LedIndicator, RecordingOutput
from .sampler import Sampler
from .interpreter import CommandInterpreter, Effect
from .provisioning import ProvisioningHandler, ProvisioningResult, ProvisioningServer, create_app
from .controller import DeviceController, udp_listener_factory

__all__ = [
    "Credentials", "DeviceMode", "DeviceState", "LedPattern", "led_pattern_for",
    "CredentialStore",
    "NetworkInterface", "SimulatedNetwork", "access_point_name", "derive_port",
    "ImuReading", "ImuSensor", "SimulatedImu",
    "ResetButton", "SimulatedButton",
    "LedIndicator", "RecordingOutput",
    "Sampler",
    "CommandInterpreter", "Effect",
    "ProvisioningHandler", "ProvisioningResult", "ProvisioningServer", "create_app",
    "DeviceController", "udp_listener_factory",
]
