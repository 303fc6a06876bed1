from .config import DeviceConfig, LamConfig, SessionConfig, load_config
from .controller import LamController

__all__ = ["DeviceConfig", "LamConfig", "SessionConfig", "load_config", "LamController"]
