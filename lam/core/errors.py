# lam/core/errors.py
from __future__ import annotations


class LamError(Exception):
    """
    Base class for all expected operational errors in LAM.
    """

    #: Stable machine-readable identifier (for CLI exit mapping, logs, etc.)
    code: str = "unknown"

    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        details: dict | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.hint = hint
        self.details = details or {}

    def __str__(self) -> str:
        return self.message


# ---------------------------------------------------------------------------
# Configuration errors (nothing opened yet)
# ---------------------------------------------------------------------------

class ConfigError(LamError):
    """
    Configuration is invalid or inconsistent.

    Examples:
      - unknown key in the YAML config
      - wrong value type (e.g. heartbeat interval given as a string)
      - unknown transport driver
    """
    code = "config_error"


# ---------------------------------------------------------------------------
# Transport / connection lifecycle errors
# ---------------------------------------------------------------------------

class DeviceConnectError(LamError):
    """
    Transport could not be opened or bound.

    Examples:
      - local UDP port already in use
      - remote host name does not resolve
    """
    code = "device_connect_error"


# ---------------------------------------------------------------------------
# Protocol / communication errors
# ---------------------------------------------------------------------------

class ProtocolCommunicationError(LamError):
    """
    Protocol-level communication failure (command could not be sent,
    session not initialized, ...).
    """
    code = "protocol_communication_error"


# ---------------------------------------------------------------------------
# Device provisioning
# ---------------------------------------------------------------------------

class ProvisioningError(LamError):
    """
    Credentials payload rejected by the provisioning endpoint.

    Examples:
      - body is not a JSON object
      - 'ssid' missing or empty
      - 'password' not a string
    """
    code = "provisioning_error"
