# lam/app/config.py
from __future__ import annotations

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional, Type, TypeVar

import yaml

from lam.core.errors import ConfigError
from lam.protocol import defs


@dataclass(frozen=True)
class SessionConfig:
    driver: str = "udp"
    local_port: int = 0
    heartbeat_interval_s: float = defs.HEARTBEAT_INTERVAL_S
    liveness_timeout_s: float = defs.LIVENESS_TIMEOUT_S
    service_type: str = defs.SERVICE_TYPE
    discovery_timeout_s: float = 3.0
    discovery_retry_s: float = 1.0
    auto_reconnect: bool = True


@dataclass(frozen=True)
class DeviceConfig:
    base_port: int = defs.BASE_PORT
    fleet_size: int = defs.FLEET_SIZE
    bind_host: str = "0.0.0.0"
    connect_timeout_s: float = defs.NETWORK_CONNECT_TIMEOUT_S
    peer_timeout_s: float = defs.DEVICE_PEER_TIMEOUT_S
    reset_hold_s: float = defs.RESET_HOLD_S
    default_sampling_rate: int = defs.DEFAULT_SAMPLING_RATE_HZ
    device_type: str = defs.DEVICE_TYPE
    service_type: str = defs.SERVICE_TYPE
    credentials_path: str = "lam_credentials.yml"
    provisioning_host: str = "0.0.0.0"
    provisioning_port: int = 8080
    tick_s: float = 0.002


@dataclass(frozen=True)
class LamConfig:
    session: SessionConfig = field(default_factory=SessionConfig)
    device: DeviceConfig = field(default_factory=DeviceConfig)


T = TypeVar("T")


def _coerce(section: str, name: str, expected: type, value: Any) -> Any:
    # YAML has no float/int distinction a user would notice: accept 2 for 2.0
    if expected is float and isinstance(value, int) and not isinstance(value, bool):
        return float(value)
    if expected is int and isinstance(value, bool):
        raise ConfigError(
            f"{section}.{name}: expected int, got bool",
            hint=f"Set '{name}' to a number",
        )
    if not isinstance(value, expected):
        raise ConfigError(
            f"{section}.{name}: expected {expected.__name__}, got {type(value).__name__}",
            hint=f"Check the type of '{name}' in the config file",
            details={"section": section, "key": name},
        )
    return value


def _build(cls: Type[T], section: str, raw: Any) -> T:
    if raw is None:
        return cls()
    if not isinstance(raw, dict):
        raise ConfigError(f"'{section}' must be a mapping", hint=f"Write '{section}:' followed by indented keys")

    types = {f.name: f.type for f in fields(cls)}
    unknown = sorted(set(raw) - set(types))
    if unknown:
        raise ConfigError(
            f"unknown key(s) in '{section}': {', '.join(map(str, unknown))}",
            hint=f"Valid keys: {', '.join(sorted(types))}",
            details={"section": section, "unknown": unknown},
        )

    # annotations are strings under `from __future__ import annotations`
    builtin = {"int": int, "float": float, "str": str, "bool": bool}
    kwargs: Dict[str, Any] = {}
    for name, value in raw.items():
        kwargs[name] = _coerce(section, name, builtin[str(types[name])], value)
    return cls(**kwargs)  # type: ignore[call-arg]


def config_from_dict(data: Optional[dict]) -> LamConfig:
    data = data or {}
    if not isinstance(data, dict):
        raise ConfigError("config root must be a mapping")

    unknown = sorted(set(data) - {"session", "device"})
    if unknown:
        raise ConfigError(
            f"unknown config section(s): {', '.join(map(str, unknown))}",
            hint="Valid sections: session, device",
        )

    cfg = LamConfig(
        session=_build(SessionConfig, "session", data.get("session")),
        device=_build(DeviceConfig, "device", data.get("device")),
    )
    if cfg.session.liveness_timeout_s <= cfg.session.heartbeat_interval_s:
        raise ConfigError(
            "session.liveness_timeout_s must exceed session.heartbeat_interval_s",
            hint=f"Use a multiple of the heartbeat interval, e.g. {defs.LIVENESS_MULTIPLIER}x",
        )
    return cfg


def load_config(path: str | Path | None) -> LamConfig:
    """
    Load a LamConfig from YAML. None or a missing file yields defaults.
    """
    if path is None:
        return LamConfig()

    p = Path(path)
    if not p.exists():
        return LamConfig()

    try:
        with open(p, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid YAML in {p}: {e}", hint="Check indentation and quoting") from None
    return config_from_dict(data)
