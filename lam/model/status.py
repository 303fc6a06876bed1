# lam/model/status.py
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Callable, Dict, Tuple

from lam.protocol.errors import StatusParseError

MODE_SETUP = "setup"
MODE_NORMAL = "normal"


@dataclass(frozen=True)
class StatusSnapshot:
    """
    Device-reported state, as carried in the JSON status datagram.

    Any field the device did not send holds its type default
    ("" / 0 / False).
    """
    ip: str = ""
    remote_ip: str = ""
    port: int = 0
    streaming: bool = False
    sampling_rate: int = 0
    last_connection_ms: int = 0
    connected: bool = False
    mode: str = ""
    mac: str = ""
    device_type: str = ""

    def to_json(self) -> str:
        return encode_status(self)


def _as_str(v: Any) -> str:
    return v if isinstance(v, str) else ""


def _as_int(v: Any) -> int:
    # bool is an int subclass; a JSON true is not a number here
    if isinstance(v, bool):
        return 0
    if isinstance(v, int):
        return v
    if isinstance(v, float) and v.is_integer():
        return int(v)
    return 0


def _as_bool(v: Any) -> bool:
    return v if isinstance(v, bool) else False


# attribute -> (wire key, coercion)
_FIELDS: Dict[str, Tuple[str, Callable[[Any], Any]]] = {
    "ip": ("ip", _as_str),
    "remote_ip": ("remoteIP", _as_str),
    "port": ("port", _as_int),
    "streaming": ("streaming", _as_bool),
    "sampling_rate": ("samplingRate", _as_int),
    "last_connection_ms": ("lastConnection", _as_int),
    "connected": ("connected", _as_bool),
    "mode": ("mode", _as_str),
    "mac": ("mac", _as_str),
    "device_type": ("deviceType", _as_str),
}


def decode_status(text: str | bytes) -> StatusSnapshot:
    """
    Parse a status JSON object.

    Raises StatusParseError when the text is not JSON or not an object.
    Unknown keys are ignored; missing or wrongly typed keys fall back to
    the field default so older/newer firmware still parses.
    """
    if isinstance(text, (bytes, bytearray)):
        try:
            text = bytes(text).decode("utf-8")
        except UnicodeDecodeError:
            raise StatusParseError("not utf-8", bytes(text).decode("utf-8", errors="replace")) from None

    try:
        obj = json.loads(text)
    except ValueError as e:
        raise StatusParseError(f"invalid json: {e}", text) from None

    if not isinstance(obj, dict):
        raise StatusParseError(f"expected object, got {type(obj).__name__}", text)

    kwargs = {}
    for attr, (key, coerce) in _FIELDS.items():
        if key in obj:
            kwargs[attr] = coerce(obj[key])
    return StatusSnapshot(**kwargs)


def encode_status(snapshot: StatusSnapshot) -> str:
    out = {key: getattr(snapshot, attr) for attr, (key, _) in _FIELDS.items()}
    return json.dumps(out, separators=(",", ":"))
