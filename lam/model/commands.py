# lam/model/commands.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

from lam.protocol.errors import CommandFormatError

PING = "ping"
GET_STATUS = "getStatus"
START_STREAMING = "startStreaming"
STOP_STREAMING = "stopStreaming"
SET_SAMPLING_RATE = "setSamplingRate"
RESET = "reset"
DISCONNECT = "disconnect"
INITIALIZE = "initialize"
CONNECT = "connect"

KNOWN_COMMANDS = frozenset({
    PING,
    GET_STATUS,
    START_STREAMING,
    STOP_STREAMING,
    SET_SAMPLING_RATE,
    RESET,
    DISCONNECT,
    INITIALIZE,
    CONNECT,
})

ARG_SEP = ":"
LIST_SEP = ","


@dataclass(frozen=True)
class Command:
    name: str
    args: Tuple[str, ...] = ()

    @property
    def arg(self) -> str | None:
        return self.args[0] if self.args else None

    def int_arg(self) -> int:
        """First argument as a decimal integer (raises CommandFormatError)."""
        if not self.args:
            raise CommandFormatError(f"{self.name} requires an argument")
        try:
            return int(self.args[0].strip())
        except ValueError:
            raise CommandFormatError(f"{self.name}: not an integer: {self.args[0]!r}") from None


def _format_arg(value: object) -> str:
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, int):
        return str(value)
    s = str(value)
    if ARG_SEP in s or LIST_SEP in s:
        raise CommandFormatError(f"argument {s!r} contains a separator")
    return s


def encode_command(name: str, *args: object) -> bytes:
    """
    "<name>" or "<name>:<arg>[,<arg>...]" as ASCII bytes.
    """
    if not name or ARG_SEP in name or LIST_SEP in name or not name.isascii():
        raise CommandFormatError(f"invalid command name {name!r}")

    text = name
    if args:
        text += ARG_SEP + LIST_SEP.join(_format_arg(a) for a in args)

    try:
        return text.encode("ascii")
    except UnicodeEncodeError:
        raise CommandFormatError(f"command is not ascii: {text!r}") from None


def parse_command(data: bytes | str) -> Command:
    if isinstance(data, (bytes, bytearray)):
        try:
            data = bytes(data).decode("ascii")
        except UnicodeDecodeError:
            raise CommandFormatError("command is not ascii") from None

    text = data.strip(" \t\r\n\x00")
    if not text:
        raise CommandFormatError("empty command")

    name, sep, rest = text.partition(ARG_SEP)
    if not sep:
        return Command(name=name)
    return Command(name=name, args=tuple(rest.split(LIST_SEP)))
