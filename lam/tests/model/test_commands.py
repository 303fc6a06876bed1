from __future__ import annotations

import pytest

from lam.model import commands as cmds
from lam.model.commands import Command, encode_command, parse_command
from lam.protocol.errors import CommandFormatError


@pytest.mark.parametrize(
    "name, args, wire",
    [
        (cmds.PING, (), b"ping"),
        (cmds.GET_STATUS, (), b"getStatus"),
        (cmds.START_STREAMING, (), b"startStreaming"),
        (cmds.STOP_STREAMING, (), b"stopStreaming"),
        (cmds.SET_SAMPLING_RATE, (100,), b"setSamplingRate:100"),
        (cmds.SET_SAMPLING_RATE, (-5,), b"setSamplingRate:-5"),
        ("enableAxes", (True, False, True), b"enableAxes:1,0,1"),
    ],
)
def test_encode_command(name, args, wire):
    assert encode_command(name, *args) == wire


@pytest.mark.parametrize("name", ["", "a:b", "a,b", "pïng"])
def test_encode_rejects_bad_names(name):
    with pytest.raises(CommandFormatError):
        encode_command(name)


def test_encode_rejects_separator_in_argument():
    with pytest.raises(CommandFormatError):
        encode_command("connect", "1,2")


def test_parse_plain_and_with_args():
    assert parse_command(b"ping") == Command("ping")
    assert parse_command(b"setSamplingRate:20") == Command("setSamplingRate", ("20",))
    assert parse_command("enableAxes:1,0,1").args == ("1", "0", "1")


def test_parse_strips_whitespace_and_nul():
    assert parse_command(b"  ping\r\n\x00").name == "ping"


@pytest.mark.parametrize("data", [b"", b"   ", b"\x00\x00", b"\xffping"])
def test_parse_rejects_empty_and_non_ascii(data):
    with pytest.raises(CommandFormatError):
        parse_command(data)


def test_int_arg():
    assert parse_command(b"setSamplingRate:0").int_arg() == 0
    with pytest.raises(CommandFormatError):
        parse_command(b"setSamplingRate:fast").int_arg()
    with pytest.raises(CommandFormatError):
        parse_command(b"setSamplingRate").int_arg()


def test_known_commands_cover_host_vocabulary():
    for name in ("ping", "getStatus", "startStreaming", "stopStreaming", "setSamplingRate",
                 "reset", "disconnect", "initialize", "connect"):
        assert name in cmds.KNOWN_COMMANDS
