# lam/device/interpreter.py
from __future__ import annotations

import logging
from enum import Enum
from typing import List, Optional

from lam.model import commands as cmds
from lam.model.commands import parse_command
from lam.protocol.defs import DEFAULT_SAMPLING_RATE_HZ
from lam.protocol.errors import CommandFormatError
from lam.transport.base import Address

from .state import DeviceMode, DeviceState


class Effect(str, Enum):
    """Side effects the controller performs after a command mutated state."""
    SEND_STATUS = "send_status"
    STOP_ADVERTISING = "stop_advertising"
    START_ADVERTISING = "start_advertising"


class CommandInterpreter:
    """
    Applies one inbound host command to DeviceState.

    Only active in Normal mode. Every command (re)registers the sender as
    the peer. A ping from the already registered peer marks the device
    connected; the very first contact only registers it.
    """

    def __init__(
        self,
        *,
        default_sampling_rate: int = DEFAULT_SAMPLING_RATE_HZ,
        logger: Optional[logging.Logger] = None,
    ):
        self.default_sampling_rate = int(default_sampling_rate)
        self._log = logger or logging.getLogger(__name__)

    def handle(self, state: DeviceState, payload: bytes, sender: Address, now: float) -> List[Effect]:
        if state.mode is not DeviceMode.NORMAL:
            self._log.debug("CMD_IGNORED mode=%s", state.mode.value)
            return []

        try:
            command = parse_command(payload)
        except CommandFormatError as e:
            self._log.warning("CMD_MALFORMED from=%s:%d err=%s", sender[0], sender[1], e)
            return []

        known_peer = state.peer == (sender[0], int(sender[1]))
        state.peer_address = sender[0]
        state.peer_port = int(sender[1])
        self._log.debug("CMD_RX name=%s args=%s from=%s:%d", command.name, command.args, sender[0], sender[1])

        name = command.name
        if name == cmds.PING:
            state.last_heartbeat_at = now
            if not state.connected and known_peer:
                state.connected = True
                self._log.info("PEER_CONNECTED peer=%s:%d", sender[0], sender[1])
                return [Effect.STOP_ADVERTISING]
            return []

        if name == cmds.GET_STATUS:
            return [Effect.SEND_STATUS]

        if name == cmds.START_STREAMING:
            state.streaming = True
            self._log.info("STREAMING_ON rate_hz=%d", state.sampling_rate)
            return []

        if name == cmds.STOP_STREAMING:
            state.streaming = False
            self._log.info("STREAMING_OFF")
            return []

        if name == cmds.SET_SAMPLING_RATE:
            try:
                state.sampling_rate = command.int_arg()
            except CommandFormatError as e:
                self._log.warning("CMD_BAD_RATE err=%s", e)
                return []
            self._log.info("SAMPLING_RATE rate_hz=%d", state.sampling_rate)
            return []

        if name == cmds.RESET:
            state.streaming = False
            state.sampling_rate = self.default_sampling_rate
            self._log.info("DEVICE_RESET rate_hz=%d", state.sampling_rate)
            return []

        if name == cmds.DISCONNECT:
            state.connected = False
            state.streaming = False
            self._log.info("PEER_DISCONNECT_REQUESTED")
            return [Effect.START_ADVERTISING]

        if name == cmds.INITIALIZE:
            self._log.info("CMD_INITIALIZE")
            return []

        self._log.warning("CMD_UNKNOWN name=%s", name)
        return []
