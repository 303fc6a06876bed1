# lam/protocol/defs.py
"""
Protocol constants shared by the host session and the device controller.

The host sends ping+getStatus every HEARTBEAT_INTERVAL_S and gives up after
LIVENESS_TIMEOUT_S without a parsed status. The device drops its connected
flag after DEVICE_PEER_TIMEOUT_S without a ping.
"""
from __future__ import annotations

HEARTBEAT_INTERVAL_S = 2.0
LIVENESS_MULTIPLIER = 4
LIVENESS_TIMEOUT_S = HEARTBEAT_INTERVAL_S * LIVENESS_MULTIPLIER

DEVICE_PEER_TIMEOUT_S = 10.0
NETWORK_CONNECT_TIMEOUT_S = 30.0
RESET_HOLD_S = 5.0

SERVICE_TYPE = "_imu._udp.local."
DEVICE_TYPE = "LAM"

# device listening port = BASE_PORT + (last MAC byte % FLEET_SIZE)
BASE_PORT = 5000
FLEET_SIZE = 10

DEFAULT_SAMPLING_RATE_HZ = 50

# one command per device tick, read into a buffer this large
COMMAND_BUFFER_SIZE = 255
