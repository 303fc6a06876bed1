# lam/model/telemetry.py
from __future__ import annotations

import math
import struct
from dataclasses import astuple, dataclass, fields
from typing import Tuple

from lam.protocol.errors import TelemetryDecodeError

#: 10 little-endian IEEE-754 single-precision floats.
_FRAME = struct.Struct("<10f")

TELEMETRY_FRAME_SIZE = _FRAME.size  # 40


@dataclass(frozen=True)
class TelemetryFrame:
    """
    One IMU sample as sent by the device.

    Field order is the wire order: accelerometer, gyroscope, magnetometer
    (placeholder on current firmware), then the device timestamp in
    milliseconds since boot.
    """
    accel_x: float
    accel_y: float
    accel_z: float
    gyro_x: float
    gyro_y: float
    gyro_z: float
    mag_x: float
    mag_y: float
    mag_z: float
    timestamp_ms: float

    @property
    def accel(self) -> Tuple[float, float, float]:
        return (self.accel_x, self.accel_y, self.accel_z)

    @property
    def gyro(self) -> Tuple[float, float, float]:
        return (self.gyro_x, self.gyro_y, self.gyro_z)

    @property
    def mag(self) -> Tuple[float, float, float]:
        return (self.mag_x, self.mag_y, self.mag_z)

    def orientation(self) -> Tuple[float, float]:
        """Pitch and roll in degrees, derived from the accelerometer only."""
        ax, ay, az = self.accel
        pitch = math.atan2(-ax, math.sqrt(ay * ay + az * az))
        roll = math.atan2(ay, az)
        return (math.degrees(pitch), math.degrees(roll))

    def to_csv_row(self) -> str:
        axes = (
            self.accel_x, self.accel_y, self.accel_z,
            self.gyro_x, self.gyro_y, self.gyro_z,
            self.mag_x, self.mag_y, self.mag_z,
        )
        return ",".join([f"{self.timestamp_ms:g}"] + [f"{v:.2f}" for v in axes])

    def as_dict(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self)}


def is_telemetry(data: bytes) -> bool:
    """Length is the only discriminator between telemetry and status datagrams."""
    return len(data) == TELEMETRY_FRAME_SIZE


def encode_frame(frame: TelemetryFrame) -> bytes:
    return _FRAME.pack(*astuple(frame))


def decode_frame(data: bytes) -> TelemetryFrame:
    """
    Reinterpret exactly 40 bytes as a TelemetryFrame.

    Values are not range-checked: NaN/inf come through unchanged.
    """
    if len(data) != TELEMETRY_FRAME_SIZE:
        raise TelemetryDecodeError(len(data), TELEMETRY_FRAME_SIZE)
    return TelemetryFrame(*_FRAME.unpack(bytes(data)))
