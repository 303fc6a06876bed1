# lam/device/sensor.py
from __future__ import annotations

import math
import time
from dataclasses import dataclass
from typing import Callable, Protocol, Tuple

Vector = Tuple[float, float, float]

GRAVITY_MS2 = 9.80665


@dataclass(frozen=True)
class ImuReading:
    accel: Vector
    gyro: Vector
    mag: Vector = (0.0, 0.0, 0.0)


class ImuSensor(Protocol):
    def read(self) -> ImuReading: ...


class SimulatedImu:
    """
    A board rocking slowly about its X axis.

    Accelerometer in m/s^2, gyro in rad/s. There is no magnetometer on the
    reference board, so mag stays zero.
    """

    def __init__(
        self,
        *,
        amplitude_deg: float = 20.0,
        period_s: float = 4.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        if period_s <= 0:
            raise ValueError("period_s must be > 0")
        self.amplitude = math.radians(amplitude_deg)
        self.period_s = float(period_s)
        self._clock = clock
        self._t0 = clock()

    def read(self) -> ImuReading:
        t = self._clock() - self._t0
        w = 2.0 * math.pi / self.period_s
        roll = self.amplitude * math.sin(w * t)
        roll_rate = self.amplitude * w * math.cos(w * t)

        accel = (0.0, GRAVITY_MS2 * math.sin(roll), GRAVITY_MS2 * math.cos(roll))
        gyro = (roll_rate, 0.0, 0.0)
        return ImuReading(accel=accel, gyro=gyro)
