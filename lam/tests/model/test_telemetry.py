from __future__ import annotations

import math
import struct

import pytest

from lam.model.telemetry import (
    TELEMETRY_FRAME_SIZE,
    TelemetryFrame,
    decode_frame,
    encode_frame,
    is_telemetry,
)
from lam.protocol.errors import TelemetryDecodeError


def _frame(**kw) -> TelemetryFrame:
    base = dict(
        accel_x=0.5, accel_y=-1.25, accel_z=9.75,
        gyro_x=0.0, gyro_y=0.125, gyro_z=-0.5,
        mag_x=0.0, mag_y=0.0, mag_z=0.0,
        timestamp_ms=1234.0,
    )
    base.update(kw)
    return TelemetryFrame(**base)


def test_frame_size_is_40():
    assert TELEMETRY_FRAME_SIZE == 40
    assert len(encode_frame(_frame())) == 40


def test_wire_layout_is_little_endian_in_field_order():
    raw = encode_frame(_frame())
    values = struct.unpack("<10f", raw)
    assert values == (0.5, -1.25, 9.75, 0.0, 0.125, -0.5, 0.0, 0.0, 0.0, 1234.0)


def test_decode_reverses_encode_bit_for_bit():
    # start from bytes so every value is already float32-exact
    raw = struct.pack("<10f", 1.1, -2.2, 3.3, 4.4, -5.5, 6.6, 7.7, 8.8, -9.9, 65535.5)
    assert encode_frame(decode_frame(raw)) == raw


def test_nan_and_inf_pass_through():
    raw = struct.pack("<10f", float("nan"), float("inf"), -float("inf"), 0, 0, 0, 0, 0, 0, 1e30)
    f = decode_frame(raw)
    assert math.isnan(f.accel_x)
    assert f.accel_y == float("inf")
    assert f.accel_z == -float("inf")


@pytest.mark.parametrize("n", [0, 1, 39, 41, 80])
def test_decode_rejects_wrong_length(n):
    with pytest.raises(TelemetryDecodeError) as ei:
        decode_frame(b"\x00" * n)
    assert ei.value.length == n
    assert ei.value.expected == 40


def test_is_telemetry_is_length_only():
    assert is_telemetry(b"{" * 40) is True
    assert is_telemetry(b"\x00" * 39) is False


def test_vector_properties():
    f = _frame()
    assert f.accel == (0.5, -1.25, 9.75)
    assert f.gyro == (0.0, 0.125, -0.5)
    assert f.mag == (0.0, 0.0, 0.0)


def test_orientation_flat_board_is_level():
    pitch, roll = _frame(accel_x=0.0, accel_y=0.0, accel_z=9.81).orientation()
    assert pitch == pytest.approx(0.0)
    assert roll == pytest.approx(0.0)


def test_orientation_on_side_is_90_roll():
    _, roll = _frame(accel_x=0.0, accel_y=9.81, accel_z=0.0).orientation()
    assert roll == pytest.approx(90.0)


def test_csv_row_timestamp_first():
    row = _frame().to_csv_row()
    cells = row.split(",")
    assert cells[0] == "1234"
    assert cells[1:4] == ["0.50", "-1.25", "9.75"]
    assert len(cells) == 10
