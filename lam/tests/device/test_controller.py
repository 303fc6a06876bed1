from __future__ import annotations

import json

import pytest

from lam.device.state import Credentials, DeviceMode, LedPattern
from lam.model.telemetry import TELEMETRY_FRAME_SIZE, decode_frame

from .conftest import DEVICE_IP, DEVICE_MAC, HOST


def _drain(ep):
    out = []
    while True:
        dg = ep.receive(timeout=0)
        if dg is None:
            return out
        out.append(dg.payload)


def _normal_device(make_device, store, **kw):
    store.save(Credentials("Home", "secret123"))
    dev = make_device(**kw)
    dev.boot()
    assert dev.state.mode is DeviceMode.NORMAL
    return dev


def _send(host, dev, text: str) -> None:
    host.send(text.encode("ascii"), (DEVICE_IP, dev.state.port))
    dev.tick()


def test_boot_without_credentials_enters_setup(make_device, wifi, advertiser):
    dev = make_device()
    dev.boot()

    assert dev.state.mode is DeviceMode.SETUP
    assert dev.state.configured is False
    assert wifi.access_point == "LAM-0003"
    assert wifi.attempts == []
    assert advertiser.active is None
    dev.tick()
    assert dev.state.led is LedPattern.FAST_BLINK


def test_boot_with_credentials_joins_network(make_device, store, wifi, advertiser, net):
    dev = _normal_device(make_device, store)

    assert wifi.attempts == [("Home", "secret123")]
    assert dev.state.configured is True
    assert dev.state.local_ip == DEVICE_IP
    assert dev.state.port == 5003
    assert net.is_bound((DEVICE_IP, 5003))
    assert advertiser.active == ("LAM-0003", DEVICE_IP, 5003)
    assert dev.state.advertising is True
    assert wifi.access_point is None
    dev.tick()
    assert dev.state.led is LedPattern.SLOW_BLINK


def test_failed_association_clears_credentials(make_device, store, wifi):
    store.save(Credentials("Home", "wrong-password"))
    dev = make_device()
    dev.boot()

    assert dev.state.mode is DeviceMode.SETUP
    assert store.load() is None
    assert wifi.access_point == "LAM-0003"


def test_bind_failure_falls_back_to_setup_keeping_credentials(make_device, store, net):
    blocker = net.endpoint((DEVICE_IP, 5003))
    blocker.open()

    store.save(Credentials("Home", "secret123"))
    dev = make_device()
    dev.boot()

    assert dev.state.mode is DeviceMode.SETUP
    assert store.load() == Credentials("Home", "secret123")


def test_status_reply_goes_to_sender(make_device, store, host):
    dev = _normal_device(make_device, store)
    _send(host, dev, "getStatus")

    replies = _drain(host)
    assert len(replies) == 1
    status = json.loads(replies[0])
    assert status["mode"] == "normal"
    assert status["ip"] == DEVICE_IP
    assert status["port"] == 5003
    assert status["remoteIP"] == HOST[0]
    assert status["mac"] == DEVICE_MAC
    assert status["deviceType"] == "LAM"
    assert status["connected"] is False
    assert status["lastConnection"] == -1
    assert status["samplingRate"] == 50


def test_one_command_per_tick(make_device, store, host):
    dev = _normal_device(make_device, store)
    host.send(b"startStreaming", (DEVICE_IP, 5003))
    host.send(b"setSamplingRate:10", (DEVICE_IP, 5003))

    dev.tick()
    assert dev.state.streaming is True
    assert dev.state.sampling_rate == 50
    dev.tick()
    assert dev.state.sampling_rate == 10


def test_streaming_sends_frames_at_rate(make_device, store, host, clock, sensor):
    dev = _normal_device(make_device, store)
    _send(host, dev, "setSamplingRate:4")
    _send(host, dev, "startStreaming")
    _drain(host)

    for _ in range(16):
        clock.advance(0.0625)
        dev.tick()

    frames = [p for p in _drain(host) if len(p) == TELEMETRY_FRAME_SIZE]
    assert len(frames) == 4
    f = decode_frame(frames[0])
    assert f.accel == pytest.approx(sensor.reading.accel)
    assert f.gyro == pytest.approx(sensor.reading.gyro)
    assert f.timestamp_ms > 0


def test_zero_rate_streams_nothing_until_positive(make_device, store, host, clock, sensor):
    dev = _normal_device(make_device, store)
    _send(host, dev, "setSamplingRate:0")
    _send(host, dev, "startStreaming")

    for _ in range(200):
        clock.advance(0.01)
        dev.tick()
    assert dev.frames_sent == 0
    assert sensor.reads == 0

    _send(host, dev, "setSamplingRate:10")
    for _ in range(50):
        clock.advance(0.01)
        dev.tick()
    assert dev.frames_sent > 0


def test_peer_timeout_drops_connection_and_readvertises(make_device, store, host, clock, advertiser):
    dev = _normal_device(make_device, store)
    _send(host, dev, "ping")
    _send(host, dev, "ping")
    assert dev.state.connected is True
    assert advertiser.active is None
    dev.tick()
    assert dev.state.led is LedPattern.SOLID

    clock.advance(10.0)
    dev.tick()
    assert dev.state.connected is True

    clock.advance(0.5)
    dev.tick()
    assert dev.state.connected is False
    assert advertiser.active == ("LAM-0003", DEVICE_IP, 5003)


def test_status_after_silence_reports_disconnected(make_device, store, host, clock, advertiser):
    dev = _normal_device(make_device, store)
    _send(host, dev, "ping")
    _send(host, dev, "ping")
    assert dev.state.connected is True

    clock.advance(10.5)
    _send(host, dev, "getStatus")

    replies = _drain(host)
    assert len(replies) == 1
    status = json.loads(replies[0])
    assert status["connected"] is False
    assert status["lastConnection"] == 10500
    assert advertiser.active == ("LAM-0003", DEVICE_IP, 5003)


def test_ping_on_expiry_tick_reconnects(make_device, store, host, clock):
    dev = _normal_device(make_device, store)
    _send(host, dev, "ping")
    _send(host, dev, "ping")

    clock.advance(10.5)
    _send(host, dev, "ping")
    assert dev.state.connected is True
    assert dev.status_snapshot().last_connection_ms == 0


def test_long_press_resets_from_normal(make_device, store, button, clock, advertiser, wifi, net):
    dev = _normal_device(make_device, store)

    button.press()
    dev.tick()
    clock.advance(5.0)
    dev.tick()

    assert dev.state.mode is DeviceMode.SETUP
    assert dev.state.configured is False
    assert store.load() is None
    assert advertiser.active is None
    assert wifi.access_point == "LAM-0003"
    assert not net.is_bound((DEVICE_IP, 5003))


def test_short_press_does_nothing(make_device, store, button, clock):
    dev = _normal_device(make_device, store)
    button.press()
    dev.tick()
    clock.advance(2.0)
    dev.tick()
    button.release()
    dev.tick()
    assert dev.state.mode is DeviceMode.NORMAL


def test_provisioning_then_reconnect_on_next_tick(make_device, store, wifi):
    dev = make_device()
    dev.boot()
    assert dev.state.mode is DeviceMode.SETUP

    result = dev.provisioning_handler.submit({"ssid": "Home", "password": "secret123"})
    assert result.ok
    assert store.load() == Credentials("Home", "secret123")

    dev.tick()
    assert wifi.attempts[-1] == ("Home", "secret123")
    assert dev.state.mode is DeviceMode.NORMAL


def test_commands_ignored_in_setup(make_device, net):
    dev = make_device()
    dev.boot()
    assert dev.transport is None
    dev.tick()
    assert dev.state.streaming is False


def test_send_failure_does_not_crash_loop(make_device, store, host, net, clock):
    dev = _normal_device(make_device, store)
    _send(host, dev, "startStreaming")

    class Broken:
        def send(self, data, address=None):
            from lam.transport.errors import TransportIOError
            raise TransportIOError("no route")

        def receive(self, timeout=None):
            return None

        def close(self):
            pass

    sent = dev.frames_sent
    dev._transport = Broken()
    for _ in range(5):
        clock.advance(0.1)
        dev.tick()
    assert dev.frames_sent == sent


def test_shutdown_releases_everything(make_device, store, net, advertiser):
    dev = _normal_device(make_device, store)
    dev.shutdown()
    assert not net.is_bound((DEVICE_IP, 5003))
    assert advertiser.active is None
    assert dev.state.led is LedPattern.OFF

