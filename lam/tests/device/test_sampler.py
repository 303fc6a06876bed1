from __future__ import annotations

from lam.device.sampler import Sampler


def _count(sampler, clock, rate, secs, step=0.001):
    n = 0
    for _ in range(int(secs / step)):
        if sampler.due(rate):
            n += 1
        clock.advance(step)
    return n


def test_rate_sets_frame_count(clock):
    s = Sampler(clock=clock)
    assert _count(s, clock, 50, 1.0) in (50, 51)


def test_non_positive_rate_never_samples(clock):
    s = Sampler(clock=clock)
    assert _count(s, clock, 0, 1.0) == 0
    assert _count(s, clock, -10, 1.0) == 0
    assert Sampler.interval_for(0) is None


def test_rate_change_applies_from_next_decision(clock):
    s = Sampler(clock=clock)
    assert s.due(1) is True       # next due in 1s
    clock.advance(0.5)
    assert s.due(100) is False    # still inside the 1 Hz interval
    clock.advance(0.5)
    assert s.due(100) is True
    clock.advance(0.01)
    assert s.due(100) is True


def test_no_burst_after_stall(clock):
    s = Sampler(clock=clock)
    s.due(10)
    clock.advance(5.0)
    assert s.due(10) is True
    assert s.due(10) is False


def test_reset_makes_next_call_due(clock):
    s = Sampler(clock=clock)
    s.due(1)
    assert s.due(1) is False
    s.reset()
    assert s.due(1) is True
