"""Tests for the sample filter and window accumulator."""

import math

import pytest

from stress_monitor.errors import AccumulatorNotAccepting, DegenerateWindow, RejectedSample, StressMonitorError
from stress_monitor.sensing.filter import SampleFilter
from stress_monitor.sensing.window import WindowAccumulator, WindowState


class TestSampleFilter:
    @pytest.mark.parametrize("raw", [40, 180, 39.9, 500, 0, -70, 180.0001])
    def test_rejects_out_of_range(self, raw):
        assert SampleFilter().accept(raw) is None

    @pytest.mark.parametrize("raw", [70, 40.0001, 179.999, 120.5])
    def test_accepts_plausible(self, raw):
        assert SampleFilter().accept(raw) == float(raw)

    def test_rejects_non_finite_and_garbage(self):
        f = SampleFilter()
        assert f.accept(math.nan) is None
        assert f.accept(math.inf) is None
        assert f.accept("not a number") is None
        assert f.accept(None) is None

    @pytest.mark.parametrize("raw", ["70", b"70", True])
    def test_rejects_non_numeric_types(self, raw):
        assert SampleFilter().accept(raw) is None

    def test_accepts_numpy_scalars(self):
        import numpy as np

        assert SampleFilter().accept(np.float32(72.5)) == 72.5

    def test_custom_bounds(self):
        f = SampleFilter(bpm_min=50, bpm_max=100)
        assert f.accept(45) is None
        assert f(75) == 75.0

    def test_inverted_bounds_raise(self):
        with pytest.raises(ValueError):
            SampleFilter(bpm_min=180, bpm_max=40)


class TestWindowAccumulator:
    def test_completes_exactly_once(self):
        acc = WindowAccumulator(size=30)
        finished = [acc.push(float(60 + i)) for i in range(30)]
        assert finished[:29] == [None] * 29
        assert finished[29] == tuple(float(60 + i) for i in range(30))
        assert acc.state is WindowState.COMPLETE
        assert acc.is_complete

    def test_push_after_complete_raises(self):
        acc = WindowAccumulator(size=3)
        for v in (70.0, 71.0, 72.0):
            acc.push(v)
        with pytest.raises(AccumulatorNotAccepting):
            acc.push(73.0)
        assert acc.window == (70.0, 71.0, 72.0)

    def test_reset_from_complete(self):
        acc = WindowAccumulator(size=2)
        acc.push(70.0)
        acc.push(80.0)
        acc.reset()
        assert acc.size == 0
        assert acc.state is WindowState.COLLECTING
        assert acc.push(90.0) is None

    def test_reset_is_idempotent(self):
        acc = WindowAccumulator(size=5)
        acc.push(70.0)
        acc.reset()
        acc.reset()
        assert len(acc) == 0
        assert acc.state is WindowState.COLLECTING

    def test_preserves_arrival_order(self):
        acc = WindowAccumulator(size=4)
        for v in (90.0, 60.0, 120.0, 75.0):
            window = acc.push(v)
        assert window == (90.0, 60.0, 120.0, 75.0)

    @pytest.mark.parametrize("size", [0, 1])
    def test_degenerate_size_rejected(self, size):
        with pytest.raises(DegenerateWindow):
            WindowAccumulator(size=size)


def test_rejected_sample_error_carries_value():
    err = RejectedSample(500.0)
    assert isinstance(err, StressMonitorError)
    assert err.value == 500.0
    assert "500.0" in str(err)
