"""Exception taxonomy for the sampling → classification pipeline."""

from __future__ import annotations


class StressMonitorError(Exception):
    """Base class for every error raised by the stress monitor."""


class RejectedSample(StressMonitorError):
    """A raw sensor value fell outside the plausible BPM range.

    The sample filter drops such values silently; the class exists so callers
    that want to surface rejections explicitly have a type to raise.
    """

    def __init__(self, value: float) -> None:
        super().__init__(f"Rejected implausible heart-rate sample: {value!r}")
        self.value = value


class AccumulatorNotAccepting(StressMonitorError):
    """``push`` was called on a complete window without a ``reset`` first."""


class DegenerateWindow(StressMonitorError):
    """A window too short for successive-difference statistics (< 2 samples)."""


class ModelUnavailable(StressMonitorError):
    """The scoring model is not loaded (yet, or its load failed)."""


class InferenceError(StressMonitorError):
    """The scoring model raised or returned malformed scores."""
