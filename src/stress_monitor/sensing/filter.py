"""Sample filter — drop physiologically implausible heart-rate readings."""

from __future__ import annotations

import math

import structlog

logger = structlog.get_logger(__name__)

DEFAULT_BPM_MIN = 40.0
DEFAULT_BPM_MAX = 180.0


class SampleFilter:
    """Accept raw BPM values strictly inside ``(bpm_min, bpm_max)``.

    Rejection is silent: sensor noise is expected and high-frequency, so
    :meth:`accept` simply returns ``None`` instead of raising.
    """

    def __init__(self, bpm_min: float = DEFAULT_BPM_MIN, bpm_max: float = DEFAULT_BPM_MAX) -> None:
        if bpm_min >= bpm_max:
            raise ValueError(f"bpm_min ({bpm_min}) must be below bpm_max ({bpm_max})")
        self.bpm_min = bpm_min
        self.bpm_max = bpm_max

    def accept(self, raw: float) -> float | None:
        """Return the sample as a float if plausible, otherwise ``None``.

        Only real numbers are samples; text such as ``"70"`` is rejected, as
        are booleans.
        """
        if isinstance(raw, (str, bytes, bool)):
            return None
        try:
            value = float(raw)
        except (TypeError, ValueError):
            return None
        if not math.isfinite(value):
            return None
        if self.bpm_min < value < self.bpm_max:
            return value
        logger.debug("sample_filter.rejected", value=value)
        return None

    def __call__(self, raw: float) -> float | None:
        return self.accept(raw)
