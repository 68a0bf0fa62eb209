"""HRV feature extraction from a completed heart-rate window.

A window of BPM samples is converted into five time-domain features:

    avgHR   — mean heart rate (bpm)
    meanRR  — mean RR interval (ms), RR = 60000 / BPM
    SDRR    — population standard deviation of RR intervals (ms)
    RMSSD   — root mean square of successive RR differences (ms)
    pNN50   — percentage of successive RR differences above 50 ms

Each feature is standardised with fixed (mean, std) constants calibrated
offline against the training data of the stress model, then the 5-vector is
replicated across every time-step to give the ``(N, 5)`` input the
sequence-shaped model expects.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np
import structlog

from stress_monitor.errors import DegenerateWindow
from stress_monitor.models import FeatureVector

logger = structlog.get_logger(__name__)

# ── Normalisation constants ───────────────────────────────────

FEATURE_NAMES = ("avg_hr", "mean_rr", "sdrr", "rmssd", "pnn50")

FEATURE_MEANS = np.array([73.94182, 846.65010, 109.35253, 14.97750, 0.86600], dtype=np.float64)
FEATURE_STDS = np.array([10.33745, 124.60398, 77.11703, 4.12077, 0.99019], dtype=np.float64)

_MS_PER_MINUTE = 60000.0
_NN50_THRESHOLD_MS = 50.0


# ---------------------------------------------------------------------------
# HRV metrics
# ---------------------------------------------------------------------------


def rr_intervals(hr: Sequence[float]) -> np.ndarray:
    """Convert BPM samples to RR intervals in milliseconds."""
    arr = np.asarray(hr, dtype=np.float64)
    return _MS_PER_MINUTE / arr


def sdrr(rr: np.ndarray) -> float:
    """Population standard deviation of RR intervals (ddof=0)."""
    return float(np.sqrt(np.mean((rr - np.mean(rr)) ** 2)))


def rmssd(rr: np.ndarray) -> float:
    """Root mean square of successive RR differences."""
    diffs = np.abs(np.diff(rr))
    return float(np.sqrt(np.mean(diffs ** 2)))


def pnn50(rr: np.ndarray) -> float:
    """Percentage of successive RR differences strictly greater than 50 ms."""
    diffs = np.abs(np.diff(rr))
    return float(100.0 * np.count_nonzero(diffs > _NN50_THRESHOLD_MS) / len(diffs))


def normalize(values: Sequence[float]) -> np.ndarray:
    """Standardise a raw 5-feature vector: ``z = (v - mean) / std``."""
    return (np.asarray(values, dtype=np.float64) - FEATURE_MEANS) / FEATURE_STDS


# ---------------------------------------------------------------------------
# Extractor
# ---------------------------------------------------------------------------


def extract_features(hr: Sequence[float]) -> FeatureVector:
    """Compute the raw and normalised HRV features of a window.

    Raises :class:`DegenerateWindow` for windows with fewer than two
    samples (no successive differences exist) and ``ValueError`` for
    non-positive BPM values, which have no RR interval.
    """
    if len(hr) < 2:
        raise DegenerateWindow(f"Need at least 2 samples for HRV features, got {len(hr)}")
    hr_arr = np.asarray(hr, dtype=np.float64)
    if np.any(hr_arr <= 0) or not np.all(np.isfinite(hr_arr)):
        raise ValueError("Heart-rate samples must be positive finite numbers")

    rr = rr_intervals(hr_arr)
    avg_hr = float(np.mean(hr_arr))
    mean_rr = float(np.mean(rr))
    raw = (avg_hr, mean_rr, sdrr(rr), rmssd(rr), pnn50(rr))
    z = normalize(raw)

    return FeatureVector(
        avg_hr=raw[0],
        mean_rr=raw[1],
        sdrr=raw[2],
        rmssd=raw[3],
        pnn50=raw[4],
        normalized=tuple(float(v) for v in z),
    )


def feature_matrix(features: FeatureVector, steps: int) -> np.ndarray:
    """Replicate the normalised vector across ``steps`` rows → ``(steps, 5)``.

    Every row is identical: the window is treated as a static input to a
    sequence-shaped classifier.
    """
    if steps < 1:
        raise ValueError(f"steps must be positive, got {steps}")
    row = np.asarray(features.normalized, dtype=np.float32)
    return np.tile(row, (steps, 1))


class FeatureExtractor:
    """Turn a completed window into the model's ``(N, 5)`` input matrix."""

    def extract(self, window: Sequence[float]) -> FeatureVector:
        features = extract_features(window)
        logger.debug(
            "features.extracted",
            samples=len(window),
            **dict(zip(FEATURE_NAMES, features.raw())),
        )
        return features

    def to_matrix(self, window: Sequence[float]) -> tuple[FeatureVector, np.ndarray]:
        """Return the feature vector and its replicated matrix in one call."""
        features = self.extract(window)
        return features, feature_matrix(features, len(window))
