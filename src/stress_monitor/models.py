"""Shared Pydantic models used across the stress monitor."""

from __future__ import annotations

import threading
import time
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# ── Enums ─────────────────────────────────────────────────────


class StressLabel(str, Enum):
    """Physiological state assigned to a completed window.

    ``INFERENCE_ERROR`` is the sentinel reported when the model is missing or
    fails; it is never stored in the history.
    """

    RELAXED = "relaxed"
    INTERRUPTED = "interrupted"
    STRESSED = "stressed"
    INFERENCE_ERROR = "inference_error"

    @property
    def display(self) -> str:
        return _LABEL_DISPLAY[self]

    @property
    def color(self) -> str:
        return _LABEL_COLOR[self]

    @property
    def is_error(self) -> bool:
        return self is StressLabel.INFERENCE_ERROR


_LABEL_DISPLAY = {
    StressLabel.RELAXED: "Relaxed ✅",
    StressLabel.INTERRUPTED: "Interrupted ⚠️",
    StressLabel.STRESSED: "Stressed 🔥",
    StressLabel.INFERENCE_ERROR: "Inference Error",
}

_LABEL_COLOR = {
    StressLabel.RELAXED: "#1B5E20",
    StressLabel.INTERRUPTED: "#FBC02D",
    StressLabel.STRESSED: "#B71C1C",
    StressLabel.INFERENCE_ERROR: "#000000",
}


class PipelinePhase(str, Enum):
    """Where the pipeline is in its collect → classify → reset cycle."""

    IDLE = "idle"  # nothing received since start/reset
    COLLECTING = "collecting"
    COMPLETE = "complete"


# ── Record identifiers ────────────────────────────────────────

_id_lock = threading.Lock()
_last_id = 0


def next_record_id() -> int:
    """Millisecond timestamp, bumped when needed so ids strictly increase."""
    global _last_id
    with _id_lock:
        now_ms = int(time.time() * 1000)
        _last_id = max(now_ms, _last_id + 1)
        return _last_id


# ── Data transfer objects ─────────────────────────────────────


class FeatureVector(BaseModel):
    """HRV features of one completed window, raw and standardised."""

    model_config = ConfigDict(frozen=True)

    avg_hr: float
    mean_rr: float
    sdrr: float
    rmssd: float
    pnn50: float
    normalized: tuple[float, float, float, float, float]

    def raw(self) -> tuple[float, float, float, float, float]:
        return (self.avg_hr, self.mean_rr, self.sdrr, self.rmssd, self.pnn50)


class StressRecord(BaseModel):
    """One classified window, as kept in the on-device history."""

    model_config = ConfigDict(frozen=True)

    id: int = Field(default_factory=next_record_id)
    created_at: datetime = Field(default_factory=datetime.now)
    label: StressLabel
    avg_bpm: int
    raw_data: tuple[float, ...]

    @property
    def color(self) -> str:
        return self.label.color

    @property
    def time(self) -> str:
        """Wall-clock time of creation, as shown in history lists."""
        return self.created_at.strftime("%H:%M:%S")

    def to_sync_payload(self) -> dict[str, Any]:
        """Serialise to the shape expected by the sync gateway."""
        return {
            "timestamp": int(self.created_at.timestamp() * 1000),
            "label": self.label.display,
            "bpm": self.avg_bpm,
            "raw_data": list(self.raw_data),
        }


class SyncedReading(BaseModel):
    """A record as stored by a :class:`SyncGateway`, keyed by generated id."""

    id: str
    timestamp: int
    label: str
    bpm: int
    raw_data: list[float] = Field(default_factory=list)


class PipelineSnapshot(BaseModel):
    """Immutable view of the live pipeline state for presentation layers."""

    model_config = ConfigDict(frozen=True, protected_namespaces=())

    phase: PipelinePhase = PipelinePhase.IDLE
    bpm: float = 0.0
    count: int = 0
    window_size: int = 30
    label: StressLabel | None = None
    status_text: str = "Ready"
    model_status: str = "Initializing..."
    model_loaded: bool = False
    last_record_id: int | None = None
    error: str | None = None

    @property
    def color(self) -> str:
        """Background color: the label's color once complete, black otherwise."""
        if self.label is None:
            return "#000000"
        return self.label.color
