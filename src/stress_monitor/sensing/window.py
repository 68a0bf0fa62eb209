"""Fixed-length window of accepted samples with a one-shot completion."""

from __future__ import annotations

from enum import Enum

import structlog

from stress_monitor.errors import AccumulatorNotAccepting, DegenerateWindow

logger = structlog.get_logger(__name__)

DEFAULT_WINDOW_SIZE = 30


class WindowState(str, Enum):
    COLLECTING = "collecting"
    COMPLETE = "complete"


class WindowAccumulator:
    """Collect exactly ``size`` samples in arrival order.

    The accumulator has two states.  While ``COLLECTING`` every :meth:`push`
    appends; the push that fills the window switches to ``COMPLETE`` and
    returns the finished window (once).  A complete window is frozen: further
    pushes raise :class:`AccumulatorNotAccepting` until :meth:`reset`.

    Not thread-safe; callers serialise pushes (see
    :class:`~stress_monitor.streaming.pipeline.StressPipeline`).
    """

    def __init__(self, size: int = DEFAULT_WINDOW_SIZE) -> None:
        if size < 2:
            raise DegenerateWindow(f"Window size must be at least 2, got {size}")
        self._size = size
        self._samples: list[float] = []

    # ── State ─────────────────────────────────────────────────

    @property
    def capacity(self) -> int:
        return self._size

    @property
    def size(self) -> int:
        return len(self._samples)

    def __len__(self) -> int:
        return len(self._samples)

    @property
    def state(self) -> WindowState:
        if len(self._samples) == self._size:
            return WindowState.COMPLETE
        return WindowState.COLLECTING

    @property
    def is_complete(self) -> bool:
        return self.state is WindowState.COMPLETE

    @property
    def window(self) -> tuple[float, ...]:
        """Copy of the samples collected so far."""
        return tuple(self._samples)

    # ── Transitions ───────────────────────────────────────────

    def push(self, sample: float) -> tuple[float, ...] | None:
        """Append a sample; return the finished window on completion."""
        if self.is_complete:
            raise AccumulatorNotAccepting(
                f"Window already holds {self._size} samples; call reset() first."
            )
        self._samples.append(sample)
        if len(self._samples) == self._size:
            logger.debug("window.complete", size=self._size)
            return tuple(self._samples)
        return None

    def reset(self) -> None:
        """Discard all samples and go back to collecting."""
        self._samples.clear()
