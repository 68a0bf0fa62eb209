"""Bounded, newest-first history of classified records."""

from __future__ import annotations

import threading
from collections import deque

import structlog

from stress_monitor.models import StressRecord

logger = structlog.get_logger(__name__)

DEFAULT_HISTORY_CAPACITY = 30


class RecordStore:
    """Own the record history; readers only ever get copies.

    New records go to the front.  Once ``capacity`` is exceeded the oldest
    record (the last one) is evicted.  A lock makes append/evict atomic with
    respect to readers rendering the history from another thread.
    """

    def __init__(self, capacity: int = DEFAULT_HISTORY_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self._capacity = capacity
        self._records: deque[StressRecord] = deque(maxlen=capacity)
        self._lock = threading.Lock()

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    # ── Write ─────────────────────────────────────────────────

    def append(self, record: StressRecord) -> StressRecord | None:
        """Insert ``record`` as the newest entry; return the evicted one, if any."""
        with self._lock:
            evicted = self._records[-1] if len(self._records) == self._capacity else None
            self._records.appendleft(record)
        if evicted is not None:
            logger.debug("history.evicted", record_id=evicted.id)
        return evicted

    def clear(self) -> None:
        with self._lock:
            self._records.clear()

    # ── Read ──────────────────────────────────────────────────

    def all(self) -> tuple[StressRecord, ...]:
        """Snapshot of the history, newest first."""
        with self._lock:
            return tuple(self._records)

    def latest(self) -> StressRecord | None:
        with self._lock:
            return self._records[0] if self._records else None

    def get(self, index: int) -> StressRecord | None:
        """Record at ``index`` (0 = newest), or ``None`` if out of range."""
        with self._lock:
            if 0 <= index < len(self._records):
                return self._records[index]
            return None

    def get_by_id(self, record_id: int) -> StressRecord | None:
        with self._lock:
            for record in self._records:
                if record.id == record_id:
                    return record
            return None
