"""Sync gateways — durable / remote storage for finalised records.

Architecture
~~~~~~~~~~~~
* **SyncGateway** — abstract append / delete / clear / list store.
* **InMemorySyncGateway** — process-local store (tests, offline runs).
* **SqlSyncGateway** — SQLAlchemy-backed store (the ``readings`` table).

The pipeline only produces the payload
``{timestamp, label, bpm, raw_data}``; transport and retries belong to the
concrete gateway.
"""

from __future__ import annotations

import json
import uuid
from abc import ABC, abstractmethod
from typing import Any

import structlog
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from stress_monitor.models import SyncedReading
from stress_monitor.storage.database import ReadingRow, get_session_factory

logger = structlog.get_logger(__name__)


def _new_id() -> str:
    return str(uuid.uuid4())


# ── Abstract gateway ──────────────────────────────────────────


class SyncGateway(ABC):
    """Contract for record sinks.

    Subclasses implement the four coroutines below.  ``name`` is used for
    logging only.
    """

    name: str = "base"

    @abstractmethod
    async def append(self, payload: dict[str, Any]) -> str:
        """Store a serialised record; return its generated identifier."""

    @abstractmethod
    async def delete(self, record_id: str) -> bool:
        """Remove one record.  Return ``False`` if it did not exist."""

    @abstractmethod
    async def clear(self) -> int:
        """Remove every record.  Return how many were removed."""

    @abstractmethod
    async def list_all(self) -> list[SyncedReading]:
        """All stored records, newest timestamp first."""


# ── Concrete gateways ────────────────────────────────────────


class InMemorySyncGateway(SyncGateway):
    """Keep synced records in a dict keyed by generated id."""

    name = "memory"

    def __init__(self) -> None:
        self._items: dict[str, SyncedReading] = {}

    async def append(self, payload: dict[str, Any]) -> str:
        record_id = _new_id()
        self._items[record_id] = SyncedReading(id=record_id, **payload)
        return record_id

    async def delete(self, record_id: str) -> bool:
        return self._items.pop(record_id, None) is not None

    async def clear(self) -> int:
        count = len(self._items)
        self._items.clear()
        return count

    async def list_all(self) -> list[SyncedReading]:
        return sorted(self._items.values(), key=lambda r: r.timestamp, reverse=True)


class SqlSyncGateway(SyncGateway):
    """Persist synced records through SQLAlchemy."""

    name = "sql"

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None) -> None:
        self._session_factory = session_factory

    def _factory(self) -> async_sessionmaker[AsyncSession]:
        return self._session_factory or get_session_factory()

    async def append(self, payload: dict[str, Any]) -> str:
        row = ReadingRow(
            id=_new_id(),
            timestamp=int(payload["timestamp"]),
            label=str(payload["label"]),
            bpm=int(payload["bpm"]),
            raw_data_json=json.dumps(list(payload.get("raw_data", []))),
        )
        async with self._factory()() as session:
            session.add(row)
            await session.commit()
        return row.id

    async def delete(self, record_id: str) -> bool:
        async with self._factory()() as session:
            result = await session.execute(delete(ReadingRow).where(ReadingRow.id == record_id))
            await session.commit()
        return (result.rowcount or 0) > 0

    async def clear(self) -> int:
        async with self._factory()() as session:
            result = await session.execute(delete(ReadingRow))
            await session.commit()
        return result.rowcount or 0

    async def list_all(self) -> list[SyncedReading]:
        async with self._factory()() as session:
            stmt = select(ReadingRow).order_by(ReadingRow.timestamp.desc())
            rows = (await session.execute(stmt)).scalars().all()
        return [
            SyncedReading(
                id=r.id,
                timestamp=r.timestamp,
                label=r.label,
                bpm=r.bpm,
                raw_data=json.loads(r.raw_data_json),
            )
            for r in rows
        ]


def create_gateway(enabled: bool) -> SyncGateway | None:
    """Factory used by the server: SQL gateway when sync is enabled."""
    if not enabled:
        logger.info("sync.disabled")
        return None
    return SqlSyncGateway()
