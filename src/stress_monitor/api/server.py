"""FastAPI application — live state, history, and synced-record endpoints.

This module wires together all infrastructure:
- Database + SQL sync gateway
- Model loading (asynchronous, races sample delivery)
- Streaming pipeline consumer loop
- Read-only state / history views for presentation layers
- Dashboard operations on synced records (list, delete, clear)
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, HTTPException

from stress_monitor.api.schemas import RecordResponse, SampleBatchRequest, SampleRequest
from stress_monitor.config import get_settings
from stress_monitor.inference.classifier import Classifier
from stress_monitor.inference.model import ModelHandle
from stress_monitor.models import StressRecord
from stress_monitor.sensing.filter import SampleFilter
from stress_monitor.sensing.window import WindowAccumulator
from stress_monitor.storage.database import init_db
from stress_monitor.storage.history import RecordStore
from stress_monitor.storage.sync import SyncGateway, create_gateway
from stress_monitor.streaming.pipeline import StressPipeline

logger = structlog.get_logger(__name__)

# ── Shared state (initialised in lifespan) ────────────────────

_pipeline: StressPipeline | None = None
_gateway: SyncGateway | None = None
_pipeline_task: asyncio.Task | None = None


def build_pipeline(gateway: SyncGateway | None = None) -> StressPipeline:
    """Assemble a pipeline from settings."""
    settings = get_settings()
    handle = ModelHandle.from_reference(settings.model_path) if settings.model_path else None
    return StressPipeline(
        Classifier(),
        sample_filter=SampleFilter(settings.bpm_min, settings.bpm_max),
        accumulator=WindowAccumulator(settings.window_size),
        history=RecordStore(settings.history_capacity),
        gateway=gateway,
        model_handle=handle,
        maxsize=settings.queue_maxsize,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown lifecycle hooks."""
    global _pipeline, _gateway, _pipeline_task

    settings = get_settings()

    # 1. Database / sync
    if settings.sync_enabled:
        await init_db()
        logger.info("server.db_ready")
    _gateway = create_gateway(settings.sync_enabled)

    # 2. Pipeline (starts model load in the background)
    _pipeline = build_pipeline(_gateway)
    _pipeline_task = asyncio.create_task(_pipeline.start())

    logger.info("server.started", port=settings.api_port)

    yield  # ← application runs

    # Shutdown
    if _pipeline:
        await _pipeline.stop()
    if _pipeline_task:
        _pipeline_task.cancel()
    logger.info("server.stopped")


app = FastAPI(
    title="Stress Monitor API",
    description="Heart-rate sampling, HRV feature extraction and stress classification.",
    version="0.1.0",
    lifespan=lifespan,
)


def _require_pipeline() -> StressPipeline:
    if _pipeline is None:
        raise HTTPException(503, "Pipeline not ready.")
    return _pipeline


def _require_gateway() -> SyncGateway:
    if _gateway is None:
        raise HTTPException(503, "Sync is disabled.")
    return _gateway


def _record_response(record: StressRecord) -> RecordResponse:
    return RecordResponse(
        id=record.id,
        time=record.time,
        label=record.label.value,
        display=record.label.display,
        color=record.color,
        avg_bpm=record.avg_bpm,
        raw_data=list(record.raw_data),
    )


# ── Health ────────────────────────────────────────────────────

@app.get("/health", tags=["system"])
async def health():
    return {"status": "ok", "pipeline_pending": _pipeline.pending if _pipeline else 0}


# ── Live state ────────────────────────────────────────────────

@app.get("/state", tags=["pipeline"])
async def get_state():
    """Current pipeline snapshot (phase, BPM, progress, label, model status)."""
    snapshot = _require_pipeline().snapshot
    return {**snapshot.model_dump(mode="json"), "color": snapshot.color}


@app.post("/samples", status_code=202, tags=["pipeline"])
async def post_sample(req: SampleRequest):
    """Queue a single raw BPM reading."""
    await _require_pipeline().publish(req.bpm)
    return {"queued": True}


@app.post("/samples/batch", status_code=202, tags=["pipeline"])
async def post_samples(req: SampleBatchRequest):
    await _require_pipeline().publish_batch(req.values)
    return {"count": len(req.values), "queued": True}


@app.post("/reset", tags=["pipeline"])
async def reset():
    snapshot = _require_pipeline().reset()
    return snapshot.model_dump(mode="json")


# ── History ───────────────────────────────────────────────────

@app.get("/history", response_model=list[RecordResponse], tags=["history"])
async def get_history():
    return [_record_response(r) for r in _require_pipeline().history.all()]


@app.get("/history/{index}", response_model=RecordResponse, tags=["history"])
async def get_history_record(index: int):
    record = _require_pipeline().history.get(index)
    if record is None:
        raise HTTPException(404, "Record not found.")
    return _record_response(record)


# ── Synced readings (dashboard) ───────────────────────────────

@app.get("/readings", tags=["readings"])
async def list_readings():
    readings = await _require_gateway().list_all()
    return [r.model_dump() for r in readings]


@app.delete("/readings/{reading_id}", tags=["readings"])
async def delete_reading(reading_id: str):
    removed = await _require_gateway().delete(reading_id)
    if not removed:
        raise HTTPException(404, "Reading not found.")
    return {"removed": True}


@app.delete("/readings", tags=["readings"])
async def clear_readings():
    count = await _require_gateway().clear()
    return {"removed": count}
