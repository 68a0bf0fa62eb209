"""Async sampling pipeline: sensor events → window → features → label → record."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable

import structlog

from stress_monitor.inference.classifier import ClassificationResult, Classifier
from stress_monitor.inference.features import FeatureExtractor
from stress_monitor.inference.model import ModelHandle
from stress_monitor.models import PipelinePhase, PipelineSnapshot, StressRecord
from stress_monitor.sensing.filter import SampleFilter
from stress_monitor.sensing.window import WindowAccumulator
from stress_monitor.storage.history import RecordStore
from stress_monitor.storage.sync import SyncGateway

logger = structlog.get_logger(__name__)

SnapshotCallback = Callable[[PipelineSnapshot], None]


class StepOutcome(str, Enum):
    """Why a sample did or did not advance the window."""

    COLLECTED = "collected"
    COMPLETED = "completed"
    FILTERED = "filtered"
    NOT_ACCEPTING = "not_accepting"


@dataclass(frozen=True, slots=True)
class StepResult:
    """What a single :meth:`StressPipeline.process` call did."""

    outcome: StepOutcome
    snapshot: PipelineSnapshot
    result: ClassificationResult | None = None
    record: StressRecord | None = None

    @property
    def accepted(self) -> bool:
        return self.outcome in (StepOutcome.COLLECTED, StepOutcome.COMPLETED)


class StressPipeline:
    """Single logical pipeline per device.

    Raw samples are published onto an :class:`asyncio.Queue` and consumed one
    at a time, so the window sees them in delivery order without any locking.
    When the window fills, features are extracted and classified inline; a
    successful classification becomes a :class:`StressRecord` that is added
    to the history and handed to the sync gateway.  The pipeline then ignores
    samples until :meth:`reset`.

    Every state change produces a new immutable :class:`PipelineSnapshot`,
    pushed to subscribers and available via :attr:`snapshot`.
    """

    def __init__(
        self,
        classifier: Classifier | None = None,
        *,
        sample_filter: SampleFilter | None = None,
        accumulator: WindowAccumulator | None = None,
        extractor: FeatureExtractor | None = None,
        history: RecordStore | None = None,
        gateway: SyncGateway | None = None,
        model_handle: ModelHandle | None = None,
        maxsize: int = 10_000,
    ) -> None:
        self.classifier = classifier or Classifier()
        self.sample_filter = sample_filter or SampleFilter()
        self.accumulator = accumulator or WindowAccumulator()
        self.extractor = extractor or FeatureExtractor()
        self.history = history or RecordStore()
        self.gateway = gateway
        self.model_handle = model_handle

        self._queue: asyncio.Queue[float] = asyncio.Queue(maxsize=maxsize)
        self._subscribers: list[SnapshotCallback] = []
        self._running = False
        self._model_task: asyncio.Task | None = None
        self._processed_total = 0
        self._snapshot = PipelineSnapshot(
            window_size=self.accumulator.capacity,
            model_status=self._model_status(),
            model_loaded=self.classifier.ready,
        )

    # ── Observers ─────────────────────────────────────────────

    def subscribe(self, fn: SnapshotCallback) -> Callable[[], None]:
        """Register a snapshot callback; return a function that unsubscribes."""
        self._subscribers.append(fn)

        def _unsubscribe() -> None:
            if fn in self._subscribers:
                self._subscribers.remove(fn)

        return _unsubscribe

    @property
    def snapshot(self) -> PipelineSnapshot:
        return self._snapshot

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    @property
    def running(self) -> bool:
        return self._running

    def _emit(self, snapshot: PipelineSnapshot) -> PipelineSnapshot:
        self._snapshot = snapshot
        for fn in list(self._subscribers):
            try:
                fn(snapshot)
            except Exception as exc:
                logger.error(
                    "pipeline.subscriber_error",
                    subscriber=getattr(fn, "__qualname__", repr(fn)),
                    error=str(exc),
                )
        return snapshot

    # ── Model ─────────────────────────────────────────────────

    def _model_status(self) -> str:
        if self.model_handle is not None:
            return self.model_handle.status
        return "Model Initialized Successfully" if self.classifier.ready else "No model configured"

    async def load_model(self) -> bool:
        """Load the model through the handle and install it in the classifier."""
        if self.model_handle is None:
            return self.classifier.ready
        model = await self.model_handle.load()
        if model is not None:
            self.classifier.set_model(model)
        self._emit(
            self._snapshot.model_copy(
                update={"model_status": self._model_status(), "model_loaded": self.classifier.ready}
            )
        )
        return model is not None

    # ── Synchronous step ──────────────────────────────────────

    def process(self, raw: float) -> StepResult:
        """Run one raw sample through filter → window → (features → label)."""
        sample = self.sample_filter.accept(raw)
        if sample is None:
            return StepResult(StepOutcome.FILTERED, self._snapshot)

        if self.accumulator.is_complete:
            logger.warning("pipeline.sample_ignored", reason="window_complete", value=sample)
            return StepResult(StepOutcome.NOT_ACCEPTING, self._snapshot)

        window = self.accumulator.push(sample)
        size = self.accumulator.size
        capacity = self.accumulator.capacity

        if window is None:
            snapshot = self._emit(
                self._snapshot.model_copy(
                    update={
                        "phase": PipelinePhase.COLLECTING,
                        "bpm": sample,
                        "count": size,
                        "label": None,
                        "status_text": f"Measuring... {size}/{capacity}",
                        "error": None,
                    }
                )
            )
            return StepResult(StepOutcome.COLLECTED, snapshot)

        return self._complete(window, sample)

    def _complete(self, window: tuple[float, ...], sample: float) -> StepResult:
        features, matrix = self.extractor.to_matrix(window)
        result = self.classifier.classify_safe(matrix)

        record: StressRecord | None = None
        if result.ok:
            record = StressRecord(
                label=result.label,
                avg_bpm=int(features.avg_hr),
                raw_data=window,
            )
            self.history.append(record)

        logger.info(
            "pipeline.window_complete",
            label=result.label.value,
            avg_bpm=int(features.avg_hr),
            record_id=record.id if record else None,
            error=result.error,
        )

        snapshot = self._emit(
            self._snapshot.model_copy(
                update={
                    "phase": PipelinePhase.COMPLETE,
                    "bpm": sample,
                    "count": len(window),
                    "label": result.label,
                    "status_text": result.label.display,
                    "model_status": self._model_status(),
                    "model_loaded": self.classifier.ready,
                    "last_record_id": record.id if record else self._snapshot.last_record_id,
                    "error": result.error,
                }
            )
        )
        return StepResult(StepOutcome.COMPLETED, snapshot, result=result, record=record)

    def reset(self) -> PipelineSnapshot:
        """Discard the in-progress window and start collecting again."""
        self.accumulator.reset()
        logger.info("pipeline.reset")
        return self._emit(
            self._snapshot.model_copy(
                update={
                    "phase": PipelinePhase.IDLE,
                    "bpm": 0.0,
                    "count": 0,
                    "label": None,
                    "status_text": "Waiting for pulse...",
                    "error": None,
                }
            )
        )

    # ── Async step (with sync) ────────────────────────────────

    async def handle(self, raw: float) -> StepResult:
        """Process a sample and forward any new record to the sync gateway."""
        step = self.process(raw)
        if step.record is not None:
            await self._sync(step.record)
        return step

    async def _sync(self, record: StressRecord) -> str | None:
        if self.gateway is None:
            return None
        try:
            remote_id = await self.gateway.append(record.to_sync_payload())
        except Exception as exc:
            logger.error("pipeline.sync_failed", gateway=self.gateway.name, record_id=record.id, error=str(exc))
            return None
        logger.debug("pipeline.synced", gateway=self.gateway.name, record_id=record.id, remote_id=remote_id)
        return remote_id

    # ── Producer side ─────────────────────────────────────────

    async def publish(self, raw: float) -> None:
        """Enqueue a raw sensor value for in-order processing."""
        await self._queue.put(raw)

    async def publish_batch(self, values: list[float]) -> None:
        for v in values:
            await self._queue.put(v)

    async def join(self) -> None:
        """Wait until every published sample has been processed."""
        await self._queue.join()

    # ── Consumer loop ─────────────────────────────────────────

    async def start(self) -> None:
        """Start the consumer loop (run as a background task).

        If a model handle is configured and not yet loaded, its load is
        started concurrently; samples are processed while it loads.
        """
        self._running = True
        logger.info("pipeline.started", subscribers=len(self._subscribers))

        if self.model_handle is not None and not self.classifier.ready:
            self._model_task = asyncio.create_task(self.load_model())

        last_stats_time = time.monotonic()

        while self._running:
            try:
                raw = await asyncio.wait_for(self._queue.get(), timeout=1.0)
            except asyncio.TimeoutError:
                continue

            try:
                await self.handle(raw)
            except Exception as exc:
                logger.error("pipeline.step_error", value=raw, error=str(exc))
            finally:
                self._processed_total += 1
                self._queue.task_done()

            now = time.monotonic()
            if now - last_stats_time >= 60:
                logger.info(
                    "pipeline.stats",
                    processed_total=self._processed_total,
                    queue_pending=self._queue.qsize(),
                )
                last_stats_time = now

    async def stop(self) -> None:
        """Gracefully stop the consumer loop."""
        self._running = False
        if self._model_task is not None and not self._model_task.done():
            self._model_task.cancel()
        logger.info("pipeline.stopped", processed_total=self._processed_total)
