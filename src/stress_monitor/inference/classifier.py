"""Stress classifier — map a feature matrix to a :class:`StressLabel`.

The trained model is opaque: any callable that takes the ``(1, N, 5)``
float32 matrix and returns one score per class.  The classifier only picks
the winning index and maps it to a label.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, Sequence

import numpy as np
import structlog

from stress_monitor.errors import InferenceError, ModelUnavailable
from stress_monitor.models import StressLabel

logger = structlog.get_logger(__name__)


class ScoringModel(Protocol):
    """Matrix in, per-class score vector out.  May raise."""

    def __call__(self, matrix: np.ndarray) -> Sequence[float]: ...


# Index → label.  Anything not listed (2, 3, ...) collapses to STRESSED.
_INDEX_LABELS = {
    0: StressLabel.RELAXED,
    1: StressLabel.INTERRUPTED,
}


def label_for_index(index: int) -> StressLabel:
    return _INDEX_LABELS.get(index, StressLabel.STRESSED)


def argmax_first(scores: Sequence[float]) -> int:
    """Index of the maximum score; ties go to the lowest index."""
    best = 0
    for i in range(1, len(scores)):
        if scores[i] > scores[best]:
            best = i
    return best


@dataclass(frozen=True, slots=True)
class ClassificationResult:
    """Outcome of :meth:`Classifier.classify_safe`."""

    label: StressLabel
    scores: tuple[float, ...] = ()
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class Classifier:
    """Select the top-scoring class from an injected scoring model.

    Parameters
    ----------
    model : ScoringModel | None
        The scoring function.  ``None`` means "not loaded yet"; it can be
        supplied later through :meth:`set_model` (e.g. once an asynchronous
        load finishes).
    """

    def __init__(self, model: ScoringModel | None = None) -> None:
        self._model = model

    @property
    def ready(self) -> bool:
        return self._model is not None

    def set_model(self, model: ScoringModel | None) -> None:
        self._model = model

    # ── Scoring ───────────────────────────────────────────────

    def scores(self, matrix: np.ndarray) -> tuple[float, ...]:
        """Run the model and validate its output as a flat score vector."""
        model = self._model
        if model is None:
            raise ModelUnavailable("Stress model is not loaded.")

        batch = np.asarray(matrix, dtype=np.float32)
        if batch.ndim == 2:
            batch = batch[np.newaxis, ...]

        try:
            raw = model(batch)
        except Exception as exc:
            raise InferenceError(f"Model evaluation failed: {exc}") from exc

        try:
            out = np.asarray(raw, dtype=np.float64)
        except (TypeError, ValueError) as exc:
            raise InferenceError(f"Model returned non-numeric scores: {exc}") from exc
        while out.ndim > 1 and out.shape[0] == 1:
            out = out[0]
        if out.ndim != 1 or out.size == 0:
            raise InferenceError(f"Model returned scores of shape {np.shape(raw)}; expected a 1-D vector.")
        if not np.all(np.isfinite(out)):
            raise InferenceError("Model returned non-finite scores.")
        return tuple(float(v) for v in out)

    def classify(self, matrix: np.ndarray) -> StressLabel:
        """Return the label of the top-scoring class.

        Raises :class:`ModelUnavailable` or :class:`InferenceError`.
        """
        scores = self.scores(matrix)
        return label_for_index(argmax_first(scores))

    def classify_safe(self, matrix: np.ndarray) -> ClassificationResult:
        """Like :meth:`classify`, but failures become ``INFERENCE_ERROR``."""
        try:
            scores = self.scores(matrix)
        except ModelUnavailable as exc:
            logger.warning("classifier.model_unavailable")
            return ClassificationResult(label=StressLabel.INFERENCE_ERROR, error=str(exc))
        except InferenceError as exc:
            logger.error("classifier.inference_error", error=str(exc))
            return ClassificationResult(label=StressLabel.INFERENCE_ERROR, error=str(exc))

        index = argmax_first(scores)
        label = label_for_index(index)
        logger.info("classifier.classified", label=label.value, index=index, classes=len(scores))
        return ClassificationResult(label=label, scores=scores)
