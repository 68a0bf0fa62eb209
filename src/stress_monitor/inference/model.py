"""Model loading — resolve a scoring function and load it off the event loop.

Two model references are understood by :func:`load_model`:

* a path to a JSON file holding a linear model
  (``{"weights": [[w0..w4], ...], "bias": [b, ...]}``, one row per class);
* an import reference ``"package.module:attribute"`` naming any callable
  that satisfies :class:`~stress_monitor.inference.classifier.ScoringModel`
  (e.g. a wrapper around a TorchScript or ONNX runtime).
"""

from __future__ import annotations

import asyncio
import importlib
import json
from pathlib import Path
from typing import Callable

import numpy as np
import structlog

from stress_monitor.errors import ModelUnavailable
from stress_monitor.inference.classifier import ScoringModel

logger = structlog.get_logger(__name__)


class LinearScoringModel:
    """Per-class linear scores over the time-averaged feature matrix."""

    def __init__(self, weights: np.ndarray, bias: np.ndarray | None = None) -> None:
        w = np.asarray(weights, dtype=np.float64)
        if w.ndim != 2 or w.shape[1] != 5:
            raise ValueError(f"weights must have shape (classes, 5), got {w.shape}")
        b = np.zeros(w.shape[0]) if bias is None else np.asarray(bias, dtype=np.float64)
        if b.shape != (w.shape[0],):
            raise ValueError(f"bias must have shape ({w.shape[0]},), got {b.shape}")
        self.weights = w
        self.bias = b

    @classmethod
    def from_file(cls, path: str | Path) -> LinearScoringModel:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        bias = data.get("bias")
        return cls(np.asarray(data["weights"]), None if bias is None else np.asarray(bias))

    def __call__(self, matrix: np.ndarray) -> list[float]:
        x = np.asarray(matrix, dtype=np.float64).reshape(-1, 5).mean(axis=0)
        return (self.weights @ x + self.bias).tolist()


def _import_callable(ref: str) -> ScoringModel:
    module_name, _, attr = ref.partition(":")
    module = importlib.import_module(module_name)
    obj = module
    for part in attr.split("."):
        obj = getattr(obj, part)
    if not callable(obj):
        raise TypeError(f"{ref} is not callable")
    return obj


def load_model(ref: str) -> ScoringModel:
    """Resolve a model reference into a scoring function (blocking)."""
    if not ref:
        raise ModelUnavailable("No model configured.")
    path = Path(ref)
    if path.suffix == ".json" or path.is_file():
        return LinearScoringModel.from_file(path)
    if ":" in ref:
        return _import_callable(ref)
    raise ModelUnavailable(f"Cannot resolve model reference {ref!r}.")


class ModelHandle:
    """One-time, possibly asynchronous model initialisation.

    Tracks a human-readable status the presentation layer can show while the
    model is loading and after a failed load.
    """

    def __init__(self, loader: Callable[[], ScoringModel]) -> None:
        self._loader = loader
        self._model: ScoringModel | None = None
        self._status = "Initializing..."
        self._error: str | None = None
        self._lock = asyncio.Lock()

    @classmethod
    def from_reference(cls, ref: str) -> ModelHandle:
        return cls(lambda: load_model(ref))

    @property
    def model(self) -> ScoringModel | None:
        return self._model

    @property
    def loaded(self) -> bool:
        return self._model is not None

    @property
    def status(self) -> str:
        return self._status

    @property
    def error(self) -> str | None:
        return self._error

    def load_sync(self) -> ScoringModel | None:
        """Load in the calling thread; failures are recorded, not raised."""
        if self._model is not None:
            return self._model
        try:
            model = self._loader()
        except Exception as exc:
            self._error = str(exc)
            self._status = f"Error: {exc}"
            logger.error("model.load_failed", error=str(exc))
            return None
        if model is None:
            self._error = "loader returned no model"
            self._status = f"Error: {self._error}"
            logger.error("model.load_failed", error=self._error)
            return None
        self._model = model
        self._error = None
        self._status = "Model Initialized Successfully"
        logger.info("model.loaded", model=type(model).__name__)
        return model

    async def load(self) -> ScoringModel | None:
        """Load in a worker thread so sample delivery is never blocked."""
        async with self._lock:
            if self._model is not None:
                return self._model
            return await asyncio.to_thread(self.load_sync)
