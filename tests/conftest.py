"""Shared pytest fixtures."""

from __future__ import annotations

import numpy as np
import pytest
import structlog

from stress_monitor.inference.classifier import Classifier
from stress_monitor.storage.history import RecordStore
from stress_monitor.storage.sync import InMemorySyncGateway
from stress_monitor.streaming.pipeline import StressPipeline


@pytest.fixture(autouse=True)
def _reset_structlog():
    # main() configures structlog with the test's captured stderr; undo that
    # so later tests do not log to a closed stream.
    yield
    structlog.contextvars.clear_contextvars()
    structlog.reset_defaults()


class FixedScores:
    """Scoring model that always returns the same scores and remembers inputs."""

    def __init__(self, scores: list[float]) -> None:
        self.scores = scores
        self.calls: list[np.ndarray] = []

    def __call__(self, matrix: np.ndarray) -> list[float]:
        self.calls.append(matrix)
        return list(self.scores)


def failing_model(matrix: np.ndarray) -> list[float]:
    raise RuntimeError("tensor shape mismatch")


@pytest.fixture
def constant_window() -> list[float]:
    return [70.0] * 30


@pytest.fixture
def alternating_window() -> list[float]:
    # RR alternates 1000 ms / 800 ms
    return [60.0 if i % 2 == 0 else 75.0 for i in range(30)]


@pytest.fixture
def relaxed_model() -> FixedScores:
    return FixedScores([2.0, 0.5, 0.1])


@pytest.fixture
def stressed_model() -> FixedScores:
    return FixedScores([0.1, 0.2, 3.0])


@pytest.fixture
def gateway() -> InMemorySyncGateway:
    return InMemorySyncGateway()


@pytest.fixture
def pipeline(relaxed_model: FixedScores, gateway: InMemorySyncGateway) -> StressPipeline:
    return StressPipeline(
        Classifier(relaxed_model),
        history=RecordStore(capacity=30),
        gateway=gateway,
    )
