"""Tests for the classifier and model loading."""

from __future__ import annotations

import json
import math

import numpy as np
import pytest

from conftest import FixedScores, failing_model
from stress_monitor.errors import InferenceError, ModelUnavailable
from stress_monitor.inference.classifier import Classifier, argmax_first, label_for_index
from stress_monitor.inference.model import LinearScoringModel, ModelHandle, load_model
from stress_monitor.models import StressLabel


@pytest.fixture
def matrix() -> np.ndarray:
    return np.zeros((30, 5), dtype=np.float32)


class TestLabelMapping:
    def test_fixed_indices(self):
        assert label_for_index(0) is StressLabel.RELAXED
        assert label_for_index(1) is StressLabel.INTERRUPTED
        assert label_for_index(2) is StressLabel.STRESSED

    @pytest.mark.parametrize("index", [3, 4, 17])
    def test_out_of_range_collapses_to_stressed(self, index):
        assert label_for_index(index) is StressLabel.STRESSED

    def test_ties_go_to_first_index(self):
        assert argmax_first([1.0, 1.0, 0.0]) == 0
        assert argmax_first([0.0, 2.0, 2.0]) == 1


class TestClassifier:
    @pytest.mark.parametrize(
        ("scores", "expected"),
        [
            ([3.0, 1.0, 0.0], StressLabel.RELAXED),
            ([0.0, 3.0, 1.0], StressLabel.INTERRUPTED),
            ([0.1, 0.2, 0.9], StressLabel.STRESSED),
            ([0.0, 0.0, 0.0, 5.0], StressLabel.STRESSED),
            ([1.0, 1.0, 1.0], StressLabel.RELAXED),
        ],
    )
    def test_classify(self, matrix, scores, expected):
        assert Classifier(FixedScores(scores)).classify(matrix) is expected

    def test_model_receives_batched_matrix(self, matrix):
        model = FixedScores([1.0, 0.0, 0.0])
        Classifier(model).classify(matrix)
        assert model.calls[0].shape == (1, 30, 5)
        assert model.calls[0].dtype == np.float32

    def test_batched_output_is_squeezed(self, matrix):
        clf = Classifier(lambda m: [[0.1, 0.9, 0.0]])
        assert clf.classify(matrix) is StressLabel.INTERRUPTED

    def test_missing_model(self, matrix):
        clf = Classifier()
        assert not clf.ready
        with pytest.raises(ModelUnavailable):
            clf.classify(matrix)

    def test_model_raising(self, matrix):
        with pytest.raises(InferenceError, match="tensor shape mismatch"):
            Classifier(failing_model).classify(matrix)

    @pytest.mark.parametrize("bad", [[], [math.nan, 1.0], "scores", [[1.0, 2.0], [3.0, 4.0]]])
    def test_malformed_output(self, matrix, bad):
        with pytest.raises(InferenceError):
            Classifier(lambda m: bad).classify(matrix)

    def test_classify_safe_reports_error_label(self, matrix):
        result = Classifier(failing_model).classify_safe(matrix)
        assert result.label is StressLabel.INFERENCE_ERROR
        assert not result.ok
        assert "tensor shape mismatch" in result.error

    def test_classify_safe_without_model(self, matrix):
        result = Classifier().classify_safe(matrix)
        assert result.label is StressLabel.INFERENCE_ERROR
        assert result.label.display == "Inference Error"

    def test_classify_safe_success(self, matrix, stressed_model):
        result = Classifier(stressed_model).classify_safe(matrix)
        assert result.ok
        assert result.label is StressLabel.STRESSED
        assert result.scores == (0.1, 0.2, 3.0)

    def test_set_model_later(self, matrix, relaxed_model):
        clf = Classifier()
        clf.set_model(relaxed_model)
        assert clf.ready
        assert clf.classify(matrix) is StressLabel.RELAXED


class TestLabels:
    def test_display_and_color_pairs(self):
        assert StressLabel.RELAXED.display == "Relaxed ✅"
        assert StressLabel.RELAXED.color == "#1B5E20"
        assert StressLabel.INTERRUPTED.color == "#FBC02D"
        assert StressLabel.STRESSED.display == "Stressed 🔥"
        assert StressLabel.STRESSED.color == "#B71C1C"
        assert StressLabel.INFERENCE_ERROR.is_error


class TestModelLoading:
    def test_linear_model_from_json(self, tmp_path):
        path = tmp_path / "model.json"
        path.write_text(json.dumps({"weights": [[0, 0, 0, 0, 0], [1, 0, 0, 0, 0], [0, 0, 0, 1, 0]], "bias": [0.5, 0, 0]}))
        model = load_model(str(path))
        assert isinstance(model, LinearScoringModel)

        high_hr = np.tile(np.array([2.0, 0, 0, 0, 0], dtype=np.float32), (1, 30, 1))
        assert Classifier(model).classify(high_hr) is StressLabel.INTERRUPTED
        neutral = np.zeros((1, 30, 5), dtype=np.float32)
        assert Classifier(model).classify(neutral) is StressLabel.RELAXED

    def test_linear_model_shape_checked(self):
        with pytest.raises(ValueError):
            LinearScoringModel(np.zeros((3, 4)))
        with pytest.raises(ValueError):
            LinearScoringModel(np.zeros((3, 5)), np.zeros(2))

    def test_import_reference(self):
        assert callable(load_model("builtins:sum"))

    @pytest.mark.parametrize("ref", ["", "no-such-model"])
    def test_unresolvable_reference(self, ref):
        with pytest.raises(ModelUnavailable):
            load_model(ref)

    @pytest.mark.asyncio
    async def test_handle_loads_in_background(self, relaxed_model):
        handle = ModelHandle(lambda: relaxed_model)
        assert handle.status == "Initializing..."
        model = await handle.load()
        assert model is relaxed_model
        assert handle.loaded
        assert handle.status == "Model Initialized Successfully"

    @pytest.mark.asyncio
    async def test_handle_records_failure(self):
        def _broken():
            raise FileNotFoundError("stress_model.json")

        handle = ModelHandle(_broken)
        assert await handle.load() is None
        assert not handle.loaded
        assert handle.status.startswith("Error:")
        assert "stress_model.json" in handle.error

    @pytest.mark.asyncio
    async def test_handle_treats_none_as_failure(self):
        handle = ModelHandle(lambda: None)
        assert await handle.load() is None
        assert not handle.loaded
        assert handle.status == "Error: loader returned no model"
        assert handle.error == "loader returned no model"
