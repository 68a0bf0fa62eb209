"""Stress inference — HRV feature extraction and model-based classification.

Architecture
------------
1. **Feature extraction** (`features.py`)
   - RR intervals from BPM, then avgHR / meanRR / SDRR / RMSSD / pNN50
   - Standardisation with fixed offline-calibrated constants
   - Replication to the ``(N, 5)`` matrix the sequence model expects

2. **Classification** (`classifier.py`)
   - Injected scoring function, argmax with first-index tie-break
   - 0 → relaxed, 1 → interrupted, everything else → stressed
   - Failures degrade to the ``INFERENCE_ERROR`` label

3. **Model loading** (`model.py`)
   - JSON linear models or ``module:attribute`` callables
   - Asynchronous one-time load that never blocks sample delivery
"""

from stress_monitor.inference.classifier import ClassificationResult, Classifier, ScoringModel
from stress_monitor.inference.features import FeatureExtractor, extract_features, feature_matrix
from stress_monitor.inference.model import LinearScoringModel, ModelHandle, load_model

__all__ = [
    "ClassificationResult",
    "Classifier",
    "FeatureExtractor",
    "LinearScoringModel",
    "ModelHandle",
    "ScoringModel",
    "extract_features",
    "feature_matrix",
    "load_model",
]
