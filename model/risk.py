"""Per-record fire probability and batch risk rollup.

Scoring is a strategy: an external point classifier (any callable taking
the three named features) when one is available, and a closed-form
fallback otherwise. Classifier errors never reach the caller; the record
is scored with the fallback instead.
"""

import logging
import math
import threading
from dataclasses import dataclass
from pathlib import Path

import joblib
import numpy as np

from config import (
    FEATURE_VEGETATION, FEATURE_SURFACE_TEMP, FEATURE_BURN_PROBABILITY, FEATURE_ORDER,
)
from data.synthetic_records import EnvironmentalRecord, clamp

logger = logging.getLogger(__name__)


class ClassifierError(Exception):
    """Base class for point-classifier failures."""


class ClassifierUnavailable(ClassifierError):
    """The classifier model could not be found or loaded."""


class ClassifierFailed(ClassifierError):
    """The classifier raised or produced an unusable value."""


def record_features(record: EnvironmentalRecord) -> dict:
    return {
        FEATURE_VEGETATION: record.vegetation_index,
        FEATURE_SURFACE_TEMP: record.surface_temp_c,
        FEATURE_BURN_PROBABILITY: record.burn_probability,
    }


def fallback_probability(record: EnvironmentalRecord) -> float:
    """Closed-form fire probability from vegetation, temperature and burn probability."""
    ndvi_factor = clamp((0.5 - record.vegetation_index) / 0.5, 0.0, 1.0)
    temp_factor = clamp((record.surface_temp_c - 25.0) / 30.0, 0.0, 1.0)
    return clamp(0.5 * record.burn_probability + 0.35 * ndvi_factor + 0.15 * temp_factor,
                 0.0, 1.0)


# ── Classifier adapters ────────────────────────────────────────────────

class JoblibClassifier:
    """Point classifier backed by a scikit-learn-style estimator saved with joblib.

    The estimator is loaded once, on first call, under a lock so concurrent
    scoring chunks share one load. A failed load is remembered and re-raised
    without touching the file again. ``predict_proba`` is preferred
    (probability of the last class); estimators without it fall back to
    ``predict``.
    """

    def __init__(self, path):
        self.path = Path(path)
        self._model = None
        self._load_error = None
        self._lock = threading.Lock()

    def load(self):
        with self._lock:
            if self._load_error is not None:
                raise ClassifierUnavailable(str(self._load_error))
            if self._model is None:
                try:
                    self._model = self._read()
                except ClassifierUnavailable as exc:
                    self._load_error = exc
                    raise
                logger.info(f"Loaded classifier from {self.path}")
            return self._model

    def _read(self):
        if not self.path.exists():
            raise ClassifierUnavailable(f"Classifier model not found: {self.path}")
        try:
            return joblib.load(self.path)
        except Exception as exc:
            raise ClassifierUnavailable(f"Could not load {self.path}: {exc}") from exc

    def __call__(self, features: dict) -> float:
        model = self.load()
        x = np.array([[features[name] for name in FEATURE_ORDER]], dtype=float)
        try:
            if hasattr(model, "predict_proba"):
                value = model.predict_proba(x)[0][-1]
            else:
                value = model.predict(x)[0]
            value = float(value)
        except Exception as exc:
            raise ClassifierFailed(str(exc)) from exc
        if not math.isfinite(value):
            raise ClassifierFailed(f"Non-finite classifier output: {value}")
        return value


# ── Scorers ────────────────────────────────────────────────────────────

class FormulaScorer:
    """Deterministic fallback scorer."""

    def score(self, record: EnvironmentalRecord) -> float:
        return fallback_probability(record)

    __call__ = score


class ClassifierScorer:
    """Scores with `classifier`, falling back to the formula on any failure."""

    def __init__(self, classifier):
        self.classifier = classifier
        self._warned = False
        self._warn_lock = threading.Lock()

    def score(self, record: EnvironmentalRecord) -> float:
        try:
            value = float(self.classifier(record_features(record)))
        except Exception as exc:
            with self._warn_lock:
                warn, self._warned = not self._warned, True
            if warn:
                logger.warning(f"Classifier unavailable, using fallback formula: {exc}")
            return fallback_probability(record)
        if not math.isfinite(value):
            return fallback_probability(record)
        return clamp(value, 0.0, 1.0)

    __call__ = score


def make_scorer(classifier=None):
    """Scorer for `classifier` (a callable or a joblib model path), or the fallback."""
    if classifier is None:
        return FormulaScorer()
    if isinstance(classifier, (str, Path)):
        classifier = JoblibClassifier(classifier)
    return ClassifierScorer(classifier)


def score_record(record: EnvironmentalRecord, classifier=None) -> float:
    return make_scorer(classifier).score(record)


# ── Aggregation ────────────────────────────────────────────────────────

@dataclass(frozen=True)
class RiskStats:
    average: float
    maximum: float
    sample_count: int

    def summary(self) -> str:
        return (f"Avg fire prob: {self.average:.2f} • Max: {self.maximum:.2f} "
                f"• Points: {self.sample_count}")


def compute_risk_stats(probabilities) -> RiskStats:
    """Aggregate per-record probabilities.

    Parameters
    ----------
    probabilities : sequence of float

    Returns
    -------
    RiskStats
        average = sum / max(1, n); maximum = 0.0 for an empty batch.
    """
    probs = np.asarray(probabilities, dtype=float)
    n = len(probs)
    average = float(probs.sum()) / max(1, n)
    maximum = float(probs.max()) if n else 0.0
    return RiskStats(average=average, maximum=maximum, sample_count=n)
