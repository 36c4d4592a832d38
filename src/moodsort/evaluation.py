"""Multiclass metrics for fitted models."""

from __future__ import annotations

import warnings
from collections.abc import Sequence
from typing import Protocol

import numpy as np
from sklearn import metrics
from sklearn.exceptions import UndefinedMetricWarning

from .dataset import DataError
from .types import CleanedRecord, EvaluationMetrics, FoldMetrics

PROBABILITY_FLOOR = 1e-15
DEFAULT_TOP_K = 3
# Clamping keeps even a certain prior slightly above zero loss.
NEGLIGIBLE_LOSS = 1e-9


class ScoringModel(Protocol):
    """Anything exposing frozen labels and a probability matrix."""

    @property
    def labels(self) -> tuple[str, ...]: ...

    def predict_proba(self, statements: Sequence[str]) -> np.ndarray: ...


def evaluate(
    model: ScoringModel,
    records: Sequence[CleanedRecord],
    *,
    top_k: int = DEFAULT_TOP_K,
) -> EvaluationMetrics:
    """Score ``model`` against labelled records without modifying it."""

    truth, probabilities = _score(model, records)
    loss = log_loss(truth, probabilities)
    prior = prior_log_loss(truth, probabilities.shape[1])
    reduction = (prior - loss) / prior if prior > NEGLIGIBLE_LOSS else 0.0
    predicted = probabilities.argmax(axis=1)
    return EvaluationMetrics(
        log_loss=loss,
        log_loss_reduction=reduction,
        macro_accuracy=macro_accuracy(truth, predicted),
        micro_accuracy=micro_accuracy(truth, predicted),
        top_k_accuracy=top_k_accuracy(truth, probabilities, top_k),
        top_k=top_k,
    )


def fold_metrics(model: ScoringModel, records: Sequence[CleanedRecord]) -> FoldMetrics:
    truth, probabilities = _score(model, records)
    predicted = probabilities.argmax(axis=1)
    return FoldMetrics(
        micro_accuracy=micro_accuracy(truth, predicted),
        macro_accuracy=macro_accuracy(truth, predicted),
        log_loss=log_loss(truth, probabilities),
    )


def micro_accuracy(truth: np.ndarray, predicted: np.ndarray) -> float:
    return float(metrics.accuracy_score(truth, predicted))


def macro_accuracy(truth: np.ndarray, predicted: np.ndarray) -> float:
    """Unweighted mean recall over the classes present in ``truth``."""

    return float(
        metrics.recall_score(
            truth, predicted, labels=np.unique(truth), average="macro", zero_division=0
        )
    )


def log_loss(truth: np.ndarray, probabilities: np.ndarray) -> float:
    clipped = np.clip(probabilities, PROBABILITY_FLOOR, 1.0)
    clipped = clipped / clipped.sum(axis=1, keepdims=True)
    return float(metrics.log_loss(truth, clipped, labels=np.arange(probabilities.shape[1])))


def prior_log_loss(truth: np.ndarray, class_count: int) -> float:
    """Log-loss of always predicting the class distribution of ``truth``."""

    prior = np.bincount(truth, minlength=class_count) / truth.shape[0]
    return log_loss(truth, np.tile(prior, (truth.shape[0], 1)))


def top_k_accuracy(truth: np.ndarray, probabilities: np.ndarray, k: int) -> float:
    if k <= 0:
        raise ValueError("k must be positive")
    labels = np.arange(probabilities.shape[1])
    # Two columns are scored as binary, through the positive-class column.
    scores = probabilities[:, 1] if labels.shape[0] == 2 else probabilities
    with warnings.catch_warnings():
        # k >= number of labels is a guaranteed hit, which sklearn warns about.
        warnings.simplefilter("ignore", UndefinedMetricWarning)
        return float(metrics.top_k_accuracy_score(truth, scores, k=k, labels=labels))


def _score(model: ScoringModel, records: Sequence[CleanedRecord]) -> tuple[np.ndarray, np.ndarray]:
    if not records:
        raise DataError("Cannot evaluate on an empty record set.")
    labels = list(model.labels)
    # Labels the model never saw get extra zero-probability columns.
    for record in records:
        if record.label not in labels:
            labels.append(record.label)
    keys = {label: key for key, label in enumerate(labels)}
    truth = np.asarray([keys[record.label] for record in records], dtype=np.int64)

    probabilities = np.asarray(
        model.predict_proba([record.statement for record in records]), dtype=np.float64
    )
    # sklearn's log_loss needs at least two label columns.
    extra = max(len(labels), 2) - probabilities.shape[1]
    if extra:
        probabilities = np.hstack([probabilities, np.zeros((probabilities.shape[0], extra))])
    return truth, probabilities


__all__ = [
    "DEFAULT_TOP_K",
    "PROBABILITY_FLOOR",
    "evaluate",
    "fold_metrics",
    "log_loss",
    "macro_accuracy",
    "micro_accuracy",
    "prior_log_loss",
    "top_k_accuracy",
]
