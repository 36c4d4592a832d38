"""Fitted classification pipeline: featurizer plus one trained estimator."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

import numpy as np
from sklearn.dummy import DummyClassifier

from .config import FeaturizerSettings
from .featurizer import Featurizer, FittedFeaturizer
from .trainers import Estimator, TrainerCandidate
from .types import CleanedRecord, Prediction

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class TrainedModel:
    """Immutable fitted pipeline shared read-only by concurrent predictions."""

    featurizer: FittedFeaturizer
    classifier: Estimator
    trainer_name: str

    @property
    def labels(self) -> tuple[str, ...]:
        return self.featurizer.labels

    def predict_proba(self, statements: Iterable[str | None]) -> np.ndarray:
        """Return an ``(n, len(labels))`` probability matrix in label-key order."""

        matrix = self.featurizer.transform(statements)
        raw = np.asarray(self.classifier.predict_proba(matrix), dtype=np.float64)
        probabilities = np.zeros((matrix.shape[0], len(self.labels)), dtype=np.float64)
        probabilities[:, np.asarray(self.classifier.classes_, dtype=np.int64)] = raw
        return probabilities

    def predict(self, statement: str) -> Prediction:
        return self.predict_many([statement])[0]

    def predict_many(self, statements: Sequence[str]) -> list[Prediction]:
        if not statements:
            return []
        probabilities = self.predict_proba(statements)
        predictions: list[Prediction] = []
        for row in probabilities:
            best_index = int(np.argmax(row))
            predictions.append(
                Prediction(
                    label=self.labels[best_index],
                    confidence=float(row[best_index]),
                    scores=tuple(float(score) for score in row),
                )
            )
        return predictions


def fit_pipeline(
    candidate: TrainerCandidate,
    records: Sequence[CleanedRecord],
    settings: FeaturizerSettings,
) -> TrainedModel:
    """Fit the featurizer and the candidate's estimator on ``records``.

    A single-class training set gets a prior-only classifier instead of the
    candidate's estimator; it always predicts that class.
    """

    featurizer = Featurizer(settings).fit(records)
    features = featurizer.transform(record.statement for record in records)
    targets = featurizer.encode_labels(record.label for record in records)
    if len(featurizer.labels) < 2:
        LOGGER.warning(
            "Only one class (%s) in %s training record(s); '%s' falls back to a prior model.",
            featurizer.labels[0],
            len(records),
            candidate.name,
        )
        classifier: Estimator = DummyClassifier(strategy="prior")
    else:
        classifier = candidate.build()
    classifier.fit(features, targets)
    LOGGER.debug("Fitted '%s' on %s record(s).", candidate.name, len(records))
    return TrainedModel(featurizer=featurizer, classifier=classifier, trainer_name=candidate.name)


__all__ = ["TrainedModel", "fit_pipeline"]
