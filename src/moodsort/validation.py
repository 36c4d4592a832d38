"""k-fold cross-validation of trainer candidates."""

from __future__ import annotations

import logging
from collections.abc import Sequence

import numpy as np
from joblib import Parallel, delayed
from sklearn.model_selection import KFold

from .config import FeaturizerSettings
from .dataset import DataError
from .evaluation import fold_metrics
from .pipeline import fit_pipeline
from .trainers import TrainerCandidate
from .types import CleanedRecord, CVResult, FoldMetrics

LOGGER = logging.getLogger(__name__)

DEFAULT_FOLDS = 5


def kfold_partitions(count: int, folds: int, seed: int) -> list[tuple[np.ndarray, np.ndarray]]:
    """Return ``(train_indices, holdout_indices)`` for each fold.

    Holdout partitions are disjoint and together cover ``range(count)``.
    """

    if folds < 2:
        raise ValueError("Cross-validation needs at least two folds.")
    if count < folds:
        raise DataError(f"Cannot split {count} record(s) into {folds} folds.")
    splitter = KFold(n_splits=folds, shuffle=True, random_state=seed)
    return list(splitter.split(np.arange(count)))


class CrossValidator:
    """Runs the full pipeline on each fold so no fold sees held-out text."""

    def __init__(
        self,
        settings: FeaturizerSettings,
        *,
        folds: int = DEFAULT_FOLDS,
        seed: int = 42,
        n_jobs: int = 1,
    ) -> None:
        self._settings = settings
        self._folds = folds
        self._seed = seed
        self._n_jobs = n_jobs

    @property
    def folds(self) -> int:
        return self._folds

    def evaluate(self, candidate: TrainerCandidate, records: Sequence[CleanedRecord]) -> CVResult:
        partitions = kfold_partitions(len(records), self._folds, self._seed)
        slices = [
            (
                tuple(records[index] for index in train_indices),
                tuple(records[index] for index in holdout_indices),
            )
            for train_indices, holdout_indices in partitions
        ]
        if self._n_jobs == 1:
            metrics = [
                _run_fold(candidate, train, holdout, self._settings) for train, holdout in slices
            ]
        else:
            metrics = Parallel(n_jobs=self._n_jobs)(
                delayed(_run_fold)(candidate, train, holdout, self._settings)
                for train, holdout in slices
            )
        result = CVResult(candidate_name=candidate.name, folds=tuple(metrics))
        aggregate = result.aggregate()
        LOGGER.info(
            "%s: macro=%.4f micro=%.4f log_loss=%.4f",
            candidate.name,
            aggregate.macro_accuracy,
            aggregate.micro_accuracy,
            aggregate.log_loss,
        )
        return result


def _run_fold(
    candidate: TrainerCandidate,
    train: Sequence[CleanedRecord],
    holdout: Sequence[CleanedRecord],
    settings: FeaturizerSettings,
) -> FoldMetrics:
    model = fit_pipeline(candidate, train, settings)
    return fold_metrics(model, holdout)


__all__ = ["CrossValidator", "DEFAULT_FOLDS", "kfold_partitions"]
