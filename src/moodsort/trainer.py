"""Offline training run: clean, search, refit, evaluate, persist."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from .cleaner import clean_records
from .config import Config
from .dataset import EmptyInputError, load_records, split_dataset
from .evaluation import evaluate
from .logging import log_duration
from .pipeline import TrainedModel, fit_pipeline
from .selection import ModelSelector
from .store import ModelStore
from .trainers import TrainerCatalog, default_catalog
from .types import AggregateResult, CleanedRecord, EvaluationMetrics, Prediction, Record
from .validation import CrossValidator

LOGGER = logging.getLogger(__name__)

SAMPLE_STATEMENT = "I feel anxious and overwhelmed."


@dataclass(frozen=True)
class TrainingReport:
    """Summary of one training run."""

    best_name: str
    results: tuple[AggregateResult, ...]
    metrics: EvaluationMetrics | None
    model_path: Path
    train_size: int
    test_size: int
    sample_prediction: Prediction


class ModelTrainer:
    """Runs the model-selection pipeline described by a Config."""

    def __init__(
        self,
        config: Config,
        *,
        catalog: TrainerCatalog | None = None,
        record_loader: Callable[[Path], list[Record]] = load_records,
    ) -> None:
        self._config = config
        self._catalog = catalog or default_catalog(
            max_iter=config.training.max_iter,
            random_state=config.training.seed,
        )
        self._record_loader = record_loader

    def run(self) -> TrainingReport:
        training = self._config.training
        records = self._record_loader(self._config.data_path)
        cleaned = clean_records(records)
        if not cleaned:
            raise EmptyInputError("Every record was dropped during cleaning.")

        split = split_dataset(cleaned, test_fraction=training.test_fraction, seed=training.seed)
        LOGGER.info(
            "Split %s record(s): %s train, %s test.",
            len(cleaned),
            len(split.train),
            len(split.test),
        )

        validator = CrossValidator(
            self._config.featurizer,
            folds=training.folds,
            seed=training.seed,
            n_jobs=training.n_jobs,
        )
        candidates = self._catalog.candidates(training.l2_grid, training.trainers)
        with log_duration(LOGGER, "model selection"):
            outcome = ModelSelector(validator).select(candidates, split.train)

        with log_duration(LOGGER, f"training '{outcome.best_name}' on the full training split"):
            model = fit_pipeline(outcome.best_candidate, split.train, self._config.featurizer)

        metrics = self._evaluate(model, split.test)
        sample = model.predict(SAMPLE_STATEMENT)
        LOGGER.info(
            "Statement: %s -> predicted status %s (confidence %.3f)",
            SAMPLE_STATEMENT,
            sample.label,
            sample.confidence,
        )

        metadata: dict[str, object] = {
            "train_size": len(split.train),
            "test_size": len(split.test),
            "cv_macro_accuracy": outcome.best_result.macro_accuracy,
        }
        if metrics is not None:
            metadata["metrics"] = metrics.as_dict()
        path = ModelStore(self._config.model_path).save(model, metadata=metadata)

        return TrainingReport(
            best_name=outcome.best_name,
            results=outcome.results,
            metrics=metrics,
            model_path=path,
            train_size=len(split.train),
            test_size=len(split.test),
            sample_prediction=sample,
        )

    def _evaluate(
        self, model: TrainedModel, test: tuple[CleanedRecord, ...]
    ) -> EvaluationMetrics | None:
        if not test:
            LOGGER.warning("Test split is empty; skipping evaluation.")
            return None
        with log_duration(LOGGER, "evaluation"):
            metrics = evaluate(model, test, top_k=self._config.training.top_k)
        LOGGER.info("Log Loss: %.4f", metrics.log_loss)
        LOGGER.info("Log Loss Reduction: %.4f", metrics.log_loss_reduction)
        LOGGER.info("Macro Average Accuracy: %.4f", metrics.macro_accuracy)
        LOGGER.info("Micro Average Accuracy: %.4f", metrics.micro_accuracy)
        LOGGER.info("Top %s Accuracy: %.4f", metrics.top_k, metrics.top_k_accuracy)
        return metrics


__all__ = ["ModelTrainer", "TrainingReport", "SAMPLE_STATEMENT"]
