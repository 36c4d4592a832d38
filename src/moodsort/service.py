"""Thin prediction surface consumed by a serving process."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from watchdog.observers.api import BaseObserver

from .cleaner import is_blank
from .pipeline import TrainedModel
from .store import ModelLoadError, PredictionLogger, PredictionRecord, load_model
from .watcher import ModelWatcher

LOGGER = logging.getLogger(__name__)


class PredictionInputError(ValueError):
    """Raised when a statement submitted for prediction is empty."""


@dataclass(frozen=True)
class AnalysisResult:
    """Response body for one analysed statement."""

    statement: str
    predicted_status: str
    scores: tuple[float, ...]

    def to_dict(self) -> dict[str, object]:
        return {
            "statement": self.statement,
            "predictedStatus": self.predicted_status,
            "scores": list(self.scores),
        }


class ModelHolder:
    """Holds the active model and swaps it atomically on reload."""

    def __init__(
        self,
        path: Path,
        *,
        loader: Callable[[Path], TrainedModel] = load_model,
    ) -> None:
        self._path = Path(path).expanduser()
        self._loader = loader
        self._lock = threading.Lock()
        self._model = loader(self._path)

    @property
    def path(self) -> Path:
        return self._path

    @property
    def current(self) -> TrainedModel:
        return self._model

    def reload(self) -> bool:
        """Load the model file again; keep the previous model when that fails."""

        try:
            model = self._loader(self._path)
        except ModelLoadError as exc:
            LOGGER.error("Model reload from %s failed; keeping current model: %s", self._path, exc)
            return False
        with self._lock:
            self._model = model
        LOGGER.info("Reloaded model '%s' from %s", model.trainer_name, self._path)
        return True

    def watch(
        self,
        *,
        debounce_seconds: float = 0.5,
        observer_factory: Callable[[], BaseObserver] | None = None,
    ) -> ModelWatcher:
        """Start a watcher that reloads this holder whenever the model file changes.

        The caller owns the returned watcher and stops it on shutdown.
        """

        watcher = ModelWatcher(
            self._path,
            lambda _path: self.reload(),
            debounce_seconds=debounce_seconds,
            observer_factory=observer_factory,
        )
        watcher.start()
        return watcher


class PredictionService:
    """Validates statements and predicts with the holder's current model."""

    def __init__(
        self,
        holder: ModelHolder,
        *,
        prediction_logger: PredictionLogger | None = None,
    ) -> None:
        self._holder = holder
        self._prediction_logger = prediction_logger

    def analyze(self, statement: str | None) -> AnalysisResult:
        if is_blank(statement):
            raise PredictionInputError("Statement cannot be null or empty.")
        text = statement or ""
        model = self._holder.current
        prediction = model.predict(text)
        if self._prediction_logger is not None:
            self._prediction_logger.append(
                PredictionRecord.from_prediction(
                    trainer=model.trainer_name,
                    labels=model.labels,
                    statement=text,
                    prediction=prediction,
                )
            )
        return AnalysisResult(
            statement=text,
            predicted_status=prediction.label,
            scores=prediction.scores,
        )


__all__ = ["AnalysisResult", "ModelHolder", "PredictionInputError", "PredictionService"]
