"""Persistence of fitted models and prediction logs."""

from __future__ import annotations

import json
import logging
import pickle
import uuid
import zipfile
import zlib
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

import sklearn

from . import __version__
from .featurizer import FittedFeaturizer
from .pipeline import TrainedModel
from .trainers import Estimator
from .types import Prediction

LOGGER = logging.getLogger(__name__)

MODEL_FORMAT = "moodsort-model"
FORMAT_VERSION = 1
MANIFEST_NAME = "manifest.json"
PAYLOAD_NAME = "model.pkl"
INPUT_SCHEMA: tuple[dict[str, str], ...] = (
    {"name": "Id", "type": "int"},
    {"name": "Statement", "type": "str"},
    {"name": "Status", "type": "str"},
)


class ModelLoadError(RuntimeError):
    """Raised when a persisted model is missing, corrupt or incompatible."""


class ModelStore:
    """Reads and writes the versioned model bundle at a fixed path."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path).expanduser()

    def save(self, model: TrainedModel, *, metadata: Mapping[str, Any] | None = None) -> Path:
        """Atomically write ``model`` as a zip of manifest and pickled state."""

        manifest = {
            "format": MODEL_FORMAT,
            "version": FORMAT_VERSION,
            "schema": list(INPUT_SCHEMA),
            "labels": list(model.labels),
            "trainer": model.trainer_name,
            "vocabulary_size": model.featurizer.dimension,
            "created_at": datetime.now(timezone.utc).isoformat(),
            "moodsort_version": __version__,
            "sklearn_version": sklearn.__version__,
            "metadata": dict(metadata or {}),
        }
        payload = pickle.dumps(
            {
                "featurizer": model.featurizer,
                "classifier": model.classifier,
                "trainer": model.trainer_name,
            },
            protocol=pickle.HIGHEST_PROTOCOL,
        )

        def _write(tmp_path: Path) -> None:
            with zipfile.ZipFile(tmp_path, "w", compression=zipfile.ZIP_DEFLATED) as bundle:
                bundle.writestr(MANIFEST_NAME, json.dumps(manifest, indent=2))
                bundle.writestr(PAYLOAD_NAME, payload)

        _atomic_write(self.path, _write)
        LOGGER.info("Model '%s' saved to %s", model.trainer_name, self.path)
        return self.path

    def load(self) -> TrainedModel:
        """Load the bundle, validating it fully before returning a model."""

        if not self.path.is_file():
            raise ModelLoadError(f"Model file not found: {self.path}")
        try:
            with zipfile.ZipFile(self.path, "r") as bundle:
                manifest = json.loads(bundle.read(MANIFEST_NAME).decode("utf-8"))
                self._check_manifest(manifest)
                state = pickle.loads(bundle.read(PAYLOAD_NAME))
        except ModelLoadError:
            raise
        except (zipfile.BadZipFile, zlib.error, KeyError, ValueError, EOFError, OSError) as exc:
            raise ModelLoadError(f"Model file {self.path} is unreadable: {exc}") from exc
        except (
            pickle.UnpicklingError,
            AttributeError,
            ImportError,
            IndexError,
            MemoryError,
            RecursionError,
            TypeError,
        ) as exc:
            raise ModelLoadError(f"Model state in {self.path} is corrupt: {exc}") from exc

        model = self._restore(state, manifest)
        LOGGER.info("Loaded model '%s' from %s", model.trainer_name, self.path)
        return model

    def read_manifest(self) -> dict[str, Any]:
        try:
            with zipfile.ZipFile(self.path, "r") as bundle:
                manifest = json.loads(bundle.read(MANIFEST_NAME).decode("utf-8"))
        except (zipfile.BadZipFile, KeyError, ValueError, OSError) as exc:
            raise ModelLoadError(f"Model file {self.path} is unreadable: {exc}") from exc
        self._check_manifest(manifest)
        return manifest

    def _check_manifest(self, manifest: Any) -> None:
        if not isinstance(manifest, dict) or manifest.get("format") != MODEL_FORMAT:
            raise ModelLoadError(f"{self.path} is not a {MODEL_FORMAT} bundle.")
        if manifest.get("version") != FORMAT_VERSION:
            raise ModelLoadError(
                f"Unsupported model version {manifest.get('version')!r} "
                f"(expected {FORMAT_VERSION})."
            )
        if manifest.get("schema") != list(INPUT_SCHEMA):
            raise ModelLoadError(f"Input schema in {self.path} does not match this release.")

    def _restore(self, state: Any, manifest: Mapping[str, Any]) -> TrainedModel:
        if not isinstance(state, dict):
            raise ModelLoadError(f"Model state in {self.path} has an unexpected layout.")
        featurizer = state.get("featurizer")
        classifier = state.get("classifier")
        trainer_name = state.get("trainer")
        if not isinstance(featurizer, FittedFeaturizer):
            raise ModelLoadError(f"Model state in {self.path} lacks a fitted featurizer.")
        if not isinstance(classifier, Estimator):
            raise ModelLoadError(f"Model state in {self.path} lacks a fitted classifier.")
        if list(featurizer.labels) != list(manifest.get("labels", [])):
            raise ModelLoadError(f"Label mapping in {self.path} disagrees with its manifest.")
        return TrainedModel(
            featurizer=featurizer,
            classifier=classifier,
            trainer_name=str(trainer_name or manifest.get("trainer", "")),
        )


def save_model(
    model: TrainedModel, path: Path, *, metadata: Mapping[str, Any] | None = None
) -> Path:
    return ModelStore(path).save(model, metadata=metadata)


def load_model(path: Path) -> TrainedModel:
    return ModelStore(path).load()


def _atomic_write(target: Path, writer: Callable[[Path], None]) -> None:
    target.parent.mkdir(parents=True, exist_ok=True)
    tmp_name = f".{target.name}.{uuid.uuid4().hex}.tmp"
    tmp_path = target.with_name(tmp_name)
    try:
        writer(tmp_path)
        tmp_path.replace(target)
    finally:
        if tmp_path.exists():
            tmp_path.unlink(missing_ok=True)


@dataclass(frozen=True)
class PredictionRecord:
    """JSON serialisable representation of a prediction event."""

    timestamp: datetime
    trainer: str
    statement_length: int
    label: str
    confidence: float
    scores: Mapping[str, float]

    @classmethod
    def from_prediction(
        cls,
        *,
        trainer: str,
        labels: tuple[str, ...],
        statement: str,
        prediction: Prediction,
        timestamp: datetime | None = None,
    ) -> PredictionRecord:
        return cls(
            timestamp=timestamp or datetime.now(timezone.utc),
            trainer=trainer,
            statement_length=len(statement),
            label=prediction.label,
            confidence=float(prediction.confidence),
            scores=dict(zip(labels, prediction.scores)),
        )

    def to_json(self) -> str:
        payload = {
            "timestamp": self.timestamp.isoformat(),
            "trainer": self.trainer,
            "statement_length": self.statement_length,
            "label": self.label,
            "confidence": self.confidence,
            "scores": self.scores,
        }
        return json.dumps(payload, separators=(",", ":"))


class PredictionLogger:
    """JSON-lines prediction log rotated by size."""

    def __init__(self, path: Path, *, max_bytes: int = 5_000_000, backups: int = 3) -> None:
        self._path = path
        path.parent.mkdir(parents=True, exist_ok=True)
        self._handler = RotatingFileHandler(
            path, maxBytes=max_bytes, backupCount=backups, encoding="utf-8", delay=True
        )
        self._handler.setFormatter(logging.Formatter("%(message)s"))

    @property
    def path(self) -> Path:
        return self._path

    def append(self, record: PredictionRecord) -> None:
        self._handler.handle(
            logging.makeLogRecord(
                {"msg": record.to_json(), "levelno": logging.INFO, "levelname": "INFO"}
            )
        )

    def close(self) -> None:
        self._handler.close()


__all__ = [
    "INPUT_SCHEMA",
    "ModelLoadError",
    "ModelStore",
    "PredictionLogger",
    "PredictionRecord",
    "load_model",
    "save_model",
]
