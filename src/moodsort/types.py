"""Core immutable data structures used throughout moodsort."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass


@dataclass(frozen=True)
class Record:
    """Raw row loaded from the statements file."""

    id: int
    statement: str | None
    label: str


@dataclass(frozen=True)
class CleanedRecord:
    """Row whose statement has been normalised by the text cleaner."""

    id: int
    statement: str
    label: str


@dataclass(frozen=True)
class Prediction:
    """Classification result with scores in frozen label order."""

    label: str
    confidence: float
    scores: tuple[float, ...]


@dataclass(frozen=True)
class FoldMetrics:
    """Metrics measured on one held-out fold."""

    micro_accuracy: float
    macro_accuracy: float
    log_loss: float


@dataclass(frozen=True)
class AggregateResult:
    """Fold metrics averaged for one candidate."""

    candidate_name: str
    micro_accuracy: float
    macro_accuracy: float
    log_loss: float


@dataclass(frozen=True)
class CVResult:
    """Per-fold metrics collected for one candidate."""

    candidate_name: str
    folds: tuple[FoldMetrics, ...]

    def aggregate(self) -> AggregateResult:
        if not self.folds:
            raise ValueError(f"No fold metrics recorded for '{self.candidate_name}'.")
        return AggregateResult(
            candidate_name=self.candidate_name,
            micro_accuracy=_mean([fold.micro_accuracy for fold in self.folds]),
            macro_accuracy=_mean([fold.macro_accuracy for fold in self.folds]),
            log_loss=_mean([fold.log_loss for fold in self.folds]),
        )


@dataclass(frozen=True)
class EvaluationMetrics:
    """Metrics reported for a fitted model on held-out data."""

    log_loss: float
    log_loss_reduction: float
    macro_accuracy: float
    micro_accuracy: float
    top_k_accuracy: float
    top_k: int

    def as_dict(self) -> dict[str, float]:
        return {
            "log_loss": self.log_loss,
            "log_loss_reduction": self.log_loss_reduction,
            "macro_accuracy": self.macro_accuracy,
            "micro_accuracy": self.micro_accuracy,
            "top_k_accuracy": self.top_k_accuracy,
            "top_k": float(self.top_k),
        }


def _mean(values: Sequence[float]) -> float:
    return float(sum(values)) / len(values)


__all__ = [
    "Record",
    "CleanedRecord",
    "Prediction",
    "FoldMetrics",
    "AggregateResult",
    "CVResult",
    "EvaluationMetrics",
]
