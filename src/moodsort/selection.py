"""Model selection over cross-validated trainer candidates."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from functools import reduce
from typing import Protocol

from .trainers import TrainerCandidate
from .types import AggregateResult, CleanedRecord, CVResult

LOGGER = logging.getLogger(__name__)

Scored = tuple[TrainerCandidate, AggregateResult]


class Validator(Protocol):
    def evaluate(
        self, candidate: TrainerCandidate, records: Sequence[CleanedRecord]
    ) -> CVResult: ...


@dataclass(frozen=True)
class SelectionOutcome:
    """Winning candidate plus every aggregate in evaluation order."""

    best_name: str
    best_candidate: TrainerCandidate
    best_result: AggregateResult
    results: tuple[AggregateResult, ...]


def pick_best(scored: Iterable[Scored]) -> Scored:
    """Return the entry with the highest macro accuracy; earlier entries win ties."""

    def _better(current: Scored, challenger: Scored) -> Scored:
        if challenger[1].macro_accuracy > current[1].macro_accuracy:
            return challenger
        return current

    iterator = iter(scored)
    try:
        first = next(iterator)
    except StopIteration:
        raise ValueError("No trainer candidates to select from.") from None
    return reduce(_better, iterator, first)


class ModelSelector:
    """Cross-validates candidates and keeps the best by macro accuracy."""

    def __init__(self, validator: Validator) -> None:
        self._validator = validator

    def select(
        self,
        candidates: Iterable[TrainerCandidate],
        records: Sequence[CleanedRecord],
    ) -> SelectionOutcome:
        scored = [
            (candidate, self._validator.evaluate(candidate, records).aggregate())
            for candidate in candidates
        ]
        best_candidate, best_result = pick_best(scored)
        LOGGER.info(
            "Selected '%s' with macro accuracy %.4f out of %s candidate(s).",
            best_candidate.name,
            best_result.macro_accuracy,
            len(scored),
        )
        return SelectionOutcome(
            best_name=best_candidate.name,
            best_candidate=best_candidate,
            best_result=best_result,
            results=tuple(result for _candidate, result in scored),
        )


__all__ = ["ModelSelector", "SelectionOutcome", "pick_best"]
