"""Trainer families and the candidate sweep over L2 strengths."""

from __future__ import annotations

from collections import OrderedDict
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass
from functools import partial
from typing import Any, Protocol, runtime_checkable

import numpy as np
from sklearn.linear_model import LogisticRegression
from sklearn.multiclass import OneVsRestClassifier
from sklearn.naive_bayes import MultinomialNB

from .config import DEFAULT_L2_GRID


@runtime_checkable
class Estimator(Protocol):
    """Black-box classifier capability shared by every trainer family."""

    classes_: np.ndarray

    def fit(self, features: Any, targets: np.ndarray) -> Any:
        """Fit on a feature matrix and integer label keys."""

    def predict_proba(self, features: Any) -> np.ndarray:
        """Return class probabilities ordered like ``classes_``."""


EstimatorBuilder = Callable[..., Estimator]


@dataclass(frozen=True)
class TrainerCandidate:
    """Named trainer configuration; ``build`` creates a fresh estimator."""

    name: str
    family: str
    l2: float | None
    factory: Callable[[], Estimator]

    def build(self) -> Estimator:
        return self.factory()


@dataclass(frozen=True)
class _Family:
    builder: EstimatorBuilder
    regularized: bool


class TrainerCatalog:
    """Registry of trainer families in registration order."""

    def __init__(self, *, max_iter: int = 1000, random_state: int = 42) -> None:
        self._families: OrderedDict[str, _Family] = OrderedDict()
        self._max_iter = max_iter
        self._random_state = random_state

    def register(self, family: str, builder: EstimatorBuilder, *, regularized: bool = True) -> None:
        if family in self._families:
            raise ValueError(f"Trainer family '{family}' is already registered.")
        self._families[family] = _Family(builder=builder, regularized=regularized)

    def families(self) -> list[str]:
        return list(self._families)

    def candidates(
        self,
        l2_grid: Iterable[float | None] = DEFAULT_L2_GRID,
        families: Iterable[str] | None = None,
    ) -> Iterator[TrainerCandidate]:
        """Yield one candidate per family and grid value without training anything."""

        grid = tuple(l2_grid)
        for family in families if families is not None else self.families():
            entry = self._lookup(family)
            if not entry.regularized:
                yield self._candidate(family, family, None, entry)
                continue
            for l2 in grid:
                yield self._candidate(candidate_name(family, l2), family, l2, entry)

    def _lookup(self, family: str) -> _Family:
        try:
            return self._families[family]
        except KeyError as exc:
            raise KeyError(f"Trainer family '{family}' is not registered.") from exc

    def _candidate(
        self, name: str, family: str, l2: float | None, entry: _Family
    ) -> TrainerCandidate:
        factory = partial(
            entry.builder,
            l2,
            max_iter=self._max_iter,
            random_state=self._random_state,
        )
        return TrainerCandidate(name=name, family=family, l2=l2, factory=factory)


def candidate_name(family: str, l2: float | None) -> str:
    if l2 is None:
        return f"{family} (No Regularization)"
    return f"{family}-L2={l2:g}"


def build_maxent_sdca(l2: float | None, *, max_iter: int, random_state: int) -> Estimator:
    """Multinomial logistic regression fitted with a stochastic solver."""

    return LogisticRegression(
        solver="saga",
        max_iter=max_iter,
        random_state=random_state,
        **_regularization(l2),
    )


def build_maxent_lbfgs(l2: float | None, *, max_iter: int, random_state: int) -> Estimator:
    return LogisticRegression(
        solver="lbfgs",
        max_iter=max_iter,
        random_state=random_state,
        **_regularization(l2),
    )


def build_ova_sdca(l2: float | None, *, max_iter: int, random_state: int) -> Estimator:
    """One binary coordinate-descent logistic model per class."""

    binary = LogisticRegression(
        solver="liblinear",
        max_iter=max_iter,
        random_state=random_state,
        **_regularization(l2),
    )
    return OneVsRestClassifier(binary)


def build_ova_lbfgs(l2: float | None, *, max_iter: int, random_state: int) -> Estimator:
    binary = LogisticRegression(
        solver="lbfgs",
        max_iter=max_iter,
        random_state=random_state,
        **_regularization(l2),
    )
    return OneVsRestClassifier(binary)


def build_naive_bayes(_l2: float | None, *, max_iter: int, random_state: int) -> Estimator:
    return MultinomialNB()


def default_catalog(*, max_iter: int = 1000, random_state: int = 42) -> TrainerCatalog:
    catalog = TrainerCatalog(max_iter=max_iter, random_state=random_state)
    catalog.register("maxent-sdca", build_maxent_sdca)
    catalog.register("maxent-lbfgs", build_maxent_lbfgs)
    catalog.register("ova-sdca", build_ova_sdca)
    catalog.register("ova-lbfgs", build_ova_lbfgs)
    catalog.register("naive-bayes", build_naive_bayes, regularized=False)
    return catalog


def _regularization(l2: float | None) -> dict[str, float]:
    # Without an explicit strength the solver keeps its own default.
    if l2 is None:
        return {}
    return {"C": 1.0 / l2}


__all__ = [
    "Estimator",
    "TrainerCandidate",
    "TrainerCatalog",
    "candidate_name",
    "default_catalog",
]
