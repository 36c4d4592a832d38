"""TF-IDF n-gram featurization of cleaned statements."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Sequence

import numpy as np
from scipy import sparse
from sklearn.feature_extraction.text import ENGLISH_STOP_WORDS, CountVectorizer, TfidfTransformer

from .config import FeaturizerSettings
from .dataset import DataError
from .types import CleanedRecord

LOGGER = logging.getLogger(__name__)

_PUNCTUATION = re.compile(r"[^\w\s]|_")
STOP_WORDS: tuple[str, ...] = tuple(sorted(ENGLISH_STOP_WORDS))


def normalize_text(text: str | None) -> str:
    """Lowercase and strip punctuation, keeping digits."""

    return _PUNCTUATION.sub("", (text or "").lower())


def tokenize(text: str) -> list[str]:
    return text.split()


class FittedFeaturizer:
    """Frozen label mapping, n-gram vocabulary and IDF weights."""

    def __init__(
        self,
        *,
        labels: Sequence[str],
        vectorizer: CountVectorizer,
        tfidf: TfidfTransformer,
        settings: FeaturizerSettings,
    ) -> None:
        self._labels = tuple(labels)
        self._keys = {label: key for key, label in enumerate(self._labels)}
        self._vectorizer = vectorizer
        self._tfidf = tfidf
        self._settings = settings

    @property
    def labels(self) -> tuple[str, ...]:
        return self._labels

    @property
    def settings(self) -> FeaturizerSettings:
        return self._settings

    @property
    def vocabulary(self) -> tuple[str, ...]:
        return tuple(self._vectorizer.get_feature_names_out())

    @property
    def dimension(self) -> int:
        return len(self._vectorizer.vocabulary_)

    def label_to_key(self, label: str) -> int:
        try:
            return self._keys[label]
        except KeyError as exc:
            raise KeyError(f"Label '{label}' was not seen during fit.") from exc

    def key_to_label(self, key: int) -> str:
        if not 0 <= key < len(self._labels):
            raise KeyError(f"Label key {key} is out of range.")
        return self._labels[key]

    def encode_labels(self, labels: Iterable[str]) -> np.ndarray:
        return np.asarray([self.label_to_key(label) for label in labels], dtype=np.int64)

    def transform(self, statements: Iterable[str | None]) -> sparse.csr_matrix:
        """Return one TF-IDF row per statement; unknown n-grams weigh zero."""

        documents = [statement or "" for statement in statements]
        counts = self._vectorizer.transform(documents)
        return sparse.csr_matrix(self._tfidf.transform(counts))


class Featurizer:
    """Learns a featurization from training records only."""

    def __init__(self, settings: FeaturizerSettings | None = None) -> None:
        self._settings = settings or FeaturizerSettings()

    def fit(self, records: Sequence[CleanedRecord]) -> FittedFeaturizer:
        if not records:
            raise DataError("Cannot fit the featurizer on an empty training set.")

        labels = _first_seen(record.label for record in records)
        documents = [record.statement for record in records]

        full = self._vectorizer()
        try:
            counts = full.fit_transform(documents)
        except ValueError as exc:
            raise DataError("Training statements produced an empty vocabulary.") from exc

        terms = full.get_feature_names_out()
        frequencies = np.asarray(counts.sum(axis=0)).ravel()
        selected = self._select_terms(terms, frequencies)

        vectorizer = self._vectorizer(vocabulary=selected)
        selected_counts = vectorizer.fit_transform(documents)
        tfidf = TfidfTransformer(norm="l2", use_idf=True, smooth_idf=True)
        tfidf.fit(selected_counts)

        LOGGER.debug(
            "Featurizer fit on %s statement(s): kept %s of %s n-gram(s), %s label(s).",
            len(documents),
            len(selected),
            len(terms),
            len(labels),
        )
        return FittedFeaturizer(
            labels=labels,
            vectorizer=vectorizer,
            tfidf=tfidf,
            settings=self._settings,
        )

    def _vectorizer(self, vocabulary: Sequence[str] | None = None) -> CountVectorizer:
        return CountVectorizer(
            preprocessor=normalize_text,
            tokenizer=tokenize,
            token_pattern=None,
            lowercase=False,
            stop_words=list(STOP_WORDS) if self._settings.remove_stop_words else None,
            ngram_range=self._settings.ngram_range,
            vocabulary=vocabulary,
        )

    def _select_terms(self, terms: np.ndarray, frequencies: np.ndarray) -> list[str]:
        """Keep the most frequent n-grams per length; ties resolve alphabetically."""

        by_length: dict[int, list[tuple[float, str]]] = {}
        for term, frequency in zip(terms, frequencies):
            length = str(term).count(" ") + 1
            by_length.setdefault(length, []).append((-float(frequency), str(term)))

        selected: list[str] = []
        for length, entries in sorted(by_length.items()):
            entries.sort()
            cap = self._settings.ngram_cap(length)
            selected.extend(term for _negative, term in entries[:cap])
        return sorted(selected)


def _first_seen(labels: Iterable[str]) -> tuple[str, ...]:
    ordered: dict[str, None] = {}
    for label in labels:
        ordered.setdefault(label, None)
    return tuple(ordered)


__all__ = ["Featurizer", "FittedFeaturizer", "STOP_WORDS", "normalize_text", "tokenize"]
