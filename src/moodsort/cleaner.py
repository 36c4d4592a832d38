"""Normalisation of raw statements before featurization."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable

from .types import CleanedRecord, Record

LOGGER = logging.getLogger(__name__)

_BRACKETED = re.compile(r"\[.*?\]", re.DOTALL)
_URL = re.compile(r"https?://\S+|www\.\S+")
_HTML_TAG = re.compile(r"<.*?>+", re.DOTALL)
_PUNCTUATION = re.compile(r"[^\w\s]|_")
_DIGIT_TOKEN = re.compile(r"\w*\d\w*")
_NEWLINES = re.compile(r"[\r\n]+")
_WHITESPACE = re.compile(r"\s+")


def clean_statement(text: str) -> str:
    """Return the normalised form of a statement.

    Steps run in a fixed order: lowercase, drop ``[...]`` spans, URLs,
    ``<...>`` spans, punctuation and symbols, tokens containing a digit, then
    fold newlines and repeated whitespace into single spaces.
    """

    cleaned = text.lower()
    cleaned = _BRACKETED.sub("", cleaned)
    cleaned = _URL.sub("", cleaned)
    cleaned = _HTML_TAG.sub("", cleaned)
    cleaned = _PUNCTUATION.sub("", cleaned)
    cleaned = _DIGIT_TOKEN.sub("", cleaned)
    cleaned = _NEWLINES.sub(" ", cleaned)
    return _WHITESPACE.sub(" ", cleaned).strip()


def clean_record(record: Record) -> CleanedRecord | None:
    """Clean one record, returning None when it has no usable statement."""

    if is_blank(record.statement):
        return None
    statement = clean_statement(record.statement or "")
    if not statement:
        return None
    return CleanedRecord(id=record.id, statement=statement, label=record.label)


def clean_records(records: Iterable[Record]) -> list[CleanedRecord]:
    """Clean a sequence of records, dropping the ones left without text."""

    cleaned: list[CleanedRecord] = []
    dropped = 0
    for record in records:
        result = clean_record(record)
        if result is None:
            dropped += 1
            continue
        cleaned.append(result)
    if dropped:
        LOGGER.info("Dropped %s record(s) with empty statements during cleaning.", dropped)
    return cleaned


def is_blank(text: str | None) -> bool:
    return text is None or not text.strip()


__all__ = ["clean_statement", "clean_record", "clean_records", "is_blank"]
