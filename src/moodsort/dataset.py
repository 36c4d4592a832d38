"""Loading and splitting of the labelled statements file."""

from __future__ import annotations

import csv
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from sklearn.model_selection import train_test_split

from .types import CleanedRecord, Record

LOGGER = logging.getLogger(__name__)

ID_COLUMNS = ("id", "")
STATEMENT_COLUMNS = ("statement",)
LABEL_COLUMNS = ("status", "label")


class DataError(ValueError):
    """Raised when the input data cannot be used for training."""


class EmptyInputError(DataError):
    """Raised when no records remain to train on."""


@dataclass(frozen=True)
class DatasetSplit:
    """Deterministic train/test partition of the cleaned records."""

    train: tuple[CleanedRecord, ...]
    test: tuple[CleanedRecord, ...]


@dataclass(frozen=True)
class _Columns:
    id: int
    statement: int
    label: int
    width: int


def load_records(path: Path) -> list[Record]:
    """Read records from a CSV file with an ``Id,Statement,Status`` header.

    Malformed rows are logged and skipped. Fails when the file is missing, the
    header lacks the required columns, or no valid row remains.
    """

    source = Path(path).expanduser()
    if not source.is_file():
        raise DataError(f"Data file not found: {source}")

    records: list[Record] = []
    skipped = 0
    with source.open("r", encoding="utf-8-sig", newline="") as handle:
        reader = csv.reader(handle)
        try:
            header = next(reader)
        except StopIteration:
            raise DataError(f"Data file is empty: {source}") from None
        columns = _resolve_columns(header)
        for row in reader:
            if not row:
                continue
            try:
                records.append(_parse_row(row, columns))
            except DataError as exc:
                skipped += 1
                LOGGER.warning("Skipping row %s of %s: %s", reader.line_num, source.name, exc)

    if skipped:
        LOGGER.info("Skipped %s malformed row(s) while loading %s.", skipped, source)
    if not records:
        raise DataError(f"No valid records found in {source}")
    LOGGER.info("Loaded %s record(s) from %s.", len(records), source)
    return records


def split_dataset(
    records: Sequence[CleanedRecord],
    *,
    test_fraction: float = 0.2,
    seed: int = 42,
) -> DatasetSplit:
    """Randomly partition records into train and test sets.

    The split is not stratified; class proportions may differ between sides.
    """

    if not records:
        raise EmptyInputError("No records left after cleaning; nothing to train on.")
    if test_fraction <= 0 or len(records) < 2:
        return DatasetSplit(train=tuple(records), test=())

    train, test = train_test_split(
        list(records),
        test_size=test_fraction,
        random_state=seed,
        shuffle=True,
    )
    if not train:
        raise EmptyInputError("Training split is empty.")
    return DatasetSplit(train=tuple(train), test=tuple(test))


def _resolve_columns(header: list[str]) -> _Columns:
    names = [name.strip().lower() for name in header]

    def _find(candidates: tuple[str, ...]) -> int | None:
        for candidate in candidates:
            if candidate in names:
                return names.index(candidate)
        return None

    statement = _find(STATEMENT_COLUMNS)
    label = _find(LABEL_COLUMNS)
    if statement is None or label is None:
        raise DataError(f"Header must contain Statement and Status columns, got {header!r}")
    identifier = _find(ID_COLUMNS)
    if identifier is None:
        raise DataError(f"Header must contain an Id column, got {header!r}")
    return _Columns(id=identifier, statement=statement, label=label, width=len(header))


def _parse_row(row: list[str], columns: _Columns) -> Record:
    if len(row) != columns.width:
        raise DataError(f"expected {columns.width} columns, found {len(row)}")
    raw_id = row[columns.id].strip()
    try:
        identifier = int(raw_id)
    except ValueError:
        raise DataError(f"Id {raw_id!r} is not an integer") from None
    label = row[columns.label].strip()
    if not label:
        raise DataError("label is empty")
    statement = row[columns.statement]
    return Record(id=identifier, statement=statement if statement.strip() else None, label=label)


__all__ = [
    "DataError",
    "DatasetSplit",
    "EmptyInputError",
    "load_records",
    "split_dataset",
]
