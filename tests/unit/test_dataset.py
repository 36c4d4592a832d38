from __future__ import annotations

from pathlib import Path

import pytest

from moodsort.dataset import DataError, EmptyInputError, load_records, split_dataset


def test_load_records_reads_quoted_fields(tmp_path: Path, write_csv) -> None:
    path = write_csv(
        tmp_path / "data.csv",
        [
            (1, "I feel anxious, really anxious.", "Anxiety"),
            (2, "Line one\nline two", "Depression"),
        ],
    )

    records = load_records(path)

    assert [record.id for record in records] == [1, 2]
    assert records[0].statement == "I feel anxious, really anxious."
    assert records[1].statement == "Line one\nline two"
    assert records[1].label == "Depression"


def test_load_records_skips_malformed_rows(tmp_path: Path, write_csv) -> None:
    path = write_csv(
        tmp_path / "data.csv",
        [
            (1, "Fine statement", "Normal"),
            ("abc", "Bad id", "Normal"),
            (3, "Too", "many", "columns"),
            (4, "Missing label", ""),
            (5, "Another fine one", "Anxiety"),
        ],
    )

    records = load_records(path)

    assert [record.id for record in records] == [1, 5]


def test_load_records_keeps_blank_statement_as_none(tmp_path: Path, write_csv) -> None:
    path = write_csv(tmp_path / "data.csv", [(1, "   ", "Normal"), (2, "ok", "Normal")])

    records = load_records(path)

    assert records[0].statement is None


def test_load_records_accepts_unnamed_index_and_lowercase_header(
    tmp_path: Path, write_csv
) -> None:
    path = write_csv(
        tmp_path / "data.csv",
        [(0, "oh my gosh", "Anxiety")],
        header=("", "statement", "status"),
    )

    records = load_records(path)

    assert records[0].id == 0
    assert records[0].label == "Anxiety"


def test_load_records_fails_without_valid_rows(tmp_path: Path, write_csv) -> None:
    path = write_csv(tmp_path / "data.csv", [("x", "Bad", "Normal")])

    with pytest.raises(DataError):
        load_records(path)


def test_load_records_fails_on_missing_columns(tmp_path: Path, write_csv) -> None:
    path = write_csv(tmp_path / "data.csv", [(1, "text")], header=("Id", "Text"))

    with pytest.raises(DataError):
        load_records(path)


def test_load_records_fails_on_missing_file(tmp_path: Path) -> None:
    with pytest.raises(DataError):
        load_records(tmp_path / "missing.csv")


def test_split_is_deterministic_and_partitions_records(records) -> None:
    first = split_dataset(records, test_fraction=0.2, seed=7)
    second = split_dataset(records, test_fraction=0.2, seed=7)

    assert first == second
    assert len(first.test) == 6
    assert len(first.train) == 24
    ids = sorted(record.id for record in first.train + first.test)
    assert ids == sorted(record.id for record in records)


def test_split_rejects_empty_input() -> None:
    with pytest.raises(EmptyInputError):
        split_dataset([])


def test_split_without_test_fraction_keeps_everything_for_training(records) -> None:
    split = split_dataset(records, test_fraction=0.0)

    assert len(split.train) == len(records)
    assert split.test == ()
