from __future__ import annotations

import csv
from pathlib import Path

import pytest

from moodsort.cleaner import clean_statement
from moodsort.config import Config, FeaturizerSettings, TrainingConfig, default_config
from moodsort.pipeline import TrainedModel, fit_pipeline
from moodsort.trainers import default_catalog
from moodsort.types import CleanedRecord

STATEMENTS: dict[str, list[str]] = {
    "Anxiety": [
        "I feel anxious and overwhelmed.",
        "My heart races and I cannot stop worrying.",
        "Constant panic before every meeting, so nervous.",
        "I am anxious about everything, worrying all night.",
        "Nervous and restless, my chest feels tight with panic.",
        "The worry never stops, I feel anxious all the time.",
        "Panic attacks keep coming when I leave the house.",
        "I am so nervous my hands shake with worry.",
        "Restless thoughts and panic keep me anxious.",
        "Overwhelmed by worry and a racing heart again.",
    ],
    "Depression": [
        "Nothing interests me lately.",
        "I feel empty and hopeless every single day.",
        "I cannot get out of bed, everything feels pointless.",
        "Hopeless and tired, nothing brings me joy anymore.",
        "I feel numb, empty, and completely worthless.",
        "Every day is grey and hopeless, I stay in bed.",
        "I lost interest in the things I used to love.",
        "So empty inside, life feels pointless and heavy.",
        "Worthless and exhausted, I do not enjoy anything.",
        "The sadness is heavy and I feel hopeless.",
    ],
    "Normal": [
        "Had a great lunch with friends today.",
        "The weather is lovely, going for a walk in the park.",
        "Finished my project at work and celebrated with pizza.",
        "Watching a good movie tonight with my family.",
        "Enjoyed a sunny afternoon at the beach with friends.",
        "Cooking dinner and listening to music, nice evening.",
        "Went to the gym and then had coffee with a friend.",
        "Planning a weekend trip to the mountains, exciting.",
        "Great game last night, our team won easily.",
        "Reading a fun book in the garden this morning.",
    ],
}


def _sample_rows() -> list[tuple[int, str, str]]:
    rows: list[tuple[int, str, str]] = []
    identifier = 1
    for index in range(10):
        for label, statements in STATEMENTS.items():
            rows.append((identifier, statements[index], label))
            identifier += 1
    return rows


def _write_csv(
    path: Path,
    rows: list[tuple[object, ...]],
    header: tuple[str, ...] = ("Id", "Statement", "Status"),
) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8", newline="") as handle:
        writer = csv.writer(handle)
        writer.writerow(header)
        writer.writerows(rows)
    return path


def _cleaned_records() -> list[CleanedRecord]:
    return [
        CleanedRecord(id=identifier, statement=clean_statement(statement), label=label)
        for identifier, statement, label in _sample_rows()
    ]


@pytest.fixture
def records() -> list[CleanedRecord]:
    return _cleaned_records()


@pytest.fixture
def data_file(tmp_path: Path) -> Path:
    return _write_csv(tmp_path / "Data" / "MentalHealthData.csv", _sample_rows())


@pytest.fixture
def fast_config(tmp_path: Path, data_file: Path) -> Config:
    """Small search space so end-to-end runs stay quick."""

    base = default_config(tmp_path)
    return Config(
        root_dir=tmp_path,
        data_path=data_file,
        model_path=tmp_path / "Data" / "MentalHealthModel.zip",
        featurizer=FeaturizerSettings(ngram_length=2, maximum_ngrams_count=(1000,)),
        training=TrainingConfig(
            l2_grid=(1e-2, None),
            trainers=("maxent-lbfgs", "ova-sdca", "naive-bayes"),
            max_iter=200,
        ),
        logging=base.logging,
    )


@pytest.fixture
def sample_rows() -> list[tuple[int, str, str]]:
    return _sample_rows()


@pytest.fixture
def write_csv():
    return _write_csv


@pytest.fixture
def trained_model(records: list[CleanedRecord]) -> TrainedModel:
    candidate = next(default_catalog(max_iter=200).candidates([1e-2], ["maxent-lbfgs"]))
    return fit_pipeline(candidate, records, FeaturizerSettings())
