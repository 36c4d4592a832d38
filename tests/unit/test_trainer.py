from __future__ import annotations

from dataclasses import replace
from functools import partial

import pytest
from sklearn.naive_bayes import MultinomialNB

from moodsort.dataset import EmptyInputError
from moodsort.store import load_model
from moodsort.trainer import SAMPLE_STATEMENT, ModelTrainer
from moodsort.trainers import TrainerCatalog
from moodsort.types import Record


def _naive_bayes(_l2, *, alpha: float, **_kwargs) -> MultinomialNB:
    return MultinomialNB(alpha=alpha)


def _catalog() -> TrainerCatalog:
    catalog = TrainerCatalog()
    catalog.register("smooth", partial(_naive_bayes, alpha=1.0), regularized=False)
    catalog.register("sharp", partial(_naive_bayes, alpha=0.01), regularized=False)
    return catalog


def test_trainer_uses_injected_catalog(fast_config, sample_rows) -> None:
    config = replace(
        fast_config, training=replace(fast_config.training, trainers=("smooth", "sharp"))
    )
    rows = [Record(id=i, statement=s, label=label) for i, s, label in sample_rows]
    trainer = ModelTrainer(config, catalog=_catalog(), record_loader=lambda _path: rows)

    report = trainer.run()

    assert {result.candidate_name for result in report.results} == {"smooth", "sharp"}
    assert report.best_name in {"smooth", "sharp"}
    assert report.sample_prediction.label in {"Anxiety", "Depression", "Normal"}
    assert load_model(report.model_path).trainer_name == report.best_name


def test_sample_statement_is_scored(fast_config) -> None:
    report = ModelTrainer(fast_config).run()

    restored = load_model(report.model_path)
    assert restored.predict(SAMPLE_STATEMENT).label == report.sample_prediction.label


def test_empty_data_raises(fast_config) -> None:
    trainer = ModelTrainer(fast_config, record_loader=lambda _path: [])

    with pytest.raises(EmptyInputError):
        trainer.run()


def test_blank_statements_only_raise(fast_config) -> None:
    rows = [Record(id=1, statement=None, label="Normal"), Record(id=2, statement=" ", label="A")]
    trainer = ModelTrainer(fast_config, record_loader=lambda _path: rows)

    with pytest.raises(EmptyInputError):
        trainer.run()


def test_imbalanced_two_class_dataset_trains(fast_config, sample_rows) -> None:
    anxious = [statement for _id, statement, label in sample_rows if label == "Anxiety"]
    statements = (anxious * 2)[:19]
    rows = [
        Record(id=index, statement=statement, label="Anxiety")
        for index, statement in enumerate(statements, start=1)
    ]
    rows.append(Record(id=20, statement="Nothing interests me lately.", label="Depression"))
    trainer = ModelTrainer(fast_config, record_loader=lambda _path: rows)

    report = trainer.run()

    assert report.train_size == 16
    assert report.test_size == 4
    assert len(report.results) == 5
    assert report.model_path.exists()
    assert sum(report.sample_prediction.scores) == pytest.approx(1.0, abs=1e-5)
