from dataclasses import FrozenInstanceError

import pytest

from moodsort import types as moodsort_types


def test_cv_result_aggregates_fold_means() -> None:
    result = moodsort_types.CVResult(
        candidate_name="naive-bayes",
        folds=(
            moodsort_types.FoldMetrics(micro_accuracy=0.8, macro_accuracy=0.6, log_loss=0.5),
            moodsort_types.FoldMetrics(micro_accuracy=0.6, macro_accuracy=0.4, log_loss=0.7),
        ),
    )

    aggregate = result.aggregate()

    assert aggregate.candidate_name == "naive-bayes"
    assert aggregate.micro_accuracy == pytest.approx(0.7)
    assert aggregate.macro_accuracy == pytest.approx(0.5)
    assert aggregate.log_loss == pytest.approx(0.6)


def test_aggregate_without_folds_raises() -> None:
    with pytest.raises(ValueError):
        moodsort_types.CVResult(candidate_name="empty", folds=()).aggregate()


def test_records_are_immutable() -> None:
    record = moodsort_types.CleanedRecord(id=1, statement="feeling fine", label="Normal")

    with pytest.raises(FrozenInstanceError):
        record.label = "Anxiety"  # type: ignore[misc]


def test_evaluation_metrics_as_dict() -> None:
    metrics = moodsort_types.EvaluationMetrics(
        log_loss=0.4,
        log_loss_reduction=0.6,
        macro_accuracy=0.7,
        micro_accuracy=0.75,
        top_k_accuracy=0.95,
        top_k=3,
    )

    assert metrics.as_dict()["top_k"] == 3.0
    assert metrics.as_dict()["macro_accuracy"] == 0.7
