"""Tests for evaluation metrics."""

import numpy as np
import pandas as pd
import pytest

from classeval.errors import (
    InsufficientDataError,
    SchemaMismatchError,
    UnsupportedMultiClassError,
)
from classeval.evaluation.metrics import (
    ClassificationMetrics,
    accuracy,
    compute_metrics,
    confusion_matrix,
    roc_curve,
)
from classeval.modeling.classifiers import PredictionResult


Labelled = tuple[PredictionResult, pd.Series]


def make_result(probabilities: dict[str, list[float]]) -> PredictionResult:
    """Build a PredictionResult from per-class probability lists."""
    frame = pd.DataFrame(probabilities)
    classes = tuple(frame.columns)
    predicted = frame.idxmax(axis=1).rename("predicted")
    return PredictionResult(predicted=predicted, probabilities=frame, classes=classes)


@pytest.fixture
def separable() -> Labelled:
    """Binary predictions where every positive outscores every negative."""
    p_b = [0.9] * 4 + [0.1] * 6
    result = make_result({"A": [1 - p for p in p_b], "B": p_b})
    truth = pd.Series(["B"] * 4 + ["A"] * 6)
    return result, truth


class TestAccuracy:
    """Tests for accuracy."""

    def test_perfect(self, separable: Labelled) -> None:
        """Test accuracy of correct predictions."""
        result, truth = separable
        assert accuracy(result, truth) == 1.0

    def test_partial(self) -> None:
        """Test accuracy with some misclassified rows."""
        result = make_result({"A": [0.8, 0.7, 0.2, 0.4], "B": [0.2, 0.3, 0.8, 0.6]})
        truth = pd.Series(["A", "B", "B", "A"])
        assert accuracy(result, truth) == pytest.approx(0.5)

    def test_length_mismatch(self, separable: Labelled) -> None:
        """Test that label count must match predictions."""
        result, truth = separable
        with pytest.raises(SchemaMismatchError, match="9 true labels"):
            accuracy(result, truth.iloc[:9])

    def test_index_mismatch(self, separable: Labelled) -> None:
        """Test that labels must be indexed like predictions."""
        result, truth = separable
        shifted = truth.set_axis(range(100, 110))
        with pytest.raises(SchemaMismatchError, match="indexed"):
            accuracy(result, shifted)


class TestConfusionMatrix:
    """Tests for confusion matrix."""

    def test_counts(self) -> None:
        """Rows are true classes, columns predicted classes."""
        result = make_result({"A": [0.8, 0.7, 0.2, 0.4], "B": [0.2, 0.3, 0.8, 0.6]})
        truth = pd.Series(["A", "B", "B", "A"])
        matrix = confusion_matrix(result, truth)

        assert matrix.index.name == "true"
        assert matrix.columns.name == "predicted"
        assert matrix.loc["A", "A"] == 1
        assert matrix.loc["A", "B"] == 1
        assert matrix.loc["B", "A"] == 1
        assert matrix.loc["B", "B"] == 1

    def test_sum_equals_rows(self) -> None:
        """Cell sum equals the number of evaluated rows."""
        rng = np.random.default_rng(0)
        raw = rng.dirichlet([1.0, 1.0, 1.0], size=25)
        result = make_result({"x": raw[:, 0], "y": raw[:, 1], "z": raw[:, 2]})
        truth = pd.Series(rng.choice(["x", "y", "z"], 25))
        assert confusion_matrix(result, truth).to_numpy().sum() == 25

    def test_all_known_classes_present(self) -> None:
        """Classes never predicted or observed still get a row and column."""
        result = make_result({"A": [0.9, 0.8], "B": [0.1, 0.2], "C": [0.0, 0.0]})
        truth = pd.Series(["A", "B"])
        matrix = confusion_matrix(result, truth)
        assert list(matrix.index) == ["A", "B", "C"]
        assert list(matrix.columns) == ["A", "B", "C"]
        assert matrix["C"].sum() == 0


class TestRocCurve:
    """Tests for ROC curves."""

    def test_perfect_separation(self, separable: Labelled) -> None:
        """Perfectly ranked scores reach (0, 1) with AUC 1."""
        result, truth = separable
        curve = roc_curve(result, truth, "B")

        assert curve.points[0] == (0.0, 0.0)
        assert (0.0, 1.0) in curve.points
        assert curve.points[-1] == (1.0, 1.0)
        assert curve.auc == pytest.approx(1.0)
        assert curve.at_threshold(0.5) == (0.0, 1.0)

    def test_thresholds_descending(self) -> None:
        """One threshold per distinct score, in descending order."""
        p_b = [0.9, 0.7, 0.7, 0.4, 0.3, 0.1]
        result = make_result({"A": [1 - p for p in p_b], "B": p_b})
        truth = pd.Series(["B", "A", "B", "B", "A", "A"])
        curve = roc_curve(result, truth, "B")

        finite = curve.thresholds[np.isfinite(curve.thresholds)]
        assert len(finite) == len(set(p_b))
        assert np.all(np.diff(curve.thresholds) < 0)
        assert np.all(np.diff(curve.fpr) >= 0)
        assert np.all(np.diff(curve.tpr) >= 0)
        assert 0.0 < curve.auc < 1.0

    def test_to_frame(self, separable: Labelled) -> None:
        """Test the curve as a table."""
        result, truth = separable
        frame = roc_curve(result, truth, "B").to_frame()
        assert list(frame.columns) == ["threshold", "fpr", "tpr"]

    def test_multi_class_rejected(self) -> None:
        """Three classes need an explicit one-vs-rest request."""
        result = make_result(
            {"x": [0.6, 0.2, 0.1], "y": [0.3, 0.7, 0.1], "z": [0.1, 0.1, 0.8]}
        )
        truth = pd.Series(["x", "y", "z"])
        with pytest.raises(UnsupportedMultiClassError):
            roc_curve(result, truth, "x")

    def test_one_vs_rest(self) -> None:
        """One-vs-rest scores the positive class against all others."""
        result = make_result(
            {"x": [0.6, 0.2, 0.1], "y": [0.3, 0.7, 0.1], "z": [0.1, 0.1, 0.8]}
        )
        truth = pd.Series(["x", "y", "z"])
        curve = roc_curve(result, truth, "x", one_vs_rest=True)
        assert curve.auc == pytest.approx(1.0)

    def test_no_negatives(self) -> None:
        """Test that single-class ground truth has no ROC."""
        result = make_result({"A": [0.3, 0.6], "B": [0.7, 0.4]})
        with pytest.raises(InsufficientDataError):
            roc_curve(result, pd.Series(["B", "B"]), "B")

    def test_unknown_positive_class(self, separable: Labelled) -> None:
        """Test that the positive class must be a known class."""
        result, truth = separable
        with pytest.raises(SchemaMismatchError, match="'C' is not a predicted class"):
            roc_curve(result, truth, "C")

    def test_class_count_checked_before_positive_class(self) -> None:
        """Multi-class input is reported as such even with a bad positive class."""
        result = make_result(
            {"x": [0.6, 0.2, 0.1], "y": [0.3, 0.7, 0.1], "z": [0.1, 0.1, 0.8]}
        )
        truth = pd.Series(["x", "y", "z"])
        with pytest.raises(UnsupportedMultiClassError):
            roc_curve(result, truth, "w")


class TestComputeMetrics:
    """Tests for compute_metrics."""

    def test_metrics(self) -> None:
        """Test accuracy, error rate and per-class values."""
        result = make_result({"A": [0.8, 0.7, 0.2, 0.4], "B": [0.2, 0.3, 0.8, 0.6]})
        truth = pd.Series(["A", "B", "B", "A"])
        metrics = compute_metrics(result, truth)

        assert isinstance(metrics, ClassificationMetrics)
        assert metrics.accuracy == pytest.approx(0.5)
        assert metrics.error_rate == pytest.approx(0.5)
        assert metrics.n_samples == 4
        assert metrics.per_class["A"]["support"] == 2
        assert metrics.auc is None

    def test_auc_included(self, separable: Labelled) -> None:
        """Test that an ROC curve's AUC is carried over."""
        result, truth = separable
        metrics = compute_metrics(result, truth, roc=roc_curve(result, truth, "B"))
        assert metrics.auc == pytest.approx(1.0)
        assert "AUC=1.0000" in str(metrics)

        flat = metrics.to_dict()
        assert flat["accuracy"] == 1.0
        assert flat["auc"] == pytest.approx(1.0)
        assert flat["recall_B"] == 1.0
