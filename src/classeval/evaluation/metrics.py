"""
Evaluation metrics for classifiers.

Accuracy, confusion matrix and ROC curve computed from a PredictionResult
and the true labels of the same rows.
"""

from dataclasses import dataclass

import numpy as np
import pandas as pd
from sklearn.metrics import accuracy_score
from sklearn.metrics import auc as sklearn_auc
from sklearn.metrics import confusion_matrix as sklearn_confusion_matrix
from sklearn.metrics import precision_recall_fscore_support
from sklearn.metrics import roc_curve as sklearn_roc_curve

from classeval.errors import (
    InsufficientDataError,
    SchemaMismatchError,
    UnsupportedMultiClassError,
)
from classeval.modeling.classifiers import PredictionResult
from classeval.utils.logging import get_logger

log = get_logger(__name__)


def _aligned_labels(result: PredictionResult, true_labels: pd.Series) -> pd.Series:
    """Return true labels as strings, checking they match the predicted rows."""
    if len(true_labels) != len(result):
        msg = (
            f"Got {len(true_labels)} true labels for {len(result)} predictions"
        )
        raise SchemaMismatchError(msg)
    if not true_labels.index.equals(result.predicted.index):
        msg = "True labels are not indexed like the predictions"
        raise SchemaMismatchError(msg)
    if len(true_labels) == 0:
        msg = "Cannot evaluate zero rows"
        raise InsufficientDataError(msg)
    return true_labels.astype(str)


def accuracy(result: PredictionResult, true_labels: pd.Series) -> float:
    """
    Fraction of rows whose predicted class equals the true class.

    Returns:
        Ratio in [0, 1].
    """
    y_true = _aligned_labels(result, true_labels)
    return float(accuracy_score(y_true, result.predicted))


def confusion_matrix(result: PredictionResult, true_labels: pd.Series) -> pd.DataFrame:
    """
    Count true-vs-predicted class pairs.

    Rows are true classes, columns predicted classes. Every known class
    appears on both axes, plus any true label the model never saw. The
    cell sum equals the number of rows.
    """
    y_true = _aligned_labels(result, true_labels)
    unseen = sorted(set(y_true) - set(result.classes))
    labels = [*result.classes, *unseen]

    matrix = sklearn_confusion_matrix(y_true, result.predicted, labels=labels)
    return pd.DataFrame(
        matrix,
        index=pd.Index(labels, name="true"),
        columns=pd.Index(labels, name="predicted"),
    )


@dataclass(frozen=True)
class RocCurve:
    """
    ROC curve for one positive class.

    Attributes:
        positive_class: Class treated as positive.
        fpr: False positive rates, starting at 0.
        tpr: True positive rates, starting at 0.
        thresholds: Decision thresholds in descending order (first is +inf).
        auc: Area under the curve.
        scores: Positive-class probability per row.
        is_positive: Whether each row's true class is the positive class.
    """

    positive_class: str
    fpr: np.ndarray
    tpr: np.ndarray
    thresholds: np.ndarray
    auc: float
    scores: np.ndarray
    is_positive: np.ndarray

    @property
    def points(self) -> list[tuple[float, float]]:
        """Ordered (false positive rate, true positive rate) pairs."""
        return [(float(f), float(t)) for f, t in zip(self.fpr, self.tpr, strict=True)]

    def at_threshold(self, threshold: float) -> tuple[float, float]:
        """(fpr, tpr) when rows with score >= threshold are called positive."""
        called = self.scores >= threshold
        n_pos = int(self.is_positive.sum())
        n_neg = len(self.is_positive) - n_pos
        tpr = float((called & self.is_positive).sum()) / n_pos
        fpr = float((called & ~self.is_positive).sum()) / n_neg
        return fpr, tpr

    def to_frame(self) -> pd.DataFrame:
        """Curve as a table of threshold, fpr, tpr."""
        return pd.DataFrame(
            {"threshold": self.thresholds, "fpr": self.fpr, "tpr": self.tpr}
        )


def roc_curve(
    result: PredictionResult,
    true_labels: pd.Series,
    positive_class: str,
    *,
    one_vs_rest: bool = False,
) -> RocCurve:
    """
    Sweep the decision threshold over the positive-class probabilities.

    Each distinct probability is used as a threshold, in descending order.

    Args:
        result: Predictions with per-class probabilities.
        true_labels: True class per row.
        positive_class: Class treated as positive.
        one_vs_rest: Allow more than two classes by scoring the positive
            class against all others.

    Returns:
        RocCurve with points and AUC.

    Raises:
        UnsupportedMultiClassError: More than two classes without one_vs_rest.
        InsufficientDataError: True labels lack positives or negatives.
        SchemaMismatchError: Positive class is not one of the predicted classes.
    """
    y_true = _aligned_labels(result, true_labels)
    positive_class = str(positive_class)

    if len(result.classes) > 2 and not one_vs_rest:
        msg = (
            f"ROC is defined for two classes, got {len(result.classes)}; "
            "request a one-vs-rest reduction explicitly"
        )
        raise UnsupportedMultiClassError(msg)

    if positive_class not in result.classes:
        msg = (
            f"Positive class '{positive_class}' is not a predicted class. "
            f"Known: {list(result.classes)}"
        )
        raise SchemaMismatchError(msg)
    scores = result.probability(positive_class).to_numpy(dtype=float)

    is_positive = (y_true == positive_class).to_numpy()
    if is_positive.all() or not is_positive.any():
        msg = f"ROC needs both '{positive_class}' and other rows among true labels"
        raise InsufficientDataError(msg)

    fpr, tpr, thresholds = sklearn_roc_curve(
        is_positive, scores, drop_intermediate=False
    )
    area = float(sklearn_auc(fpr, tpr))

    log.debug(
        "ROC computed",
        positive_class=positive_class,
        n_thresholds=len(thresholds),
        auc=f"{area:.4f}",
    )
    return RocCurve(
        positive_class=positive_class,
        fpr=fpr,
        tpr=tpr,
        thresholds=thresholds,
        auc=area,
        scores=scores,
        is_positive=is_positive,
    )


@dataclass(frozen=True)
class ClassificationMetrics:
    """
    Standard classification metrics.

    Attributes:
        accuracy: Fraction of correct predictions.
        error_rate: 1 - accuracy.
        n_samples: Number of evaluated rows.
        per_class: Class -> {precision, recall, f1, support}.
        auc: ROC AUC for the positive class, if computed.
    """

    accuracy: float
    error_rate: float
    n_samples: int
    per_class: dict[str, dict[str, float]]
    auc: float | None = None

    def to_dict(self) -> dict[str, float]:
        """Flatten to name -> value for logging and tracking."""
        flat: dict[str, float] = {
            "accuracy": self.accuracy,
            "error_rate": self.error_rate,
            "n_samples": self.n_samples,
        }
        if self.auc is not None:
            flat["auc"] = self.auc
        for cls, values in self.per_class.items():
            for name, value in values.items():
                flat[f"{name}_{cls}"] = value
        return flat

    def __str__(self) -> str:
        """String representation."""
        text = f"Accuracy={self.accuracy:.4f}, Error={self.error_rate:.4f}"
        if self.auc is not None:
            text += f", AUC={self.auc:.4f}"
        return f"{text}, n={self.n_samples}"


def compute_metrics(
    result: PredictionResult,
    true_labels: pd.Series,
    *,
    roc: RocCurve | None = None,
) -> ClassificationMetrics:
    """
    Compute accuracy and per-class precision/recall/F1.

    Args:
        result: Predictions.
        true_labels: True class per row.
        roc: Optional ROC curve whose AUC is included.

    Returns:
        ClassificationMetrics object.
    """
    y_true = _aligned_labels(result, true_labels)
    labels = list(result.classes)

    acc = float(accuracy_score(y_true, result.predicted))
    precision, recall, f1, support = precision_recall_fscore_support(
        y_true,
        result.predicted,
        labels=labels,
        zero_division=0,
    )
    per_class = {
        cls: {
            "precision": float(precision[i]),
            "recall": float(recall[i]),
            "f1": float(f1[i]),
            "support": int(support[i]),
        }
        for i, cls in enumerate(labels)
    }

    metrics = ClassificationMetrics(
        accuracy=acc,
        error_rate=1.0 - acc,
        n_samples=len(y_true),
        per_class=per_class,
        auc=roc.auc if roc is not None else None,
    )
    log.debug("Computed metrics", accuracy=acc, n_samples=len(y_true))
    return metrics
