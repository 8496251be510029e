"""
Classifier adapters around scikit-learn estimators.

Each adapter translates a table into the estimator's numeric matrix and
back. The algorithms themselves are scikit-learn's; nothing here
reimplements discriminant analysis, neighbour search or GLM solving.
"""

import warnings
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, ClassVar

import numpy as np
import pandas as pd
from sklearn.base import BaseEstimator
from sklearn.discriminant_analysis import LinearDiscriminantAnalysis
from sklearn.exceptions import ConvergenceWarning
from sklearn.linear_model import LogisticRegression as SkLogisticRegression
from sklearn.neighbors import KNeighborsClassifier

from classeval.errors import (
    ConvergenceError,
    InsufficientDataError,
    SchemaMismatchError,
)
from classeval.schemas.table import (
    FeatureKind,
    build_probability_schema,
    infer_feature_kind,
    infer_feature_kinds,
)
from classeval.utils.logging import get_logger

log = get_logger(__name__)


@dataclass(frozen=True)
class FittedModel:
    """
    A fitted classifier and everything needed to apply it again.

    Attributes:
        adapter: Registry name of the adapter that produced it.
        estimator: Fitted scikit-learn estimator.
        label_column: Label column of the training table.
        feature_columns: Feature columns in fit order.
        feature_kinds: Feature -> numeric/categorical.
        categories: Categorical feature -> levels seen in training.
        classes: Class labels in estimator order.
        params: Estimator parameters the adapter was built with.
        n_train: Number of training rows.
    """

    adapter: str
    estimator: BaseEstimator
    label_column: str
    feature_columns: tuple[str, ...]
    feature_kinds: dict[str, FeatureKind]
    categories: dict[str, tuple[str, ...]]
    classes: tuple[str, ...]
    params: dict[str, Any] = field(default_factory=dict)
    n_train: int = 0


@dataclass(frozen=True)
class PredictionResult:
    """
    Predicted class and per-class probabilities for each row.

    Attributes:
        predicted: Predicted class per row, indexed like the input table.
        probabilities: One column per class; rows sum to 1.
        classes: Known classes, in probability column order.
    """

    predicted: pd.Series
    probabilities: pd.DataFrame
    classes: tuple[str, ...]

    def __len__(self) -> int:
        return len(self.predicted)

    def probability(self, cls: str) -> pd.Series:
        """Probability of a single class for every row."""
        if cls not in self.classes:
            msg = f"Unknown class '{cls}'. Known: {list(self.classes)}"
            raise ValueError(msg)
        return self.probabilities[cls]

    def to_frame(self, true_labels: pd.Series | None = None) -> pd.DataFrame:
        """Flatten into a table: [actual,] predicted, p(<class>)..."""
        frame = self.probabilities.add_prefix("p_")
        frame.insert(0, "predicted", self.predicted)
        if true_labels is not None:
            frame.insert(0, "actual", true_labels.astype(str))
        return frame


def _encode_features(
    frame: pd.DataFrame,
    feature_kinds: dict[str, FeatureKind],
    categories: dict[str, tuple[str, ...]],
) -> pd.DataFrame:
    """
    Translate a table into a numeric design matrix.

    Numeric features pass as float. Categorical features become one
    indicator column per level except the first (treatment coding).
    """
    parts: list[pd.Series] = []
    for col, kind in feature_kinds.items():
        if kind is FeatureKind.NUMERIC:
            parts.append(frame[col].astype(float))
            continue

        levels = categories[col]
        values = frame[col].astype(str)
        unknown = sorted(set(values) - set(levels))
        if unknown:
            msg = f"Feature '{col}' has levels not seen in training: {unknown}"
            raise SchemaMismatchError(msg)
        for level in levels[1:]:
            parts.append((values == level).astype(float).rename(f"{col}[{level}]"))

    if not parts:
        msg = "No usable feature columns after encoding"
        raise InsufficientDataError(msg)
    return pd.concat(parts, axis=1)


class ClassifierAdapter(ABC):
    """
    Uniform fit/predict interface over a scikit-learn classifier.

    Subclasses only choose the estimator; table translation, schema checks
    and error mapping are shared.
    """

    name: ClassVar[str]
    default_params: ClassVar[dict[str, Any]] = {}

    def __init__(self, label_column: str, **params: Any) -> None:
        """
        Initialize adapter.

        Args:
            label_column: Class label column; every other column is a feature.
            **params: Estimator parameters overriding the defaults.
        """
        self.label_column = label_column
        self.params = {**self.default_params, **params}

    @abstractmethod
    def _build_estimator(self) -> BaseEstimator:
        """Create an unfitted estimator from self.params."""
        ...

    def _check_trainable(self, train: pd.DataFrame) -> None:
        """Hook for adapter-specific preconditions on the training table."""

    def fit(self, train: pd.DataFrame) -> FittedModel:
        """
        Fit the classifier on all feature columns against the label.

        Args:
            train: Training table containing the label column.

        Returns:
            FittedModel record.

        Raises:
            SchemaMismatchError: If the label column is missing.
            InsufficientDataError: If fewer than two classes are present.
            ConvergenceError: If the solver does not converge.
        """
        if self.label_column not in train.columns:
            msg = f"Label column '{self.label_column}' not in training table"
            raise SchemaMismatchError(msg)

        features = [c for c in train.columns if c != self.label_column]
        feature_kinds = infer_feature_kinds(train, features)
        categories = {
            col: tuple(sorted(train[col].astype(str).unique()))
            for col, kind in feature_kinds.items()
            if kind is FeatureKind.CATEGORICAL
        }

        y = train[self.label_column].astype(str)
        if y.nunique() < 2:
            msg = f"Need at least 2 classes to fit, got {sorted(y.unique())}"
            raise InsufficientDataError(msg)
        self._check_trainable(train)

        X = _encode_features(train, feature_kinds, categories)
        estimator = self._build_estimator()

        log.info(
            "Fitting classifier",
            adapter=self.name,
            n_rows=len(X),
            n_features=X.shape[1],
            params=self.params,
        )
        with warnings.catch_warnings():
            warnings.simplefilter("error", ConvergenceWarning)
            try:
                estimator.fit(X, y)
            except ConvergenceWarning as w:
                msg = f"{self.name} did not converge: {w}"
                raise ConvergenceError(msg) from w
            except np.linalg.LinAlgError as e:
                msg = f"{self.name} failed in linear algebra: {e}"
                raise ConvergenceError(msg) from e

        return FittedModel(
            adapter=self.name,
            estimator=estimator,
            label_column=self.label_column,
            feature_columns=tuple(features),
            feature_kinds=feature_kinds,
            categories=categories,
            classes=tuple(str(c) for c in estimator.classes_),
            params=dict(self.params),
            n_train=len(train),
        )

    def predict(self, model: FittedModel, table: pd.DataFrame) -> PredictionResult:
        """
        Predict class and per-class probabilities for every row.

        The predicted class is the most probable one, so labels and
        probabilities never disagree.

        Args:
            model: Model returned by this adapter's fit().
            table: Rows to predict; the label column may be present and is ignored.

        Returns:
            PredictionResult indexed like the table.

        Raises:
            SchemaMismatchError: If the table's features differ from the fitted ones.
        """
        if model.adapter != self.name:
            msg = f"Model was fitted by '{model.adapter}', not '{self.name}'"
            raise SchemaMismatchError(msg)

        self._check_schema(model, table)

        X = _encode_features(table, model.feature_kinds, model.categories)
        proba = np.clip(model.estimator.predict_proba(X), 0.0, 1.0)

        classes = list(model.classes)
        probabilities = pd.DataFrame(proba, index=table.index, columns=classes)
        build_probability_schema(classes).validate(probabilities)

        predicted = pd.Series(
            np.asarray(classes, dtype=object)[proba.argmax(axis=1)],
            index=table.index,
            name="predicted",
        )
        log.debug("Predicted", adapter=self.name, n_rows=len(table))
        return PredictionResult(
            predicted=predicted,
            probabilities=probabilities,
            classes=model.classes,
        )

    @staticmethod
    def _check_schema(model: FittedModel, table: pd.DataFrame) -> None:
        """Require exactly the fitted feature columns with compatible kinds."""
        features = {c for c in table.columns if c != model.label_column}
        expected = set(model.feature_columns)
        if features != expected:
            msg = (
                f"Feature columns differ from training: "
                f"missing={sorted(expected - features)}, "
                f"unexpected={sorted(features - expected)}"
            )
            raise SchemaMismatchError(msg)

        for col, kind in model.feature_kinds.items():
            if kind is FeatureKind.NUMERIC and (
                infer_feature_kind(table[col]) is not FeatureKind.NUMERIC
            ):
                msg = f"Feature '{col}' was numeric in training, got {table[col].dtype}"
                raise SchemaMismatchError(msg)


class LinearDiscriminant(ClassifierAdapter):
    """Linear discriminant analysis."""

    name = "lda"

    def _build_estimator(self) -> BaseEstimator:
        return LinearDiscriminantAnalysis(**self.params)


class KNearestNeighbors(ClassifierAdapter):
    """
    k-nearest-neighbours classification.

    k has no default. Larger k smooths the decision boundary, trading
    variance for bias. Class probabilities are the share of the k
    neighbours voting for each class, for every class.
    """

    name = "knn"

    def __init__(self, label_column: str, *, k: int, **params: Any) -> None:
        if not isinstance(k, int) or isinstance(k, bool) or k < 1:
            msg = f"k must be a positive integer, got {k!r}"
            raise ValueError(msg)
        super().__init__(label_column, k=k, **params)

    @property
    def k(self) -> int:
        """Number of neighbours."""
        return int(self.params["k"])

    def _check_trainable(self, train: pd.DataFrame) -> None:
        if self.k > len(train):
            msg = f"k={self.k} exceeds the {len(train)} training rows"
            raise InsufficientDataError(msg)

    def _build_estimator(self) -> BaseEstimator:
        params = {key: value for key, value in self.params.items() if key != "k"}
        return KNeighborsClassifier(n_neighbors=self.k, **params)


class LogisticRegression(ClassifierAdapter):
    """Logistic regression (multinomial for more than two classes)."""

    name = "logistic"
    default_params: ClassVar[dict[str, Any]] = {"max_iter": 1000}

    def _build_estimator(self) -> BaseEstimator:
        return SkLogisticRegression(**self.params)


CLASSIFIER_REGISTRY: dict[str, type[ClassifierAdapter]] = {
    LinearDiscriminant.name: LinearDiscriminant,
    KNearestNeighbors.name: KNearestNeighbors,
    LogisticRegression.name: LogisticRegression,
}


def get_classifier(name: str, label_column: str, **params: Any) -> ClassifierAdapter:
    """
    Get a classifier adapter by name.

    Args:
        name: Adapter name from registry.
        label_column: Class label column.
        **params: Estimator parameters (k is required for knn).

    Returns:
        Adapter instance.

    Raises:
        KeyError: If adapter not found.
    """
    if name not in CLASSIFIER_REGISTRY:
        available = ", ".join(CLASSIFIER_REGISTRY.keys())
        msg = f"Unknown classifier '{name}'. Available: {available}"
        raise KeyError(msg)

    adapter_class = CLASSIFIER_REGISTRY[name]
    if adapter_class is KNearestNeighbors and "k" not in params:
        msg = "knn requires an explicit 'k' parameter"
        raise ValueError(msg)

    log.debug("Creating classifier", name=name, params=params)
    return adapter_class(label_column, **params)


def list_classifiers() -> list[str]:
    """List all available classifier names."""
    return list(CLASSIFIER_REGISTRY.keys())
