"""
Evaluation pipeline orchestration.

Load -> split -> normalize (fit on train) -> fit -> predict -> evaluate.

Every stage runs inside a named stage context: log events carry the
stage name and any pipeline error escaping a stage is stamped with it.
Errors are never retried; the first failure aborts the run.
"""

from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

import numpy as np
import pandas as pd

from classeval.config.settings import EvaluationConfig, ModelSpec, PipelineConfig
from classeval.errors import ClassevalError
from classeval.evaluation.metrics import (
    ClassificationMetrics,
    RocCurve,
    compute_metrics,
    confusion_matrix,
    roc_curve,
)
from classeval.evaluation.report import (
    plot_confusion_matrix,
    plot_roc_curve,
    safe_name,
    save_prediction_table,
)
from classeval.ingestion.delimited import DelimitedTableLoader
from classeval.modeling.classifiers import (
    FittedModel,
    PredictionResult,
    get_classifier,
)
from classeval.modeling.normalization import FeatureNormalizer, NormalizationParams
from classeval.modeling.persistence import save_model
from classeval.modeling.split import Split, stratified_folds, stratified_split
from classeval.utils.logging import get_logger, log_context

log = get_logger(__name__)


@contextmanager
def stage(name: str) -> Iterator[None]:
    """Run a block as a named pipeline stage."""
    with log_context(stage=name):
        try:
            yield
        except ClassevalError as e:
            if e.stage is None:
                e.stage = name
            log.error("Stage failed", error=e.kind, message=e.message)
            raise


@dataclass
class ModelEvaluation:
    """Outcome of evaluating one model on the test subset."""

    name: str
    spec: ModelSpec
    model: FittedModel
    result: PredictionResult
    metrics: ClassificationMetrics
    confusion: pd.DataFrame
    roc: RocCurve | None = None


@dataclass
class EvaluationRun:
    """
    Outcome of a full pipeline run.

    Attributes:
        split: Train/test partition of the loaded table (unnormalized).
        normalization: Parameters fitted on the training rows, if enabled.
        evaluations: Model display name -> evaluation.
        n_rows: Rows in the loaded table.
    """

    split: Split
    normalization: NormalizationParams | None
    evaluations: dict[str, ModelEvaluation] = field(default_factory=dict)
    n_rows: int = 0

    @property
    def test_labels(self) -> pd.Series:
        """True labels of the test rows."""
        return self.split.test[self.split.label_column].astype(str)


@dataclass(frozen=True)
class CrossValidationResult:
    """Per-fold accuracies of one model."""

    name: str
    fold_accuracies: tuple[float, ...]

    @property
    def mean(self) -> float:
        """Mean accuracy over folds."""
        return float(np.mean(self.fold_accuracies))

    @property
    def std(self) -> float:
        """Standard deviation of fold accuracies."""
        return float(np.std(self.fold_accuracies))


def resolve_positive_class(
    classes: Sequence[str], evaluation: EvaluationConfig
) -> str | None:
    """
    Choose the ROC positive class.

    The configured class wins. Without one, a binary problem uses the
    second class in sorted order; multi-class problems get no ROC.
    """
    if evaluation.positive_class is not None:
        return evaluation.positive_class
    if len(classes) == 2:
        return sorted(classes)[1]
    return None


def load_dataset(config: PipelineConfig) -> pd.DataFrame:
    """Load the configured dataset."""
    with stage("load"):
        return DelimitedTableLoader(config.dataset).load()


def _normalize(
    train: pd.DataFrame,
    test: pd.DataFrame,
    config: PipelineConfig,
) -> tuple[NormalizationParams | None, pd.DataFrame, pd.DataFrame]:
    """Fit normalization on train only and apply it to both subsets."""
    if not config.normalization.enabled:
        return None, train, test

    label = config.dataset.label_column
    features = [c for c in train.columns if c != label]
    normalizer = FeatureNormalizer(config.normalization.on_zero_variance)
    params = normalizer.fit(train, features)
    return params, normalizer.apply(params, train), normalizer.apply(params, test)


def evaluate_model(
    spec: ModelSpec,
    train: pd.DataFrame,
    test: pd.DataFrame,
    label_column: str,
    evaluation: EvaluationConfig,
) -> ModelEvaluation:
    """
    Fit one model on train and evaluate it on test.

    Args:
        spec: Model to evaluate.
        train: Training table (already normalized if requested).
        test: Test table transformed like train.
        label_column: Class label column.
        evaluation: Evaluator configuration.

    Returns:
        ModelEvaluation with metrics, confusion matrix and ROC curve.
    """
    name = spec.display_name
    with log_context(model=name):
        adapter = get_classifier(spec.name, label_column, **spec.params)

        with stage("fit"):
            model = adapter.fit(train)

        with stage("predict"):
            result = adapter.predict(model, test)

        with stage("evaluate"):
            true_labels = test[label_column].astype(str)
            positive = resolve_positive_class(result.classes, evaluation)
            roc = None
            if positive is not None:
                roc = roc_curve(
                    result,
                    true_labels,
                    positive,
                    one_vs_rest=evaluation.one_vs_rest,
                )
            metrics = compute_metrics(result, true_labels, roc=roc)
            matrix = confusion_matrix(result, true_labels)

        log.info("Evaluated model", metrics=str(metrics))

    return ModelEvaluation(
        name=name,
        spec=spec,
        model=model,
        result=result,
        metrics=metrics,
        confusion=matrix,
        roc=roc,
    )


def _select_models(
    config: PipelineConfig, model_names: Sequence[str] | None
) -> list[ModelSpec]:
    if model_names:
        return [config.get_model(name) for name in model_names]
    if not config.models:
        msg = "No models configured"
        raise ValueError(msg)
    return list(config.models)


def run_evaluation(
    config: PipelineConfig,
    *,
    model_names: Sequence[str] | None = None,
    table: pd.DataFrame | None = None,
) -> EvaluationRun:
    """
    Run the full pipeline for each selected model on one shared split.

    Args:
        config: Pipeline configuration.
        model_names: Subset of configured models (default: all).
        table: Pre-loaded table; loaded from config.dataset if None.

    Returns:
        EvaluationRun with one evaluation per model.

    Raises:
        ClassevalError: Subclass stamped with the failing stage.
    """
    specs = _select_models(config, model_names)
    label = config.dataset.label_column

    if table is None:
        table = load_dataset(config)

    with stage("split"):
        split = stratified_split(
            table,
            label,
            random_state=config.split.random_state,
            train_fraction=config.split.train_fraction,
        )

    with stage("normalize"):
        params, train, test = _normalize(split.train, split.test, config)

    run = EvaluationRun(split=split, normalization=params, n_rows=len(table))
    for spec in specs:
        run.evaluations[spec.display_name] = evaluate_model(
            spec, train, test, label, config.evaluation
        )

    log.info(
        "Evaluation complete",
        n_models=len(run.evaluations),
        n_train=split.n_train,
        n_test=split.n_test,
    )
    return run


def cross_validate(
    config: PipelineConfig,
    *,
    n_splits: int | None = None,
    model_names: Sequence[str] | None = None,
    table: pd.DataFrame | None = None,
) -> dict[str, CrossValidationResult]:
    """
    Stratified k-fold accuracy for each selected model.

    Normalization is refitted on each fold's training rows.

    Args:
        config: Pipeline configuration.
        n_splits: Number of folds (default: config.split.cv_folds).
        model_names: Subset of configured models (default: all).
        table: Pre-loaded table; loaded from config.dataset if None.

    Returns:
        Model display name -> per-fold accuracies.
    """
    specs = _select_models(config, model_names)
    label = config.dataset.label_column
    n_splits = n_splits or config.split.cv_folds

    if table is None:
        table = load_dataset(config)

    with stage("split"):
        folds = list(
            stratified_folds(
                table,
                label,
                n_splits=n_splits,
                random_state=config.split.random_state,
            )
        )

    accuracies: dict[str, list[float]] = {spec.display_name: [] for spec in specs}
    for fold, split in enumerate(folds):
        with log_context(fold=fold):
            with stage("normalize"):
                _, train, test = _normalize(split.train, split.test, config)
            for spec in specs:
                evaluation = evaluate_model(
                    spec, train, test, label, EvaluationConfig()
                )
                accuracies[spec.display_name].append(evaluation.metrics.accuracy)

    results = {
        name: CrossValidationResult(name=name, fold_accuracies=tuple(values))
        for name, values in accuracies.items()
    }
    for result in results.values():
        log.info(
            "Cross-validated",
            model=result.name,
            n_splits=n_splits,
            mean_accuracy=f"{result.mean:.4f}",
        )
    return results


def write_outputs(
    run: EvaluationRun,
    config: PipelineConfig,
    *,
    output_dir: Path | None = None,
    save_models: bool = False,
    plots: bool = True,
) -> list[Path]:
    """
    Write prediction tables, plots and (optionally) model artifacts.

    Args:
        run: Completed evaluation run.
        config: Pipeline configuration (output layout, project name).
        output_dir: Root to write under; defaults to ./output/{project}.
        save_models: Also persist each fitted model with joblib.
        plots: Draw ROC curves and confusion heatmaps.

    Returns:
        Paths of all files written.
    """
    if output_dir is None:
        predictions_dir = config.predictions_dir
        plots_dir = config.plots_dir
        models_dir = config.models_dir
    else:
        predictions_dir = output_dir / "predictions"
        plots_dir = output_dir / "plots"
        models_dir = output_dir / "models"
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    written: list[Path] = []

    for name, evaluation in run.evaluations.items():
        written.append(
            save_prediction_table(
                name,
                evaluation.result,
                run.test_labels,
                predictions_dir,
                timestamp=timestamp,
            )
        )
        if plots:
            written.append(
                plot_confusion_matrix(
                    evaluation.confusion,
                    plots_dir / f"{safe_name(name)}_confusion.png",
                    title=f"{name} confusion matrix",
                )
            )
        if save_models:
            written.append(
                save_model(
                    evaluation.model,
                    models_dir / f"{safe_name(name)}.joblib",
                    normalization=run.normalization,
                    project=config.project,
                )
            )

    curves = {n: e.roc for n, e in run.evaluations.items() if e.roc is not None}
    if plots and curves:
        written.append(plot_roc_curve(curves, plots_dir / "roc.png"))

    return written
