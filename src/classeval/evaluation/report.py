"""
Evaluation reporting.

Renders metrics and confusion matrices as rich tables, writes prediction
tables, and draws ROC curves and confusion heatmaps with matplotlib.
Everything here is a sink: nothing is returned to the pipeline.
"""

from datetime import datetime
from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
from rich.table import Table

from classeval.evaluation.metrics import ClassificationMetrics, RocCurve
from classeval.modeling.classifiers import PredictionResult
from classeval.utils.logging import get_logger

log = get_logger(__name__)


def safe_name(name: str) -> str:
    """File-system friendly version of a model name."""
    return name.replace(" ", "_").replace("/", "_").lower()


def save_prediction_table(
    model_name: str,
    result: PredictionResult,
    true_labels: pd.Series,
    output_dir: Path,
    *,
    timestamp: str | None = None,
) -> Path:
    """
    Save test-set predictions as CSV.

    Columns: actual, predicted, p_<class> for every class.

    Args:
        model_name: Name of the model (used in the file name).
        result: Predictions for the test rows.
        true_labels: True labels of the same rows.
        output_dir: Directory to write to.
        timestamp: Optional timestamp string. If None, uses current time.

    Returns:
        Path of the written file.
    """
    output_dir.mkdir(parents=True, exist_ok=True)
    if timestamp is None:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")

    path = output_dir / f"{safe_name(model_name)}_test_predictions_{timestamp}.csv"
    result.to_frame(true_labels).to_csv(path, index_label="row")
    log.info("Saved predictions", path=str(path), rows=len(result))
    return path


def metrics_table(results: dict[str, ClassificationMetrics], title: str) -> Table:
    """Build a rich table comparing metrics across models."""
    table = Table(title=title)
    table.add_column("Model", style="cyan")
    table.add_column("Accuracy", style="green")
    table.add_column("Error rate", style="yellow")
    table.add_column("AUC", style="magenta")
    table.add_column("n", style="dim")

    for name, metrics in results.items():
        table.add_row(
            name,
            f"{metrics.accuracy:.4f}",
            f"{metrics.error_rate:.4f}",
            f"{metrics.auc:.4f}" if metrics.auc is not None else "-",
            str(metrics.n_samples),
        )
    return table


def confusion_table(matrix: pd.DataFrame, title: str) -> Table:
    """Build a rich table from a confusion matrix (true x predicted)."""
    table = Table(title=title)
    table.add_column("true \\ predicted", style="cyan")
    for col in matrix.columns:
        table.add_column(str(col), justify="right")
    for true_class, row in matrix.iterrows():
        table.add_row(str(true_class), *(str(int(v)) for v in row))
    return table


def plot_roc_curve(
    curves: dict[str, RocCurve],
    path: Path,
    *,
    title: str = "ROC curve",
) -> Path:
    """
    Plot one or more ROC curves into a PNG.

    Args:
        curves: Model name -> ROC curve.
        path: Output file.
        title: Figure title.

    Returns:
        The path written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fig, ax = plt.subplots(figsize=(6, 6))
    try:
        for name, curve in curves.items():
            ax.step(
                curve.fpr,
                curve.tpr,
                where="post",
                label=f"{name} (AUC={curve.auc:.3f})",
            )
        ax.plot([0, 1], [0, 1], linestyle="--", color="grey", linewidth=1)
        ax.set_xlim(0.0, 1.0)
        ax.set_ylim(0.0, 1.02)
        ax.set_xlabel("False positive rate")
        ax.set_ylabel("True positive rate")
        ax.set_title(title)
        ax.legend(loc="lower right")
        fig.savefig(path, dpi=150, bbox_inches="tight")
    finally:
        plt.close(fig)

    log.info("Saved ROC plot", path=str(path), n_curves=len(curves))
    return path


def plot_confusion_matrix(
    matrix: pd.DataFrame,
    path: Path,
    *,
    title: str = "Confusion matrix",
) -> Path:
    """Plot a confusion matrix heatmap with counts annotated."""
    path.parent.mkdir(parents=True, exist_ok=True)
    values = matrix.to_numpy()

    fig, ax = plt.subplots(figsize=(1.2 * len(matrix.columns) + 3, 1.2 * len(matrix) + 2))
    try:
        image = ax.imshow(values, cmap="Blues")
        fig.colorbar(image, ax=ax)
        ax.set_xticks(np.arange(len(matrix.columns)), labels=list(matrix.columns))
        ax.set_yticks(np.arange(len(matrix.index)), labels=list(matrix.index))
        ax.set_xlabel("Predicted")
        ax.set_ylabel("True")
        ax.set_title(title)

        threshold = values.max() / 2 if values.size else 0
        for i in range(values.shape[0]):
            for j in range(values.shape[1]):
                ax.text(
                    j,
                    i,
                    str(values[i, j]),
                    ha="center",
                    va="center",
                    color="white" if values[i, j] > threshold else "black",
                )
        fig.savefig(path, dpi=150, bbox_inches="tight")
    finally:
        plt.close(fig)

    log.info("Saved confusion heatmap", path=str(path))
    return path
