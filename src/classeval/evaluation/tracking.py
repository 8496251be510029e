"""
MLflow experiment tracking for evaluation runs.

One parent run per pipeline invocation, one nested run per model.
"""

from typing import Any

import mlflow

from classeval.config.settings import PipelineConfig
from classeval.evaluation.metrics import ClassificationMetrics
from classeval.utils.logging import get_logger

log = get_logger(__name__)


class EvaluationTracker:
    """
    Logs parameters and metrics of an evaluation run to MLflow.

    Usable as a context manager; the parent run is ended on exit even
    if the pipeline fails.
    """

    def __init__(self, config: PipelineConfig) -> None:
        """
        Initialize tracker.

        Args:
            config: Pipeline configuration (tracking URI, experiment name, seeds).
        """
        self.config = config
        self._run_id: str | None = None

    def __enter__(self) -> "EvaluationTracker":
        self.start_run()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.end_run()

    def start_run(self, run_name: str | None = None) -> str:
        """Set up the experiment and start the parent run."""
        mlflow.set_tracking_uri(self.config.tracking.tracking_uri)
        mlflow.set_experiment(self.config.experiment_name)

        run = mlflow.start_run(
            run_name=run_name or self.config.project,
            tags={"project": self.config.project},
        )
        self._run_id = run.info.run_id
        mlflow.log_params(
            {
                "dataset": str(self.config.dataset.path),
                "label_column": self.config.dataset.label_column,
                "train_fraction": self.config.split.train_fraction,
                "random_state": self.config.split.random_state,
                "normalization": self.config.normalization.enabled,
            }
        )
        log.info(
            "Started MLflow run",
            run_id=self._run_id,
            experiment=self.config.experiment_name,
        )
        return self._run_id

    def end_run(self) -> None:
        """End the parent run."""
        if self._run_id is None:
            return
        mlflow.end_run()
        log.info("Ended MLflow run", run_id=self._run_id)
        self._run_id = None

    def log_model_result(
        self,
        model_name: str,
        params: dict[str, Any],
        metrics: ClassificationMetrics,
    ) -> None:
        """Log one model's parameters and metrics as a nested run."""
        with mlflow.start_run(run_name=f"eval-{model_name}", nested=True):
            mlflow.set_tag("model_name", model_name)
            if params:
                mlflow.log_params({f"model.{k}": v for k, v in params.items()})
            mlflow.log_metrics(
                {k: float(v) for k, v in metrics.to_dict().items()}
            )
