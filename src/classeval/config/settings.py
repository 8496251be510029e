"""
Typed configuration models using Pydantic.

Every stage receives its parameters from here. Seeds, fractions and model
hyperparameters are explicit fields, never ambient global state.
"""

from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# Classifier names understood by the adapter registry
KNOWN_MODELS = ("lda", "knn", "logistic")


class ZeroVariancePolicy(str, Enum):
    """What the normalizer does with a constant training feature."""

    PASSTHROUGH = "passthrough"  # leave unscaled, log a warning
    RAISE = "raise"  # propagate ZeroVarianceError


class DatasetConfig(BaseModel):
    """Delimited input file and its column roles."""

    model_config = ConfigDict(frozen=True)

    path: Path = Field(description="Path to the delimited text file")
    delimiter: str = Field(default=",", description="Single-character field delimiter")
    label_column: str = Field(description="Column holding the class label")
    feature_columns: list[str] | None = Field(
        default=None,
        description="Feature columns to use (default: every non-label column)",
    )
    drop_columns: list[str] = Field(
        default_factory=list, description="Identifier columns to discard on load"
    )

    @field_validator("delimiter")
    @classmethod
    def validate_delimiter(cls, v: str) -> str:
        """Ensure the delimiter is a single character."""
        if len(v) != 1:
            msg = f"delimiter must be a single character, got: {v!r}"
            raise ValueError(msg)
        return v


class SplitConfig(BaseModel):
    """Stratified train/test split configuration."""

    model_config = ConfigDict(frozen=True)

    train_fraction: float = Field(default=0.75, gt=0.0, lt=1.0)
    random_state: int = Field(default=1337)
    cv_folds: int = Field(default=5, ge=2, le=20)


class NormalizationConfig(BaseModel):
    """Feature normalization configuration."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = Field(default=True)
    on_zero_variance: ZeroVariancePolicy = Field(default=ZeroVariancePolicy.PASSTHROUGH)


class ModelSpec(BaseModel):
    """A single classifier to evaluate."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(description="Registered classifier name (lda, knn, logistic)")
    label: str | None = Field(default=None, description="Display name for reports")
    params: dict[str, Any] = Field(default_factory=dict)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Ensure the classifier is registered."""
        if v not in KNOWN_MODELS:
            msg = f"Unknown model '{v}'. Available: {', '.join(KNOWN_MODELS)}"
            raise ValueError(msg)
        return v

    @model_validator(mode="after")
    def validate_knn_k(self) -> "ModelSpec":
        """k-NN has no default neighbour count."""
        if self.name == "knn" and "k" not in self.params:
            msg = "knn requires an explicit 'k' parameter"
            raise ValueError(msg)
        return self

    @property
    def display_name(self) -> str:
        """Name shown in reports and file names."""
        if self.label:
            return self.label
        if self.name == "knn":
            return f"knn-k{self.params['k']}"
        return self.name


class EvaluationConfig(BaseModel):
    """Evaluator configuration."""

    model_config = ConfigDict(frozen=True)

    positive_class: str | None = Field(
        default=None, description="Class treated as positive for the ROC curve"
    )
    one_vs_rest: bool = Field(
        default=False, description="Allow ROC for >2 classes by one-vs-rest reduction"
    )


class TrackingConfig(BaseModel):
    """MLflow experiment tracking configuration."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = Field(default=False)
    tracking_uri: str = Field(default="http://127.0.0.1:5000")
    experiment_name: str | None = Field(
        default=None, description="MLflow experiment name (defaults to project name)"
    )


class OutputConfig(BaseModel):
    """Output paths configuration.

    Structure: ./output/{project}/predictions, ./output/{project}/plots, ...
    """

    model_config = ConfigDict(frozen=True)

    output_root: Path = Field(
        default=Path("./output"), description="Root directory for all outputs"
    )


class PipelineConfig(BaseModel):
    """Complete pipeline configuration."""

    model_config = ConfigDict(frozen=True)

    project: str = Field(description="Project identifier (e.g., 'smarket-lda')")

    dataset: DatasetConfig
    split: SplitConfig = Field(default_factory=SplitConfig)
    normalization: NormalizationConfig = Field(default_factory=NormalizationConfig)
    models: list[ModelSpec] = Field(default_factory=list)
    evaluation: EvaluationConfig = Field(default_factory=EvaluationConfig)
    tracking: TrackingConfig = Field(default_factory=TrackingConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)

    @model_validator(mode="after")
    def validate_unique_models(self) -> "PipelineConfig":
        """Results are keyed by display name, so names must not repeat."""
        names = [spec.display_name for spec in self.models]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            msg = (
                f"Duplicate model names: {duplicates}. "
                "Give each model a distinct 'label'"
            )
            raise ValueError(msg)
        return self

    @property
    def experiment_name(self) -> str:
        """MLflow experiment name (derived from project if not set)."""
        return self.tracking.experiment_name or self.project

    def get_model(self, name: str) -> ModelSpec:
        """Look up a configured model by display name or registry name."""
        for spec in self.models:
            if name in (spec.display_name, spec.name):
                return spec
        available = ", ".join(spec.display_name for spec in self.models)
        msg = f"Model '{name}' is not configured. Configured: {available}"
        raise KeyError(msg)

    @property
    def predictions_dir(self) -> Path:
        """Path to predictions output directory."""
        return self.output.output_root / self.project / "predictions"

    @property
    def plots_dir(self) -> Path:
        """Path to plots output directory."""
        return self.output.output_root / self.project / "plots"

    @property
    def models_dir(self) -> Path:
        """Path to saved model artifacts."""
        return self.output.output_root / self.project / "models"
