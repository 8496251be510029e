"""
Configuration management with typed Pydantic models.

Provides explicit seeds and model parameters, YAML loading with
environment variable interpolation and base-config inheritance.
"""

from classeval.config.loader import load_config
from classeval.config.settings import (
    DatasetConfig,
    EvaluationConfig,
    ModelSpec,
    NormalizationConfig,
    OutputConfig,
    PipelineConfig,
    SplitConfig,
    TrackingConfig,
    ZeroVariancePolicy,
)

__all__ = [
    "DatasetConfig",
    "EvaluationConfig",
    "ModelSpec",
    "NormalizationConfig",
    "OutputConfig",
    "PipelineConfig",
    "SplitConfig",
    "TrackingConfig",
    "ZeroVariancePolicy",
    "load_config",
]
