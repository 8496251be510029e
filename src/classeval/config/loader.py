"""
Configuration loading utilities.

Supports environment variable interpolation and config inheritance.
Minimal configs only need: project, dataset.path, dataset.label
"""

import os
import re
from pathlib import Path
from typing import Any

import yaml

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


def _interpolate_env_vars(value: str) -> str:
    """
    Interpolate environment variables in string values.

    Supports ${VAR} and ${VAR:default} syntax.
    """
    pattern = r"\$\{([^}:]+)(?::([^}]*))?\}"

    def replacer(match: re.Match[str]) -> str:
        var_name = match.group(1)
        default = match.group(2)
        return os.environ.get(var_name, default if default is not None else "")

    return re.sub(pattern, replacer, value)


def _process_config_values(obj: Any) -> Any:
    """Recursively process config values for env var interpolation."""
    if isinstance(obj, str):
        return _interpolate_env_vars(obj)
    if isinstance(obj, dict):
        return {k: _process_config_values(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_process_config_values(item) for item in obj]
    return obj


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep merge two dictionaries, with override taking precedence."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _parse_models(models_data: Any) -> list[ModelSpec]:
    """
    Parse the models section.

    Accepts a list of mappings ({name, label, params}) or bare names.
    """
    if not models_data:
        return []
    if not isinstance(models_data, list):
        msg = f"'models' must be a list, got {type(models_data).__name__}"
        raise ValueError(msg)

    specs = []
    for entry in models_data:
        if isinstance(entry, str):
            specs.append(ModelSpec(name=entry))
        else:
            specs.append(
                ModelSpec(
                    name=entry.get("name", ""),
                    label=entry.get("label"),
                    params=entry.get("params") or {},
                )
            )
    return specs


def load_yaml(path: Path) -> dict[str, Any]:
    """Load a YAML file and process environment variables."""
    with path.open(encoding="utf-8") as f:
        data = yaml.safe_load(f)
    return _process_config_values(data) if data else {}


def load_config(
    config_path: Path,
    base_path: Path | None = None,
) -> PipelineConfig:
    """
    Load pipeline configuration from YAML file(s).

    Minimal config requires only:
        - project: str
        - dataset.path: path to the delimited file
        - dataset.label: label column name

    Args:
        config_path: Path to the main configuration file.
        base_path: Optional path to base configuration for inheritance.

    Returns:
        Fully validated PipelineConfig instance.
    """
    if base_path is not None:
        base_data = load_yaml(base_path)
    else:
        # Try to find base.yaml in same directory
        potential_base = config_path.parent / "base.yaml"
        if potential_base.exists() and potential_base != config_path:
            base_data = load_yaml(potential_base)
        else:
            base_data = {}

    merged = _deep_merge(base_data, load_yaml(config_path))

    project = merged.get("project")
    if not project:
        msg = "Config must specify 'project' name"
        raise ValueError(msg)

    dataset_data = merged.get("dataset", {})
    if not dataset_data.get("path"):
        msg = "Config must specify 'dataset.path'"
        raise ValueError(msg)
    if not dataset_data.get("label"):
        msg = "Config must specify 'dataset.label' (the class label column)"
        raise ValueError(msg)

    dataset = DatasetConfig(
        path=Path(dataset_data["path"]),
        delimiter=dataset_data.get("delimiter", ","),
        label_column=str(dataset_data["label"]),
        feature_columns=dataset_data.get("features"),
        drop_columns=dataset_data.get("drop", []),
    )

    split_data = merged.get("split", {})
    split = SplitConfig(
        train_fraction=split_data.get("train_fraction", 0.75),
        random_state=split_data.get("random_state", 1337),
        cv_folds=split_data.get("cv_folds", 5),
    )

    norm_data = merged.get("normalization", {})
    normalization = NormalizationConfig(
        enabled=norm_data.get("enabled", True),
        on_zero_variance=ZeroVariancePolicy(
            norm_data.get("on_zero_variance", "passthrough")
        ),
    )

    eval_data = merged.get("evaluation", {})
    positive_class = eval_data.get("positive_class")
    evaluation = EvaluationConfig(
        positive_class=str(positive_class) if positive_class is not None else None,
        one_vs_rest=eval_data.get("one_vs_rest", False),
    )

    tracking_data = merged.get("tracking", {})
    tracking = TrackingConfig(
        enabled=tracking_data.get("enabled", False),
        tracking_uri=tracking_data.get("tracking_uri", "http://127.0.0.1:5000"),
        experiment_name=tracking_data.get("experiment_name"),
    )

    output_data = merged.get("output", {})
    output = OutputConfig(
        output_root=Path(output_data.get("root", "./output")),
    )

    return PipelineConfig(
        project=project,
        dataset=dataset,
        split=split,
        normalization=normalization,
        models=_parse_models(merged.get("models")),
        evaluation=evaluation,
        tracking=tracking,
        output=output,
    )
