"""
Model artifact persistence.

A saved artifact bundles the fitted model with the normalization
parameters it was trained behind, so predictions on new data apply the
same transform.
"""

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

import joblib

from classeval.modeling.classifiers import FittedModel
from classeval.modeling.normalization import NormalizationParams
from classeval.utils.logging import get_logger

log = get_logger(__name__)


@dataclass(frozen=True)
class ModelArtifact:
    """Persisted model with its preprocessing and provenance."""

    model: FittedModel
    normalization: NormalizationParams | None
    project: str
    created_at: str


def save_model(
    model: FittedModel,
    path: Path,
    *,
    normalization: NormalizationParams | None = None,
    project: str = "",
) -> Path:
    """
    Save a fitted model artifact with joblib.

    Args:
        model: Fitted model.
        path: Target file (conventionally *.joblib).
        normalization: Parameters applied before fitting, if any.
        project: Project identifier stored as provenance.

    Returns:
        The path written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    artifact = ModelArtifact(
        model=model,
        normalization=normalization,
        project=project,
        created_at=datetime.now().isoformat(timespec="seconds"),
    )
    joblib.dump(artifact, path)
    log.info("Saved model", path=str(path), adapter=model.adapter)
    return path


def load_model(path: Path) -> ModelArtifact:
    """
    Load a model artifact written by save_model().

    Raises:
        FileNotFoundError: If the file does not exist.
        TypeError: If the file does not contain a ModelArtifact.
    """
    if not path.exists():
        msg = f"Model file not found: {path}"
        raise FileNotFoundError(msg)

    artifact = joblib.load(path)
    if not isinstance(artifact, ModelArtifact):
        msg = f"{path} does not contain a model artifact (got {type(artifact).__name__})"
        raise TypeError(msg)

    log.info("Loaded model", path=str(path), adapter=artifact.model.adapter)
    return artifact
