"""
Feature standardization fitted on training rows only.

Parameters are computed from the training subset and applied unchanged
to every other subset, so test rows never influence the transform.
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

import numpy as np
import pandas as pd

from classeval.config.settings import ZeroVariancePolicy
from classeval.errors import SchemaMismatchError, ZeroVarianceError
from classeval.schemas.table import FeatureKind, infer_feature_kind
from classeval.utils.logging import get_logger

log = get_logger(__name__)


@dataclass(frozen=True)
class NormalizationParams:
    """
    Per-feature standardization parameters.

    Attributes:
        means: Feature -> training mean.
        stds: Feature -> training sample standard deviation (ddof=1).
        passthrough: Features left unscaled because their std is zero.
        n_rows: Number of training rows the parameters were computed from.
    """

    means: Mapping[str, float]
    stds: Mapping[str, float]
    passthrough: tuple[str, ...] = ()
    n_rows: int = 0

    def __post_init__(self) -> None:
        # Read-only views over private copies
        object.__setattr__(self, "means", MappingProxyType(dict(self.means)))
        object.__setattr__(self, "stds", MappingProxyType(dict(self.stds)))

    def __reduce__(self) -> tuple[Any, ...]:
        # mappingproxy cannot be pickled; rebuild from plain dicts
        return (
            type(self),
            (dict(self.means), dict(self.stds), self.passthrough, self.n_rows),
        )

    @property
    def features(self) -> tuple[str, ...]:
        """All features the parameters cover, scaled or passed through."""
        return (*self.means.keys(), *self.passthrough)

    def to_dict(self) -> dict[str, dict[str, float]]:
        """Convert to dictionary (feature -> {mean, std})."""
        return {
            name: {"mean": self.means[name], "std": self.stds[name]}
            for name in self.means
        }


def _zero_std_tolerance(mean: float) -> float:
    """Largest std still treated as zero: rounding noise relative to the mean."""
    scale = abs(mean) if np.isfinite(mean) else 0.0
    return 10 * np.finfo(float).eps * max(scale, 1.0)


class FeatureNormalizer:
    """
    Standardizes numeric features to zero mean and unit variance.

    Categorical features are ignored. A feature with zero training variance
    is either passed through unscaled or rejected, depending on the policy.
    """

    def __init__(
        self,
        on_zero_variance: ZeroVariancePolicy = ZeroVariancePolicy.PASSTHROUGH,
    ) -> None:
        """
        Initialize normalizer.

        Args:
            on_zero_variance: Policy for features with zero training variance.
        """
        self.on_zero_variance = ZeroVariancePolicy(on_zero_variance)

    def fit(
        self,
        train: pd.DataFrame,
        feature_columns: Sequence[str],
    ) -> NormalizationParams:
        """
        Compute standardization parameters from training rows.

        Args:
            train: Training table. Must not contain test rows.
            feature_columns: Candidate feature columns; non-numeric ones are skipped.

        Returns:
            Immutable NormalizationParams.

        Raises:
            SchemaMismatchError: If a feature column is missing.
            ZeroVarianceError: If a feature is constant and the policy is 'raise'.
        """
        missing = [c for c in feature_columns if c not in train.columns]
        if missing:
            msg = f"Feature columns missing from training table: {missing}"
            raise SchemaMismatchError(msg)

        means: dict[str, float] = {}
        stds: dict[str, float] = {}
        passthrough: list[str] = []

        for col in feature_columns:
            series = train[col]
            if infer_feature_kind(series) is not FeatureKind.NUMERIC:
                continue

            mean = float(series.mean())
            std = float(series.std(ddof=1)) if len(series) > 1 else 0.0
            if pd.isna(std) or std <= _zero_std_tolerance(mean):
                if self.on_zero_variance is ZeroVariancePolicy.RAISE:
                    raise ZeroVarianceError(col)
                log.warning(
                    "Zero-variance feature passed through unscaled",
                    feature=col,
                    value=float(series.iloc[0]) if len(series) else None,
                )
                passthrough.append(col)
                continue

            means[col] = mean
            stds[col] = std

        params = NormalizationParams(
            means=means,
            stds=stds,
            passthrough=tuple(passthrough),
            n_rows=len(train),
        )
        log.info(
            "Fitted normalization",
            n_rows=len(train),
            scaled=list(means),
            passthrough=passthrough,
        )
        return params

    @staticmethod
    def apply(params: NormalizationParams, table: pd.DataFrame) -> pd.DataFrame:
        """
        Apply standardization parameters to a table.

        Args:
            params: Parameters from fit().
            table: Table to transform. Not modified.

        Returns:
            New table with each scaled feature replaced by (value - mean) / std.

        Raises:
            SchemaMismatchError: If a scaled feature is missing.
        """
        missing = [c for c in params.means if c not in table.columns]
        if missing:
            msg = f"Table lacks normalized feature columns: {missing}"
            raise SchemaMismatchError(msg)

        result = table.copy()
        for col, mean in params.means.items():
            result[col] = (table[col].astype(float) - mean) / params.stds[col]
        return result

    def fit_apply(
        self,
        train: pd.DataFrame,
        others: Sequence[pd.DataFrame],
        feature_columns: Sequence[str],
    ) -> tuple[NormalizationParams, pd.DataFrame, list[pd.DataFrame]]:
        """Fit on train, then transform train and every other table identically."""
        params = self.fit(train, feature_columns)
        return (
            params,
            self.apply(params, train),
            [self.apply(params, other) for other in others],
        )
