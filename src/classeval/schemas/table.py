"""
Pandera contracts for tables and prediction frames.

Column sets differ per dataset, so schemas are built from the column
roles at runtime instead of being declared as DataFrameModels.
"""

from collections.abc import Sequence
from enum import Enum

import numpy as np
import pandas as pd
import pandera.pandas as pa

# Tolerance for per-row probability sums
PROBABILITY_TOLERANCE = 1e-6


class FeatureKind(str, Enum):
    """Type class of a feature column."""

    NUMERIC = "numeric"
    CATEGORICAL = "categorical"


def infer_feature_kind(series: pd.Series) -> FeatureKind:
    """Classify a column as numeric or categorical from its dtype."""
    if pd.api.types.is_bool_dtype(series) or not pd.api.types.is_numeric_dtype(
        series
    ):
        return FeatureKind.CATEGORICAL
    return FeatureKind.NUMERIC


def infer_feature_kinds(
    df: pd.DataFrame, feature_columns: Sequence[str]
) -> dict[str, FeatureKind]:
    """Map each feature column to its kind."""
    return {col: infer_feature_kind(df[col]) for col in feature_columns}


def build_table_schema(
    label_column: str,
    feature_kinds: dict[str, FeatureKind],
) -> pa.DataFrameSchema:
    """
    Build the schema of a loaded table.

    Numeric features are coerced to float, categorical features and the
    label to string. No column may contain nulls.

    Args:
        label_column: Name of the class label column.
        feature_kinds: Feature column name -> kind.

    Returns:
        DataFrameSchema for validation.
    """
    columns: dict[str, pa.Column] = {
        label_column: pa.Column(str, nullable=False, coerce=True),
    }
    for name, kind in feature_kinds.items():
        if kind is FeatureKind.NUMERIC:
            columns[name] = pa.Column(
                float,
                checks=pa.Check(np.isfinite, element_wise=False),
                nullable=False,
                coerce=True,
            )
        else:
            columns[name] = pa.Column(str, nullable=False, coerce=True)

    return pa.DataFrameSchema(
        columns=columns,
        name="TableSchema",
        strict=False,
    )


def build_probability_schema(classes: Sequence[str]) -> pa.DataFrameSchema:
    """
    Build the schema of a per-class probability frame.

    Each column holds probabilities in [0, 1]; each row sums to 1.
    """
    columns = {
        str(cls): pa.Column(float, checks=pa.Check.in_range(0.0, 1.0), nullable=False)
        for cls in classes
    }
    return pa.DataFrameSchema(
        columns=columns,
        checks=pa.Check(
            lambda df: (df.sum(axis=1) - 1.0).abs() <= PROBABILITY_TOLERANCE,
            error="per-row probabilities must sum to 1",
        ),
        name="ProbabilitySchema",
        strict=True,
        ordered=True,
    )
