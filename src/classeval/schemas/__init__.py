"""
Schema definitions using Pandera for data validation.

Tables and prediction frames are validated at stage boundaries.
"""

from classeval.schemas.table import (
    PROBABILITY_TOLERANCE,
    FeatureKind,
    build_probability_schema,
    build_table_schema,
    infer_feature_kind,
    infer_feature_kinds,
)

__all__ = [
    "PROBABILITY_TOLERANCE",
    "FeatureKind",
    "build_probability_schema",
    "build_table_schema",
    "infer_feature_kind",
    "infer_feature_kinds",
]
