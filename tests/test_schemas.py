"""Tests for Pandera schema definitions."""

import pandas as pd
import pandera.pandas as pa
import pytest

from classeval.schemas import (
    FeatureKind,
    build_probability_schema,
    build_table_schema,
    infer_feature_kinds,
)


class TestFeatureKinds:
    """Tests for feature kind inference."""

    def test_kinds(self) -> None:
        """Numbers are numeric; strings and booleans are categorical."""
        df = pd.DataFrame(
            {
                "lag1": [0.1, -0.2],
                "volume": [1, 2],
                "student": ["Yes", "No"],
                "flag": [True, False],
            }
        )
        kinds = infer_feature_kinds(df, ["lag1", "volume", "student", "flag"])
        assert kinds == {
            "lag1": FeatureKind.NUMERIC,
            "volume": FeatureKind.NUMERIC,
            "student": FeatureKind.CATEGORICAL,
            "flag": FeatureKind.CATEGORICAL,
        }


class TestTableSchema:
    """Tests for the loaded table schema."""

    @pytest.fixture
    def schema(self) -> pa.DataFrameSchema:
        return build_table_schema(
            "Direction",
            {"Lag1": FeatureKind.NUMERIC, "Student": FeatureKind.CATEGORICAL},
        )

    def test_valid_data(self, schema: pa.DataFrameSchema) -> None:
        """Test that valid data passes and the label becomes text."""
        df = pd.DataFrame(
            {"Lag1": [0.5, 1], "Student": ["Yes", "No"], "Direction": [0, 1]}
        )
        result = schema.validate(df)
        assert list(result["Direction"]) == ["0", "1"]
        assert result["Lag1"].dtype == float

    def test_null_feature(self, schema: pa.DataFrameSchema) -> None:
        """Test that a missing feature value fails validation."""
        df = pd.DataFrame(
            {"Lag1": [float("nan")], "Student": ["Yes"], "Direction": ["Up"]}
        )
        with pytest.raises(pa.errors.SchemaError):
            schema.validate(df)

    def test_missing_feature(self, schema: pa.DataFrameSchema) -> None:
        """Test that every feature column is required."""
        df = pd.DataFrame({"Student": ["Yes"], "Direction": ["Up"]})
        with pytest.raises(pa.errors.SchemaError):
            schema.validate(df)

    def test_infinite_value(self, schema: pa.DataFrameSchema) -> None:
        """Test that numeric features must be finite."""
        df = pd.DataFrame(
            {"Lag1": [float("inf")], "Student": ["Yes"], "Direction": ["Up"]}
        )
        with pytest.raises(pa.errors.SchemaError):
            schema.validate(df)

    def test_extra_columns_allowed(self, schema: pa.DataFrameSchema) -> None:
        """Test that the schema is not strict."""
        df = pd.DataFrame(
            {"Lag1": [0.5], "Student": ["Yes"], "Direction": ["Up"], "Year": [2001]}
        )
        assert "Year" in schema.validate(df).columns


class TestProbabilitySchema:
    """Tests for the prediction probability schema."""

    def test_valid(self) -> None:
        """Test rows summing to 1 within tolerance."""
        df = pd.DataFrame({"Down": [0.25, 0.6], "Up": [0.75, 0.4 + 1e-9]})
        build_probability_schema(["Down", "Up"]).validate(df)

    def test_rows_must_sum_to_one(self) -> None:
        """Test that incomplete probability vectors fail."""
        df = pd.DataFrame({"Down": [0.25], "Up": [0.5]})
        with pytest.raises(pa.errors.SchemaError):
            build_probability_schema(["Down", "Up"]).validate(df)

    def test_out_of_range(self) -> None:
        """Test that probabilities must lie in [0, 1]."""
        df = pd.DataFrame({"Down": [-0.5], "Up": [1.5]})
        with pytest.raises(pa.errors.SchemaError):
            build_probability_schema(["Down", "Up"]).validate(df)

    def test_unknown_class_column(self) -> None:
        """Test that the columns must be exactly the classes."""
        df = pd.DataFrame({"Down": [0.5], "Up": [0.25], "Flat": [0.25]})
        with pytest.raises(pa.errors.SchemaError):
            build_probability_schema(["Down", "Up"]).validate(df)
