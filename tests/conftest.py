"""Pytest configuration and shared fixtures."""

from collections.abc import Callable
from pathlib import Path

import numpy as np
import pandas as pd
import pytest

from classeval.config.settings import (
    DatasetConfig,
    ModelSpec,
    OutputConfig,
    PipelineConfig,
    SplitConfig,
)


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def make_table() -> Callable[..., pd.DataFrame]:
    """
    Factory for labelled tables with two gaussian features.

    Class i is centred at (i * shift, -i * shift).
    """

    def _make(
        counts: dict[str, int],
        *,
        shift: float = 2.0,
        seed: int = 0,
        label_column: str = "label",
    ) -> pd.DataFrame:
        rng = np.random.default_rng(seed)
        frames = [
            pd.DataFrame(
                {
                    "x1": rng.normal(i * shift, 1.0, n),
                    "x2": rng.normal(-i * shift, 1.0, n),
                    label_column: cls,
                }
            )
            for i, (cls, n) in enumerate(counts.items())
        ]
        return pd.concat(frames, ignore_index=True)

    return _make


@pytest.fixture
def binary_table(make_table: Callable[..., pd.DataFrame]) -> pd.DataFrame:
    """100 rows, classes A:60 and B:40, reasonably separable."""
    return make_table({"A": 60, "B": 40})


@pytest.fixture
def three_class_table(make_table: Callable[..., pd.DataFrame]) -> pd.DataFrame:
    """90 rows over three classes."""
    return make_table({"low": 30, "mid": 30, "high": 30}, shift=3.0)


@pytest.fixture
def binary_csv(tmp_path: Path, binary_table: pd.DataFrame) -> Path:
    """The binary table written as CSV with an identifier column."""
    path = tmp_path / "binary.csv"
    table = binary_table.copy()
    table.insert(0, "row_id", range(len(table)))
    table.to_csv(path, index=False)
    return path


@pytest.fixture
def pipeline_config(binary_csv: Path, tmp_path: Path) -> PipelineConfig:
    """Configuration evaluating LDA, logistic regression and 5-NN on binary_csv."""
    return PipelineConfig(
        project="test-binary",
        dataset=DatasetConfig(
            path=binary_csv,
            label_column="label",
            drop_columns=["row_id"],
        ),
        split=SplitConfig(train_fraction=0.75, random_state=42, cv_folds=4),
        models=[
            ModelSpec(name="lda"),
            ModelSpec(name="logistic"),
            ModelSpec(name="knn", params={"k": 5}),
        ],
        output=OutputConfig(output_root=tmp_path / "output"),
    )
