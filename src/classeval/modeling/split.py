"""
Stratified train/test partitioning.

The random seed is always an explicit argument so a split can be
reproduced from its configuration alone.
"""

from collections.abc import Iterator
from dataclasses import dataclass

import pandas as pd
from sklearn.model_selection import StratifiedKFold, train_test_split

from classeval.errors import InsufficientDataError, SchemaMismatchError
from classeval.utils.logging import get_logger

log = get_logger(__name__)

DEFAULT_TRAIN_FRACTION = 0.75


@dataclass(frozen=True)
class Split:
    """
    A partition of a table into training and test rows.

    Attributes:
        train: Training rows (original index preserved).
        test: Test rows (original index preserved).
        label_column: Name of the class label column.
    """

    train: pd.DataFrame
    test: pd.DataFrame
    label_column: str

    @property
    def n_train(self) -> int:
        """Number of training rows."""
        return len(self.train)

    @property
    def n_test(self) -> int:
        """Number of test rows."""
        return len(self.test)

    def class_counts(self) -> pd.DataFrame:
        """Rows per class in each subset."""
        return pd.DataFrame(
            {
                "train": self.train[self.label_column].value_counts(),
                "test": self.test[self.label_column].value_counts(),
            }
        ).fillna(0).astype(int)


def _check_stratifiable(
    table: pd.DataFrame, label_column: str, min_per_class: int
) -> pd.Series:
    """Return class counts, failing if any class is too small."""
    if label_column not in table.columns:
        msg = f"Label column '{label_column}' not in table"
        raise SchemaMismatchError(msg)
    if not table.index.is_unique:
        msg = "Table index must be unique to partition rows"
        raise SchemaMismatchError(msg)

    counts = table[label_column].value_counts()
    too_small = counts[counts < min_per_class]
    if not too_small.empty:
        msg = (
            f"Cannot stratify: classes need at least {min_per_class} rows, "
            f"got {too_small.to_dict()}"
        )
        raise InsufficientDataError(msg)
    return counts


def stratified_split(
    table: pd.DataFrame,
    label_column: str,
    *,
    random_state: int,
    train_fraction: float = DEFAULT_TRAIN_FRACTION,
) -> Split:
    """
    Split a table into train and test subsets preserving class proportions.

    Args:
        table: Table to split. Not modified.
        label_column: Column to stratify on.
        random_state: Seed for the sampling.
        train_fraction: Share of rows assigned to training, in (0, 1).

    Returns:
        Split whose two subsets partition the table's rows.

    Raises:
        InsufficientDataError: If a class has fewer than 2 rows or either
            subset would be too small to hold every class.
        ValueError: If train_fraction is outside (0, 1).
    """
    if not 0.0 < train_fraction < 1.0:
        msg = f"train_fraction must be in (0, 1), got {train_fraction}"
        raise ValueError(msg)

    counts = _check_stratifiable(table, label_column, min_per_class=2)

    try:
        train, test = train_test_split(
            table,
            train_size=train_fraction,
            stratify=table[label_column],
            random_state=random_state,
        )
    except ValueError as e:
        # sklearn rejects subsets smaller than the number of classes
        msg = f"Table too small to stratify {len(table)} rows at {train_fraction}: {e}"
        raise InsufficientDataError(msg) from e

    log.info(
        "Stratified split",
        n_train=len(train),
        n_test=len(test),
        classes=counts.to_dict(),
        random_state=random_state,
    )
    return Split(train=train, test=test, label_column=label_column)


def stratified_folds(
    table: pd.DataFrame,
    label_column: str,
    *,
    n_splits: int,
    random_state: int,
) -> Iterator[Split]:
    """
    Yield stratified k-fold splits; each row is a test row exactly once.

    Raises:
        InsufficientDataError: If a class has fewer rows than n_splits.
    """
    if n_splits < 2:
        msg = f"n_splits must be at least 2, got {n_splits}"
        raise ValueError(msg)

    _check_stratifiable(table, label_column, min_per_class=n_splits)

    folds = StratifiedKFold(n_splits=n_splits, shuffle=True, random_state=random_state)
    for fold, (train_idx, test_idx) in enumerate(
        folds.split(table, table[label_column])
    ):
        log.debug("Fold", fold=fold, n_train=len(train_idx), n_test=len(test_idx))
        yield Split(
            train=table.iloc[train_idx],
            test=table.iloc[test_idx],
            label_column=label_column,
        )
