"""
Base classes for data ingestion.

Provides the load -> select -> clean -> validate sequence shared by loaders.
"""

from abc import ABC, abstractmethod

import pandas as pd
import pandera.errors

from classeval.config.settings import DatasetConfig
from classeval.errors import MalformedInputError
from classeval.schemas.table import build_table_schema, infer_feature_kinds
from classeval.utils.logging import get_logger

log = get_logger(__name__)


class DataLoader(ABC):
    """
    Abstract base class for table loaders.

    Subclasses only read the raw frame; column selection, missing-value
    handling and schema validation happen here so every source produces
    the same kind of table.
    """

    def __init__(self, config: DatasetConfig) -> None:
        """
        Initialize data loader.

        Args:
            config: Dataset configuration (path, delimiter, column roles).
        """
        self.config = config

    @abstractmethod
    def _load_raw(self) -> pd.DataFrame:
        """Load raw data from source. Implemented by subclasses."""
        ...

    def load(self, *, validate: bool = True) -> pd.DataFrame:
        """
        Load, clean and optionally validate the table.

        Args:
            validate: Whether to validate against the table schema.

        Returns:
            Table with the feature columns followed by the label column.

        Raises:
            FileNotFoundError: If the data file does not exist.
            MalformedInputError: If the file or its columns are malformed.
        """
        log.info("Loading data", loader=self.__class__.__name__)

        df = self._load_raw()
        log.info("Loaded raw data", rows=len(df), columns=list(df.columns))

        df = self._select_columns(df)

        before_dropna = len(df)
        df = df.dropna()
        if len(df) < before_dropna:
            log.info(
                "Dropped rows with missing values",
                dropped=before_dropna - len(df),
                remaining=len(df),
            )

        df = df.reset_index(drop=True)

        if validate:
            df = self._validate(df)
            log.info("Schema validation passed")
        else:
            df[self.config.label_column] = df[self.config.label_column].astype(str)

        return df

    def _select_columns(self, df: pd.DataFrame) -> pd.DataFrame:
        """Drop identifier columns and order features before the label."""
        label = self.config.label_column
        if label not in df.columns:
            msg = f"Label column '{label}' not found. Columns: {list(df.columns)}"
            raise MalformedInputError(msg)

        missing_drop = [c for c in self.config.drop_columns if c not in df.columns]
        if missing_drop:
            log.warning("Configured drop columns not present", columns=missing_drop)
        df = df.drop(columns=[c for c in self.config.drop_columns if c in df.columns])

        if self.config.feature_columns is not None:
            missing = [c for c in self.config.feature_columns if c not in df.columns]
            if missing:
                msg = f"Feature columns not found: {missing}"
                raise MalformedInputError(msg)
            features = list(self.config.feature_columns)
        else:
            features = [c for c in df.columns if c != label]

        if label in features:
            msg = f"Label column '{label}' cannot also be a feature"
            raise MalformedInputError(msg)
        if not features:
            msg = "Table has no feature columns"
            raise MalformedInputError(msg)

        return df[[*features, label]].copy()

    def _validate(self, df: pd.DataFrame) -> pd.DataFrame:
        """Validate the table against a schema built from its columns."""
        label = self.config.label_column
        features = [c for c in df.columns if c != label]
        schema = build_table_schema(label, infer_feature_kinds(df, features))
        try:
            return schema.validate(df)
        except pandera.errors.SchemaError as e:
            msg = f"Table failed schema validation: {e}"
            raise MalformedInputError(msg) from e
