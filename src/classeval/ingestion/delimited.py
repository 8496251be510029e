"""
Delimited text file loader.

Rejects files whose data rows do not all have the header's width before
handing them to pandas, which would otherwise pad short rows with NaN.
"""

import csv
from pathlib import Path
from typing import TextIO

import pandas as pd

from classeval.config.settings import DatasetConfig
from classeval.errors import MalformedInputError
from classeval.ingestion.base import DataLoader
from classeval.utils.logging import get_logger

log = get_logger(__name__)


def _count_rows(f: TextIO, path: Path, delimiter: str) -> int:
    reader = csv.reader(f, delimiter=delimiter)
    header = next(reader, None)
    while header is not None and not any(field.strip() for field in header):
        header = next(reader, None)
    if header is None:
        msg = f"No header row found in {path}"
        raise MalformedInputError(msg)

    width = len(header)
    n_rows = 0
    for row in reader:
        if not row:
            continue
        if len(row) != width:
            msg = (
                f"{path}: line {reader.line_num} has {len(row)} fields, "
                f"header has {width}"
            )
            raise MalformedInputError(msg)
        n_rows += 1
    return n_rows


def check_row_widths(path: Path, delimiter: str) -> int:
    """
    Verify every non-blank row has as many fields as the header.

    Args:
        path: Delimited text file.
        delimiter: Field delimiter.

    Returns:
        Number of data rows.

    Raises:
        MalformedInputError: On a missing header, a row of different width,
            or bytes that are not UTF-8 text.
    """
    try:
        with path.open(encoding="utf-8", newline="") as f:
            return _count_rows(f, path, delimiter)
    except UnicodeDecodeError as e:
        msg = f"{path} is not UTF-8 text: {e.reason} at byte {e.start}"
        raise MalformedInputError(msg) from e


class DelimitedTableLoader(DataLoader):
    """Loader for CSV-like files with a header row."""

    def _load_raw(self) -> pd.DataFrame:
        path = self.config.path
        if not path.exists():
            msg = f"Dataset file not found: {path}"
            raise FileNotFoundError(msg)

        n_rows = check_row_widths(path, self.config.delimiter)
        log.debug("Row widths consistent", path=str(path), rows=n_rows)

        return pd.read_csv(path, sep=self.config.delimiter)


def load_table(
    path: Path,
    label_column: str,
    *,
    delimiter: str = ",",
    feature_columns: list[str] | None = None,
    drop_columns: list[str] | None = None,
    validate: bool = True,
) -> pd.DataFrame:
    """
    Convenience function to load a delimited table.

    Args:
        path: Path to the file.
        label_column: Class label column.
        delimiter: Field delimiter.
        feature_columns: Feature columns to keep (default: all non-label).
        drop_columns: Columns to discard.
        validate: Whether to validate against the table schema.

    Returns:
        Loaded table.
    """
    config = DatasetConfig(
        path=Path(path),
        delimiter=delimiter,
        label_column=label_column,
        feature_columns=feature_columns,
        drop_columns=drop_columns or [],
    )
    return DelimitedTableLoader(config).load(validate=validate)
