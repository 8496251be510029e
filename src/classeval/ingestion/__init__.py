"""Data ingestion for delimited tables."""

from classeval.ingestion.base import DataLoader
from classeval.ingestion.delimited import (
    DelimitedTableLoader,
    check_row_widths,
    load_table,
)

__all__ = ["DataLoader", "DelimitedTableLoader", "check_row_widths", "load_table"]
