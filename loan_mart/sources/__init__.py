"""Raw source tables: schemas and seed files."""

from loan_mart.sources.schema import (
    LOAN_TYPES,
    RAW_LOAN_PAYMENTS,
    RAW_LOANS,
    SOURCE_TABLES,
    SourceTable,
    coerce_value,
)
from loan_mart.sources.seeds import load_seeds, load_sources, read_seed, write_seed

__all__ = [
    "LOAN_TYPES",
    "RAW_LOANS",
    "RAW_LOAN_PAYMENTS",
    "SOURCE_TABLES",
    "SourceTable",
    "coerce_value",
    "load_seeds",
    "load_sources",
    "read_seed",
    "write_seed",
]
