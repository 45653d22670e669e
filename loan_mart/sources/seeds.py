"""CSV seed files for the raw source tables."""

import csv
import logging
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Any, Iterable, Mapping

from loan_mart.engine.base import QueryEngine
from loan_mart.exceptions import ConfigurationError, MalformedRecordError
from loan_mart.sources.schema import SOURCE_TABLES, SourceTable

logger = logging.getLogger(__name__)


def read_seed(path: str | Path, table: SourceTable) -> list[dict[str, Any]]:
    """Read a seed CSV and coerce every row to the table's schema.

    Parameters
    ----------
    path : str | Path
        CSV file with a header row.
    table : SourceTable
        Schema the rows must satisfy.

    Returns
    -------
    list[dict[str, Any]]
        Typed rows in file order.
    """
    path = Path(path)
    with open(path, newline="", encoding="utf-8") as f:
        reader = csv.DictReader(f)
        header = reader.fieldnames or []
        missing = [name for name in table.column_names if name not in header]
        if missing:
            raise MalformedRecordError(f"{path.name}: missing column(s) {', '.join(missing)}")
        extra = [name for name in header if name not in table.column_names]
        if extra:
            logger.warning("%s: ignoring unknown column(s) %s", path.name, ", ".join(extra))

        return [table.coerce_row(row, line=reader.line_num) for row in reader]


def load_seeds(seeds_dir: str | Path) -> dict[str, list[dict[str, Any]]]:
    """Read ``<table>.csv`` for every source table in ``seeds_dir``."""
    seeds_dir = Path(seeds_dir)
    tables = {}
    for name, table in SOURCE_TABLES.items():
        path = seeds_dir / f"{name}.csv"
        if not path.exists():
            raise ConfigurationError(f"Seed file {path} not found")
        tables[name] = read_seed(path, table)
        logger.info("Read seed %s: %d rows", name, len(tables[name]))
    return tables


def write_seed(path: str | Path, table: SourceTable, rows: Iterable[Mapping[str, Any]]) -> int:
    """Write rows as a seed CSV; returns the number of rows written."""
    count = 0
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=table.column_names)
        writer.writeheader()
        for row in rows:
            writer.writerow({name: _format_cell(row.get(name)) for name in table.column_names})
            count += 1
    return count


def load_sources(engine: QueryEngine, tables: Mapping[str, Iterable[Mapping[str, Any]]]) -> None:
    """Register raw tables with ``engine`` under their source names.

    Rows are coerced to the source schema first, so a generator or test
    can pass loosely typed values.
    """
    unknown = sorted(set(tables) - set(SOURCE_TABLES))
    if unknown:
        raise ConfigurationError(f"Unknown source table(s): {', '.join(unknown)}")

    for name, rows in tables.items():
        table = SOURCE_TABLES[name]
        typed = [table.coerce_row(row, line=i) for i, row in enumerate(rows, start=1)]
        engine.load_table(name, table.columns, typed)
        logger.info("Loaded source %s: %d rows", name, len(typed))


def _format_cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, Decimal):
        return format(value, "f")
    if isinstance(value, date):
        return value.isoformat()
    return str(value)
