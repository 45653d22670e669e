"""PostgreSQL sink for exporting model outputs to another database."""

import logging
import types
import typing
from dataclasses import fields, is_dataclass
from datetime import date
from decimal import Decimal
from typing import Any

import psycopg
from psycopg import sql

from loan_mart.exceptions import SinkError
from loan_mart.models.base import Record

logger = logging.getLogger(__name__)

PG_TYPES = {
    str: "text",
    int: "bigint",
    Decimal: "numeric",
    date: "date",
    bool: "boolean",
}


def column_types(record_type: type[Record]) -> dict[str, str]:
    """Map the fields of a record dataclass to PostgreSQL column types.

    Optional annotations (``X | None``) map to the type of ``X``.
    """
    hints = typing.get_type_hints(record_type)
    result = {}
    for f in fields(record_type):
        hint = hints[f.name]
        if isinstance(hint, types.UnionType) or typing.get_origin(hint) is typing.Union:
            hint = next(arg for arg in typing.get_args(hint) if arg is not type(None))
        result[f.name] = PG_TYPES.get(hint, "text")
    return result


class PostgresSink:
    """Write typed model records to PostgreSQL tables.

    Tables are created from the record dataclass on first write. Rows are
    loaded with ``COPY`` or ``executemany`` inside one transaction per
    batch. With ``truncate`` each table is emptied before its first write,
    so a re-run replaces the previous export instead of appending to it.
    """

    def __init__(self, connection_string: str, schema: str = "public", truncate: bool = False) -> None:
        """Initialize PostgreSQL sink.

        Parameters
        ----------
        connection_string : str
            libpq connection string.
        schema : str
            Target schema, created when missing.
        truncate : bool
            Empty each target table before writing to it for the first time.
        """
        self.schema = schema
        self.truncate = truncate
        try:
            self.conn = psycopg.connect(connection_string)
        except psycopg.OperationalError as exc:
            raise SinkError(f"Cannot connect to PostgreSQL: {exc}") from exc
        self._created: set[str] = set()
        self._counts: dict[str, int] = {}

        with self.conn.transaction():
            self.conn.execute(sql.SQL("CREATE SCHEMA IF NOT EXISTS {}").format(sql.Identifier(schema)))

    def create_table(self, table: str, record_type: type[Record]) -> None:
        """Create ``table`` for ``record_type`` if missing; empty it with ``truncate``."""
        column_defs = sql.SQL(", ").join(
            sql.SQL("{} {}").format(sql.Identifier(name), sql.SQL(pg_type))
            for name, pg_type in column_types(record_type).items()
        )
        with self.conn.transaction():
            self.conn.execute(
                sql.SQL("CREATE TABLE IF NOT EXISTS {} ({})").format(self._ref(table), column_defs)
            )
            if self.truncate:
                self.conn.execute(sql.SQL("TRUNCATE {}").format(self._ref(table)))
        if self.truncate:
            logger.info("Truncated %s.%s", self.schema, table)
        self._created.add(table)

    def write_batch(self, table: str, records: list[Record], use_copy: bool = True) -> None:
        """Write a batch of records.

        Parameters
        ----------
        table : str
            Target table name.
        records : list[Record]
            Records of a single dataclass type.
        use_copy : bool
            Load with ``COPY`` instead of ``executemany``.
        """
        if not records:
            return
        record_type = type(records[0])
        if not is_dataclass(record_type):
            raise SinkError(f"PostgresSink expects dataclass records, got {record_type.__name__}")
        if table not in self._created:
            self.create_table(table, record_type)

        names = [f.name for f in fields(record_type)]
        rows = [[getattr(record, name) for name in names] for record in records]
        column_list = sql.SQL(", ").join(map(sql.Identifier, names))

        try:
            with self.conn.transaction(), self.conn.cursor() as cur:
                if use_copy:
                    copy_sql = sql.SQL("COPY {} ({}) FROM STDIN").format(self._ref(table), column_list)
                    with cur.copy(copy_sql) as copy:
                        for row in rows:
                            copy.write_row(row)
                else:
                    insert_sql = sql.SQL("INSERT INTO {} ({}) VALUES ({})").format(
                        self._ref(table),
                        column_list,
                        sql.SQL(", ").join([sql.Placeholder()] * len(names)),
                    )
                    cur.executemany(insert_sql, rows)
        except psycopg.Error as exc:
            raise SinkError(f"Failed to write {table}: {exc}") from exc

        self._counts[table] = self._counts.get(table, 0) + len(records)
        logger.info("Wrote %d records to %s.%s", len(records), self.schema, table)

    def close(self) -> None:
        """Close the connection."""
        self.conn.close()
        for table, count in self._counts.items():
            logger.info("  %s: %d records", table, count)

    def _ref(self, table: str) -> sql.Identifier:
        return sql.Identifier(self.schema, table)

    def __enter__(self) -> "PostgresSink":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
