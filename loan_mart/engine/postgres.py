"""PostgreSQL query engine: compose SQL, let the warehouse execute it."""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Sequence

import psycopg
from psycopg import sql
from psycopg.rows import dict_row, tuple_row

from loan_mart.engine.base import JOIN_VALIDATIONS, ColumnSpec, QueryEngine, Relation, SortKey
from loan_mart.engine.expressions import Aggregate, Expr
from loan_mart.exceptions import (
    ConfigurationError,
    JoinCardinalityError,
    MalformedRecordError,
    PipelineError,
    RelationNotFoundError,
)

logger = logging.getLogger(__name__)

_JOIN_SQL = {
    "inner": "INNER JOIN",
    "left": "LEFT JOIN",
    "full": "FULL OUTER JOIN",
}


@dataclass(frozen=True)
class SqlRelation(Relation):
    """A SELECT statement plus the column names it produces.

    ``order_by`` only applies when the relation is read or materialized;
    it is dropped when the relation is nested as a subquery.
    """

    columns: tuple[str, ...]
    query: sql.Composable
    order_by: sql.Composable | None = None


class PostgresEngine(QueryEngine):
    """Compile relational operations to nested SELECTs.

    Nothing runs until a relation is materialized, collected or counted,
    except the key-uniqueness queries behind join validation. Each
    materialization replaces its table inside a single transaction, so a
    failed model never leaves a partially written table behind.

    Parameters
    ----------
    conninfo : str | None
        libpq connection string. Ignored when ``connection`` is given.
    schema : str
        Schema holding loaded sources and materialized models.
    connection : psycopg.Connection | None
        Existing connection, expected to be in autocommit mode.
    """

    name = "postgres"

    def __init__(
        self,
        conninfo: str | None = None,
        schema: str = "analytics",
        connection: psycopg.Connection | None = None,
    ) -> None:
        if connection is None:
            if not conninfo:
                raise ConfigurationError("PostgresEngine requires a conninfo or a connection")
            connection = psycopg.connect(conninfo, autocommit=True)
            self._owns_connection = True
        else:
            self._owns_connection = False

        self.conn = connection
        self.schema = schema
        self._tables: dict[str, tuple[str, ...]] = {}
        self._aliases = itertools.count(1)

        self.conn.execute(
            sql.SQL("CREATE SCHEMA IF NOT EXISTS {}").format(sql.Identifier(schema))
        )

    def load_table(
        self,
        name: str,
        columns: Sequence[ColumnSpec],
        rows: Iterable[Mapping[str, Any]],
    ) -> SqlRelation:
        ref = self._table_ref(name)
        column_defs = sql.SQL(", ").join(
            sql.SQL("{} {}{}").format(
                sql.Identifier(c.name),
                sql.SQL(c.type.sql_type),
                sql.SQL("" if c.nullable else " NOT NULL"),
            )
            for c in columns
        )
        names = [c.name for c in columns]
        count = 0

        with self.conn.transaction():
            self.conn.execute(sql.SQL("DROP TABLE IF EXISTS {}").format(ref))
            self.conn.execute(sql.SQL("CREATE TABLE {} ({})").format(ref, column_defs))
            with self.conn.cursor() as cur:
                copy_sql = sql.SQL("COPY {} ({}) FROM STDIN").format(
                    ref, sql.SQL(", ").join(map(sql.Identifier, names))
                )
                with cur.copy(copy_sql) as copy:
                    for row in rows:
                        copy.write_row([row.get(n) for n in names])
                        count += 1

        self._tables[name] = tuple(names)
        logger.debug("Loaded %s.%s: %d rows", self.schema, name, count)
        return self._table_relation(name, tuple(names))

    def table(self, name: str) -> SqlRelation:
        if name not in self._tables:
            self._tables[name] = self._describe(name)
        return self._table_relation(name, self._tables[name])

    def has_table(self, name: str) -> bool:
        if name in self._tables:
            return True
        row = self._fetchone(
            sql.SQL("SELECT 1 FROM information_schema.tables WHERE table_schema = %s AND table_name = %s"),
            (self.schema, name),
        )
        return row is not None

    def project(self, relation: SqlRelation, columns: Mapping[str, Expr]) -> SqlRelation:
        for expr in columns.values():
            self._require_columns(relation, expr.references(), "project")
        select_list = sql.SQL(", ").join(
            sql.SQL("{} AS {}").format(expr.to_sql(), sql.Identifier(name))
            for name, expr in columns.items()
        )
        query = sql.SQL("SELECT {} FROM {}").format(select_list, self._subquery(relation))
        return SqlRelation(columns=tuple(columns), query=query)

    def filter(self, relation: SqlRelation, predicate: Expr) -> SqlRelation:
        self._require_columns(relation, predicate.references(), "filter")
        query = sql.SQL("SELECT * FROM {} WHERE {}").format(
            self._subquery(relation), predicate.to_sql()
        )
        return SqlRelation(columns=relation.columns, query=query)

    def group_aggregate(
        self,
        relation: SqlRelation,
        keys: Mapping[str, Expr],
        aggregates: Mapping[str, Aggregate],
    ) -> SqlRelation:
        if not keys:
            raise PipelineError("group_aggregate requires at least one key")
        overlap = set(keys) & set(aggregates)
        if overlap:
            raise PipelineError(f"Aggregate names collide with keys: {', '.join(sorted(overlap))}")
        for expr in keys.values():
            self._require_columns(relation, expr.references(), "group_aggregate")
        for agg in aggregates.values():
            self._require_columns(relation, agg.references(), "group_aggregate")

        select_items = [
            sql.SQL("{} AS {}").format(expr.to_sql(), sql.Identifier(name))
            for name, expr in keys.items()
        ]
        select_items += [
            sql.SQL("{} AS {}").format(agg.to_sql(), sql.Identifier(name))
            for name, agg in aggregates.items()
        ]
        # Group by ordinal position so computed keys are not repeated
        positions = sql.SQL(", ").join(sql.Literal(i) for i in range(1, len(keys) + 1))
        query = sql.SQL("SELECT {} FROM {} GROUP BY {}").format(
            sql.SQL(", ").join(select_items), self._subquery(relation), positions
        )
        return SqlRelation(columns=tuple(keys) + tuple(aggregates), query=query)

    def join(
        self,
        left: SqlRelation,
        right: SqlRelation,
        on: Sequence[tuple[str, str]],
        how: str = "inner",
        validate: str = "many_to_many",
        nulls_equal: bool = False,
    ) -> SqlRelation:
        self._check_join(left, right, on, how, validate)
        left_unique, right_unique = JOIN_VALIDATIONS[validate]
        if left_unique:
            self._assert_unique(left, [lk for lk, _ in on], "left", nulls_equal)
        if right_unique:
            self._assert_unique(right, [rk for _, rk in on], "right", nulls_equal)

        left_alias = self._alias()
        right_alias = self._alias()
        equals = "IS NOT DISTINCT FROM" if nulls_equal else "="
        condition = sql.SQL(" AND ").join(
            sql.SQL("{} {} {}").format(
                sql.Identifier(left_alias, lk), sql.SQL(equals), sql.Identifier(right_alias, rk)
            )
            for lk, rk in on
        )
        query = sql.SQL("SELECT {}.*, {}.* FROM ({}) AS {} {} ({}) AS {} ON {}").format(
            sql.Identifier(left_alias),
            sql.Identifier(right_alias),
            left.query,
            sql.Identifier(left_alias),
            sql.SQL(_JOIN_SQL[how]),
            right.query,
            sql.Identifier(right_alias),
            condition,
        )
        return SqlRelation(columns=left.columns + right.columns, query=query)

    def sort(self, relation: SqlRelation, keys: Sequence[SortKey]) -> SqlRelation:
        self._require_columns(relation, [k.column for k in keys], "sort")
        order_by = sql.SQL(", ").join(
            sql.SQL("{} {} {}").format(
                sql.Identifier(k.column),
                sql.SQL("DESC" if k.descending else "ASC"),
                sql.SQL("NULLS LAST" if k.nulls_last else "NULLS FIRST"),
            )
            for k in keys
        )
        return SqlRelation(columns=relation.columns, query=relation.query, order_by=order_by)

    def materialize(self, relation: SqlRelation, name: str) -> SqlRelation:
        ref = self._table_ref(name)
        try:
            with self.conn.transaction():
                self.conn.execute(sql.SQL("DROP TABLE IF EXISTS {}").format(ref))
                self.conn.execute(sql.SQL("CREATE TABLE {} AS {}").format(ref, self._render(relation)))
        except psycopg.DataError as exc:
            raise MalformedRecordError(f"Materializing {name} failed: {exc}") from exc

        self._tables[name] = relation.columns
        logger.debug("Materialized %s.%s", self.schema, name)
        materialized = self._table_relation(name, relation.columns)
        return SqlRelation(columns=materialized.columns, query=materialized.query, order_by=relation.order_by)

    def collect(self, relation: SqlRelation) -> list[dict[str, Any]]:
        try:
            with self.conn.cursor(row_factory=dict_row) as cur:
                cur.execute(self._render(relation))
                return cur.fetchall()
        except psycopg.DataError as exc:
            raise MalformedRecordError(str(exc)) from exc

    def count(self, relation: SqlRelation) -> int:
        query = sql.SQL("SELECT count(*) FROM {}").format(self._subquery(relation))
        return self._fetchone(query)[0]

    def close(self) -> None:
        if self._owns_connection:
            self.conn.close()

    def _table_ref(self, name: str) -> sql.Identifier:
        return sql.Identifier(self.schema, name)

    def _table_relation(self, name: str, columns: tuple[str, ...]) -> SqlRelation:
        return SqlRelation(
            columns=columns,
            query=sql.SQL("SELECT * FROM {}").format(self._table_ref(name)),
        )

    def _describe(self, name: str) -> tuple[str, ...]:
        query = sql.SQL("SELECT * FROM {} LIMIT 0").format(self._table_ref(name))
        try:
            with self.conn.cursor() as cur:
                cur.execute(query)
                return tuple(column.name for column in cur.description)
        except psycopg.errors.UndefinedTable:
            raise RelationNotFoundError(f"Table {self.schema}.{name} not found") from None

    def _fetchone(self, query: sql.Composable, params: tuple | None = None) -> tuple | None:
        try:
            with self.conn.cursor(row_factory=tuple_row) as cur:
                cur.execute(query, params)
                return cur.fetchone()
        except psycopg.DataError as exc:
            raise MalformedRecordError(str(exc)) from exc

    def _alias(self) -> str:
        return f"q{next(self._aliases)}"

    def _subquery(self, relation: SqlRelation) -> sql.Composable:
        return sql.SQL("({}) AS {}").format(relation.query, sql.Identifier(self._alias()))

    @staticmethod
    def _render(relation: SqlRelation) -> sql.Composable:
        if relation.order_by is None:
            return relation.query
        return sql.SQL("{} ORDER BY {}").format(relation.query, relation.order_by)

    def _assert_unique(self, relation: SqlRelation, keys: list[str], side: str, nulls_equal: bool = False) -> None:
        key_list = sql.SQL(", ").join(map(sql.Identifier, keys))
        # GROUP BY puts null keys in one group; they only count when nulls match
        if nulls_equal:
            where = sql.SQL("TRUE")
        else:
            where = sql.SQL(" AND ").join(sql.SQL("{} IS NOT NULL").format(sql.Identifier(k)) for k in keys)
        duplicates = sql.SQL(
            "SELECT {} FROM {} WHERE {} GROUP BY {} HAVING count(*) > 1 LIMIT 1"
        ).format(key_list, self._subquery(relation), where, key_list)
        row = self._fetchone(duplicates)
        if row is not None:
            raise JoinCardinalityError(
                f"Join key ({', '.join(keys)}) is not unique on the {side} side: {tuple(row)!r}"
            )
