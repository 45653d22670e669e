"""In-process query engine backed by pandas DataFrames."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Sequence

import pandas as pd
from pandas.errors import MergeError

from loan_mart.engine.base import ColumnSpec, QueryEngine, Relation, SortKey
from loan_mart.engine.expressions import Aggregate, Expr
from loan_mart.exceptions import JoinCardinalityError, PipelineError, RelationNotFoundError

logger = logging.getLogger(__name__)

_MERGE_HOW = {
    "inner": "inner",
    "left": "left",
    "full": "outer",
}


@dataclass(frozen=True, eq=False)
class MemoryRelation(Relation):
    """A DataFrame of object columns.

    Values keep their Python types (``Decimal``, ``date``, ``int``) so
    money never passes through binary floats.
    """

    frame: pd.DataFrame

    @property
    def columns(self) -> tuple[str, ...]:
        return tuple(self.frame.columns)

    def __len__(self) -> int:
        return len(self.frame)


def _relation(frame: pd.DataFrame) -> MemoryRelation:
    return MemoryRelation(frame.reset_index(drop=True).astype(object))


def _empty(columns: Sequence[str]) -> MemoryRelation:
    return MemoryRelation(pd.DataFrame({name: pd.Series([], dtype=object) for name in columns}))


class MemoryEngine(QueryEngine):
    """Evaluate every operation eagerly with pandas.

    Grouping keeps the first-seen group order and sorting is stable, so
    results are deterministic for a given input order. Null join keys never
    match, as in SQL.
    """

    name = "memory"

    def __init__(self) -> None:
        self._tables: dict[str, MemoryRelation] = {}

    def load_table(
        self,
        name: str,
        columns: Sequence[ColumnSpec],
        rows: Iterable[Mapping[str, Any]],
    ) -> MemoryRelation:
        rows = list(rows)
        frame = pd.DataFrame(
            {c.name: pd.Series([row.get(c.name) for row in rows], dtype=object) for c in columns}
        )
        relation = _relation(frame)
        self._tables[name] = relation
        logger.debug("Loaded %s: %d rows", name, len(relation))
        return relation

    def table(self, name: str) -> MemoryRelation:
        try:
            return self._tables[name]
        except KeyError:
            raise RelationNotFoundError(f"Table {name} not found") from None

    def has_table(self, name: str) -> bool:
        return name in self._tables

    def project(self, relation: MemoryRelation, columns: Mapping[str, Expr]) -> MemoryRelation:
        for expr in columns.values():
            self._require_columns(relation, expr.references(), "project")
        frame = relation.frame
        projected = pd.DataFrame({name: expr.evaluate(frame) for name, expr in columns.items()}, index=frame.index)
        return _relation(projected)

    def filter(self, relation: MemoryRelation, predicate: Expr) -> MemoryRelation:
        self._require_columns(relation, predicate.references(), "filter")
        keep = predicate.evaluate(relation.frame).eq(True)
        return _relation(relation.frame[keep])

    def group_aggregate(
        self,
        relation: MemoryRelation,
        keys: Mapping[str, Expr],
        aggregates: Mapping[str, Aggregate],
    ) -> MemoryRelation:
        if not keys:
            raise PipelineError("group_aggregate requires at least one key")
        overlap = set(keys) & set(aggregates)
        if overlap:
            raise PipelineError(f"Aggregate names collide with keys: {', '.join(sorted(overlap))}")
        for expr in keys.values():
            self._require_columns(relation, expr.references(), "group_aggregate")
        for agg in aggregates.values():
            self._require_columns(relation, agg.references(), "group_aggregate")

        output = list(keys) + list(aggregates)
        if relation.frame.empty:
            return _empty(output)

        frame = relation.frame
        work = pd.DataFrame({name: expr.evaluate(frame) for name, expr in keys.items()}, index=frame.index)
        named = {}
        for position, (name, agg) in enumerate(aggregates.items()):
            source = f"__operand_{position}"
            work[source] = 1 if agg.operand is None else agg.operand.evaluate(frame)
            named[name] = (source, agg.reducer)

        grouped = work.groupby(list(keys), dropna=False, sort=False).agg(**named).reset_index()
        return _relation(grouped[output])

    def join(
        self,
        left: MemoryRelation,
        right: MemoryRelation,
        on: Sequence[tuple[str, str]],
        how: str = "inner",
        validate: str = "many_to_many",
        nulls_equal: bool = False,
    ) -> MemoryRelation:
        self._check_join(left, right, on, how, validate)
        left_keys = [lk for lk, _ in on]
        right_keys = [rk for _, rk in on]
        output = list(left.columns + right.columns)

        # pandas matches null keys to each other; unless asked to, keep them
        # out of the merge and re-attach them below
        left_keyed = left.frame[left_keys].notna().all(axis=1) | nulls_equal
        right_keyed = right.frame[right_keys].notna().all(axis=1) | nulls_equal

        try:
            merged = pd.merge(
                left.frame[left_keyed],
                right.frame[right_keyed],
                how=_MERGE_HOW[how],
                left_on=left_keys,
                right_on=right_keys,
                validate=validate,
            )
        except MergeError as exc:
            raise JoinCardinalityError(f"Join on ({', '.join(left_keys)}) violates {validate}: {exc}") from exc

        unmatched = []
        if how in ("left", "full"):
            unmatched.append(left.frame[~left_keyed])
        if how == "full":
            unmatched.append(right.frame[~right_keyed])
        parts = [part for part in [merged, *unmatched] if not part.empty]
        if not parts:
            return _empty(output)
        return _relation(pd.concat(parts, ignore_index=True).reindex(columns=output))

    def sort(self, relation: MemoryRelation, keys: Sequence[SortKey]) -> MemoryRelation:
        self._require_columns(relation, [k.column for k in keys], "sort")
        if not keys or relation.frame.empty:
            return relation

        # Each key sorts on a null flag first, like asc_nulls_last in Spark
        work = relation.frame.copy()
        by: list[str] = []
        ascending: list[bool] = []
        for position, key in enumerate(keys):
            flag = f"__null_{position}"
            work[flag] = work[key.column].isna()
            by += [flag, key.column]
            ascending += [key.nulls_last, not key.descending]

        ordered = work.sort_values(by=by, ascending=ascending, kind="stable")
        return _relation(ordered[list(relation.columns)])

    def materialize(self, relation: MemoryRelation, name: str) -> MemoryRelation:
        self._tables[name] = relation
        logger.debug("Materialized %s: %d rows", name, len(relation))
        return relation

    def collect(self, relation: MemoryRelation) -> list[dict[str, Any]]:
        frame = relation.frame.astype(object)
        return frame.where(frame.notna(), None).to_dict("records")

    def count(self, relation: MemoryRelation) -> int:
        return len(relation.frame)
