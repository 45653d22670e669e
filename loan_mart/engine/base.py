"""Relational query engine interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Sequence

from loan_mart.engine.expressions import Aggregate, Expr
from loan_mart.exceptions import PipelineError
from loan_mart.models.enums import ColumnType

JOIN_TYPES = ("inner", "left", "full")

# validate value -> (left keys must be unique, right keys must be unique)
JOIN_VALIDATIONS = {
    "one_to_one": (True, True),
    "one_to_many": (True, False),
    "many_to_one": (False, True),
    "many_to_many": (False, False),
}


@dataclass(frozen=True)
class ColumnSpec:
    """Declared column of a source table."""

    name: str
    type: ColumnType
    nullable: bool = True


@dataclass(frozen=True)
class SortKey:
    """Ordering term; nulls sort last unless ``nulls_last`` is False."""

    column: str
    descending: bool = False
    nulls_last: bool = True


class Relation(ABC):
    """Engine-specific handle on a set of rows with known column names."""

    columns: tuple[str, ...]


class QueryEngine(ABC):
    """Capability set every pipeline model is written against.

    Implementations either evaluate in process or delegate to a database.
    Models never touch rows directly, so the same model code runs on any
    engine.
    """

    name: str = "abstract"

    @abstractmethod
    def load_table(
        self,
        name: str,
        columns: Sequence[ColumnSpec],
        rows: Iterable[Mapping[str, Any]],
    ) -> Relation:
        """Register a source table and return a relation over it."""

    @abstractmethod
    def table(self, name: str) -> Relation:
        """Reference a loaded or materialized table by name."""

    @abstractmethod
    def has_table(self, name: str) -> bool:
        """Whether ``name`` is loaded or materialized."""

    @abstractmethod
    def project(self, relation: Relation, columns: Mapping[str, Expr]) -> Relation:
        """Compute a new column set, one output row per input row."""

    @abstractmethod
    def filter(self, relation: Relation, predicate: Expr) -> Relation:
        """Keep the rows for which ``predicate`` is true (not null)."""

    @abstractmethod
    def group_aggregate(
        self,
        relation: Relation,
        keys: Mapping[str, Expr],
        aggregates: Mapping[str, Aggregate],
    ) -> Relation:
        """Group by ``keys``; output columns are the keys then the aggregates."""

    @abstractmethod
    def join(
        self,
        left: Relation,
        right: Relation,
        on: Sequence[tuple[str, str]],
        how: str = "inner",
        validate: str = "many_to_many",
        nulls_equal: bool = False,
    ) -> Relation:
        """Join two relations with disjoint column names.

        ``validate`` declares the key cardinality (as in ``pandas.merge``)
        and raises :class:`JoinCardinalityError` when the data violates it.
        Null keys never match unless ``nulls_equal`` is set, in which case
        a null key matches a null key (``IS NOT DISTINCT FROM``) and counts
        toward the cardinality check.
        """

    @abstractmethod
    def sort(self, relation: Relation, keys: Sequence[SortKey]) -> Relation:
        """Order rows by ``keys``."""

    @abstractmethod
    def materialize(self, relation: Relation, name: str) -> Relation:
        """Persist ``relation`` under ``name``, replacing any previous version."""

    @abstractmethod
    def collect(self, relation: Relation) -> list[dict[str, Any]]:
        """Return all rows as dictionaries."""

    @abstractmethod
    def count(self, relation: Relation) -> int:
        """Return the number of rows."""

    def close(self) -> None:
        """Release engine resources."""

    def __enter__(self) -> "QueryEngine":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # Validation shared by implementations

    @staticmethod
    def _require_columns(relation: Relation, names: Iterable[str], context: str) -> None:
        missing = sorted(set(names) - set(relation.columns))
        if missing:
            raise PipelineError(
                f"{context}: unknown column(s) {', '.join(missing)}; "
                f"available: {', '.join(relation.columns)}"
            )

    @classmethod
    def _check_join(
        cls,
        left: Relation,
        right: Relation,
        on: Sequence[tuple[str, str]],
        how: str,
        validate: str,
    ) -> None:
        if how not in JOIN_TYPES:
            raise PipelineError(f"Unsupported join type: {how}")
        if validate not in JOIN_VALIDATIONS:
            raise PipelineError(f"Unsupported join validation: {validate}")
        if not on:
            raise PipelineError("Join requires at least one key pair")
        overlap = sorted(set(left.columns) & set(right.columns))
        if overlap:
            raise PipelineError(f"Join inputs share column names: {', '.join(overlap)}")
        cls._require_columns(left, [lk for lk, _ in on], "join (left)")
        cls._require_columns(right, [rk for _, rk in on], "join (right)")
