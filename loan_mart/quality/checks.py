"""Data quality checks run against materialized models."""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Sequence

from loan_mart.engine.base import QueryEngine, Relation
from loan_mart.engine.expressions import col, count
from loan_mart.models.enums import CheckStatus, Severity

logger = logging.getLogger(__name__)

Resolver = Callable[[str], Relation]


@dataclass
class QualityResult:
    """Outcome of one check on one model."""

    check_name: str
    model: str
    status: CheckStatus
    severity: Severity
    message: str
    failures: list[dict[str, Any]] = field(default_factory=list)
    execution_time_seconds: float = 0.0

    @property
    def passed(self) -> bool:
        return self.status == CheckStatus.PASS


class QualityCheck(ABC):
    """Base class for quality checks.

    Subclasses return the offending rows; an empty list means the check
    passed. ``resolve`` gives access to other models and sources by name.
    """

    def __init__(self, name: str, description: str, severity: Severity = Severity.ERROR) -> None:
        self.name = name
        self.description = description
        self.severity = severity

    @abstractmethod
    def find_failures(
        self,
        engine: QueryEngine,
        relation: Relation,
        resolve: Resolver,
    ) -> list[dict[str, Any]]:
        """Return the rows violating the check."""

    def run(
        self,
        engine: QueryEngine,
        model: str,
        relation: Relation,
        resolve: Resolver,
    ) -> QualityResult:
        """Run the check and wrap the outcome in a :class:`QualityResult`."""
        start_time = time.perf_counter()
        failures = self.find_failures(engine, relation, resolve)

        if not failures:
            status = CheckStatus.PASS
            message = f"{self.name} passed"
        else:
            status = CheckStatus.WARN if self.severity == Severity.WARN else CheckStatus.FAIL
            message = f"{self.name} found {len(failures)} failing row(s): {self.description}"

        return QualityResult(
            check_name=self.name,
            model=model,
            status=status,
            severity=self.severity,
            message=message,
            failures=failures,
            execution_time_seconds=time.perf_counter() - start_time,
        )


class UniqueCheck(QualityCheck):
    """Each combination of ``columns`` appears at most once (nulls compare equal)."""

    def __init__(self, columns: Sequence[str], severity: Severity = Severity.ERROR) -> None:
        self.columns = tuple(columns)
        super().__init__(
            name=f"unique({', '.join(self.columns)})",
            description=f"duplicate values of ({', '.join(self.columns)})",
            severity=severity,
        )

    def find_failures(self, engine: QueryEngine, relation: Relation, resolve: Resolver) -> list[dict[str, Any]]:
        grouped = engine.group_aggregate(
            relation,
            keys={c: col(c) for c in self.columns},
            aggregates={"n_records": count()},
        )
        return engine.collect(engine.filter(grouped, col("n_records") > 1))


class NotNullCheck(QualityCheck):
    def __init__(self, column: str, severity: Severity = Severity.ERROR) -> None:
        self.column = column
        super().__init__(
            name=f"not_null({column})",
            description=f"{column} is null",
            severity=severity,
        )

    def find_failures(self, engine: QueryEngine, relation: Relation, resolve: Resolver) -> list[dict[str, Any]]:
        return engine.collect(engine.filter(relation, col(self.column).is_null()))


class AcceptedRangeCheck(QualityCheck):
    """Non-null values of ``column`` lie within [min_value, max_value]."""

    def __init__(
        self,
        column: str,
        min_value: Any = None,
        max_value: Any = None,
        severity: Severity = Severity.ERROR,
    ) -> None:
        self.column = column
        self.min_value = min_value
        self.max_value = max_value
        super().__init__(
            name=f"accepted_range({column})",
            description=f"{column} outside [{min_value}, {max_value}]",
            severity=severity,
        )

    def find_failures(self, engine: QueryEngine, relation: Relation, resolve: Resolver) -> list[dict[str, Any]]:
        failures = []
        if self.min_value is not None:
            failures += engine.collect(engine.filter(relation, col(self.column) < self.min_value))
        if self.max_value is not None:
            failures += engine.collect(engine.filter(relation, col(self.column) > self.max_value))
        return failures


class RelationshipsCheck(QualityCheck):
    """Every non-null ``column`` value exists in ``to.field``.

    Referential gaps are kept by the models, so this check defaults to a
    warning.
    """

    def __init__(self, column: str, to: str, field: str, severity: Severity = Severity.WARN) -> None:
        self.column = column
        self.to = to
        self.field = field
        super().__init__(
            name=f"relationships({column} -> {to}.{field})",
            description=f"{column} has no match in {to}.{field}",
            severity=severity,
        )

    def find_failures(self, engine: QueryEngine, relation: Relation, resolve: Resolver) -> list[dict[str, Any]]:
        parent_keys = engine.group_aggregate(
            resolve(self.to),
            keys={"parent_key": col(self.field)},
            aggregates={"parent_rows": count()},
        )
        child_keys = engine.project(relation, {"child_key": col(self.column)})
        joined = engine.join(
            child_keys,
            parent_keys,
            on=[("child_key", "parent_key")],
            how="left",
            validate="many_to_one",
        )
        orphans = engine.filter(
            engine.filter(joined, col("child_key").is_not_null()),
            col("parent_key").is_null(),
        )
        return [{self.column: row["child_key"]} for row in engine.collect(orphans)]


class RowParityCheck(QualityCheck):
    """The model has exactly as many rows as ``upstream``."""

    def __init__(self, upstream: str, severity: Severity = Severity.ERROR) -> None:
        self.upstream = upstream
        super().__init__(
            name=f"row_parity({upstream})",
            description=f"row count differs from {upstream}",
            severity=severity,
        )

    def find_failures(self, engine: QueryEngine, relation: Relation, resolve: Resolver) -> list[dict[str, Any]]:
        model_rows = engine.count(relation)
        upstream_rows = engine.count(resolve(self.upstream))
        if model_rows == upstream_rows:
            return []
        return [{"model_rows": model_rows, "upstream_rows": upstream_rows}]
