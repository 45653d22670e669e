"""Column expressions and aggregates shared by all query engines.

Expressions follow SQL semantics: arithmetic or comparison involving a null
yields null and ``count`` ignores nulls. Each node evaluates column-wise
against a :class:`pandas.DataFrame`, or renders to a
:class:`psycopg.sql.Composable` for the PostgreSQL engine. ``CASE``
branches only evaluate the rows that reach them.

Usage::

    ltv = when(
        col("property_value") > 0,
        round_half_up(col("loan_amount") / col("property_value") * 100, 2),
    )
"""

from __future__ import annotations

import functools
import operator
from abc import ABC, abstractmethod
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Callable, Mapping, Sequence

import pandas as pd
from psycopg import sql

from loan_mart.exceptions import MalformedRecordError

_ARITHMETIC: dict[str, Callable[[Any, Any], Any]] = {
    "+": operator.add,
    "-": operator.sub,
    "*": operator.mul,
    "/": operator.truediv,
}

_COMPARISONS: dict[str, Callable[[Any, Any], Any]] = {
    ">": operator.gt,
    ">=": operator.ge,
    "<": operator.lt,
    "<=": operator.le,
    "=": operator.eq,
    "<>": operator.ne,
}


def _to_number(value: Any) -> int | Decimal:
    """Keep integers, move everything else to Decimal without float artifacts."""
    if isinstance(value, bool):
        raise MalformedRecordError(f"Expected a number, got {value!r}")
    if isinstance(value, (int, Decimal)):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    raise MalformedRecordError(f"Expected a number, got {value!r}")


def _to_decimal(value: Any) -> Decimal:
    number = _to_number(value)
    return number if isinstance(number, Decimal) else Decimal(number)


def _to_timestamp_text(value: Any) -> str:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, str):
        return value.strip()
    raise MalformedRecordError(f"Cannot cast {value!r} to date")


def _nulls(frame: pd.DataFrame) -> pd.Series:
    return pd.Series(None, index=frame.index, dtype=object)


def _wrap(value: Any) -> Expr:
    return value if isinstance(value, Expr) else Literal(value)


class Expr(ABC):
    """Base class for column expressions.

    Arithmetic and ordering comparisons use Python operators. Equality uses
    :meth:`eq` / :meth:`ne` so expressions keep normal object identity.
    """

    @abstractmethod
    def evaluate(self, frame: pd.DataFrame) -> pd.Series:
        """Evaluate against every row of ``frame``; returns an object Series."""

    @abstractmethod
    def to_sql(self) -> sql.Composable:
        """Render as a SQL fragment."""

    @abstractmethod
    def references(self) -> set[str]:
        """Column names this expression reads."""

    def evaluate_row(self, row: Mapping[str, Any]) -> Any:
        """Evaluate against a single row given as a mapping."""
        frame = pd.DataFrame({name: pd.Series([value], dtype=object) for name, value in row.items()})
        value = self.evaluate(frame).iloc[0]
        return None if pd.isna(value) else value

    def __add__(self, other: Any) -> Expr:
        return Arithmetic("+", self, _wrap(other))

    def __radd__(self, other: Any) -> Expr:
        return Arithmetic("+", _wrap(other), self)

    def __sub__(self, other: Any) -> Expr:
        return Arithmetic("-", self, _wrap(other))

    def __rsub__(self, other: Any) -> Expr:
        return Arithmetic("-", _wrap(other), self)

    def __mul__(self, other: Any) -> Expr:
        return Arithmetic("*", self, _wrap(other))

    def __rmul__(self, other: Any) -> Expr:
        return Arithmetic("*", _wrap(other), self)

    def __truediv__(self, other: Any) -> Expr:
        return Arithmetic("/", self, _wrap(other))

    def __rtruediv__(self, other: Any) -> Expr:
        return Arithmetic("/", _wrap(other), self)

    def __gt__(self, other: Any) -> Expr:
        return Comparison(">", self, _wrap(other))

    def __ge__(self, other: Any) -> Expr:
        return Comparison(">=", self, _wrap(other))

    def __lt__(self, other: Any) -> Expr:
        return Comparison("<", self, _wrap(other))

    def __le__(self, other: Any) -> Expr:
        return Comparison("<=", self, _wrap(other))

    def eq(self, other: Any) -> Expr:
        return Comparison("=", self, _wrap(other))

    def ne(self, other: Any) -> Expr:
        return Comparison("<>", self, _wrap(other))

    def is_null(self) -> Expr:
        return IsNull(self)

    def is_not_null(self) -> Expr:
        return IsNull(self, negate=True)


class Column(Expr):
    def __init__(self, name: str) -> None:
        self.name = name

    def evaluate(self, frame: pd.DataFrame) -> pd.Series:
        return frame[self.name]

    def to_sql(self) -> sql.Composable:
        return sql.Identifier(self.name)

    def references(self) -> set[str]:
        return {self.name}

    def __repr__(self) -> str:
        return f"col({self.name!r})"


class Literal(Expr):
    def __init__(self, value: Any) -> None:
        self.value = value

    def evaluate(self, frame: pd.DataFrame) -> pd.Series:
        return pd.Series([self.value] * len(frame), index=frame.index, dtype=object)

    def to_sql(self) -> sql.Composable:
        if self.value is None:
            return sql.SQL("NULL")
        return sql.Literal(self.value)

    def references(self) -> set[str]:
        return set()

    def __repr__(self) -> str:
        return f"lit({self.value!r})"


class Arithmetic(Expr):
    def __init__(self, op: str, left: Expr, right: Expr) -> None:
        self.op = op
        self.left = left
        self.right = right

    def evaluate(self, frame: pd.DataFrame) -> pd.Series:
        left = self.left.evaluate(frame)
        right = self.right.evaluate(frame)
        present = left.notna() & right.notna()
        result = _nulls(frame)
        if present.any():
            # Integer operands stay integers except under division
            cast = _to_decimal if self.op == "/" else _to_number
            result.loc[present] = _ARITHMETIC[self.op](
                left[present].map(cast).astype(object),
                right[present].map(cast).astype(object),
            )
        return result

    def to_sql(self) -> sql.Composable:
        if self.op == "/":
            # Avoid integer division when both operands are integers
            return sql.SQL("({}::numeric / {})").format(self.left.to_sql(), self.right.to_sql())
        return sql.SQL("({} {} {})").format(self.left.to_sql(), sql.SQL(self.op), self.right.to_sql())

    def references(self) -> set[str]:
        return self.left.references() | self.right.references()


class Comparison(Expr):
    def __init__(self, op: str, left: Expr, right: Expr) -> None:
        self.op = op
        self.left = left
        self.right = right

    def evaluate(self, frame: pd.DataFrame) -> pd.Series:
        left = self.left.evaluate(frame)
        right = self.right.evaluate(frame)
        present = left.notna() & right.notna()
        result = _nulls(frame)
        if present.any():
            outcome = _COMPARISONS[self.op](left[present].astype(object), right[present].astype(object))
            result.loc[present] = outcome.astype(bool).astype(object)
        return result

    def to_sql(self) -> sql.Composable:
        return sql.SQL("({} {} {})").format(self.left.to_sql(), sql.SQL(self.op), self.right.to_sql())

    def references(self) -> set[str]:
        return self.left.references() | self.right.references()


class IsNull(Expr):
    def __init__(self, operand: Expr, negate: bool = False) -> None:
        self.operand = operand
        self.negate = negate

    def evaluate(self, frame: pd.DataFrame) -> pd.Series:
        missing = self.operand.evaluate(frame).isna()
        return (~missing if self.negate else missing).astype(object)

    def to_sql(self) -> sql.Composable:
        suffix = "IS NOT NULL" if self.negate else "IS NULL"
        return sql.SQL("({} {})").format(self.operand.to_sql(), sql.SQL(suffix))

    def references(self) -> set[str]:
        return self.operand.references()


class Case(Expr):
    """``CASE WHEN`` expression built with :func:`when`.

    Each branch value is evaluated only on the rows whose condition is the
    first one to hold, so a guarded division never sees a zero divisor.
    """

    def __init__(
        self,
        branches: Sequence[tuple[Expr, Expr]],
        default: Expr | None = None,
    ) -> None:
        self.branches = tuple(branches)
        self.default = default

    def when(self, condition: Expr, value: Any) -> Case:
        return Case(self.branches + ((condition, _wrap(value)),), self.default)

    def otherwise(self, value: Any) -> Case:
        return Case(self.branches, _wrap(value))

    def evaluate(self, frame: pd.DataFrame) -> pd.Series:
        result = _nulls(frame)
        remaining = frame
        for condition, value in self.branches:
            if remaining.empty:
                return result
            hit = condition.evaluate(remaining).eq(True)
            matched = remaining[hit]
            if not matched.empty:
                result.loc[matched.index] = value.evaluate(matched).astype(object)
            remaining = remaining[~hit]
        if self.default is not None and not remaining.empty:
            result.loc[remaining.index] = self.default.evaluate(remaining).astype(object)
        return result

    def to_sql(self) -> sql.Composable:
        parts = [
            sql.SQL("WHEN {} THEN {}").format(condition.to_sql(), value.to_sql())
            for condition, value in self.branches
        ]
        if self.default is not None:
            parts.append(sql.SQL("ELSE {}").format(self.default.to_sql()))
        return sql.SQL("(CASE {} END)").format(sql.SQL(" ").join(parts))

    def references(self) -> set[str]:
        refs: set[str] = set()
        for condition, value in self.branches:
            refs |= condition.references() | value.references()
        if self.default is not None:
            refs |= self.default.references()
        return refs


class Coalesce(Expr):
    def __init__(self, *operands: Expr) -> None:
        self.operands = operands

    def evaluate(self, frame: pd.DataFrame) -> pd.Series:
        result = self.operands[0].evaluate(frame).astype(object)
        for operand in self.operands[1:]:
            missing = result.isna()
            if not missing.any():
                break
            result = result.where(~missing, operand.evaluate(frame).astype(object))
        return result

    def to_sql(self) -> sql.Composable:
        return sql.SQL("coalesce({})").format(sql.SQL(", ").join(o.to_sql() for o in self.operands))

    def references(self) -> set[str]:
        return set().union(*(o.references() for o in self.operands))


class Power(Expr):
    def __init__(self, base: Expr, exponent: Expr) -> None:
        self.base = base
        self.exponent = exponent

    def evaluate(self, frame: pd.DataFrame) -> pd.Series:
        base = self.base.evaluate(frame)
        exponent = self.exponent.evaluate(frame)
        present = base.notna() & exponent.notna()
        result = _nulls(frame)
        if present.any():
            result.loc[present] = (
                base[present].map(_to_decimal).astype(object) ** exponent[present].map(_to_number).astype(object)
            )
        return result

    def to_sql(self) -> sql.Composable:
        return sql.SQL("power({}, {})").format(self.base.to_sql(), self.exponent.to_sql())

    def references(self) -> set[str]:
        return self.base.references() | self.exponent.references()


class RoundHalfUp(Expr):
    """Round to ``places`` decimals, ties away from zero (PostgreSQL ``round``)."""

    def __init__(self, operand: Expr, places: int) -> None:
        self.operand = operand
        self.places = places

    def evaluate(self, frame: pd.DataFrame) -> pd.Series:
        values = self.operand.evaluate(frame)
        present = values.notna()
        result = _nulls(frame)
        if present.any():
            exponent = Decimal(1).scaleb(-self.places)
            result.loc[present] = values[present].map(
                lambda v: _to_decimal(v).quantize(exponent, rounding=ROUND_HALF_UP)
            ).astype(object)
        return result

    def to_sql(self) -> sql.Composable:
        return sql.SQL("round(({})::numeric, {})").format(self.operand.to_sql(), sql.Literal(self.places))

    def references(self) -> set[str]:
        return self.operand.references()


class TruncMonth(Expr):
    def __init__(self, operand: Expr) -> None:
        self.operand = operand

    @staticmethod
    def _first_of_month(value: Any) -> date:
        if not isinstance(value, date):
            raise MalformedRecordError(f"Cannot truncate {value!r} to month")
        return date(value.year, value.month, 1)

    def evaluate(self, frame: pd.DataFrame) -> pd.Series:
        values = self.operand.evaluate(frame)
        present = values.notna()
        result = _nulls(frame)
        if present.any():
            result.loc[present] = values[present].map(self._first_of_month).astype(object)
        return result

    def to_sql(self) -> sql.Composable:
        return sql.SQL("date_trunc('month', {})::date").format(self.operand.to_sql())

    def references(self) -> set[str]:
        return self.operand.references()


class ToDate(Expr):
    """Cast ISO-8601 text (or date/datetime values) to a calendar date.

    A time of day is discarded. Anything pandas cannot parse as ISO-8601
    raises :class:`MalformedRecordError`.
    """

    def __init__(self, operand: Expr) -> None:
        self.operand = operand

    def evaluate(self, frame: pd.DataFrame) -> pd.Series:
        values = self.operand.evaluate(frame)
        present = values.notna()
        result = _nulls(frame)
        if present.any():
            text = values[present].map(_to_timestamp_text)
            try:
                parsed = pd.to_datetime(text, format="ISO8601")
            except (ValueError, TypeError) as exc:
                raise MalformedRecordError(f"Cannot cast to date: {exc}") from None
            result.loc[present] = parsed.dt.date.astype(object)
        return result

    def to_sql(self) -> sql.Composable:
        return sql.SQL("({})::date").format(self.operand.to_sql())

    def references(self) -> set[str]:
        return self.operand.references()


def _sum(values: pd.Series) -> Any:
    values = values.dropna()
    if values.empty:
        return None
    return functools.reduce(operator.add, values.map(_to_number))


def _avg(values: pd.Series) -> Decimal | None:
    values = values.dropna()
    if values.empty:
        return None
    return _to_decimal(_sum(values)) / len(values)


class Aggregate:
    """Aggregate function applied to the rows of one group.

    Only identity-preserving reductions are offered. There is deliberately
    no max/min, so a categorical column can only reach an aggregate's output
    as a grouping key.
    """

    FUNCTIONS = ("count", "count_distinct", "sum", "avg")

    # pandas groupby reducers; sum and avg keep Decimal precision
    REDUCERS: dict[str, str | Callable[[pd.Series], Any]] = {
        "count": "count",
        "count_distinct": "nunique",
        "sum": _sum,
        "avg": _avg,
    }

    def __init__(self, function: str, operand: Expr | None = None) -> None:
        if function not in self.FUNCTIONS:
            raise ValueError(f"Unsupported aggregate function: {function}")
        if operand is None and function != "count":
            raise ValueError(f"{function} requires an operand")
        self.function = function
        self.operand = operand

    @property
    def reducer(self) -> str | Callable[[pd.Series], Any]:
        """Reducer for ``DataFrameGroupBy.agg``; ``count(*)`` is the group size."""
        if self.operand is None:
            return "size"
        return self.REDUCERS[self.function]

    def to_sql(self) -> sql.Composable:
        if self.operand is None:
            return sql.SQL("count(*)")
        if self.function == "count_distinct":
            return sql.SQL("count(DISTINCT {})").format(self.operand.to_sql())
        return sql.SQL("{}({})").format(sql.SQL(self.function), self.operand.to_sql())

    def references(self) -> set[str]:
        return self.operand.references() if self.operand is not None else set()

    def __repr__(self) -> str:
        return f"Aggregate({self.function!r}, {self.operand!r})"


def col(name: str) -> Column:
    return Column(name)


def lit(value: Any) -> Literal:
    return Literal(value)


def when(condition: Expr, value: Any) -> Case:
    return Case(((condition, _wrap(value)),))


def coalesce(*operands: Any) -> Coalesce:
    return Coalesce(*(_wrap(o) for o in operands))


def power(base: Any, exponent: Any) -> Power:
    return Power(_wrap(base), _wrap(exponent))


def round_half_up(operand: Any, places: int = 2) -> RoundHalfUp:
    return RoundHalfUp(_wrap(operand), places)


def trunc_month(operand: Any) -> TruncMonth:
    return TruncMonth(_wrap(operand))


def to_date(operand: Any) -> ToDate:
    return ToDate(_wrap(operand))


def count(operand: Any | None = None) -> Aggregate:
    return Aggregate("count", _wrap(operand) if operand is not None else None)


def count_distinct(operand: Any) -> Aggregate:
    return Aggregate("count_distinct", _wrap(operand))


def sum_(operand: Any) -> Aggregate:
    return Aggregate("sum", _wrap(operand))


def avg(operand: Any) -> Aggregate:
    return Aggregate("avg", _wrap(operand))
