"""Relational query engines the pipeline models are written against."""

from loan_mart.config import LoanMartConfig
from loan_mart.engine.base import ColumnSpec, QueryEngine, Relation, SortKey
from loan_mart.engine.expressions import (
    avg,
    coalesce,
    col,
    count,
    count_distinct,
    lit,
    power,
    round_half_up,
    sum_,
    to_date,
    trunc_month,
    when,
)
from loan_mart.engine.memory import MemoryEngine, MemoryRelation
from loan_mart.engine.postgres import PostgresEngine, SqlRelation

__all__ = [
    "ColumnSpec",
    "MemoryEngine",
    "MemoryRelation",
    "PostgresEngine",
    "QueryEngine",
    "Relation",
    "SortKey",
    "SqlRelation",
    "avg",
    "coalesce",
    "col",
    "count",
    "count_distinct",
    "create_engine",
    "lit",
    "power",
    "round_half_up",
    "sum_",
    "to_date",
    "trunc_month",
    "when",
]


def create_engine(config: LoanMartConfig) -> QueryEngine:
    """Build the engine selected by ``config.engine``."""
    if config.engine == "postgres":
        return PostgresEngine(config.postgres.connection_string, schema=config.postgres.schema)
    return MemoryEngine()
