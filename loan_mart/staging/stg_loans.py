"""Staging model for loans (source: ``raw_loans``)."""

from loan_mart.engine.base import QueryEngine, Relation
from loan_mart.engine.expressions import col, to_date

COLUMNS = (
    "loan_id",
    "customer_id",
    "loan_type_id",
    "loan_amount",
    "interest_rate",
    "loan_start_date",
    "loan_term_months",
    "property_address",
    "property_value",
)


def build_stg_loans(engine: QueryEngine, raw_loans: Relation) -> Relation:
    """One typed row per raw loan; only ``loan_start_date`` is cast."""
    return engine.project(
        raw_loans,
        {
            name: to_date(col(name)) if name == "loan_start_date" else col(name)
            for name in COLUMNS
        },
    )
