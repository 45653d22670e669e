"""Staging model for loan payments (source: ``raw_loan_payments``)."""

from loan_mart.engine.base import QueryEngine, Relation
from loan_mart.engine.expressions import col, to_date

COLUMNS = (
    "payment_id",
    "loan_id",
    "payment_date",
    "payment_amount",
    "principal_paid",
    "interest_paid",
    "payment_status",
)


def build_stg_loan_payments(engine: QueryEngine, raw_loan_payments: Relation) -> Relation:
    """One typed row per raw payment; only ``payment_date`` is cast."""
    return engine.project(
        raw_loan_payments,
        {
            name: to_date(col(name)) if name == "payment_date" else col(name)
            for name in COLUMNS
        },
    )
