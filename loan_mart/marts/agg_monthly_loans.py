"""Monthly origination and payment summary by loan type.

Originations and payments are grouped independently and only then merged
on the month. The payment side is never joined to loans, so payment
measures are month-grain: they repeat on each loan-type row of a month.
No aggregate is ever joined back to the loan grain.
"""

from decimal import Decimal

from loan_mart.engine.base import QueryEngine, Relation, SortKey
from loan_mart.engine.expressions import (
    avg,
    coalesce,
    col,
    count_distinct,
    sum_,
    trunc_month,
)

ORIGINATION_MEASURES = {
    "new_loans": "loans_originated",
    "amount_originated": "total_amount_originated",
    "avg_loan_size": "avg_loan_amount",
    "avg_rate": "avg_interest_rate",
}

PAYMENT_MEASURES = {
    "payments_received": "total_payments",
    "payment_volume": "total_payment_amount",
    "principal_collected": "total_principal_paid",
    "interest_collected": "total_interest_paid",
}

COUNT_MEASURES = frozenset({"new_loans", "payments_received"})

SORT_ORDER = (
    SortKey("month", descending=True),
    SortKey("loan_type_name", nulls_last=True),
)


def monthly_originations(engine: QueryEngine, fct_loan_details: Relation) -> Relation:
    """Originations per (month, loan type).

    Every label in the output is a grouping key, and loans are counted
    by distinct id.
    """
    return engine.group_aggregate(
        fct_loan_details,
        keys={
            "month_start": trunc_month(col("loan_start_date")),
            "loan_type_name": col("loan_type_name"),
        },
        aggregates={
            "loans_originated": count_distinct(col("loan_id")),
            "total_amount_originated": sum_(col("loan_amount")),
            "avg_loan_amount": avg(col("loan_amount")),
            "avg_interest_rate": avg(col("interest_rate")),
        },
    )


def monthly_payments(engine: QueryEngine, stg_loan_payments: Relation) -> Relation:
    """Payments per month (no loan-type dimension)."""
    return engine.group_aggregate(
        stg_loan_payments,
        keys={"payment_month_start": trunc_month(col("payment_date"))},
        aggregates={
            "total_payments": count_distinct(col("payment_id")),
            "total_payment_amount": sum_(col("payment_amount")),
            "total_principal_paid": sum_(col("principal_paid")),
            "total_interest_paid": sum_(col("interest_paid")),
        },
    )


def build_agg_monthly_loans(
    engine: QueryEngine,
    fct_loan_details: Relation,
    stg_loan_payments: Relation,
) -> Relation:
    """Full outer merge of monthly originations and payments.

    Months with only originations or only payments are both kept. Every
    numeric measure missing on one side becomes zero, and rows coming only
    from the payment side have a null ``loan_type_name``.

    Undated loans and undated payments form one null month on each side.
    The merge matches null months to each other, so undated activity ends
    up on the same rows as any other month and the grain stays unique.
    """
    originations = monthly_originations(engine, fct_loan_details)
    payments = monthly_payments(engine, stg_loan_payments)

    combined = engine.join(
        originations,
        payments,
        on=[("month_start", "payment_month_start")],
        how="full",
        validate="many_to_one",
        nulls_equal=True,
    )

    columns = {
        "month": coalesce(col("month_start"), col("payment_month_start")),
        "loan_type_name": col("loan_type_name"),
    }
    for name, source in {**ORIGINATION_MEASURES, **PAYMENT_MEASURES}.items():
        zero = 0 if name in COUNT_MEASURES else Decimal(0)
        columns[name] = coalesce(col(source), zero)

    return engine.sort(engine.project(combined, columns), SORT_ORDER)
