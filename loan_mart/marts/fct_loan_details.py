"""Loan details joined with loan types, plus derived loan metrics."""

from decimal import Decimal

from loan_mart.engine.base import QueryEngine, Relation
from loan_mart.engine.expressions import col, lit, power, round_half_up, when

MONTHLY_RATE = col("interest_rate") / 100 / 12
_GROWTH = power(lit(1) + MONTHLY_RATE, col("loan_term_months"))

# Loan-to-value in percent; null unless the property has a positive value
LTV_RATIO = when(
    col("property_value") > 0,
    round_half_up(col("loan_amount") / col("property_value") * 100, 2),
)

# Fixed-rate amortization P*r*(1+r)^n / ((1+r)^n - 1); P/n at zero interest
ESTIMATED_MONTHLY_PAYMENT = round_half_up(
    when(col("loan_term_months") <= 0, lit(None))
    .when(col("interest_rate").eq(0), col("loan_amount") / col("loan_term_months"))
    .otherwise(col("loan_amount") * MONTHLY_RATE * _GROWTH / (_GROWTH - 1)),
    2,
)


def ltv_ratio(loan_amount: Decimal, property_value: Decimal | None) -> Decimal | None:
    """Loan-to-value ratio for a single loan."""
    return LTV_RATIO.evaluate_row({"loan_amount": loan_amount, "property_value": property_value})


def estimated_monthly_payment(
    loan_amount: Decimal,
    interest_rate: Decimal,
    loan_term_months: int,
) -> Decimal | None:
    """Estimated monthly installment for a single loan."""
    return ESTIMATED_MONTHLY_PAYMENT.evaluate_row(
        {
            "loan_amount": loan_amount,
            "interest_rate": interest_rate,
            "loan_term_months": loan_term_months,
        },
    )


def build_fct_loan_details(
    engine: QueryEngine,
    stg_loans: Relation,
    loan_types: Relation,
) -> Relation:
    """One row per staged loan, enriched with its loan type.

    The left join keeps loans whose type is unknown or null; their type
    fields are null. Loan types must be unique per id, otherwise the join
    would duplicate loans and raises instead.
    """
    types = engine.project(
        loan_types,
        {
            "type_id": col("loan_type_id"),
            "loan_type_name": col("loan_type_name"),
            "loan_type_description": col("description"),
            "typical_term_months": col("typical_term_months"),
        },
    )
    joined = engine.join(
        stg_loans,
        types,
        on=[("loan_type_id", "type_id")],
        how="left",
        validate="many_to_one",
    )
    return engine.project(
        joined,
        {
            "loan_id": col("loan_id"),
            "customer_id": col("customer_id"),
            "loan_type_id": col("loan_type_id"),
            "loan_type_name": col("loan_type_name"),
            "loan_type_description": col("loan_type_description"),
            "loan_amount": col("loan_amount"),
            "interest_rate": col("interest_rate"),
            "loan_start_date": col("loan_start_date"),
            "loan_term_months": col("loan_term_months"),
            "typical_term_months": col("typical_term_months"),
            "property_address": col("property_address"),
            "property_value": col("property_value"),
            "ltv_ratio": LTV_RATIO,
            "estimated_monthly_payment": ESTIMATED_MONTHLY_PAYMENT,
        },
    )
