"""Mart models: loan-grain details and the monthly aggregate."""

from loan_mart.marts.agg_monthly_loans import build_agg_monthly_loans
from loan_mart.marts.fct_loan_details import (
    build_fct_loan_details,
    estimated_monthly_payment,
    ltv_ratio,
)

__all__ = [
    "build_agg_monthly_loans",
    "build_fct_loan_details",
    "estimated_monthly_payment",
    "ltv_ratio",
]
