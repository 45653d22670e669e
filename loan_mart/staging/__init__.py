"""Staging models: rename and cast raw tables, one row in, one row out."""

from loan_mart.staging.stg_loan_payments import build_stg_loan_payments
from loan_mart.staging.stg_loans import build_stg_loans

__all__ = ["build_stg_loan_payments", "build_stg_loans"]
