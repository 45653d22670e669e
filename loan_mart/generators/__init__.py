"""Synthetic raw data generators."""

from loan_mart.generators.base import BaseGenerator, add_months
from loan_mart.generators.loan import LOAN_TYPE_CATALOG, UNKNOWN_TYPE_ID, LoanGenerator
from loan_mart.generators.payment import PaymentGenerator

__all__ = [
    "BaseGenerator",
    "LOAN_TYPE_CATALOG",
    "LoanGenerator",
    "PaymentGenerator",
    "UNKNOWN_TYPE_ID",
    "add_months",
]
