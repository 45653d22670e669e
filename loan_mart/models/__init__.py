"""Typed records for loan analytics models."""

from loan_mart.models.aggregate import MonthlyAggregate
from loan_mart.models.base import Record
from loan_mart.models.enums import (
    CheckStatus,
    ColumnType,
    ModelStatus,
    PaymentStatus,
    Severity,
)
from loan_mart.models.loan import Loan, LoanDetail, LoanType
from loan_mart.models.payment import Payment

__all__ = [
    "CheckStatus",
    "ColumnType",
    "Loan",
    "LoanDetail",
    "LoanType",
    "ModelStatus",
    "MonthlyAggregate",
    "Payment",
    "PaymentStatus",
    "Record",
    "Severity",
]
