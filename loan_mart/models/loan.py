"""Loan models for the staging and detail layers."""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from loan_mart.models.base import Record


@dataclass
class LoanType(Record):
    """Loan type reference entry."""

    loan_type_id: int
    loan_type_name: str
    description: str | None
    typical_term_months: int | None


@dataclass
class Loan(Record):
    """Staged loan contract (one row per raw loan)."""

    loan_id: str
    customer_id: str
    loan_type_id: int | None
    loan_amount: Decimal
    interest_rate: Decimal  # Annual percentage (e.g., 6.0 for 6%)
    loan_start_date: date
    loan_term_months: int
    property_address: str | None = None
    property_value: Decimal | None = None


@dataclass
class LoanDetail(Record):
    """Loan joined with its type metadata and derived metrics."""

    loan_id: str
    customer_id: str
    loan_type_id: int | None
    loan_type_name: str | None
    loan_type_description: str | None
    loan_amount: Decimal
    interest_rate: Decimal
    loan_start_date: date
    loan_term_months: int
    typical_term_months: int | None
    property_address: str | None
    property_value: Decimal | None
    ltv_ratio: Decimal | None  # Percentage, null without a positive property value
    estimated_monthly_payment: Decimal | None
