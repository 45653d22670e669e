"""Loan payment model."""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from loan_mart.models.base import Record


@dataclass
class Payment(Record):
    """Staged loan payment."""

    payment_id: str
    loan_id: str
    payment_date: date
    payment_amount: Decimal
    principal_paid: Decimal
    interest_paid: Decimal
    payment_status: str
