"""Monthly aggregate model."""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from loan_mart.models.base import Record


@dataclass
class MonthlyAggregate(Record):
    """Monthly origination and payment summary.

    Origination measures are per (month, loan type). Payment measures are
    month-grain and repeat on every loan-type row of the same month, so they
    must not be summed across rows of one month. ``loan_type_name`` is None
    for months that only saw payments (or loans without a known type).
    """

    month: date
    loan_type_name: str | None
    new_loans: int
    amount_originated: Decimal
    avg_loan_size: Decimal
    avg_rate: Decimal
    payments_received: int
    payment_volume: Decimal
    principal_collected: Decimal
    interest_collected: Decimal
