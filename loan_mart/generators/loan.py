"""Loan type catalog and raw loan generator."""

from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Sequence

from loan_mart.generators.base import BaseGenerator, add_months
from loan_mart.models import LoanType

LOAN_TYPE_CATALOG = (
    LoanType(1, "Mortgage", "Fixed-rate residential mortgage", 360),
    LoanType(2, "Auto", "Secured vehicle financing", 60),
    LoanType(3, "Personal", "Unsecured personal loan", 36),
    LoanType(4, "Home Equity", "Loan secured by home equity", 120),
)

# Loan terms by loan type id: amount range (thousands), annual rate range (%), terms
LOAN_TERMS = {
    1: ((150, 900), (5.5, 7.5), [180, 240, 360]),
    2: ((10, 70), (4.0, 9.0), [36, 48, 60, 72]),
    3: ((2, 40), (8.0, 18.0), [12, 24, 36, 60]),
    4: ((25, 200), (6.5, 9.5), [60, 120, 180]),
}

# Loan types secured by a property
SECURED_TYPES = {1, 4}

# Loan type id used for loans whose type is missing from the catalog
UNKNOWN_TYPE_ID = 99


class LoanGenerator(BaseGenerator):
    """Generate raw loan rows as they would arrive from the loan system.

    Start dates are loosely formatted: some carry a time of day, the way
    an upstream export would write them.
    """

    def __init__(
        self,
        seed: int | None = None,
        loan_types: Sequence[LoanType] = LOAN_TYPE_CATALOG,
    ) -> None:
        super().__init__(seed)
        self.loan_types = list(loan_types)

    def generate_loan_types(self) -> list[dict[str, Any]]:
        """Return the loan type catalog as raw rows."""
        return [loan_type.to_row() for loan_type in self.loan_types]

    def generate(
        self,
        loan_number: int,
        start_date: date,
        loan_type_id: int | None = None,
    ) -> dict[str, Any]:
        """Generate one raw loan.

        Parameters
        ----------
        loan_number : int
            Sequence number used to build ``loan_id``.
        start_date : date
            Origination date.
        loan_type_id : int | None
            Loan type; chosen from the catalog when omitted.

        Returns
        -------
        dict[str, Any]
            Row matching the ``raw_loans`` source table.
        """
        if loan_type_id is None:
            loan_type_id = self.rng.choice(self.loan_types).loan_type_id

        amount_range, rate_range, terms = LOAN_TERMS.get(loan_type_id, LOAN_TERMS[3])
        loan_amount = Decimal(self.rng.randint(*amount_range) * 1000)
        interest_rate = Decimal(str(round(self.rng.uniform(*rate_range), 2)))

        property_address = None
        property_value = None
        if loan_type_id in SECURED_TYPES:
            # Loan-to-value between 50% and 95%
            ltv = self.rng.uniform(0.50, 0.95)
            property_value = Decimal(round(float(loan_amount) / ltv / 1000) * 1000)
            property_address = self.fake.address().replace("\n", ", ")

        return {
            "loan_id": f"L{loan_number:05d}",
            "customer_id": f"C{self.fake.random_number(digits=6, fix_len=True)}",
            "loan_type_id": loan_type_id,
            "loan_amount": loan_amount,
            "interest_rate": interest_rate,
            "loan_start_date": self._format_date(start_date),
            "loan_term_months": self.rng.choice(terms),
            "property_address": property_address,
            "property_value": property_value,
        }

    def generate_batch(
        self,
        count: int,
        start_month: date,
        num_months: int,
        unknown_type_rate: float = 0.0,
    ) -> list[dict[str, Any]]:
        """Generate ``count`` loans originated across ``num_months`` months."""
        loans = []
        for number in range(1, count + 1):
            month = add_months(start_month.replace(day=1), self.rng.randrange(num_months))
            start_date = month.replace(day=self.rng.randint(1, 28))
            loan_type_id = UNKNOWN_TYPE_ID if self.rng.random() < unknown_type_rate else None
            loans.append(self.generate(number, start_date, loan_type_id))
        return loans

    def _format_date(self, value: date) -> str:
        if self.rng.random() < 0.3:
            moment = datetime.combine(value, time(self.rng.randint(8, 18), self.rng.randint(0, 59)))
            return moment.isoformat(sep=" ")
        return value.isoformat()
