"""Payment history generator with realistic payment behavior."""

from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterator, Mapping

from loan_mart.generators.base import BaseGenerator, add_months
from loan_mart.marts.fct_loan_details import estimated_monthly_payment
from loan_mart.models.enums import PaymentStatus
from loan_mart.sources.schema import RAW_LOANS

CENT = Decimal("0.01")


class PaymentGenerator(BaseGenerator):
    """Generate raw payment rows for generated loans.

    Each loan follows a fixed-rate amortization schedule. A payer profile
    is drawn per loan and decides whether installments arrive on time,
    late, or stop arriving altogether.

    Parameters
    ----------
    seed : int | None
        Random seed for reproducibility.
    on_time_rate : float
        Share of payers who pay on time.
    late_rate : float
        Share of payers who are occasionally late.
    default_rate : float
        Share of payers who stop paying after a few installments.
    reversal_rate : float
        Probability that a completed payment is later reversed.
    """

    def __init__(
        self,
        seed: int | None = None,
        on_time_rate: float = 0.85,
        late_rate: float = 0.10,
        default_rate: float = 0.05,
        reversal_rate: float = 0.01,
    ) -> None:
        super().__init__(seed)
        self.on_time_rate = on_time_rate
        self.late_rate = late_rate
        self.default_rate = default_rate
        self.reversal_rate = reversal_rate
        self._sequence = 0

    def schedule(self, loan: Mapping[str, Any]) -> Iterator[tuple[int, Decimal, Decimal, Decimal]]:
        """Yield ``(number, total, principal, interest)`` per installment."""
        typed = RAW_LOANS.coerce_row(loan)
        amount = typed["loan_amount"]
        rate = typed["interest_rate"] / 100 / 12
        term = typed["loan_term_months"]
        installment = estimated_monthly_payment(amount, typed["interest_rate"], term)
        if installment is None:
            return

        balance = amount
        for number in range(1, term + 1):
            interest = (balance * rate).quantize(CENT, rounding=ROUND_HALF_UP)
            principal = installment - interest
            if number == term or principal > balance:
                principal = balance
            balance -= principal
            yield number, principal + interest, principal, interest

    def generate_for_loan(
        self,
        loan: Mapping[str, Any],
        count: int,
        as_of: date | None = None,
    ) -> list[dict[str, Any]]:
        """Generate up to ``count`` payments for one raw loan.

        Parameters
        ----------
        loan : Mapping[str, Any]
            Row of the ``raw_loans`` source table.
        count : int
            Maximum number of installments to emit.
        as_of : date | None
            Installments due after this date are not emitted.

        Returns
        -------
        list[dict[str, Any]]
            Rows matching the ``raw_loan_payments`` source table.
        """
        start = date.fromisoformat(str(loan["loan_start_date"])[:10])
        behavior = self.rng.choices(
            ["good", "occasional_late", "defaulter"],
            weights=[self.on_time_rate, self.late_rate, self.default_rate],
            k=1,
        )[0]
        stops_after = self.rng.randint(2, 6)

        payments = []
        for number, total, principal, interest in self.schedule(loan):
            if number > count:
                break
            due_date = add_months(start, number)
            if as_of is not None and due_date > as_of:
                break

            if behavior == "defaulter" and number > stops_after:
                status = PaymentStatus.MISSED
                paid_date = due_date
                total = principal = interest = Decimal("0.00")
            elif behavior == "occasional_late" and self.rng.random() < 0.2:
                status = PaymentStatus.LATE
                paid_date = due_date + timedelta(days=self.rng.randint(10, 30))
            elif self.rng.random() < self.reversal_rate:
                status = PaymentStatus.REVERSED
                paid_date = due_date + timedelta(days=self.rng.randint(0, 3))
            else:
                status = PaymentStatus.COMPLETED
                paid_date = due_date + timedelta(days=self.rng.randint(0, 3))

            payments.append(self._row(loan["loan_id"], paid_date, total, principal, interest, status))
        return payments

    def generate_orphan(self, loan_id: str, payment_date: date) -> dict[str, Any]:
        """A payment referencing a loan that is not in ``raw_loans``."""
        amount = Decimal(self.rng.randint(100, 2000)).quantize(CENT)
        return self._row(loan_id, payment_date, amount, amount, Decimal("0.00"), PaymentStatus.COMPLETED)

    def _row(
        self,
        loan_id: str,
        payment_date: date,
        total: Decimal,
        principal: Decimal,
        interest: Decimal,
        status: PaymentStatus,
    ) -> dict[str, Any]:
        self._sequence += 1
        return {
            "payment_id": f"P{self._sequence:07d}",
            "loan_id": loan_id,
            "payment_date": payment_date.isoformat(),
            "payment_amount": total,
            "principal_paid": principal,
            "interest_paid": interest,
            "payment_status": status.value,
        }
