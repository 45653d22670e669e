"""Tests for raw data generators."""

from datetime import date
from decimal import Decimal

import pytest

from loan_mart.generators import (
    LOAN_TYPE_CATALOG,
    UNKNOWN_TYPE_ID,
    LoanGenerator,
    PaymentGenerator,
    add_months,
)
from loan_mart.models import PaymentStatus
from loan_mart.sources import RAW_LOAN_PAYMENTS, RAW_LOANS


def fixed_loan(**overrides) -> dict:
    loan = {
        "loan_id": "L00001",
        "customer_id": "C000001",
        "loan_type_id": 1,
        "loan_amount": Decimal("200000.00"),
        "interest_rate": Decimal("6.00"),
        "loan_start_date": "2024-01-15",
        "loan_term_months": 360,
        "property_address": None,
        "property_value": None,
    }
    loan.update(overrides)
    return loan


class TestAddMonths:
    @pytest.mark.parametrize(
        "start,months,expected",
        [
            (date(2024, 1, 15), 1, date(2024, 2, 15)),
            (date(2024, 11, 10), 3, date(2025, 2, 10)),
            (date(2024, 1, 31), 1, date(2024, 2, 28)),
            (date(2024, 3, 1), 0, date(2024, 3, 1)),
        ],
    )
    def test_add_months(self, start: date, months: int, expected: date) -> None:
        assert add_months(start, months) == expected


class TestLoanGenerator:
    """Tests for LoanGenerator."""

    def test_loan_types(self, seed: int) -> None:
        rows = LoanGenerator(seed=seed).generate_loan_types()

        assert [r["loan_type_id"] for r in rows] == [t.loan_type_id for t in LOAN_TYPE_CATALOG]
        assert rows[0]["loan_type_name"] == "Mortgage"

    def test_generate_matches_source_schema(self, seed: int) -> None:
        loan = LoanGenerator(seed=seed).generate(7, date(2024, 3, 9), loan_type_id=2)

        typed = RAW_LOANS.coerce_row(loan)
        assert typed["loan_id"] == "L00007"
        assert typed["loan_type_id"] == 2
        assert typed["loan_term_months"] in (36, 48, 60, 72)
        assert Decimal("10000") <= typed["loan_amount"] <= Decimal("70000")
        assert typed["property_value"] is None
        assert typed["loan_start_date"].startswith("2024-03-09")

    def test_secured_loan_has_property(self, seed: int) -> None:
        loan = LoanGenerator(seed=seed).generate(1, date(2024, 1, 2), loan_type_id=1)

        assert loan["property_address"]
        ltv = loan["loan_amount"] / loan["property_value"]
        assert Decimal("0.45") < ltv < Decimal("1.00")

    def test_batch_within_window(self, seed: int) -> None:
        loans = LoanGenerator(seed=seed).generate_batch(50, date(2024, 1, 1), 3)

        assert len(loans) == 50
        assert len({loan["loan_id"] for loan in loans}) == 50
        months = {loan["loan_start_date"][:7] for loan in loans}
        assert months <= {"2024-01", "2024-02", "2024-03"}

    def test_unknown_type_rate(self, seed: int) -> None:
        loans = LoanGenerator(seed=seed).generate_batch(10, date(2024, 1, 1), 2, unknown_type_rate=1.0)

        assert {loan["loan_type_id"] for loan in loans} == {UNKNOWN_TYPE_ID}

    def test_reproducible(self, seed: int) -> None:
        first = LoanGenerator(seed=seed).generate_batch(20, date(2024, 1, 1), 6)
        second = LoanGenerator(seed=seed).generate_batch(20, date(2024, 1, 1), 6)

        assert first == second


class TestPaymentGenerator:
    """Tests for PaymentGenerator."""

    def test_schedule_first_installment(self, seed: int) -> None:
        number, total, principal, interest = next(PaymentGenerator(seed=seed).schedule(fixed_loan()))

        assert number == 1
        assert total == Decimal("1199.10")
        assert interest == Decimal("1000.00")
        assert principal == Decimal("199.10")

    def test_schedule_repays_principal(self, seed: int) -> None:
        schedule = list(PaymentGenerator(seed=seed).schedule(fixed_loan(loan_term_months=60, loan_amount="25000.00")))

        assert len(schedule) == 60
        assert sum(principal for _, _, principal, _ in schedule) == Decimal("25000.00")

    def test_zero_rate_schedule(self, seed: int) -> None:
        schedule = list(
            PaymentGenerator(seed=seed).schedule(
                fixed_loan(loan_amount="9000.00", interest_rate="0.00", loan_term_months=24)
            )
        )

        assert {total for _, total, _, _ in schedule} == {Decimal("375.00")}
        assert {interest for _, _, _, interest in schedule} == {Decimal("0.00")}

    def test_zero_term_has_no_schedule(self, seed: int) -> None:
        assert list(PaymentGenerator(seed=seed).schedule(fixed_loan(loan_term_months=0))) == []

    def test_on_time_payments(self, seed: int) -> None:
        generator = PaymentGenerator(seed=seed, on_time_rate=1, late_rate=0, default_rate=0, reversal_rate=0)

        payments = generator.generate_for_loan(fixed_loan(), count=6)

        assert len(payments) == 6
        assert {p["payment_status"] for p in payments} == {"completed"}
        assert [p["payment_id"] for p in payments] == [f"P{i:07d}" for i in range(1, 7)]
        first_date = date.fromisoformat(payments[0]["payment_date"])
        assert date(2024, 2, 15) <= first_date <= date(2024, 2, 18)
        for payment in payments:
            RAW_LOAN_PAYMENTS.coerce_row(payment)

    def test_defaulter_misses_payments(self, seed: int) -> None:
        generator = PaymentGenerator(seed=seed, on_time_rate=0, late_rate=0, default_rate=1, reversal_rate=0)

        payments = generator.generate_for_loan(fixed_loan(), count=12)

        missed = [p for p in payments if p["payment_status"] == PaymentStatus.MISSED.value]
        assert 6 <= len(missed) <= 10
        assert all(p["payment_amount"] == 0 for p in missed)
        assert payments[-1]["payment_status"] == "missed"

    def test_late_payers(self, seed: int) -> None:
        generator = PaymentGenerator(seed=seed, on_time_rate=0, late_rate=1, default_rate=0, reversal_rate=0)

        payments = generator.generate_for_loan(fixed_loan(), count=24)

        assert {p["payment_status"] for p in payments} <= {"completed", "late"}

    def test_as_of_cuts_history(self, seed: int) -> None:
        payments = PaymentGenerator(seed=seed).generate_for_loan(fixed_loan(), count=12, as_of=date(2024, 4, 1))

        assert len(payments) == 2

    def test_orphan(self, seed: int) -> None:
        payment = PaymentGenerator(seed=seed).generate_orphan("L99999", date(2024, 2, 3))

        assert payment["loan_id"] == "L99999"
        assert payment["payment_date"] == "2024-02-03"
        assert payment["principal_paid"] == payment["payment_amount"]
        assert payment["interest_paid"] == Decimal("0.00")
