"""Pytest configuration and fixtures."""

from decimal import Decimal
from pathlib import Path
from typing import Any

import pytest

from loan_mart.engine import MemoryEngine
from loan_mart.sources import load_seeds, load_sources

SEEDS_DIR = Path(__file__).resolve().parent.parent / "seeds"


@pytest.fixture
def seed() -> int:
    """Fixed seed for reproducible tests."""
    return 42


@pytest.fixture
def seeds_dir() -> Path:
    """Directory holding the sample seed CSVs."""
    return SEEDS_DIR


@pytest.fixture
def engine() -> MemoryEngine:
    """Empty in-memory engine."""
    return MemoryEngine()


@pytest.fixture
def seeded_engine() -> MemoryEngine:
    """In-memory engine with the sample seeds loaded as sources."""
    engine = MemoryEngine()
    load_sources(engine, load_seeds(SEEDS_DIR))
    return engine


@pytest.fixture
def loan_types_rows() -> list[dict[str, Any]]:
    """Three-entry loan type catalog."""
    return [
        {"loan_type_id": 1, "loan_type_name": "Mortgage", "description": "Home loan", "typical_term_months": 360},
        {"loan_type_id": 2, "loan_type_name": "Auto", "description": "Car loan", "typical_term_months": 60},
        {"loan_type_id": 3, "loan_type_name": "Personal", "description": "Unsecured", "typical_term_months": 36},
    ]


def make_loan(
    loan_id: str,
    loan_type_id: int | None,
    loan_start_date: Any,
    loan_amount: str = "10000.00",
    interest_rate: str = "5.00",
    loan_term_months: int = 60,
    property_value: str | None = None,
) -> dict[str, Any]:
    """Raw loan row with sensible defaults."""
    return {
        "loan_id": loan_id,
        "customer_id": f"C-{loan_id}",
        "loan_type_id": loan_type_id,
        "loan_amount": Decimal(loan_amount),
        "interest_rate": Decimal(interest_rate),
        "loan_start_date": loan_start_date,
        "loan_term_months": loan_term_months,
        "property_address": None,
        "property_value": Decimal(property_value) if property_value is not None else None,
    }


def make_payment(
    payment_id: str,
    loan_id: str,
    payment_date: Any,
    payment_amount: str = "100.00",
    principal_paid: str = "80.00",
    interest_paid: str = "20.00",
    payment_status: str = "completed",
) -> dict[str, Any]:
    """Raw payment row with sensible defaults."""
    return {
        "payment_id": payment_id,
        "loan_id": loan_id,
        "payment_date": payment_date,
        "payment_amount": Decimal(payment_amount),
        "principal_paid": Decimal(principal_paid),
        "interest_paid": Decimal(interest_paid),
        "payment_status": payment_status,
    }
