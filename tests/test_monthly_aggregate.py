"""Tests for the monthly loan aggregate."""

from datetime import date
from decimal import Decimal

import pytest
from conftest import make_loan, make_payment

from loan_mart.engine import MemoryEngine
from loan_mart.marts import build_agg_monthly_loans, build_fct_loan_details
from loan_mart.sources import load_sources
from loan_mart.staging import build_stg_loan_payments, build_stg_loans


def build_aggregate(engine: MemoryEngine) -> list[dict]:
    stg_loans = build_stg_loans(engine, engine.table("raw_loans"))
    stg_payments = build_stg_loan_payments(engine, engine.table("raw_loan_payments"))
    details = build_fct_loan_details(engine, stg_loans, engine.table("loan_types"))
    return engine.collect(build_agg_monthly_loans(engine, details, stg_payments))


@pytest.fixture
def seed_aggregate(seeded_engine: MemoryEngine) -> list[dict]:
    return build_aggregate(seeded_engine)


class TestSeedAggregate:
    """Expected output over the sample seeds."""

    def test_rows_and_order(self, seed_aggregate: list[dict]) -> None:
        assert [(r["month"], r["loan_type_name"]) for r in seed_aggregate] == [
            (date(2024, 5, 1), None),
            (date(2024, 4, 1), "Auto"),
            (date(2024, 4, 1), "Mortgage"),
            (date(2024, 3, 1), "Auto"),
            (date(2024, 3, 1), "Mortgage"),
            (date(2024, 3, 1), "Personal"),
            (date(2024, 2, 1), "Mortgage"),
            (date(2024, 2, 1), "Personal"),
            (date(2024, 1, 1), "Auto"),
            (date(2024, 1, 1), "Mortgage"),
            (date(2024, 1, 1), "Personal"),
        ]

    def test_new_loans_sum_to_distinct_loans_per_month(self, seed_aggregate: list[dict]) -> None:
        per_month: dict[date, int] = {}
        for row in seed_aggregate:
            per_month[row["month"]] = per_month.get(row["month"], 0) + row["new_loans"]

        assert per_month == {
            date(2024, 1, 1): 3,
            date(2024, 2, 1): 2,
            date(2024, 3, 1): 3,
            date(2024, 4, 1): 2,
            date(2024, 5, 1): 0,
        }
        assert sum(per_month.values()) == 10

    def test_payment_measures_repeat_per_month(self, seed_aggregate: list[dict]) -> None:
        by_month: dict[date, set] = {}
        for row in seed_aggregate:
            by_month.setdefault(row["month"], set()).add(
                (row["payments_received"], row["payment_volume"], row["principal_collected"], row["interest_collected"])
            )

        assert by_month == {
            date(2024, 1, 1): {(0, Decimal("0"), Decimal("0"), Decimal("0"))},
            date(2024, 2, 1): {(3, Decimal("2008.77"), Decimal("794.19"), Decimal("1214.58"))},
            date(2024, 3, 1): {(4, Decimal("2383.77"), Decimal("1174.17"), Decimal("1209.60"))},
            date(2024, 4, 1): {(3, Decimal("2547.62"), Decimal("814.29"), Decimal("1733.33"))},
            date(2024, 5, 1): {(2, Decimal("1199.10"), Decimal("201.11"), Decimal("997.99"))},
        }

    def test_payment_only_month(self, seed_aggregate: list[dict]) -> None:
        may = seed_aggregate[0]

        assert may["loan_type_name"] is None
        assert may["new_loans"] == 0
        assert may["amount_originated"] == 0
        assert may["avg_loan_size"] == 0
        assert may["avg_rate"] == 0

    def test_origination_measures(self, seed_aggregate: list[dict]) -> None:
        rows = {(r["month"], r["loan_type_name"]): r for r in seed_aggregate}

        jan_mortgage = rows[(date(2024, 1, 1), "Mortgage")]
        assert jan_mortgage["new_loans"] == 1
        assert jan_mortgage["amount_originated"] == Decimal("200000.00")
        assert jan_mortgage["avg_rate"] == Decimal("6.00")

        feb_personal = rows[(date(2024, 2, 1), "Personal")]
        assert feb_personal["amount_originated"] == Decimal("9000.00")
        assert feb_personal["avg_rate"] == 0

    def test_every_label_is_a_group_key(self, seed_aggregate: list[dict]) -> None:
        keys = [(r["month"], r["loan_type_name"]) for r in seed_aggregate]

        assert len(keys) == len(set(keys))


class TestAggregateSemantics:
    """Behaviour on small hand-built inputs."""

    def test_averages_within_group(self, engine: MemoryEngine, loan_types_rows: list[dict]) -> None:
        load_sources(
            engine,
            {
                "loan_types": loan_types_rows,
                "raw_loans": [
                    make_loan("L1", 2, "2024-06-03", loan_amount="10000.00", interest_rate="4.00"),
                    make_loan("L2", 2, "2024-06-20", loan_amount="20000.00", interest_rate="6.00"),
                ],
                "raw_loan_payments": [],
            },
        )

        (row,) = build_aggregate(engine)

        assert row["new_loans"] == 2
        assert row["amount_originated"] == Decimal("30000.00")
        assert row["avg_loan_size"] == Decimal("15000")
        assert row["avg_rate"] == Decimal("5")
        assert row["payments_received"] == 0

    def test_payments_are_not_multiplied_by_loan_types(
        self, engine: MemoryEngine, loan_types_rows: list[dict]
    ) -> None:
        load_sources(
            engine,
            {
                "loan_types": loan_types_rows,
                "raw_loans": [
                    make_loan("L1", 1, "2024-06-03"),
                    make_loan("L2", 2, "2024-06-04"),
                    make_loan("L3", 3, "2024-06-05"),
                ],
                "raw_loan_payments": [
                    make_payment("P1", "L1", "2024-06-10", payment_amount="100.00"),
                    make_payment("P2", "L2", "2024-06-11", payment_amount="50.00"),
                ],
            },
        )

        rows = build_aggregate(engine)

        assert len(rows) == 3
        assert {r["payments_received"] for r in rows} == {2}
        assert {r["payment_volume"] for r in rows} == {Decimal("150.00")}

    def test_unknown_type_groups_under_null_label(
        self, engine: MemoryEngine, loan_types_rows: list[dict]
    ) -> None:
        load_sources(
            engine,
            {
                "loan_types": loan_types_rows,
                "raw_loans": [
                    make_loan("L1", 99, "2024-06-03"),
                    make_loan("L2", None, "2024-06-04"),
                    make_loan("L3", 1, "2024-06-05"),
                ],
                "raw_loan_payments": [],
            },
        )

        rows = build_aggregate(engine)

        assert [(r["loan_type_name"], r["new_loans"]) for r in rows] == [("Mortgage", 1), (None, 2)]

    def test_origination_only_month_has_zero_payments(
        self, engine: MemoryEngine, loan_types_rows: list[dict]
    ) -> None:
        load_sources(
            engine,
            {
                "loan_types": loan_types_rows,
                "raw_loans": [make_loan("L1", 1, "2024-06-03")],
                "raw_loan_payments": [make_payment("P1", "L1", "2024-07-03")],
            },
        )

        rows = build_aggregate(engine)

        assert [(r["month"], r["new_loans"], r["payments_received"]) for r in rows] == [
            (date(2024, 7, 1), 0, 1),
            (date(2024, 6, 1), 1, 0),
        ]
        assert rows[1]["payment_volume"] == 0

    def test_undated_loans_and_payments_share_one_row(
        self, engine: MemoryEngine, loan_types_rows: list[dict]
    ) -> None:
        load_sources(
            engine,
            {
                "loan_types": loan_types_rows,
                "raw_loans": [make_loan("L1", None, ""), make_loan("L2", 1, "2024-01-05")],
                "raw_loan_payments": [make_payment("P1", "L1", "")],
            },
        )

        rows = build_aggregate(engine)

        assert [(r["month"], r["loan_type_name"], r["new_loans"], r["payments_received"]) for r in rows] == [
            (date(2024, 1, 1), "Mortgage", 1, 0),
            (None, None, 1, 1),
        ]
        assert rows[1]["payment_volume"] == Decimal("100.00")

    def test_empty_inputs(self, engine: MemoryEngine, loan_types_rows: list[dict]) -> None:
        load_sources(engine, {"loan_types": loan_types_rows, "raw_loans": [], "raw_loan_payments": []})

        assert build_aggregate(engine) == []
