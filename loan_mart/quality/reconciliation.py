"""Grain reconciliation checks for the monthly aggregate.

Each check recomputes a per-month figure from a finer-grained model and
compares it with what ``agg_monthly_loans`` reports. A cross join, a fan-out
join or a collapsed loan-type dimension all show up as per-month mismatches.
Undated loans and payments reconcile as one null month, matching how the
aggregate merges them.
"""

from __future__ import annotations

from typing import Any

from loan_mart.engine.base import QueryEngine, Relation
from loan_mart.engine.expressions import coalesce, col, count, count_distinct, sum_, trunc_month
from loan_mart.models.enums import Severity
from loan_mart.quality.checks import QualityCheck, Resolver


class ConservationCheck(QualityCheck):
    """Per month, ``sum(new_loans)`` equals the distinct loans originated."""

    def __init__(self, details: str = "fct_loan_details", severity: Severity = Severity.ERROR) -> None:
        self.details = details
        super().__init__(
            name="conservation(new_loans)",
            description=f"sum(new_loans) differs from distinct loans in {details}",
            severity=severity,
        )

    def find_failures(self, engine: QueryEngine, relation: Relation, resolve: Resolver) -> list[dict[str, Any]]:
        expected = engine.group_aggregate(
            resolve(self.details),
            keys={"detail_month": trunc_month(col("loan_start_date"))},
            aggregates={"distinct_loans": count_distinct(col("loan_id"))},
        )
        actual = engine.group_aggregate(
            relation,
            keys={"month": col("month")},
            aggregates={"sum_new_loans": sum_(col("new_loans"))},
        )
        joined = engine.join(
            actual,
            expected,
            on=[("month", "detail_month")],
            how="full",
            validate="one_to_one",
            nulls_equal=True,
        )
        mismatches = engine.filter(
            joined,
            coalesce(col("sum_new_loans"), 0).ne(coalesce(col("distinct_loans"), 0)),
        )
        return engine.collect(mismatches)


class CategoricalCoverageCheck(QualityCheck):
    """Per month, one origination row per distinct loan type originated.

    Catches a loan-type dimension collapsed into a single representative
    label as well as duplicated type rows.
    """

    def __init__(self, details: str = "fct_loan_details", severity: Severity = Severity.ERROR) -> None:
        self.details = details
        super().__init__(
            name="categorical_coverage(loan_type_name)",
            description=f"origination rows per month differ from loan types in {details}",
            severity=severity,
        )

    def find_failures(self, engine: QueryEngine, relation: Relation, resolve: Resolver) -> list[dict[str, Any]]:
        type_groups = engine.group_aggregate(
            resolve(self.details),
            keys={
                "detail_month": trunc_month(col("loan_start_date")),
                "detail_type": col("loan_type_name"),
            },
            aggregates={"group_loans": count()},
        )
        expected = engine.group_aggregate(
            type_groups,
            keys={"detail_month": col("detail_month")},
            aggregates={"expected_rows": count()},
        )
        actual = engine.group_aggregate(
            engine.filter(relation, col("new_loans") > 0),
            keys={"month": col("month")},
            aggregates={"origination_rows": count()},
        )
        joined = engine.join(
            actual,
            expected,
            on=[("month", "detail_month")],
            how="full",
            validate="one_to_one",
            nulls_equal=True,
        )
        mismatches = engine.filter(
            joined,
            coalesce(col("origination_rows"), 0).ne(coalesce(col("expected_rows"), 0)),
        )
        return engine.collect(mismatches)


class PaymentReconciliationCheck(QualityCheck):
    """Per month, payment measures match staged payments on every row.

    Payment measures are month-grain, so each row of a month must carry
    the same count and volume as the staged payments of that month.
    """

    def __init__(self, payments: str = "stg_loan_payments", severity: Severity = Severity.ERROR) -> None:
        self.payments = payments
        super().__init__(
            name="reconciliation(payments_received)",
            description=f"payment measures differ from {payments}",
            severity=severity,
        )

    def find_failures(self, engine: QueryEngine, relation: Relation, resolve: Resolver) -> list[dict[str, Any]]:
        reported = engine.group_aggregate(
            relation,
            keys={
                "month": col("month"),
                "payments_received": col("payments_received"),
                "payment_volume": col("payment_volume"),
            },
            aggregates={"n_rows": count()},
        )
        expected = engine.group_aggregate(
            resolve(self.payments),
            keys={"payment_month": trunc_month(col("payment_date"))},
            aggregates={
                "expected_payments": count_distinct(col("payment_id")),
                "expected_volume": sum_(col("payment_amount")),
            },
        )
        # A month reported with inconsistent values has several rows here
        joined = engine.join(
            reported,
            expected,
            on=[("month", "payment_month")],
            how="full",
            validate="many_to_one",
            nulls_equal=True,
        )
        count_mismatch = engine.filter(
            joined,
            coalesce(col("payments_received"), 0).ne(coalesce(col("expected_payments"), 0)),
        )
        volume_mismatch = engine.filter(
            joined,
            coalesce(col("payment_volume"), 0).ne(coalesce(col("expected_volume"), 0)),
        )

        failures: dict[tuple, dict[str, Any]] = {}
        for row in engine.collect(count_mismatch) + engine.collect(volume_mismatch):
            key = (row["month"], row["payment_month"], row["payments_received"], row["payment_volume"])
            failures.setdefault(key, row)
        return list(failures.values())
