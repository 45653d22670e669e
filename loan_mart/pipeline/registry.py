"""The loan analytics models and their quality checks."""

from loan_mart.marts import build_agg_monthly_loans, build_fct_loan_details
from loan_mart.models import Loan, LoanDetail, MonthlyAggregate, Payment
from loan_mart.models.enums import Severity
from loan_mart.pipeline.graph import ModelGraph, ModelNode
from loan_mart.quality import (
    AcceptedRangeCheck,
    CategoricalCoverageCheck,
    ConservationCheck,
    NotNullCheck,
    PaymentReconciliationCheck,
    RelationshipsCheck,
    RowParityCheck,
    UniqueCheck,
)
from loan_mart.staging import build_stg_loan_payments, build_stg_loans


def default_models() -> list[ModelNode]:
    """Staging, detail and aggregate models in declaration order."""
    return [
        ModelNode(
            name="stg_loans",
            depends_on=("raw_loans",),
            build=build_stg_loans,
            description="Typed loans with calendar start dates",
            record_type=Loan,
            checks=[
                UniqueCheck(["loan_id"]),
                NotNullCheck("loan_id"),
                NotNullCheck("loan_start_date", severity=Severity.WARN),
                RowParityCheck("raw_loans"),
                AcceptedRangeCheck("loan_amount", min_value=0),
                AcceptedRangeCheck("interest_rate", min_value=0, max_value=100),
            ],
        ),
        ModelNode(
            name="stg_loan_payments",
            depends_on=("raw_loan_payments",),
            build=build_stg_loan_payments,
            description="Typed payments with calendar payment dates",
            record_type=Payment,
            checks=[
                UniqueCheck(["payment_id"]),
                NotNullCheck("payment_id"),
                NotNullCheck("payment_date", severity=Severity.WARN),
                RowParityCheck("raw_loan_payments"),
                RelationshipsCheck("loan_id", to="raw_loans", field="loan_id"),
            ],
        ),
        ModelNode(
            name="fct_loan_details",
            depends_on=("stg_loans", "loan_types"),
            build=build_fct_loan_details,
            description="One row per loan with loan type and derived metrics",
            record_type=LoanDetail,
            checks=[
                UniqueCheck(["loan_id"]),
                RowParityCheck("stg_loans"),
                RelationshipsCheck("loan_type_id", to="loan_types", field="loan_type_id"),
                AcceptedRangeCheck("ltv_ratio", min_value=0),
                AcceptedRangeCheck("estimated_monthly_payment", min_value=0),
            ],
        ),
        ModelNode(
            name="agg_monthly_loans",
            depends_on=("fct_loan_details", "stg_loan_payments"),
            build=build_agg_monthly_loans,
            description="Monthly originations and payments by loan type",
            record_type=MonthlyAggregate,
            checks=[
                UniqueCheck(["month", "loan_type_name"]),
                NotNullCheck("month", severity=Severity.WARN),
                AcceptedRangeCheck("new_loans", min_value=0),
                ConservationCheck(),
                CategoricalCoverageCheck(),
                PaymentReconciliationCheck(),
            ],
        ),
    ]


def default_graph() -> ModelGraph:
    return ModelGraph(default_models())
