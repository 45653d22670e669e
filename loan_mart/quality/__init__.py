"""Data quality checks for models."""

from loan_mart.quality.checks import (
    AcceptedRangeCheck,
    NotNullCheck,
    QualityCheck,
    QualityResult,
    RelationshipsCheck,
    RowParityCheck,
    UniqueCheck,
)
from loan_mart.quality.reconciliation import (
    CategoricalCoverageCheck,
    ConservationCheck,
    PaymentReconciliationCheck,
)

__all__ = [
    "QualityCheck",
    "QualityResult",
    "UniqueCheck",
    "NotNullCheck",
    "AcceptedRangeCheck",
    "RelationshipsCheck",
    "RowParityCheck",
    "ConservationCheck",
    "CategoricalCoverageCheck",
    "PaymentReconciliationCheck",
]
