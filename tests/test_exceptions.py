"""Tests for custom exception hierarchy."""

import pytest

from loan_mart.exceptions import (
    ConfigurationError,
    DataQualityError,
    JoinCardinalityError,
    LoanMartError,
    MalformedRecordError,
    PipelineError,
    RelationNotFoundError,
    SinkError,
)


class TestExceptionHierarchy:
    """Test exception inheritance chain."""

    def test_loan_mart_error_is_exception(self) -> None:
        assert isinstance(LoanMartError("test"), Exception)

    @pytest.mark.parametrize(
        "error_type",
        [
            MalformedRecordError,
            RelationNotFoundError,
            JoinCardinalityError,
            PipelineError,
            DataQualityError,
            ConfigurationError,
            SinkError,
        ],
    )
    def test_subclasses_are_loan_mart_errors(self, error_type: type) -> None:
        assert isinstance(error_type("test"), LoanMartError)

    def test_exception_message(self) -> None:
        err = RelationNotFoundError("Table raw_loans not found")
        assert str(err) == "Table raw_loans not found"


class TestDataQualityError:
    """DataQualityError carries the check results."""

    def test_results_default_empty(self) -> None:
        assert DataQualityError("failed").results == []

    def test_results_kept(self) -> None:
        results = [object(), object()]
        err = DataQualityError("failed", results=results)
        assert err.results == results
        assert str(err) == "failed"
