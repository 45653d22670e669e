"""Custom exception hierarchy for loan-mart."""


class LoanMartError(Exception):
    """Base exception for all loan-mart errors."""


class MalformedRecordError(LoanMartError):
    """Raised when an input value cannot be cast to its declared type."""


class RelationNotFoundError(LoanMartError):
    """Raised when a referenced table or model has not been loaded."""


class JoinCardinalityError(LoanMartError):
    """Raised when a join key violates its declared cardinality."""


class PipelineError(LoanMartError):
    """Raised when the model graph is invalid or cannot be executed."""


class DataQualityError(LoanMartError):
    """Raised when an error-severity data quality check fails."""

    def __init__(self, message: str, results: list | None = None) -> None:
        super().__init__(message)
        self.results = results or []


class ConfigurationError(LoanMartError):
    """Raised when configuration is invalid or missing."""


class SinkError(LoanMartError):
    """Raised when a sink operation fails."""
