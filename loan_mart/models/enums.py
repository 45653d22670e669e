"""Enumeration types for loan analytics entities."""

from enum import Enum


class ColumnType(str, Enum):
    TEXT = "TEXT"
    INTEGER = "INTEGER"
    NUMERIC = "NUMERIC"
    DATE = "DATE"

    @property
    def sql_type(self) -> str:
        return self.value.lower()


class PaymentStatus(str, Enum):
    COMPLETED = "completed"
    LATE = "late"
    MISSED = "missed"
    REVERSED = "reversed"


class Severity(str, Enum):
    ERROR = "ERROR"
    WARN = "WARN"


class CheckStatus(str, Enum):
    PASS = "PASS"
    FAIL = "FAIL"
    WARN = "WARN"


class ModelStatus(str, Enum):
    SUCCESS = "SUCCESS"
    ERROR = "ERROR"
    SKIPPED = "SKIPPED"
