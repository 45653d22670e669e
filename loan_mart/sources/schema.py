"""Source table contracts for the raw loan inputs."""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping

from loan_mart.engine.base import ColumnSpec
from loan_mart.exceptions import MalformedRecordError
from loan_mart.models.enums import ColumnType


@dataclass(frozen=True)
class SourceTable:
    """Frozen schema of one raw input table.

    Raw date columns are declared as TEXT: they arrive loosely typed and
    the staging models are responsible for the date cast.
    """

    name: str
    columns: tuple[ColumnSpec, ...]

    @property
    def column_names(self) -> tuple[str, ...]:
        return tuple(c.name for c in self.columns)

    def coerce_row(self, row: Mapping[str, Any], line: int | None = None) -> dict[str, Any]:
        """Cast one raw row to the declared column types."""
        result = {}
        for column in self.columns:
            value = row.get(column.name)
            try:
                result[column.name] = coerce_value(value, column.type)
            except MalformedRecordError as exc:
                where = f"{self.name} line {line}" if line is not None else self.name
                raise MalformedRecordError(f"{where}, column {column.name}: {exc}") from None
            if result[column.name] is None and not column.nullable:
                where = f"{self.name} line {line}" if line is not None else self.name
                raise MalformedRecordError(f"{where}, column {column.name}: value is required")
        return result


def coerce_value(value: Any, column_type: ColumnType) -> Any:
    """Cast a single value; empty strings are treated as null."""
    if value is None or (isinstance(value, str) and value.strip() == ""):
        return None

    if column_type == ColumnType.TEXT:
        if isinstance(value, datetime):
            return value.isoformat(sep=" ")
        if isinstance(value, date):
            return value.isoformat()
        return str(value)

    if column_type == ColumnType.INTEGER:
        if isinstance(value, bool):
            raise MalformedRecordError(f"{value!r} is not an integer")
        if isinstance(value, int):
            return value
        try:
            return int(str(value).strip())
        except ValueError:
            raise MalformedRecordError(f"{value!r} is not an integer") from None

    if column_type == ColumnType.NUMERIC:
        if isinstance(value, Decimal):
            number = value
        else:
            try:
                number = Decimal(str(value).strip())
            except InvalidOperation:
                raise MalformedRecordError(f"{value!r} is not numeric") from None
        if not number.is_finite():
            raise MalformedRecordError(f"{value!r} is not a finite number")
        return number

    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError:
        raise MalformedRecordError(f"{value!r} is not a date") from None


LOAN_TYPES = SourceTable(
    name="loan_types",
    columns=(
        ColumnSpec("loan_type_id", ColumnType.INTEGER, nullable=False),
        ColumnSpec("loan_type_name", ColumnType.TEXT),
        ColumnSpec("description", ColumnType.TEXT),
        ColumnSpec("typical_term_months", ColumnType.INTEGER),
    ),
)

RAW_LOANS = SourceTable(
    name="raw_loans",
    columns=(
        ColumnSpec("loan_id", ColumnType.TEXT),
        ColumnSpec("customer_id", ColumnType.TEXT),
        ColumnSpec("loan_type_id", ColumnType.INTEGER),
        ColumnSpec("loan_amount", ColumnType.NUMERIC),
        ColumnSpec("interest_rate", ColumnType.NUMERIC),
        ColumnSpec("loan_start_date", ColumnType.TEXT),
        ColumnSpec("loan_term_months", ColumnType.INTEGER),
        ColumnSpec("property_address", ColumnType.TEXT),
        ColumnSpec("property_value", ColumnType.NUMERIC),
    ),
)

RAW_LOAN_PAYMENTS = SourceTable(
    name="raw_loan_payments",
    columns=(
        ColumnSpec("payment_id", ColumnType.TEXT),
        ColumnSpec("loan_id", ColumnType.TEXT),
        ColumnSpec("payment_date", ColumnType.TEXT),
        ColumnSpec("payment_amount", ColumnType.NUMERIC),
        ColumnSpec("principal_paid", ColumnType.NUMERIC),
        ColumnSpec("interest_paid", ColumnType.NUMERIC),
        ColumnSpec("payment_status", ColumnType.TEXT),
    ),
)

SOURCE_TABLES: dict[str, SourceTable] = {
    table.name: table for table in (LOAN_TYPES, RAW_LOANS, RAW_LOAN_PAYMENTS)
}
