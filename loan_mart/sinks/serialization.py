"""Shared serialization utilities for sinks.

Records are model dataclasses or plain row mappings (models without a record
type). Decimals are written as strings so monetary values keep their scale.
"""

import json
from dataclasses import fields, is_dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any


def field_names(obj: Any) -> list[str]:
    """Column names of a record or row mapping, in declaration order."""
    if is_dataclass(obj):
        return [f.name for f in fields(obj)]
    if isinstance(obj, dict):
        return list(obj)
    return ["value"]


def to_dict(obj: Any) -> dict:
    """Convert a record or row mapping to a JSON-ready dictionary."""
    if is_dataclass(obj):
        return {name: serialize_value(getattr(obj, name)) for name in field_names(obj)}
    elif isinstance(obj, dict):
        return {k: serialize_value(v) for k, v in obj.items()}
    else:
        return {"value": str(obj)}


def serialize_value(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    elif isinstance(value, Enum):
        return value.value
    elif isinstance(value, (datetime, date)):
        return value.isoformat()
    elif isinstance(value, dict):
        return {k: serialize_value(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [serialize_value(v) for v in value]
    return value


def to_json(obj: Any, pretty: bool = False) -> str:
    """Serialize a record to a JSON string."""
    return json.dumps(to_dict(obj), indent=2 if pretty else None, ensure_ascii=False)


def display_value(value: Any) -> str:
    """Text shown for one cell in a console table; nulls print empty."""
    value = serialize_value(value)
    return "" if value is None else str(value)
