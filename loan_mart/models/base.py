"""Base record type shared by all models."""

from dataclasses import asdict, dataclass, fields
from typing import Any, Mapping, TypeVar

R = TypeVar("R", bound="Record")


@dataclass
class Record:
    """Typed row produced by a pipeline model.

    Engine rows are plain mappings keyed by column name. ``from_row`` picks
    the declared fields and ignores any extra columns, so a record type can
    be built from a wider relation.
    """

    @classmethod
    def from_row(cls: type[R], row: Mapping[str, Any]) -> R:
        return cls(**{f.name: row.get(f.name) for f in fields(cls)})

    @classmethod
    def column_names(cls) -> tuple[str, ...]:
        return tuple(f.name for f in fields(cls))

    def to_row(self) -> dict[str, Any]:
        return asdict(self)
