"""Console sink for debugging and development."""

from typing import Any

from loan_mart.exceptions import ConfigurationError
from loan_mart.sinks.serialization import display_value, field_names, to_dict, to_json

LAYOUTS = ("json", "table")


class ConsoleSink:
    """Print model rows to stdout.

    The ``json`` layout prints one object per record. The ``table`` layout
    prints aligned columns, which reads better for the monthly aggregate.
    """

    def __init__(
        self,
        pretty: bool = True,
        max_records: int | None = None,
        layout: str = "json",
    ) -> None:
        """Initialize console sink.

        Parameters
        ----------
        pretty : bool
            Pretty-print JSON output.
        max_records : int | None
            Maximum records to print per batch (None for all).
        layout : str
            ``json`` or ``table``.
        """
        if layout not in LAYOUTS:
            raise ConfigurationError(f"Unknown layout {layout!r}, expected one of {', '.join(LAYOUTS)}")
        self.pretty = pretty
        self.max_records = max_records
        self.layout = layout
        self._counts: dict[str, int] = {}

    def write_batch(self, table: str, records: list[Any]) -> None:
        """Write a batch of records to console."""
        print(f"\n{'='*60}")
        print(f"Model: {table} ({len(records)} records)")
        print("=" * 60)

        display_records = records[: self.max_records] if self.max_records else records
        if self.layout == "table":
            self._print_table(display_records)
        else:
            for record in display_records:
                print(to_json(record, pretty=self.pretty))

        if self.max_records and len(records) > self.max_records:
            print(f"... and {len(records) - self.max_records} more records")

        self._counts[table] = self._counts.get(table, 0) + len(records)

    def _print_table(self, records: list[Any]) -> None:
        if not records:
            return
        columns = field_names(records[0])
        cells = [[display_value(to_dict(r).get(c)) for c in columns] for r in records]
        widths = [max(len(c), *(len(row[i]) for row in cells)) for i, c in enumerate(columns)]

        print("  ".join(c.ljust(w) for c, w in zip(columns, widths)))
        print("  ".join("-" * w for w in widths))
        for row in cells:
            print("  ".join(v.ljust(w) for v, w in zip(row, widths)).rstrip())

    def close(self) -> None:
        """Print summary."""
        print(f"\n{'='*60}")
        print("Console Sink Summary")
        print("=" * 60)
        for table, count in self._counts.items():
            print(f"  {table}: {count} records")
