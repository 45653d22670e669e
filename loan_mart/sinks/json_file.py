"""JSON file sink for exporting model outputs."""

import json
import logging
from pathlib import Path
from typing import Any

from loan_mart.exceptions import SinkError
from loan_mart.sinks.serialization import to_dict

logger = logging.getLogger(__name__)


class JsonFileSink:
    """Write each model to ``<output_dir>/<table>.json``.

    A table written twice is replaced, since every run rebuilds its models
    in full.
    """

    def __init__(self, output_dir: str | Path, pretty: bool = False) -> None:
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.pretty = pretty
        self._counts: dict[str, int] = {}

    def write_batch(self, table: str, records: list[Any]) -> None:
        """Write a batch of records to a JSON file."""
        file_path = self.output_dir / f"{table}.json"
        data = [to_dict(record) for record in records]

        try:
            with open(file_path, "w", encoding="utf-8") as f:
                if self.pretty:
                    json.dump(data, f, indent=2, ensure_ascii=False)
                else:
                    json.dump(data, f, ensure_ascii=False)
        except OSError as exc:
            raise SinkError(f"Failed to write {file_path}: {exc}") from exc

        self._counts[table] = len(records)
        logger.debug("Wrote %d records to %s", len(records), file_path)

    def close(self) -> None:
        """Log a summary of the files written."""
        logger.info("JSON files written to: %s", self.output_dir)
        for table, count in self._counts.items():
            logger.info("  %s: %d records", table, count)
