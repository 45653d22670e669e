"""Logging configuration for pipeline runs.

Every record emitted while a model is being built carries that model's name,
so the standard format prints ``[stg_loans]`` and the JSON format adds a
``model`` field without each call site passing it along.
"""

import contextvars
import json
import logging
import sys
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Iterator

_current_model: contextvars.ContextVar[str | None] = contextvars.ContextVar("loan_mart_model", default=None)

STANDARD_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | [%(model)s] %(message)s"

# Loggers of the libraries behind the engines, sinks and generators
QUIET_LOGGERS = ("confluent_kafka", "psycopg", "faker")


@contextmanager
def model_context(model: str) -> Iterator[None]:
    """Tag log records emitted inside the block with ``model``."""
    token = _current_model.set(model)
    try:
        yield
    finally:
        _current_model.reset(token)


def current_model() -> str | None:
    return _current_model.get()


class ModelContextFilter(logging.Filter):
    """Attach the model being built (or ``-``) as ``record.model``."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "model"):
            record.model = current_model() or "-"
        return True


class JsonFormatter(logging.Formatter):
    """One JSON object per line; ``model`` is omitted outside a model build."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        model = getattr(record, "model", None) or current_model()
        if model and model != "-":
            log_data["model"] = model

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def setup_logging(level: str = "INFO", format_type: str = "standard") -> None:
    """Configure the root logger for a pipeline run.

    Parameters
    ----------
    level : str
        Log level name; unknown names fall back to INFO.
    format_type : str
        ``standard`` for human-readable lines, ``json`` for one object per line.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    if format_type == "json":
        formatter: logging.Formatter = JsonFormatter()
    else:
        formatter = logging.Formatter(fmt=STANDARD_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    console_handler.addFilter(ModelContextFilter())
    root_logger.addHandler(console_handler)

    logging.getLogger("loan_mart").setLevel(log_level)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
