#!/usr/bin/env python3
"""Build the loan analytics models from seed files.

Loads the raw seed CSVs into the selected engine, builds the staging,
detail and monthly aggregate models in dependency order, runs their data
quality checks and exports the results to the chosen sinks.

Examples:
    python scripts/run_pipeline.py
    python scripts/run_pipeline.py --select +agg_monthly_loans --sink console
    python scripts/run_pipeline.py --engine postgres --postgres-url postgresql://...
    python scripts/run_pipeline.py --sink postgres --truncate
"""

import argparse
import logging
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from loan_mart.config import ENGINES, LoanMartConfig
from loan_mart.exceptions import LoanMartError
from loan_mart.logging import setup_logging
from loan_mart.pipeline import run_pipeline
from loan_mart.sinks import ConsoleSink, JsonFileSink, KafkaSink, PostgresSink

logger = logging.getLogger(__name__)

SINKS = ("console", "json", "kafka", "postgres")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Build the loan analytics models")
    parser.add_argument(
        "--engine",
        choices=ENGINES,
        default=None,
        help="Query engine (default: LOAN_MART_ENGINE or memory)",
    )
    parser.add_argument(
        "--seeds-dir",
        type=Path,
        default=None,
        help="Directory holding the seed CSVs (default: SEEDS_DIR or seeds)",
    )
    parser.add_argument(
        "--select",
        nargs="+",
        default=None,
        help="Models to build; +model adds ancestors, model+ adds descendants",
    )
    parser.add_argument(
        "--sink",
        choices=SINKS,
        action="append",
        default=[],
        help="Export built models to this sink (repeatable)",
    )
    parser.add_argument(
        "--console-layout",
        choices=("json", "table"),
        default="table",
        help="Layout of the console sink (default: table)",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=None,
        help="Directory for the json sink (default: OUTPUT_DIR or output)",
    )
    parser.add_argument(
        "--postgres-url",
        type=str,
        default=None,
        help="PostgreSQL connection string for the postgres engine and sink",
    )
    parser.add_argument(
        "--schema",
        type=str,
        default=None,
        help="PostgreSQL schema for models (default: POSTGRES_SCHEMA or analytics)",
    )
    parser.add_argument(
        "--truncate",
        action="store_true",
        help="Empty the postgres sink's export tables before writing",
    )
    parser.add_argument(
        "--kafka-bootstrap",
        type=str,
        default=None,
        help="Kafka bootstrap servers for the kafka sink",
    )
    parser.add_argument(
        "--skip-checks",
        action="store_true",
        help="Do not run data quality checks",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (default: LOG_LEVEL or INFO)",
    )
    parser.add_argument(
        "--log-format",
        choices=("standard", "json"),
        default=None,
        help="Log output format (default: LOG_FORMAT or standard)",
    )
    return parser


def build_config(args: argparse.Namespace) -> LoanMartConfig:
    """Environment configuration with command-line overrides applied."""
    config = LoanMartConfig.from_env()

    if args.engine:
        config.engine = args.engine
    if args.seeds_dir:
        config.seeds_dir = args.seeds_dir
    if args.output_dir:
        config.output.json_output_dir = args.output_dir
    if args.schema:
        config.postgres.schema = args.schema
    if args.kafka_bootstrap:
        config.kafka.bootstrap_servers = args.kafka_bootstrap
    if args.skip_checks:
        config.run_quality_checks = False
    if args.log_level:
        config.log_level = args.log_level
    if args.log_format:
        config.log_format = args.log_format
    return config


def build_sinks(
    names: list[str],
    config: LoanMartConfig,
    postgres_url: str,
    console_layout: str = "table",
    truncate: bool = False,
) -> list:
    sinks = []
    for name in names:
        if name == "console":
            sinks.append(ConsoleSink(pretty=False, max_records=20, layout=console_layout))
        elif name == "json":
            sinks.append(JsonFileSink(config.output.json_output_dir, pretty=config.output.pretty_json))
        elif name == "kafka":
            sinks.append(KafkaSink(config.kafka))
        elif name == "postgres":
            sinks.append(PostgresSink(postgres_url, schema=f"{config.postgres.schema}_export", truncate=truncate))
    return sinks


def main() -> int:
    """Main entry point."""
    args = build_parser().parse_args()

    try:
        config = build_config(args)
    except LoanMartError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 2

    setup_logging(config.log_level, config.log_format)
    postgres_url = args.postgres_url or config.postgres.connection_string

    # An explicit URL wins over the POSTGRES_* settings for the engine too
    if args.postgres_url and config.engine == "postgres":
        from loan_mart.engine import PostgresEngine

        engine = PostgresEngine(args.postgres_url, schema=config.postgres.schema)
    else:
        engine = None

    try:
        sinks = build_sinks(args.sink, config, postgres_url, args.console_layout, args.truncate)
        result = run_pipeline(config, select=args.select, sinks=sinks, engine=engine)
    except LoanMartError as exc:
        logger.error("Pipeline failed: %s", exc)
        return 1
    finally:
        if engine is not None:
            engine.close()

    for model in result.models:
        logger.info("%-20s %-8s rows=%d", model.name, model.status.value, model.rows)
    for warning in result.warnings:
        logger.warning("%s: %s", warning.model, warning.message)

    return 0 if result.succeeded else 1


if __name__ == "__main__":
    sys.exit(main())
