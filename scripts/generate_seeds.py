#!/usr/bin/env python3
"""Generate synthetic seed CSVs for the loan analytics models.

Writes loan_types.csv, raw_loans.csv and raw_loan_payments.csv to the
target directory, ready for scripts/run_pipeline.py --seeds-dir.
"""

import argparse
import logging
import sys
from datetime import date
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from loan_mart.config import ScenarioConfig
from loan_mart.logging import setup_logging
from loan_mart.scenarios import LoanPortfolioScenario

logger = logging.getLogger(__name__)


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Generate synthetic loan seed files")
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=project_root / "local" / "seeds",
        help="Directory to write the seed CSVs (default: local/seeds)",
    )
    parser.add_argument(
        "--loans",
        type=int,
        default=100,
        help="Number of loans to generate (default: 100)",
    )
    parser.add_argument(
        "--start-month",
        type=date.fromisoformat,
        default=date(2024, 1, 1),
        help="First origination month, YYYY-MM-DD (default: 2024-01-01)",
    )
    parser.add_argument(
        "--months",
        type=int,
        default=12,
        help="Number of origination months (default: 12)",
    )
    parser.add_argument(
        "--payments-per-loan",
        type=int,
        default=6,
        help="Maximum payments per loan (default: 6)",
    )
    parser.add_argument(
        "--unknown-type-rate",
        type=float,
        default=0.0,
        help="Share of loans with a type missing from the catalog",
    )
    parser.add_argument(
        "--orphan-payment-rate",
        type=float,
        default=0.0,
        help="Share of extra payments referencing no known loan",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=42,
        help="Random seed for reproducibility (default: 42)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (default: INFO)",
    )
    args = parser.parse_args()

    setup_logging(args.log_level)

    config = ScenarioConfig(
        num_loans=args.loans,
        start_month=args.start_month,
        num_months=args.months,
        payments_per_loan=args.payments_per_loan,
        unknown_type_rate=args.unknown_type_rate,
        orphan_payment_rate=args.orphan_payment_rate,
    )
    counts = LoanPortfolioScenario(config, seed=args.seed).export_seeds(args.output_dir)

    for name, count in counts.items():
        logger.info("%s: %d rows", name, count)


if __name__ == "__main__":
    main()
