"""Loan portfolio scenario producing the raw source tables."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from loan_mart.config import ScenarioConfig
from loan_mart.generators import LoanGenerator, PaymentGenerator, add_months
from loan_mart.sources import SOURCE_TABLES, write_seed

logger = logging.getLogger(__name__)

# Loan id for payments that reference no known loan
ORPHAN_LOAN_ID = "L99999"


class LoanPortfolioScenario:
    """Generate a loan portfolio with payment history.

    This scenario creates:
    - The loan type catalog
    - Loans originated across a window of months, optionally with a share
      of loans whose type is missing from the catalog
    - Amortized payment histories with on-time, late, missed and reversed
      payments, optionally with payments for unknown loans
    """

    def __init__(self, config: ScenarioConfig | None = None, seed: int | None = None) -> None:
        """Initialize loan portfolio scenario.

        Parameters
        ----------
        config : ScenarioConfig | None
            Portfolio size and data-quality knobs; defaults when omitted.
        seed : int | None
            Random seed for reproducibility.
        """
        self.config = config or ScenarioConfig()
        self.seed = seed
        self._loan_gen = LoanGenerator(seed=seed)
        self._payment_gen = PaymentGenerator(seed=seed)

    def generate(self) -> dict[str, list[dict[str, Any]]]:
        """Generate every source table.

        Returns
        -------
        dict[str, list[dict[str, Any]]]
            Raw rows keyed by source table name.
        """
        config = self.config
        logger.info(
            "Starting loan portfolio scenario: %d loans over %d months",
            config.num_loans,
            config.num_months,
        )

        loan_types = self._loan_gen.generate_loan_types()
        loans = self._loan_gen.generate_batch(
            config.num_loans,
            config.start_month,
            config.num_months,
            unknown_type_rate=config.unknown_type_rate,
        )

        # Payments stop at the end of the generated window
        window_end = add_months(config.start_month.replace(day=1), config.num_months)
        payments = []
        for loan in loans:
            payments += self._payment_gen.generate_for_loan(
                loan, config.payments_per_loan, as_of=window_end
            )

        num_orphans = round(len(payments) * config.orphan_payment_rate)
        for _ in range(num_orphans):
            month = add_months(config.start_month.replace(day=1), self._payment_gen.rng.randrange(config.num_months))
            payment_date = month.replace(day=self._payment_gen.rng.randint(1, 28))
            payments.append(self._payment_gen.generate_orphan(ORPHAN_LOAN_ID, payment_date))

        logger.info(
            "Generated %d loan types, %d loans, %d payments (%d orphaned)",
            len(loan_types),
            len(loans),
            len(payments),
            num_orphans,
        )
        return {
            "loan_types": loan_types,
            "raw_loans": loans,
            "raw_loan_payments": payments,
        }

    def export_seeds(self, seeds_dir: str | Path) -> dict[str, int]:
        """Generate the tables and write them as seed CSVs.

        Returns
        -------
        dict[str, int]
            Rows written per table.
        """
        seeds_dir = Path(seeds_dir)
        seeds_dir.mkdir(parents=True, exist_ok=True)

        counts = {}
        for name, rows in self.generate().items():
            counts[name] = write_seed(seeds_dir / f"{name}.csv", SOURCE_TABLES[name], rows)
            logger.info("Wrote %s: %d rows", seeds_dir / f"{name}.csv", counts[name])
        return counts
