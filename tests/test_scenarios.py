"""Tests for the loan portfolio scenario."""

from datetime import date
from pathlib import Path

from loan_mart.config import ScenarioConfig
from loan_mart.engine import MemoryEngine
from loan_mart.generators import UNKNOWN_TYPE_ID
from loan_mart.models.enums import CheckStatus
from loan_mart.pipeline import PipelineRunner, default_graph
from loan_mart.scenarios import ORPHAN_LOAN_ID, LoanPortfolioScenario
from loan_mart.sources import load_seeds, load_sources


class TestLoanPortfolioScenario:
    """Tests for LoanPortfolioScenario."""

    def test_generate_scenario(self, seed: int) -> None:
        config = ScenarioConfig(num_loans=20, start_month=date(2024, 1, 1), num_months=3, payments_per_loan=2)

        tables = LoanPortfolioScenario(config=config, seed=seed).generate()

        assert len(tables["loan_types"]) == 4
        assert len(tables["raw_loans"]) == 20
        loan_ids = {loan["loan_id"] for loan in tables["raw_loans"]}
        assert {p["loan_id"] for p in tables["raw_loan_payments"]} <= loan_ids
        assert all(p["payment_date"] <= "2024-05-01" for p in tables["raw_loan_payments"])

    def test_default_config(self, seed: int) -> None:
        scenario = LoanPortfolioScenario(seed=seed)

        assert scenario.config.num_loans == 100
        assert len(scenario.generate()["raw_loans"]) == 100

    def test_reproducible(self, seed: int) -> None:
        config = ScenarioConfig(num_loans=15, num_months=4)

        first = LoanPortfolioScenario(config=config, seed=seed).generate()
        second = LoanPortfolioScenario(config=config, seed=seed).generate()

        assert first == second

    def test_data_quality_knobs(self, seed: int) -> None:
        config = ScenarioConfig(num_loans=30, num_months=6, unknown_type_rate=1.0, orphan_payment_rate=0.1)

        tables = LoanPortfolioScenario(config=config, seed=seed).generate()

        assert {loan["loan_type_id"] for loan in tables["raw_loans"]} == {UNKNOWN_TYPE_ID}
        payments = tables["raw_loan_payments"]
        orphans = [p for p in payments if p["loan_id"] == ORPHAN_LOAN_ID]
        assert len(orphans) == round((len(payments) - len(orphans)) * 0.1)
        assert orphans

    def test_export_seeds_feeds_pipeline(self, seed: int, tmp_path: Path) -> None:
        """Generated seeds load and build with only warning-level findings."""
        config = ScenarioConfig(num_loans=40, num_months=6, unknown_type_rate=0.05, orphan_payment_rate=0.02)

        counts = LoanPortfolioScenario(config=config, seed=seed).export_seeds(tmp_path / "seeds")

        assert counts["raw_loans"] == 40
        engine = MemoryEngine()
        load_sources(engine, load_seeds(tmp_path / "seeds"))
        result = PipelineRunner(engine, default_graph()).run()
        assert result.succeeded
        assert all(c.status != CheckStatus.FAIL for m in result.models for c in m.checks)
        assert result["stg_loan_payments"].rows == counts["raw_loan_payments"]
