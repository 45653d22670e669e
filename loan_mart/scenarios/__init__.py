"""Scenarios for generating raw loan data sets."""

from loan_mart.scenarios.loan_portfolio import ORPHAN_LOAN_ID, LoanPortfolioScenario

__all__ = ["LoanPortfolioScenario", "ORPHAN_LOAN_ID"]
