"""Domain models describing the fundamentals consumed by calculators."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional

STATEMENT_TYPES = ("IS", "BS", "CF")


@dataclass
class FinancialStatement:
    """Represents a normalized financial statement for a single period."""

    ticker: str
    period: date
    statement_type: str
    metrics: Dict[str, float] = field(default_factory=dict)
    currency: Optional[str] = None
    frequency: Optional[str] = "annual"  # "annual" or "quarterly"

    def get(self, key: str) -> Optional[float]:
        value = self.metrics.get(key)
        return None if value is None else float(value)


@dataclass
class FinancialDataset:
    """Container aggregating the statements required by calculators.

    Statements may arrive in any order; accessors return them most recent first,
    which is the order the window resolver and WACC estimator expect.
    """

    ticker: str
    reporting_currency: str = "USD"
    income_statements: List[FinancialStatement] = field(default_factory=list)
    balance_sheets: List[FinancialStatement] = field(default_factory=list)
    cash_flows: List[FinancialStatement] = field(default_factory=list)

    def statements(self, statement_type: str, *, frequency: str = "annual") -> List[FinancialStatement]:
        """Return statements of one type, most recent first."""
        if statement_type not in STATEMENT_TYPES:
            raise ValueError(f"Unknown statement type {statement_type!r}; expected one of {STATEMENT_TYPES}.")
        bucket = {
            "IS": self.income_statements,
            "BS": self.balance_sheets,
            "CF": self.cash_flows,
        }[statement_type]
        rows = [s for s in bucket if s.frequency in (None, frequency)]
        return sorted(rows, key=lambda s: s.period, reverse=True)

    def series(self, statement_type: str, metric: str) -> List[Optional[float]]:
        """Annual values of one metric, most recent first (None where absent)."""
        return [s.get(metric) for s in self.statements(statement_type)]
