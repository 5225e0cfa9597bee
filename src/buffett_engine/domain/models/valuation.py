"""Valuation inputs and results exchanged between the DCF and WACC services."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

MIN_FORECAST_YEARS = 5


@dataclass(frozen=True)
class Forecast:
    """Inputs for one DCF run. ``wacc`` is a percentage, e.g. ``9.5``."""

    ufcf: Tuple[float, ...] = ()
    wacc: Optional[float] = None
    present_terminal_value: Optional[float] = None
    net_debt: Optional[float] = None
    diluted_shares_outstanding: Optional[float] = None
    current_price: Optional[float] = None

    def __post_init__(self) -> None:
        # Freeze list inputs so a forecast cannot change mid-run.
        object.__setattr__(self, "ufcf", tuple(self.ufcf or ()))

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "Forecast":
        """Build from the camelCase contract or snake_case keys."""

        def pick(*keys: str) -> Any:
            for key in keys:
                if payload.get(key) is not None:
                    return payload[key]
            return None

        return cls(
            ufcf=_float_tuple("ufcf", pick("ufcf") or []),
            wacc=_opt_float(pick("wacc")),
            present_terminal_value=_opt_float(pick("presentTerminalValue", "present_terminal_value")),
            net_debt=_opt_float(pick("netDebt", "net_debt")),
            diluted_shares_outstanding=_opt_float(
                pick("dilutedSharesOutstanding", "diluted_shares_outstanding")
            ),
            current_price=_opt_float(pick("currentPrice", "current_price")),
        )

    def with_wacc(self, wacc: float) -> "Forecast":
        return Forecast(
            ufcf=self.ufcf,
            wacc=wacc,
            present_terminal_value=self.present_terminal_value,
            net_debt=self.net_debt,
            diluted_shares_outstanding=self.diluted_shares_outstanding,
            current_price=self.current_price,
        )

    def scaled(self, rate: float) -> "Forecast":
        """Return the forecast with monetary figures converted by ``rate``."""

        def mul(value: Optional[float]) -> Optional[float]:
            return None if value is None else value * rate

        return Forecast(
            ufcf=tuple(cf * rate for cf in self.ufcf),
            wacc=self.wacc,
            present_terminal_value=mul(self.present_terminal_value),
            net_debt=mul(self.net_debt),
            diluted_shares_outstanding=self.diluted_shares_outstanding,
            current_price=self.current_price,
        )


@dataclass(frozen=True)
class IntrinsicValue:
    """Successful DCF outcome."""

    intrinsic_value: float
    enterprise_value: float
    equity_value: float
    sum_pv_ufcf: float
    terminal_value_percentage: float
    pv_ufcfs: Tuple[float, ...]
    years: int

    is_valid = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "intrinsicValue": self.intrinsic_value,
            "enterpriseValue": self.enterprise_value,
            "equityValue": self.equity_value,
            "sumPvUfcf": self.sum_pv_ufcf,
            "terminalValuePercentage": self.terminal_value_percentage,
            "details": {"pvUfcfs": list(self.pv_ufcfs), "years": self.years},
        }


@dataclass(frozen=True)
class ValuationFailure:
    """Failed DCF outcome listing every missing or broken input."""

    error_message: str
    missing_inputs: Tuple[str, ...] = ()

    is_valid = False

    def to_dict(self) -> Dict[str, Any]:
        return {"errorMessage": self.error_message, "missingInputs": list(self.missing_inputs)}


ValuationResult = Union[IntrinsicValue, ValuationFailure]


class ValuationStatus(str, Enum):
    UNDERVALUED = "undervalued"
    FAIRVALUED = "fairvalued"
    OVERVALUED = "overvalued"


@dataclass(frozen=True)
class ValuationVerdict:
    status: ValuationStatus
    percentage_diff: Optional[float]

    def summary(self) -> str:
        if self.percentage_diff is None:
            return f"{self.status.value} (intrinsic value not positive)"
        return f"{self.status.value} ({self.percentage_diff:+.1f}%)"


@dataclass(frozen=True)
class WaccBreakdown:
    """Result of a WACC estimate; ``wacc`` is a percentage inside the policy band."""

    wacc: float
    cost_of_equity: Optional[float] = None
    cost_of_debt: Optional[float] = None
    tax_rate: Optional[float] = None
    equity_weight: Optional[float] = None
    debt_weight: Optional[float] = None
    beta: Optional[float] = None
    unclamped_wacc: Optional[float] = None
    defaulted: bool = False
    notes: List[str] = field(default_factory=list)


def _float_tuple(name: str, values: Any) -> Tuple[float, ...]:
    try:
        return tuple(float(v) for v in values)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{name!r} must be a list of numbers, got {values!r}.") from exc


def _opt_float(value: Any) -> Optional[float]:
    if value is None:
        return None
    return float(value)
