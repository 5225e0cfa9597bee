"""Exchange-rate records and resolver results."""
from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Optional

_CODE_PATTERN = re.compile(r"^[A-Z]{3}$")

# Colloquial names for ISO codes. Offshore codes such as CNH trade at their own
# rate and are not aliases.
CURRENCY_ALIASES = {
    "RMB": "CNY",
}


def normalize_currency(code: Optional[str]) -> str:
    """Upper-case a currency code, resolve aliases and reject malformed input."""
    if code is None:
        raise ValueError("Currency code is required.")
    normalized = str(code).strip().upper()
    normalized = CURRENCY_ALIASES.get(normalized, normalized)
    if not _CODE_PATTERN.match(normalized):
        raise ValueError(f"Invalid currency code {code!r}; expected three letters.")
    return normalized


class RateSource(str, Enum):
    SAME_CURRENCY = "same_currency"
    DIRECT = "direct"
    RECIPROCAL = "reciprocal"
    BRIDGE = "bridge"
    LIVE_FALLBACK = "live_fallback"


@dataclass(frozen=True)
class ExchangeRate:
    """One stored or quoted rate: 1 ``base`` buys ``rate`` units of ``target``."""

    base_currency: str
    target_currency: str
    valid_date: date
    rate: float
    is_fallback: bool = False


@dataclass(frozen=True)
class RateQuote:
    """Resolved rate for a pair plus the tier that produced it."""

    base_currency: str
    target_currency: str
    as_of: date
    rate: float
    source: RateSource
    valid_date: Optional[date] = None
    is_fallback: bool = False
    bridge_currency: Optional[str] = None

    def convert(self, amount: float) -> float:
        return amount * self.rate

    def to_payload(self) -> dict:
        return {"rate": self.rate, "source": self.source.value}


class RateUnavailable(LookupError):
    """No resolution tier produced a rate for the pair on the date."""

    def __init__(self, base: str, target: str, on: date, detail: Optional[str] = None) -> None:
        self.base = base
        self.target = target
        self.on = on
        message = f"Could not find exchange rate for {base} to {target} on {on.isoformat()}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class QuoteProviderError(RuntimeError):
    """Transport or payload failure raised by a live quote provider."""
