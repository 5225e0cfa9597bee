"""Currency rate resolution across stored history, bridges and live quotes.

Resolution tiers, first success wins:

1. same currency (rate 1.0)
2. direct stored record ``base -> target`` at or before the date
3. reciprocal stored record ``target -> base``, inverted
4. bridge through a reference currency (USD, then EUR)
5. live quote from the market-data provider

The resolver only reads from its store. Rate 1.0 is returned for identical
currencies and nowhere else.
"""
from __future__ import annotations

import logging
import math
from datetime import date
from typing import Dict, Optional, Protocol, Sequence, Tuple

from buffett_engine.domain.models.fx import (
    ExchangeRate,
    QuoteProviderError,
    RateQuote,
    RateSource,
    RateUnavailable,
    normalize_currency,
)

logger = logging.getLogger(__name__)

BRIDGE_CURRENCIES: Tuple[str, ...] = ("USD", "EUR")


class RateStore(Protocol):
    """Read-only view over historical exchange rates."""

    def latest_rate(self, base: str, target: str, on: date) -> Optional[ExchangeRate]:
        """Return the newest record for the pair with ``valid_date <= on``."""
        ...


class LiveQuoteProvider(Protocol):
    """Blocking quote source used as the last resolution tier."""

    def quote(self, base: str, target: str, on: date) -> Optional[ExchangeRate]:
        """Return a rate for the pair near ``on`` or None; may raise QuoteProviderError."""
        ...


class CurrencyRateResolver:
    """Resolve exchange rates for a pair and date with provenance."""

    def __init__(
        self,
        store: RateStore,
        live_provider: Optional[LiveQuoteProvider] = None,
        *,
        bridge_currencies: Sequence[str] = BRIDGE_CURRENCIES,
    ) -> None:
        self._store = store
        self._live_provider = live_provider
        self._bridges = tuple(normalize_currency(c) for c in bridge_currencies)

    def resolve(self, base: str, target: str, on: Optional[date] = None) -> RateQuote:
        """Resolve ``base -> target`` for ``on`` (defaults to today).

        Raises:
            ValueError: a currency code is malformed.
            RateUnavailable: every tier failed.
        """
        base = normalize_currency(base)
        target = normalize_currency(target)
        as_of = on or date.today()

        if base == target:
            return RateQuote(base, target, as_of, 1.0, RateSource.SAME_CURRENCY)

        direct = self._stored(base, target, as_of)
        if direct is not None:
            return RateQuote(
                base,
                target,
                as_of,
                direct.rate,
                RateSource.DIRECT,
                valid_date=direct.valid_date,
                is_fallback=direct.is_fallback,
            )

        inverse = self._stored(target, base, as_of)
        if inverse is not None:
            return RateQuote(
                base,
                target,
                as_of,
                1.0 / inverse.rate,
                RateSource.RECIPROCAL,
                valid_date=inverse.valid_date,
                is_fallback=inverse.is_fallback,
            )

        bridged = self._bridge(base, target, as_of)
        if bridged is not None:
            return bridged

        return self._live(base, target, as_of)

    def convert(self, amount: float, base: str, target: str, on: Optional[date] = None) -> float:
        """Convert ``amount`` from ``base`` to ``target`` at the resolved rate."""
        return self.resolve(base, target, on).convert(amount)

    # ----------------------------
    # Resolution tiers
    # ----------------------------
    def _stored(self, base: str, target: str, on: date) -> Optional[ExchangeRate]:
        record = self._store.latest_rate(base, target, on)
        if record is None or not _usable(record.rate):
            return None
        return record

    def _leg(self, reference: str, currency: str, on: date) -> Optional[Tuple[float, bool]]:
        """Stored rate ``reference -> currency`` (direct or inverted) plus its fallback flag."""
        record = self._stored(reference, currency, on)
        if record is not None:
            return record.rate, record.is_fallback
        record = self._stored(currency, reference, on)
        if record is not None:
            return 1.0 / record.rate, record.is_fallback
        return None

    def _bridge(self, base: str, target: str, on: date) -> Optional[RateQuote]:
        for reference in self._bridges:
            # A leg through base or target itself is the direct pair already tried.
            if reference in (base, target):
                continue
            to_base = self._leg(reference, base, on)
            to_target = self._leg(reference, target, on)
            if to_base is None or to_target is None:
                continue
            rate = (1.0 / to_base[0]) * to_target[0]
            if not _usable(rate):
                continue
            logger.debug("Bridged %s->%s via %s on %s", base, target, reference, on)
            return RateQuote(
                base,
                target,
                on,
                rate,
                RateSource.BRIDGE,
                is_fallback=to_base[1] or to_target[1],
                bridge_currency=reference,
            )
        return None

    def _live(self, base: str, target: str, on: date) -> RateQuote:
        if self._live_provider is None:
            raise RateUnavailable(base, target, on, "no stored rate and no live provider")
        try:
            record = self._live_provider.quote(base, target, on)
        except QuoteProviderError as exc:
            raise RateUnavailable(base, target, on, f"live quote failed: {exc}") from exc
        if record is None or not _usable(record.rate):
            raise RateUnavailable(base, target, on, "live quote returned no rate")
        logger.warning("Using live %s->%s quote for %s (valid %s)", base, target, on, record.valid_date)
        return RateQuote(
            base,
            target,
            on,
            record.rate,
            RateSource.LIVE_FALLBACK,
            valid_date=record.valid_date,
            is_fallback=record.is_fallback,
        )


def query_rate(
    resolver: CurrencyRateResolver,
    base: Optional[str],
    target: Optional[str],
    on: Optional[str] = None,
) -> Tuple[Dict[str, object], int]:
    """HTTP-shaped rate lookup returning ``(payload, status)``.

    ``{"rate", "source"}`` with 200, ``{"error"}`` with 400 for malformed input
    and 404 when no tier resolves the pair.
    """
    if not base or not target:
        return {"error": "Both 'from' and 'to' currencies are required"}, 400
    try:
        as_of = date.fromisoformat(on) if on else None
        quote = resolver.resolve(base, target, as_of)
    except ValueError as exc:
        return {"error": str(exc)}, 400
    except RateUnavailable as exc:
        return {"error": str(exc)}, 404
    return quote.to_payload(), 200


def _usable(rate: Optional[float]) -> bool:
    return rate is not None and math.isfinite(rate) and rate > 0
