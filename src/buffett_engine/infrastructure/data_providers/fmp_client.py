"""Live FX quotes from Financial Modeling Prep."""
from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Any, Optional

import requests

from buffett_engine.domain.models.fx import ExchangeRate, QuoteProviderError, normalize_currency

logger = logging.getLogger(__name__)


class FmpFxClient:
    """Fetch a historical daily close for a currency pair.

    Weekends and holidays have no close, so the client walks back day by day
    up to ``max_days_back``. One request per day, no retries; the caller owns
    timeouts through ``timeout_seconds``.
    """

    BASE_URL = "https://financialmodelingprep.com/api/v3/historical-price-full/forex"

    def __init__(
        self,
        api_key: Optional[str],
        *,
        timeout_seconds: float = 10,
        max_days_back: int = 7,
        session: Optional[requests.Session] = None,
    ) -> None:
        if not api_key:
            raise ValueError("FMP API key is missing; set FMP_API_KEY.")
        self._api_key = api_key
        self._timeout = timeout_seconds
        self._max_days_back = max_days_back
        self._session = session or requests.Session()

    def quote(self, base: str, target: str, on: date) -> Optional[ExchangeRate]:
        base = normalize_currency(base)
        target = normalize_currency(target)
        pair = f"{base}{target}"
        for days_back in range(self._max_days_back + 1):
            day = on - timedelta(days=days_back)
            close = self._fetch_close(pair, day)
            if close is None:
                continue
            if days_back:
                logger.debug("FMP %s: no close on %s, using %s", pair, on, day)
            return ExchangeRate(base, target, day, close, is_fallback=days_back > 0)
        logger.info("FMP %s: no close within %d days before %s", pair, self._max_days_back, on)
        return None

    def _fetch_close(self, pair: str, day: date) -> Optional[float]:
        params = {"from": day.isoformat(), "to": day.isoformat(), "apikey": self._api_key}
        try:
            response = self._session.get(f"{self.BASE_URL}/{pair}", params=params, timeout=self._timeout)
            response.raise_for_status()
            payload: Any = response.json()
        except (requests.RequestException, ValueError) as exc:
            raise QuoteProviderError(f"FMP request for {pair} on {day} failed: {exc}") from exc

        if not isinstance(payload, dict):
            return None
        historical = payload.get("historical") or []
        if not historical:
            return None
        close = historical[0].get("close")
        try:
            value = float(close)
        except (TypeError, ValueError):
            return None
        return value if value > 0 else None

    def close(self) -> None:
        self._session.close()
