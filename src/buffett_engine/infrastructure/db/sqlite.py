"""SQLite persistence for historical exchange rates."""
from __future__ import annotations

from datetime import date
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine

from buffett_engine.domain.models.fx import ExchangeRate, normalize_currency


class ExchangeRateRepository:
    """Gateway over the ``exchange_rates`` table.

    Implements the resolver's read-only ``latest_rate`` lookup; writes are for
    ingestion jobs and tests.
    """

    def __init__(self, database_uri: str, *, echo: bool = False) -> None:
        self._engine: Engine = create_engine(database_uri, echo=echo, future=True)
        self._ensure_schema()

    @property
    def engine(self) -> Engine:
        return self._engine

    # -----------------
    # Schema management
    # -----------------
    def _ensure_schema(self) -> None:
        """Create tables if they do not already exist."""
        ddl = [
            """
            CREATE TABLE IF NOT EXISTS exchange_rates (
              base_currency TEXT NOT NULL,
              target_currency TEXT NOT NULL,
              valid_date DATE NOT NULL,
              rate REAL NOT NULL,
              is_fallback INTEGER NOT NULL DEFAULT 0,
              updated_at DATETIME DEFAULT CURRENT_TIMESTAMP,
              PRIMARY KEY (base_currency, target_currency, valid_date)
            );
            """,
            """CREATE INDEX IF NOT EXISTS idx_exchange_rates_pair ON exchange_rates(base_currency, target_currency);""",
        ]
        with self._engine.begin() as conn:
            for statement in ddl:
                conn.execute(text(statement))

    # -------------
    # Rate lookups
    # -------------
    def latest_rate(self, base: str, target: str, on: date) -> Optional[ExchangeRate]:
        """Newest rate for the pair valid at or before ``on``."""
        query = text(
            """
            SELECT base_currency, target_currency, valid_date, rate, is_fallback
            FROM exchange_rates
            WHERE base_currency = :base
              AND target_currency = :target
              AND valid_date <= :on
            ORDER BY valid_date DESC
            LIMIT 1
            """
        )
        with self._engine.connect() as conn:
            row = conn.execute(
                query,
                {"base": normalize_currency(base), "target": normalize_currency(target), "on": on.isoformat()},
            ).mappings().first()
        return _row_to_rate(dict(row)) if row else None

    def fetch_history(self, base: str, target: str) -> List[ExchangeRate]:
        """All stored rates for the pair, newest first."""
        query = text(
            """
            SELECT base_currency, target_currency, valid_date, rate, is_fallback
            FROM exchange_rates
            WHERE base_currency = :base AND target_currency = :target
            ORDER BY valid_date DESC
            """
        )
        with self._engine.connect() as conn:
            rows = conn.execute(query, {"base": normalize_currency(base), "target": normalize_currency(target)})
            return [_row_to_rate(dict(r)) for r in rows.mappings()]

    def upsert_rates(self, rates: Iterable[ExchangeRate]) -> int:
        """Persist rates; a second write for the same key replaces the first."""
        payload = [
            {
                "base": normalize_currency(r.base_currency),
                "target": normalize_currency(r.target_currency),
                "valid_date": r.valid_date.isoformat(),
                "rate": float(r.rate),
                "is_fallback": int(bool(r.is_fallback)),
            }
            for r in rates
            if r.rate is not None and r.rate > 0
        ]
        if not payload:
            return 0
        stmt = text(
            """
            INSERT INTO exchange_rates (base_currency, target_currency, valid_date, rate, is_fallback, updated_at)
            VALUES (:base, :target, :valid_date, :rate, :is_fallback, CURRENT_TIMESTAMP)
            ON CONFLICT(base_currency, target_currency, valid_date) DO UPDATE SET
              rate=excluded.rate,
              is_fallback=excluded.is_fallback,
              updated_at=CURRENT_TIMESTAMP
            """
        )
        with self._engine.begin() as conn:
            conn.execute(stmt, payload)
        return len(payload)


def _row_to_rate(row: Dict[str, Any]) -> ExchangeRate:
    valid = row["valid_date"]
    if not isinstance(valid, date):
        valid = date.fromisoformat(str(valid)[:10])
    return ExchangeRate(
        base_currency=row["base_currency"],
        target_currency=row["target_currency"],
        valid_date=valid,
        rate=float(row["rate"]),
        is_fallback=bool(row["is_fallback"]),
    )
