"""Application-wide configuration defaults and helpers."""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

# Base directory for resolving relative paths (current working directory).
BASE_DIR = Path.cwd()


def _to_bool(value: Optional[str], default: bool = False) -> bool:
    """Parse truthy environment values like '1' or 'true'."""
    if value is None:
        return default
    if not isinstance(value, str):
        value = str(value)
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _to_int(value: Optional[str]) -> Optional[int]:
    """Safely parse an integer env var, returning None on failure."""
    if value is None:
        return None
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return None


def _to_float(value: Optional[str], default: float) -> float:
    """Parse a float env var, keeping the default when unset or malformed."""
    if value is None:
        return default
    try:
        return float(str(value).strip())
    except (TypeError, ValueError):
        return default


@dataclass
class Config:
    """Runtime configuration loaded from environment variables."""

    debug: bool = False
    database_path: Path = BASE_DIR / "data" / "exchange_rates.db"
    sqlite_echo: bool = False
    fmp_api_key: Optional[str] = None
    fx_timeout_seconds: int = 10
    risk_free_rate: float = 0.04
    market_risk_premium: float = 0.06
    default_wacc: float = 10.0
    default_margin_of_safety: float = 20.0
    quality_threshold: float = 85.0
    display_currency: str = "EUR"
    output_dir: Path = BASE_DIR / "reports"

    @classmethod
    def from_env(cls) -> "Config":
        """Build a configuration instance using environment overrides."""
        base = BASE_DIR
        db_path = Path(os.getenv("FX_DATABASE_PATH", base / "data" / "exchange_rates.db"))
        output_dir = Path(os.getenv("OUTPUT_DIR", base / "reports"))

        return cls(
            debug=_to_bool(os.getenv("APP_DEBUG")),
            database_path=db_path,
            sqlite_echo=_to_bool(os.getenv("SQLITE_ECHO")),
            fmp_api_key=os.getenv("FMP_API_KEY"),
            fx_timeout_seconds=_to_int(os.getenv("FX_TIMEOUT_SECONDS")) or 10,
            risk_free_rate=_to_float(os.getenv("RISK_FREE_RATE"), 0.04),
            market_risk_premium=_to_float(os.getenv("MARKET_RISK_PREMIUM"), 0.06),
            default_wacc=_to_float(os.getenv("DEFAULT_WACC"), 10.0),
            default_margin_of_safety=_to_float(os.getenv("MARGIN_OF_SAFETY"), 20.0),
            quality_threshold=_to_float(os.getenv("QUALITY_THRESHOLD"), 85.0),
            display_currency=os.getenv("DISPLAY_CURRENCY", "EUR").upper(),
            output_dir=output_dir,
        )

    @property
    def database_uri(self) -> str:
        return f"sqlite:///{self.database_path}"

    def ensure_directories(self) -> None:
        """Create directories needed for runtime artifacts."""
        self.database_path.parent.mkdir(parents=True, exist_ok=True)
        self.output_dir.mkdir(parents=True, exist_ok=True)
