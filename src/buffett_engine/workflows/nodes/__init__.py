"""Convenience re-exports for workflow nodes."""
from __future__ import annotations

from . import (
    currency_normalize,
    intrinsic_value,
    quality,
    verdict,
    wacc,
)

__all__ = [
    "currency_normalize",
    "intrinsic_value",
    "quality",
    "verdict",
    "wacc",
]
