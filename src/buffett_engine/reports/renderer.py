"""Report rendering helpers using Jinja2 templates."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from jinja2 import Environment, FileSystemLoader, StrictUndefined

from buffett_engine.domain.models.valuation import ValuationResult, ValuationVerdict

TEMPLATE_DIR = Path(__file__).resolve().parent / "templates"


def format_amount(value: float, currency: str) -> str:
    """Scale large figures to thousands, millions, billions or trillions."""
    magnitude = abs(value)
    for size, suffix in ((1e12, "T"), (1e9, "B"), (1e6, "M")):
        if magnitude >= size:
            return f"{value / size:,.2f}{suffix} {currency}"
    return f"{value:,.2f} {currency}"


@dataclass
class ReportRenderer:
    """Render markdown explanations from valuation outputs."""

    template_dir: Path = field(default=TEMPLATE_DIR)
    template_name: str = "dcf_explanation.md.j2"

    def __post_init__(self) -> None:
        self._env = Environment(
            loader=FileSystemLoader(str(self.template_dir)),
            autoescape=False,
            undefined=StrictUndefined,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self._env.filters["amount"] = format_amount

    def render(self, context: Dict[str, Any]) -> str:
        """Render the configured template with supplied context."""
        return self.render_template(self.template_name, context)

    def render_template(self, template_name: str, context: Dict[str, Any]) -> str:
        template = self._env.get_template(template_name)
        return template.render(**context)

    def explain_dcf(
        self,
        result: ValuationResult,
        currency: str,
        *,
        margin_of_safety: float = 20.0,
        current_price: Optional[float] = None,
        verdict: Optional[ValuationVerdict] = None,
        ticker: Optional[str] = None,
    ) -> str:
        """Markdown walk-through of a DCF result, or of why it failed."""
        context: Dict[str, Any] = {
            "ticker": ticker,
            "currency": currency,
            "result": result,
            "margin_of_safety": margin_of_safety,
            "buy_price": None,
            "current_price": current_price,
            "verdict": verdict,
        }
        if result.is_valid:
            context["buy_price"] = result.intrinsic_value * (1 - margin_of_safety / 100)  # type: ignore[union-attr]
        return self.render(context)
