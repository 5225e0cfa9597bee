"""CLI command definitions for the valuation engine."""
from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from buffett_engine.domain.models.valuation import Forecast
from buffett_engine.domain.services.currency import query_rate
from buffett_engine.domain.services.dcf import evaluate_valuation, ideal_buy_price, margin_of_safety
from buffett_engine.settings.config import Config
from buffett_engine.settings.loader import load_settings
from buffett_engine.utils.logging import configure_logging
from buffett_engine.workflows.graph import AnalysisWorkflow
from buffett_engine.workflows.state import AnalysisState

console = Console()
app = typer.Typer(help="Score companies against value-investing criteria and estimate intrinsic value.")


@dataclass
class AppContext:
    """Holds reusable process-wide objects for CLI commands."""

    config: Config
    workflow: AnalysisWorkflow


def _init_context(debug_override: Optional[bool] = None) -> AppContext:
    """Create a context with configuration, logging, and workflow wiring."""
    config = load_settings(debug_override)
    configure_logging(debug=config.debug)
    workflow = AnalysisWorkflow(config=config)
    return AppContext(config=config, workflow=workflow)


@app.callback()
def main_callback(
    ctx: typer.Context,
    debug: Optional[bool] = typer.Option(
        None,
        "--debug/--no-debug",
        help="Temporarily toggle verbose logging without touching environment variables.",
    ),
) -> None:
    """Attach the lazily constructed application context to Typer."""
    ctx.obj = _init_context(debug_override=debug)


@app.command()
def analyze(
    ctx: typer.Context,
    request_path: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON analysis request."),
    emit_json: bool = typer.Option(False, "--json", help="Persist the merged workflow state to JSON."),
    markdown_path: Optional[Path] = typer.Option(
        None,
        "--markdown",
        help="Optional path for the rendered DCF explanation.",
    ),
) -> None:
    """Run the full analysis workflow for one request file."""
    if ctx.obj is None:
        raise typer.Exit(code=1)

    context: AppContext = ctx.obj
    request = json.loads(request_path.read_text(encoding="utf-8"))
    console.rule(f"Analysing {request.get('ticker', '?')}")

    with console.status("[bold cyan]Running workflow..."):
        try:
            result = context.workflow.run(request)
        except ValueError as exc:
            console.print(f"[bold red]Invalid request:[/bold red] {exc}")
            raise typer.Exit(code=2) from exc

    if result.get("errors"):
        console.print("[bold red]Workflow completed with errors:[/bold red]")
        for issue in result["errors"]:
            console.print(f"- {issue}")
    else:
        console.print("[bold green]Workflow completed successfully.[/bold green]")

    _print_run_summary(result)

    ticker = result.get("ticker", "analysis")
    if emit_json:
        target = context.config.output_dir / f"{ticker}_state.json"
        context.workflow.persist_state(result, target)
        console.print(f"State saved to {target}")

    if result.get("explanation"):
        output_md = markdown_path or context.config.output_dir / f"{ticker}_dcf.md"
        context.workflow.persist_markdown(result["explanation"], output_md)
        console.print(f"DCF explanation available at {output_md}")


@app.command()
def dcf(
    ctx: typer.Context,
    ufcf: List[float] = typer.Option(..., "--ufcf", help="Forecast UFCF per year; repeat the option."),
    wacc: float = typer.Option(..., "--wacc", help="Discount rate in percent, e.g. 9.5."),
    terminal_value: float = typer.Option(..., "--terminal-value", help="Present value of the terminal value."),
    net_debt: float = typer.Option(..., "--net-debt", help="Net debt."),
    shares: float = typer.Option(..., "--shares", help="Diluted shares outstanding."),
    price: Optional[float] = typer.Option(None, "--price", help="Current share price."),
    currency: str = typer.Option("USD", "--currency", help="Currency label for output."),
) -> None:
    """Value a single forecast without running the workflow."""
    if ctx.obj is None:
        raise typer.Exit(code=1)
    context: AppContext = ctx.obj

    forecast = Forecast(
        ufcf=tuple(ufcf),
        wacc=wacc,
        present_terminal_value=terminal_value,
        net_debt=net_debt,
        diluted_shares_outstanding=shares,
        current_price=price,
    )
    result = context.workflow.context.dcf_calculator.calculate(forecast)
    if not result.is_valid:
        console.print(f"[bold red]{result.error_message}[/bold red]: {', '.join(result.missing_inputs)}")  # type: ignore[union-attr]
        raise typer.Exit(code=1)

    mos_target = context.config.default_margin_of_safety
    table = Table(title="DCF Valuation", show_header=True, header_style="bold magenta")
    table.add_column("Key")
    table.add_column("Value", justify="right")
    table.add_row("Sum PV UFCF", f"{result.sum_pv_ufcf:,.2f}")  # type: ignore[union-attr]
    table.add_row("Enterprise Value", f"{result.enterprise_value:,.2f}")  # type: ignore[union-attr]
    table.add_row("Equity Value", f"{result.equity_value:,.2f}")  # type: ignore[union-attr]
    table.add_row("Terminal Value %", f"{result.terminal_value_percentage:.1f}%")  # type: ignore[union-attr]
    table.add_row("Intrinsic Value", f"{result.intrinsic_value:,.2f} {currency}")  # type: ignore[union-attr]
    table.add_row(
        f"Buy Price ({mos_target:.0f}% MoS)",
        f"{ideal_buy_price(result.intrinsic_value, mos_target):,.2f} {currency}",  # type: ignore[union-attr]
    )
    if price is not None:
        verdict = evaluate_valuation(result.intrinsic_value, price)  # type: ignore[union-attr]
        margin = margin_of_safety(result.intrinsic_value, price)  # type: ignore[union-attr]
        table.add_row("Verdict", verdict.summary())
        table.add_row("Margin of Safety", f"{margin:.1f}%" if margin is not None else "n/a")
    console.print(table)


@app.command()
def fx(
    ctx: typer.Context,
    base: str = typer.Argument(..., help="Source currency, e.g. USD"),
    target: str = typer.Argument(..., help="Target currency, e.g. EUR"),
    on: Optional[str] = typer.Option(None, "--date", help="ISO date; defaults to today."),
) -> None:
    """Resolve an exchange rate and print the query payload."""
    if ctx.obj is None:
        raise typer.Exit(code=1)
    context: AppContext = ctx.obj
    payload, status = query_rate(context.workflow.context.fx_resolver, base, target, on or date.today().isoformat())
    console.print_json(data=payload)
    if status != 200:
        raise typer.Exit(code=1)


@app.command()
def plan(ctx: typer.Context) -> None:
    """Display the workflow stages for quick operator reference."""
    if ctx.obj is None:
        raise typer.Exit(code=1)

    context: AppContext = ctx.obj
    table = Table(title="Workflow Stages")
    table.add_column("Step", style="cyan")
    table.add_column("Description")

    for idx, step in enumerate(context.workflow.describe_stages(), start=1):
        table.add_row(str(idx), step)

    console.print(table)


def _print_run_summary(state: AnalysisState) -> None:
    """Pretty-print a short run summary for operators."""
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Key")
    table.add_column("Value")

    quote_ccy = state.get("quote_currency", "")
    table.add_row("Ticker", state.get("ticker", "?"))
    table.add_row("Company", state.get("company_name") or "N/A")
    table.add_row("As Of", state.get("as_of") or "N/A")

    wacc = state.get("wacc")
    if wacc is not None:
        table.add_row("WACC", f"{wacc.wacc:.2f}%" + (" (default)" if wacc.defaulted else ""))
    for name, result in (state.get("valuations") or {}).items():
        if result.is_valid:
            table.add_row(f"Intrinsic Value [{name}]", f"{result.intrinsic_value:,.2f} {quote_ccy}")  # type: ignore[union-attr]
        else:
            table.add_row(f"Intrinsic Value [{name}]", "n/a")
    for name, verdict in (state.get("verdicts") or {}).items():
        table.add_row(f"Verdict [{name}]", verdict.summary())

    display = state.get("display_values") or {}
    if "intrinsic_value" in display:
        table.add_row("Intrinsic Value (display)", f"{display['intrinsic_value']:,.2f} {state.get('display_currency')}")
    quality = state.get("quality")
    if quality is not None:
        table.add_row("Quality", f"{quality.percentage:.1f}% ({quality.rating.value})")
    gate = state.get("gate")
    if gate is not None:
        table.add_row("Two-Pillar Gate", "conforming" if gate.conforming else "not conforming")
    table.add_row("Errors", str(len(state.get("errors", []))))

    console.print(table)
