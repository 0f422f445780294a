"""Display components for console output."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from rich.panel import Panel
from rich.table import Table


if TYPE_CHECKING:
    from rich.console import Console

    from dermopt.core.models import Assessment, Recommendation, UploadSummary

MAX_ERRORS_SHOWN = 10


def _money(value: float | None) -> str:
    return "-" if value is None else f"${value:,.0f}"


def print_upload_summary(console: Console, summary: UploadSummary) -> None:
    """Print upload counts and the first row errors."""
    color = "green" if summary.rows_failed == 0 else "yellow" if summary.rows_processed else "red"
    lines = [
        f"[bold]File:[/bold] {summary.file_name}",
        f"[bold]Processed:[/bold] [{color}]{summary.rows_processed}[/{color}]",
        f"[bold]Failed:[/bold] {summary.rows_failed}",
    ]
    lines.extend(f"[bold]{k.replace('_', ' ').title()}:[/bold] {v}" for k, v in summary.details.items())
    console.print(Panel(
        "\n".join(lines),
        title=f"{summary.upload_type.value.title()} Upload",
        border_style=color,
    ))
    if not summary.errors:
        return
    table = Table(title="Row Errors", border_style="dim")
    table.add_column("Row", justify="right", width=6)
    table.add_column("Error")
    for error in summary.errors[:MAX_ERRORS_SHOWN]:
        table.add_row("file" if error.row == 0 else str(error.row), error.error)
    if len(summary.errors) > MAX_ERRORS_SHOWN:
        table.add_row("", f"[dim]... and {len(summary.errors) - MAX_ERRORS_SHOWN} more[/dim]")
    console.print(table)


def print_recommendations(console: Console, recommendations: list[Recommendation]) -> None:
    """Print ranked recommendations with their cost projections."""
    if not recommendations:
        console.print("  [yellow]⚠[/yellow] No recommendations")
        return
    table = Table(title="Recommendations", border_style="blue")
    table.add_column("#", justify="right", width=3)
    table.add_column("Type", width=20)
    table.add_column("Drug", width=18)
    table.add_column("Frequency", width=16)
    table.add_column("Current", justify="right")
    table.add_column("Recommended", justify="right")
    table.add_column("Savings", justify="right")
    table.add_column("Tier", justify="right", width=4)
    for rec in recommendations:
        costs = rec.costs
        savings = _money(costs.annual_savings)
        if costs.savings_percent is not None:
            savings += f" ({costs.savings_percent:.1f}%)"
        drug = rec.drug_name + (" [red](contraindicated)[/red]" if rec.contraindicated else "")
        table.add_row(
            str(rec.rank),
            rec.type.value.replace("_", " ").title(),
            drug,
            rec.new_frequency or "-",
            _money(costs.current_annual_cost),
            _money(costs.recommended_annual_cost),
            savings,
            "-" if rec.tier is None else str(rec.tier),
        )
    console.print(table)
    for rec in recommendations:
        console.print(f"[bold]{rec.rank}.[/bold] {rec.rationale}")
        if rec.evidence_sources:
            console.print(f"   [dim]Evidence: {'; '.join(rec.evidence_sources)}[/dim]")


def print_assessment(console: Console, assessment: Assessment) -> None:
    header = (
        f"[bold]Assessment:[/bold] {assessment.id}\n"
        f"[bold]Diagnosis:[/bold] {assessment.diagnosis.value.replace('_', ' ').title()}\n"
        f"[bold]DLQI:[/bold] {assessment.dlqi_score}  "
        f"[bold]Months stable:[/bold] {assessment.months_stable}"
    )
    if assessment.recommendations:
        first = assessment.recommendations[0]
        header += f"\n[bold]Quadrant:[/bold] {first.quadrant.value if first.quadrant else '-'}"
    console.print(Panel(header, title="Biologic Optimization", border_style="blue"))
    print_recommendations(console, assessment.recommendations)


def print_db_stats(console: Console, stats: dict[str, Any]) -> None:
    """Print database statistics."""
    table = Table(title="Database Statistics", border_style="blue")
    table.add_column("Table", style="bold")
    table.add_column("Rows", justify="right")
    for name, count in stats.items():
        table.add_row(name.replace("_", " ").title(), str(count))
    console.print()
    console.print(table)
