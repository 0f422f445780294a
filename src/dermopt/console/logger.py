"""Console logging and output for the CLI."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.text import Text

from dermopt.console.display import print_assessment, print_db_stats, print_upload_summary


if TYPE_CHECKING:
    from dermopt.core.models import Assessment, UploadSummary


def configure_logging(level: str = "INFO", console: Console | None = None) -> None:
    """Route stdlib logging through rich."""
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[
            RichHandler(
                console=console or Console(stderr=True),
                rich_tracebacks=True,
                show_time=False,
                show_path=False,
            )
        ],
        force=True,
    )


class AppConsole:
    """Rich console interface for CLI commands."""

    def __init__(self, verbose: bool = False) -> None:
        self.console = Console()
        self.verbose = verbose

    def setup_logging(self, level: str = "INFO") -> None:
        configure_logging(level if self.verbose else "WARNING", self.console)

    def print_header(self, title: str, subtitle: str = "") -> None:
        header = Text()
        header.append("dermopt", style="bold blue")
        header.append(" - Biologic Cost Optimization\n\n", style="dim")
        header.append(title, style="bold")
        if subtitle:
            header.append(f"\n{subtitle}", style="dim")
        self.console.print(Panel(header, border_style="blue"))

    def print_mock_notice(self) -> None:
        self.console.print("[yellow]Running in MOCK mode (no API calls)[/yellow]\n")

    def print_upload_summary(self, summary: UploadSummary) -> None:
        print_upload_summary(self.console, summary)

    def print_assessment(self, assessment: Assessment) -> None:
        print_assessment(self.console, assessment)

    def print_db_stats(self, stats: dict[str, Any]) -> None:
        print_db_stats(self.console, stats)

    def print_success(self, message: str) -> None:
        self.console.print(f"[green]✓[/green] {message}")

    def print_error(self, error: str) -> None:
        self.console.print()
        self.console.print(
            Panel(f"[red]{error}[/red]", title="[red]Error[/red]", border_style="red")
        )
