"""Teardown plan, summary and leak formatting."""

from __future__ import annotations

import json
from pathlib import Path
from typing import List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..models.deletion_attempt import AttemptOutcome
from ..models.managed_resource import ManagedResource
from ..models.teardown_summary import TeardownStatus, TeardownSummary
from ..tagging import is_expired

_STATUS_STYLES = {
    TeardownStatus.COMPLETED: "green",
    TeardownStatus.PARTIAL: "yellow",
    TeardownStatus.FAILED: "red",
    TeardownStatus.CANCELLED: "yellow",
    TeardownStatus.SKIPPED: "cyan",
}

_OUTCOME_STYLES = {
    AttemptOutcome.SUCCEEDED: "green",
    AttemptOutcome.ALREADY_ABSENT: "cyan",
    AttemptOutcome.RETRYABLE: "yellow",
    AttemptOutcome.TERMINAL: "red",
}


class TeardownReporter:
    """Format and display teardown results."""

    def __init__(self, console: Optional[Console] = None):
        """Initialize teardown reporter.

        Args:
            console: Rich console instance (creates new one if not provided)
        """
        self.console = console or Console()

    def display_plan(self, summary: TeardownSummary) -> None:
        """Display the resources a teardown would delete."""
        self.console.print()
        self.console.print(
            Panel(
                f"[bold]Teardown Preview[/bold]\n"
                f"Environment: {summary.environment} ({summary.region})\n"
                f"Network: {summary.network_id or 'unknown'}",
                style="cyan",
            )
        )

        if summary.network_id is None:
            self.console.print("[yellow]Network unknown; nothing would be cleaned up before destroy[/yellow]")
            return

        if not summary.planned:
            self.console.print("[green]✓ No dependent resources found - destroy can run directly[/green]")
            return

        table = Table(title="Would Delete", show_header=True, header_style="bold magenta")
        table.add_column("#", justify="right", style="dim")
        table.add_column("Class", style="cyan")
        table.add_column("Resource")
        table.add_column("Status")
        table.add_column("Attached To")

        for index, resource in enumerate(summary.planned, start=1):
            table.add_row(
                str(index),
                resource.resource_class.label,
                resource.display_name,
                resource.status,
                resource.attached_to or "",
            )

        self.console.print(table)
        self.console.print(f"\n[bold]{len(summary.planned)}[/bold] resource(s) would be deleted")

    def display_summary(self, summary: TeardownSummary) -> None:
        """Display the outcome of an orchestrator run."""
        style = _STATUS_STYLES[summary.status]
        duration = summary.duration_seconds

        self.console.print()
        self.console.print(
            Panel(
                f"[bold]Dependent Resource Cleanup: {summary.status.value.upper()}[/bold]\n"
                f"Environment: {summary.environment} ({summary.region})\n"
                f"Network: {summary.network_id or 'unknown'}\n"
                f"Attempts: {summary.total_attempts}"
                + (f" in {duration:.1f}s" if duration is not None else ""),
                style=style,
            )
        )

        final = summary.final_attempts()
        if not final:
            return

        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("Class", style="cyan")
        table.add_column("Resource")
        table.add_column("Last Action")
        table.add_column("Pass", justify="right")
        table.add_column("Outcome")
        table.add_column("Error")

        for attempt in sorted(final.values(), key=lambda a: a.resource.resource_class.deletion_order):
            outcome_style = _OUTCOME_STYLES[attempt.outcome]
            table.add_row(
                attempt.resource.resource_class.label,
                attempt.resource.display_name,
                attempt.action.value,
                str(attempt.pass_number),
                f"[{outcome_style}]{attempt.outcome.value}[/{outcome_style}]",
                attempt.error_code or "",
            )

        self.console.print(table)

    def format_leaks(self, leaks: List[ManagedResource]) -> str:
        """Format leaked resources for terminal output using Rich.

        Args:
            leaks: Resources still present after destroy

        Returns:
            Formatted string for terminal display
        """
        if not leaks:
            return "No leaked resources detected."

        table = Table(title="Leaked Resources")
        table.add_column("Class", style="bold")
        table.add_column("Resource")
        table.add_column("Network")
        table.add_column("Status")
        table.add_column("TTL")

        for resource in leaks:
            table.add_row(
                f"[red]{resource.resource_class.label}[/red]",
                resource.display_name,
                resource.network_id or "",
                resource.status,
                "[red]expired[/red]" if is_expired(resource.tags) else "",
            )

        console = Console()
        with console.capture() as capture:
            console.print(table)

        return capture.get()

    def export_leaks_json(self, leaks: List[ManagedResource], filepath: str) -> None:
        """Export leaked resources to JSON format.

        Args:
            leaks: Resources still present after destroy
            filepath: Output file path
        """
        output = {
            "leaks": [
                {
                    "class": resource.resource_class.value,
                    "identifier": resource.identifier,
                    "name": resource.name,
                    "network_id": resource.network_id,
                    "status": resource.status,
                    "tags": resource.tags,
                }
                for resource in leaks
            ],
            "total": len(leaks),
        }

        output_path = Path(filepath)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        with open(output_path, "w") as f:
            json.dump(output, f, indent=2)
