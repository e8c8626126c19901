"""Security baseline reporter."""

from __future__ import annotations

from rich.console import Console
from rich.table import Table

from ..models.baseline_finding import BaselineStatus
from .models import BaselineScanResult

_STATUS_DISPLAY = {
    BaselineStatus.ENABLED: "[green]✓ enabled[/green]",
    BaselineStatus.DISABLED: "[red]✗ disabled[/red]",
    BaselineStatus.UNKNOWN: "[yellow]? unknown[/yellow]",
}


class BaselineReporter:
    """Report baseline findings."""

    def format_terminal(self, result: BaselineScanResult) -> str:
        """Format a scan result for terminal output using Rich.

        Args:
            result: Baseline scan result

        Returns:
            Formatted string for terminal display
        """
        if not result.findings:
            return "No baseline checks were run."

        table = Table(title=f"Security Baseline ({result.region})")
        table.add_column("Service", style="bold")
        table.add_column("Status")
        table.add_column("Resource")
        table.add_column("Detail")

        for finding in result.findings:
            detail = finding.description
            if finding.remediation:
                detail += f"\n[dim]{finding.remediation}[/dim]"
            table.add_row(
                finding.service,
                _STATUS_DISPLAY[finding.status],
                finding.resource_id or "",
                detail,
            )

        console = Console()
        with console.capture() as capture:
            console.print(table)
            if not result.all_enabled:
                console.print("[dim]Newly enabled services take 24-48 hours to populate findings.[/dim]")

        return capture.get()
