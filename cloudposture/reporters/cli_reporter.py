"""
CLI Reporter Module
===================

Prints a scan summary to the terminal using the Rich library.

The summary shows:
- Scan date, provider, regions, duration and resources scanned
- Security posture and risk score
- Severity breakdown
- The first five critical findings and first three quick wins
- Compliance status per framework
- Skipped rules and failed regions, when there are any

Example
-------
>>> from cloudposture.reporters import CLIReporter
>>>
>>> reporter = CLIReporter()
>>> reporter.report(scan_result)

See Also
--------
rich : Python library for rich text and formatting.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table
from rich.text import Text

from cloudposture.core.models import ScanResult, Vulnerability

# Module logger
logger = logging.getLogger(__name__)

CRITICAL_PREVIEW = 5
QUICK_WIN_PREVIEW = 3

POSTURE_STYLES = {
    "excellent": "green",
    "good": "blue",
    "fair": "yellow",
    "poor": "red",
    "critical": "bold bright_red",
}

SEVERITY_STYLES = {
    "critical": "bright_red",
    "high": "red",
    "medium": "yellow",
    "low": "green",
}


class CLIReporter:
    """
    Reporter for displaying scan results in the terminal.

    Parameters
    ----------
    console : Console, optional
        Rich Console instance. If not provided, creates a new one.
    include_compliance : bool, default=True
        Whether the summary ends with the compliance status.

    Examples
    --------
    >>> from rich.console import Console
    >>> reporter = CLIReporter(console=Console(record=True))
    >>> reporter.report(scan_result)
    """

    def __init__(
        self,
        console: Optional[Console] = None,
        include_compliance: bool = True,
    ) -> None:
        self.console = console or Console()
        self.include_compliance = include_compliance
        logger.debug("Initialized CLIReporter")

    def report(self, result: ScanResult) -> None:
        """Print the full console summary for a scan result."""
        self._print_header(result)
        self._print_overview(result)
        self._print_posture(result)
        self._print_severity_table(result)
        self._print_critical_findings(result.summary.critical_findings)
        self._print_quick_wins(result.summary.quick_wins)
        self._print_compliance(result)
        self._print_errors(result)

    # =========================================================================
    # Private Methods: Output Formatting
    # =========================================================================

    def _print_header(self, result: ScanResult) -> None:
        header_text = Text()
        header_text.append("\nSecurity Scan Results Summary\n", style="bold blue")
        header_text.append(f"Provider: {result.provider.upper()}", style="dim")
        self.console.print(Panel(header_text, border_style="blue"))

    def _print_overview(self, result: ScanResult) -> None:
        summary = Table(show_header=False, box=None, padding=(0, 2))
        summary.add_column("Metric", style="cyan")
        summary.add_column("Value", style="white")

        summary.add_row("Scan Date:", result.timestamp.strftime("%Y-%m-%d %H:%M:%S UTC"))
        summary.add_row("Regions:", escape(self._region_text(result.regions)))
        summary.add_row("Duration:", f"{result.scan_duration / 1000:.2f}s")
        summary.add_row("Resources Scanned:", str(result.resources.scanned))
        summary.add_row("Vulnerable Resources:", str(result.resources.vulnerable))

        self.console.print(summary)

    def _print_posture(self, result: ScanResult) -> None:
        posture = result.summary.security_posture
        style = POSTURE_STYLES.get(posture, "white")
        self.console.print(
            f"\n[bold]Security Posture:[/bold] [{style}]{posture.upper()}[/] "
            f"(Risk Score: {result.summary.risk_score}/100)"
        )

    def _print_severity_table(self, result: ScanResult) -> None:
        table = Table(title="\nVulnerability Summary", title_style="bold")
        table.add_column("Severity", no_wrap=True)
        table.add_column("Count", justify="right")

        for severity, count in result.severity_breakdown.items():
            style = SEVERITY_STYLES.get(severity, "white")
            table.add_row(f"[{style}]{severity.title()}[/]", str(count))
        table.add_row("[bold]Total[/bold]", f"[bold]{result.total_vulnerabilities}[/bold]")

        self.console.print(table)

    def _print_critical_findings(self, findings: List[Vulnerability]) -> None:
        if not findings:
            return
        self.console.print(
            f"\n[bright_red bold]Critical Findings ({len(findings)}):[/bright_red bold]"
        )
        for index, vuln in enumerate(findings[:CRITICAL_PREVIEW], start=1):
            self.console.print(
                f"   {index}. [red]{escape(vuln.title)}[/red] - "
                f"{escape(vuln.resource_name or vuln.resource_id)}"
            )
        remaining = len(findings) - CRITICAL_PREVIEW
        if remaining > 0:
            self.console.print(f"   ... and {remaining} more critical findings")

    def _print_quick_wins(self, quick_wins: List[Vulnerability]) -> None:
        if not quick_wins:
            return
        self.console.print(f"\n[green bold]Quick Wins ({len(quick_wins)}):[/green bold]")
        for index, vuln in enumerate(quick_wins[:QUICK_WIN_PREVIEW], start=1):
            self.console.print(
                f"   {index}. {escape(vuln.title)} - "
                f"[dim]{escape(vuln.resource_name or vuln.resource_id)}[/dim]"
            )

    def _print_compliance(self, result: ScanResult) -> None:
        if not self.include_compliance or not result.compliance_status:
            return
        self.console.print("\n[bold]Compliance Status:[/bold]")
        for framework, status in result.compliance_status.items():
            if status.score >= 80:
                style = "green"
            elif status.score >= 60:
                style = "yellow"
            else:
                style = "red"
            self.console.print(
                f"   {escape(framework)}: [{style}]{status.score}%[/] "
                f"({status.passed_checks}/{status.total_checks} checks passed)"
            )

    def _print_errors(self, result: ScanResult) -> None:
        if result.rule_errors:
            self.console.print(
                f"\n[yellow bold]{len(result.rule_errors)} rule evaluation(s) skipped:[/yellow bold]"
            )
            for error in result.rule_errors:
                self.console.print(f"  [red]• {escape(error.message)}[/red]")
        if result.region_errors:
            self.console.print("\n[yellow bold]Regions that failed discovery:[/yellow bold]")
            for region, message in result.region_errors.items():
                self.console.print(f"  [yellow]{escape(region)}:[/yellow] {escape(message)}")

    @staticmethod
    def _region_text(regions: List[str]) -> str:
        if len(regions) <= 5:
            return ", ".join(regions)
        return f"{len(regions)} regions"

    # =========================================================================
    # Public Methods: Progress and Messages
    # =========================================================================

    def create_progress(self) -> Progress:
        """Create a spinner progress indicator for long-running operations."""
        return Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=self.console,
            transient=True,
        )

    def print_scanning_message(self, provider: str, regions: List[str]) -> None:
        """Print a message about the regions being scanned."""
        self.console.print(
            f"\n[bold]Scanning {provider.upper()} in "
            f"{escape(self._region_text(regions))}...[/bold]"
        )

    def print_completion_message(self, output_file: Optional[str] = None) -> None:
        """Print scan completion message."""
        self.console.print("\n[green bold]Scan complete![/green bold]")
        if output_file:
            self.console.print(f"[dim]Report saved to: {escape(output_file)}[/dim]")

    def print_error(self, message: str) -> None:
        """Print an error message."""
        self.console.print(f"\n[red bold]Error:[/red bold] {escape(message)}")

    def print_warning(self, message: str) -> None:
        """Print a warning message."""
        self.console.print(f"\n[yellow bold]Warning:[/yellow bold] {escape(message)}")

    def __repr__(self) -> str:
        return "CLIReporter()"
