"""
Cloud-Posture CLI - Multi-Cloud Security Scanner

Main entry point for the command-line interface.
"""

import sys
from typing import Any, Dict, List, Optional, Sequence

import click
from rich.console import Console
from rich.table import Table

from cloudposture import __version__
from cloudposture.core.aws_client import AWSClient
from cloudposture.core.config import (
    OUTPUT_FORMATS,
    ScanOptions,
    SecurityConfig,
    load_security_config,
)
from cloudposture.core.engine import SecurityScanner
from cloudposture.core.exceptions import CloudPostureError
from cloudposture.core.logging import setup_logging
from cloudposture.core.models import CATEGORIES, PROVIDERS, SEVERITIES, ScanResult
from cloudposture.core.region_manager import RegionManager
from cloudposture.discovery import DEFAULT_REGIONS
from cloudposture.reporters import format_from_path, render
from cloudposture.reporters.cli_reporter import CLIReporter
from cloudposture.rules.catalog import RuleCatalog

console = Console()
error_console = Console(stderr=True)

EXIT_OK = 0
EXIT_HIGH = 1
EXIT_CRITICAL = 2

SEVERITY_STYLES = {
    "critical": "bright_red",
    "high": "red",
    "medium": "yellow",
    "low": "green",
}


def split_list(value: Optional[str], allowed: Optional[Sequence[str]] = None) -> Optional[List[str]]:
    """Parse a comma-separated option, optionally checking each item."""
    if value is None:
        return None
    items = [item.strip() for item in value.split(",") if item.strip()]
    if not items:
        raise click.BadParameter("No values specified")
    if allowed is not None:
        unknown = [item for item in items if item not in allowed]
        if unknown:
            raise click.BadParameter(
                f"Unknown value(s): {', '.join(unknown)}. "
                f"Choose from: {', '.join(allowed)}"
            )
    return items


def validate_regions(ctx, param, value: Optional[str]) -> Optional[List[str]]:
    """Validate and parse comma-separated region list."""
    return split_list(value)


def validate_severities(ctx, param, value: Optional[str]) -> Optional[List[str]]:
    """Validate and parse comma-separated severity list."""
    return split_list(value, SEVERITIES)


def validate_categories(ctx, param, value: Optional[str]) -> Optional[List[str]]:
    """Validate and parse comma-separated category list."""
    return split_list(value, CATEGORIES)


def exit_code_for(result: ScanResult) -> int:
    """2 if critical findings exist, 1 if high findings exist, else 0."""
    if result.severity_breakdown.get("critical", 0) > 0:
        return EXIT_CRITICAL
    if result.severity_breakdown.get("high", 0) > 0:
        return EXIT_HIGH
    return EXIT_OK


@click.group()
@click.version_option(version=__version__, prog_name="cloud-posture")
def cli():
    """
    Cloud-Posture: Multi-Cloud Security Scanner

    Discovers resources in an AWS, Azure or GCP account, evaluates them
    against a catalog of security rules and reports the findings with a
    risk score, security posture and compliance status.
    """
    pass


@cli.command("scan")
@click.option(
    "--provider",
    "-P",
    type=click.Choice(PROVIDERS),
    default="aws",
    help="Cloud provider to scan (default: aws)",
)
@click.option(
    "--regions",
    "-r",
    callback=validate_regions,
    help="Comma-separated list of regions to scan (e.g., us-east-1,us-west-2)",
)
@click.option(
    "--severity",
    "-s",
    callback=validate_severities,
    help="Comma-separated severities to check (e.g., critical,high)",
)
@click.option(
    "--category",
    "-c",
    callback=validate_categories,
    help="Comma-separated rule categories to check",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Security configuration file (.json, .yaml or .yml)",
)
@click.option(
    "--profile",
    "-p",
    default=None,
    help="AWS profile name from ~/.aws/credentials",
)
@click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice(OUTPUT_FORMATS, case_sensitive=False),
    default=None,
    help="Report format (default: inferred from --output, else json)",
)
@click.option(
    "--output",
    "-o",
    default=None,
    help="Output file path (auto-detects format from extension)",
)
@click.option(
    "--max-workers",
    default=1,
    type=click.IntRange(min=1),
    help="Threads used for rule evaluation (default: 1)",
)
@click.option(
    "--rule-timeout",
    default=None,
    type=click.FloatRange(min=0, min_open=True),
    help="Seconds a single rule check may run before it is skipped",
)
@click.option(
    "--partial-regions",
    is_flag=True,
    help="Continue when a region fails instead of aborting the scan",
)
@click.option(
    "--compliance/--no-compliance",
    default=True,
    help="Show the compliance section in the summary and HTML report",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    help="Logging level (default: WARNING)",
)
@click.option(
    "--log-file",
    default=None,
    help="Also write logs to this file",
)
def scan(
    provider: str,
    regions: Optional[List[str]],
    severity: Optional[List[str]],
    category: Optional[List[str]],
    config_path: Optional[str],
    profile: Optional[str],
    output_format: Optional[str],
    output: Optional[str],
    max_workers: int,
    rule_timeout: Optional[float],
    partial_regions: bool,
    compliance: bool,
    log_level: str,
    log_file: Optional[str],
):
    """
    Scan a cloud account for security misconfigurations.

    Exit status is 2 when critical findings exist, 1 when high findings
    exist and 0 otherwise.

    Examples:

        # Scan the default AWS region
        cloud-posture scan

        # Scan several regions, critical and high rules only
        cloud-posture scan --regions us-east-1,eu-west-1 --severity critical,high

        # Write a SARIF report for code scanning
        cloud-posture scan --output results.sarif

        # Print a JSON report to stdout
        cloud-posture scan --format json

        # Keep going when a region fails
        cloud-posture scan --regions us-east-1,ap-south-1 --partial-regions
    """
    setup_logging(level=log_level, log_file=log_file)
    error_reporter = CLIReporter(error_console)

    if output and not output_format:
        output_format = format_from_path(output) or "json"
    if output_format:
        output_format = output_format.lower()

    credentials: Dict[str, Any] = {}
    if profile:
        credentials["aws"] = {"profile": profile}

    try:
        config = load_security_config(config_path) if config_path else SecurityConfig()
        options = ScanOptions(
            provider=provider,
            regions=regions,
            severity=severity,
            categories=category,
            include_compliance=compliance,
            output_format=output_format,
            output_file=output,
        )
        scanner = SecurityScanner(
            config=config,
            max_workers=max_workers,
            rule_timeout=rule_timeout,
            partial_regions=partial_regions,
        )

        if options.output_format and not options.output_file:
            # Report only, on stdout
            result = scanner.scan(options, credentials or None)
            for region, message in result.region_errors.items():
                error_reporter.print_warning(f"Region {region} skipped: {message}")
            click.echo(
                render(
                    result,
                    options.output_format,
                    include_compliance=options.include_compliance,
                )
            )
            sys.exit(exit_code_for(result))

        cli_reporter = CLIReporter(
            console, include_compliance=options.include_compliance
        )
        cli_reporter.print_scanning_message(provider, regions or [DEFAULT_REGIONS[provider]])
        with cli_reporter.create_progress() as progress:
            progress.add_task("Discovering resources and evaluating rules...", total=None)
            result = scanner.scan(options, credentials or None)

        cli_reporter.report(result)
        if options.output_file:
            render(
                result,
                options.output_format,
                output_path=options.output_file,
                include_compliance=options.include_compliance,
            )
        cli_reporter.print_completion_message(options.output_file)

    except CloudPostureError as e:
        error_reporter.print_error(str(e))
        sys.exit(1)
    except KeyboardInterrupt:
        error_reporter.print_warning("Scan cancelled by user.")
        sys.exit(130)

    sys.exit(exit_code_for(result))


@cli.command("rules")
@click.option(
    "--provider",
    "-P",
    type=click.Choice(PROVIDERS),
    default=None,
    help="Only rules that apply to this provider",
)
@click.option(
    "--severity",
    "-s",
    callback=validate_severities,
    help="Comma-separated severities to list",
)
@click.option(
    "--category",
    "-c",
    callback=validate_categories,
    help="Comma-separated categories to list",
)
def list_rules(
    provider: Optional[str],
    severity: Optional[List[str]],
    category: Optional[List[str]],
):
    """List the security rules in the catalog."""
    catalog = RuleCatalog()
    rules = catalog.get_rules_by_provider(provider) if provider else catalog.get_all_rules()
    if severity:
        rules = [r for r in rules if r.severity in severity]
    if category:
        rules = [r for r in rules if r.category in category]

    table = Table(title=f"Security Rules ({len(rules)} of {len(catalog)})", show_lines=False)
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Name", style="white")
    table.add_column("Severity", no_wrap=True)
    table.add_column("Category", style="dim")
    table.add_column("Provider", style="yellow")
    table.add_column("Resource Types", style="dim", max_width=40)

    for rule in rules:
        style = SEVERITY_STYLES.get(rule.severity, "white")
        table.add_row(
            rule.id,
            rule.name,
            f"[{style}]{rule.severity}[/]",
            rule.category,
            rule.provider,
            ", ".join(sorted(rule.resource_types)),
        )

    console.print(table)


@cli.command("regions")
@click.option(
    "--profile",
    "-p",
    default=None,
    help="AWS profile name from ~/.aws/credentials",
)
def list_regions(profile: Optional[str]):
    """List all available AWS regions."""
    try:
        region_manager = RegionManager(aws_client=AWSClient(profile=profile))
        regions = region_manager.get_all_regions()

        console.print(f"\n[bold]Available AWS Regions ({len(regions)} total):[/bold]\n")
        for region in regions:
            console.print(f"  • {region}")
        console.print()

    except CloudPostureError as e:
        CLIReporter(error_console).print_error(str(e))
        sys.exit(1)


def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
