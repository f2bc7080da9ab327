"""
Report Generators
=================

Output formatters for scan results. Each file reporter is independent
and renders the same immutable ScanResult.

Available Reporters
-------------------
JSONReporter
    Full scan result as JSON.
HTMLReporter
    Self-contained HTML page.
CSVReporter
    One row per vulnerability.
SARIFReporter
    SARIF 2.1.0 log for code scanning tools.
JUnitReporter
    JUnit XML for CI test dashboards.
CLIReporter
    Rich terminal summary.

Example
-------
>>> from cloudposture.reporters import render
>>>
>>> sarif = render(scan_result, "sarif")
>>> render(scan_result, "html", output_path="report.html")
"""

from pathlib import Path
from typing import Dict, Optional, Type, Union

from cloudposture.core.config import OUTPUT_FORMATS
from cloudposture.core.exceptions import UnsupportedFormatError
from cloudposture.core.models import ScanResult
from cloudposture.reporters.base import BaseReporter
from cloudposture.reporters.cli_reporter import CLIReporter
from cloudposture.reporters.csv_reporter import CSVReporter
from cloudposture.reporters.html_reporter import HTMLReporter
from cloudposture.reporters.json_reporter import JSONReporter
from cloudposture.reporters.junit_reporter import JUnitReporter
from cloudposture.reporters.sarif_reporter import SARIFReporter

REPORTERS: Dict[str, Type[BaseReporter]] = {
    "json": JSONReporter,
    "html": HTMLReporter,
    "csv": CSVReporter,
    "sarif": SARIFReporter,
    "junit": JUnitReporter,
}


def get_reporter(fmt: str, include_compliance: bool = True) -> BaseReporter:
    """
    Return a reporter for a format name (case-insensitive).

    Raises
    ------
    UnsupportedFormatError
        If the format is not one of json, html, csv, sarif, junit.
    """
    reporter_class = REPORTERS.get((fmt or "").lower())
    if reporter_class is None:
        raise UnsupportedFormatError(
            f"Unsupported format: {fmt}",
            details={"supported": list(OUTPUT_FORMATS)},
        )
    return reporter_class(include_compliance=include_compliance)


def format_from_path(path: Union[str, Path]) -> Optional[str]:
    """Infer a report format from a file extension, or None."""
    suffix = Path(path).suffix.lower()
    for name, reporter_class in REPORTERS.items():
        if suffix == reporter_class.extension:
            return name
    return None


def render(
    result: ScanResult,
    fmt: str,
    output_path: Optional[Union[str, Path]] = None,
    include_compliance: bool = True,
) -> str:
    """
    Render a scan result in the given format.

    Parameters
    ----------
    result : ScanResult
        Scan result to render. It is not modified.
    fmt : str
        One of json, html, csv, sarif, junit.
    output_path : str or Path, optional
        Also write the report to this file.
    include_compliance : bool, default=True
        Show the compliance section (HTML).

    Returns
    -------
    str
        The rendered report.

    Raises
    ------
    UnsupportedFormatError
        For an unknown format.
    ReportError
        If the file cannot be written.
    """
    return get_reporter(fmt, include_compliance=include_compliance).render(
        result, output_path
    )


__all__ = [
    "BaseReporter",
    "CLIReporter",
    "CSVReporter",
    "HTMLReporter",
    "JSONReporter",
    "JUnitReporter",
    "SARIFReporter",
    "REPORTERS",
    "get_reporter",
    "format_from_path",
    "render",
]
