"""
CSV Reporter Module
===================

Exports one row per vulnerability for spreadsheet analysis.

The header row holds plain column labels. Every data field is written
with ``csv.QUOTE_ALL``, so embedded quotes are doubled and any standard CSV
reader recovers the original strings. Rows are separated by ``\\n`` with no
trailing newline.

Example
-------
>>> from cloudposture.reporters import CSVReporter
>>>
>>> reporter = CSVReporter(output_path="findings.csv")
>>> reporter.render(scan_result)
"""

from __future__ import annotations

import csv
import io
import logging
from typing import List

from cloudposture.core.models import ScanResult, Vulnerability
from cloudposture.reporters.base import BaseReporter

# Module logger
logger = logging.getLogger(__name__)


class CSVReporter(BaseReporter):
    """Reporter for exporting vulnerabilities to CSV."""

    format_name = "csv"
    extension = ".csv"

    COLUMNS = [
        "Vulnerability ID",
        "Title",
        "Severity",
        "Category",
        "Resource ID",
        "Resource Type",
        "Resource Name",
        "Region",
        "Provider",
        "Description",
        "Recommendation",
        "Status",
        "First Detected",
    ]

    def _row(self, vuln: Vulnerability) -> List[str]:
        return [
            vuln.id,
            vuln.title,
            vuln.severity,
            vuln.category,
            vuln.resource_id,
            vuln.resource_type,
            vuln.resource_name or "",
            vuln.region or "",
            vuln.provider,
            vuln.description,
            vuln.recommendation,
            vuln.status.value,
            vuln.first_detected.isoformat(),
        ]

    def to_string(self, result: ScanResult) -> str:
        buffer = io.StringIO()

        # Write column headers
        csv.writer(buffer, quoting=csv.QUOTE_MINIMAL, lineterminator="\n").writerow(
            self.COLUMNS
        )

        # Write data rows
        writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
        for vuln in result.vulnerabilities:
            writer.writerow(self._row(vuln))

        logger.debug(f"Rendered {len(result.vulnerabilities)} CSV rows")
        return buffer.getvalue()[:-1]
