"""
JUnit Reporter Module
=====================

Exports findings as JUnit XML so CI systems show each vulnerability as a
failing test. There is one ``<testsuite>`` per category, in order of
first appearance, and one failing ``<testcase>`` per vulnerability.

Output Structure
----------------
::

    <?xml version="1.0" encoding="UTF-8"?>
    <testsuites name="SecurityScan" tests="2" failures="2" time="1.234">
      <testsuite name="access_control" tests="1" failures="1" time="0">
        <testcase name="S3 Bucket Public Read Access" classname="aws_s3_bucket">
          <failure message="..." type="critical">
    Resource: bucket-1
    Type: aws_s3_bucket
    Region: us-east-1
    Recommendation: ...
          </failure>
        </testcase>
      </testsuite>
    </testsuites>
"""

from __future__ import annotations

import logging
from typing import Dict, List
from xml.sax.saxutils import escape, quoteattr

from cloudposture.core.models import ScanResult, Vulnerability
from cloudposture.reporters.base import BaseReporter

# Module logger
logger = logging.getLogger(__name__)

XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>'
SUITES_NAME = "SecurityScan"


def group_by_category(
    vulnerabilities: List[Vulnerability],
) -> Dict[str, List[Vulnerability]]:
    """Group vulnerabilities by category, keeping first-seen order."""
    groups: Dict[str, List[Vulnerability]] = {}
    for vuln in vulnerabilities:
        groups.setdefault(vuln.category, []).append(vuln)
    return groups


class JUnitReporter(BaseReporter):
    """Reporter for exporting vulnerabilities to JUnit XML."""

    format_name = "junit"
    extension = ".xml"

    def _testcase(self, vuln: Vulnerability) -> str:
        body = "\n".join(
            [
                f"Resource: {escape(vuln.resource_name or vuln.resource_id)}",
                f"Type: {escape(vuln.resource_type)}",
                f"Region: {escape(vuln.region or 'N/A')}",
                f"Recommendation: {escape(vuln.recommendation)}",
            ]
        )
        return (
            f"\n    <testcase name={quoteattr(vuln.title)} "
            f"classname={quoteattr(vuln.resource_type)}>\n"
            f"      <failure message={quoteattr(vuln.description)} "
            f"type={quoteattr(vuln.severity)}>\n"
            f"{body}\n"
            f"      </failure>\n"
            f"    </testcase>"
        )

    def _testsuite(self, category: str, vulns: List[Vulnerability]) -> str:
        cases = "".join(self._testcase(v) for v in vulns)
        return (
            f"\n  <testsuite name={quoteattr(category)} tests=\"{len(vulns)}\" "
            f"failures=\"{len(vulns)}\" time=\"0\">"
            f"{cases}\n"
            f"  </testsuite>"
        )

    def to_string(self, result: ScanResult) -> str:
        total = result.total_vulnerabilities
        seconds = result.scan_duration / 1000
        suites = "".join(
            self._testsuite(category, vulns)
            for category, vulns in group_by_category(result.vulnerabilities).items()
        )
        return (
            f"{XML_DECLARATION}\n"
            f"<testsuites name=\"{SUITES_NAME}\" tests=\"{total}\" "
            f"failures=\"{total}\" time=\"{seconds:.3f}\">\n"
            f"{suites}\n"
            f"</testsuites>"
        )
