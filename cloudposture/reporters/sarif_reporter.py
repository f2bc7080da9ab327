"""
SARIF Reporter Module
=====================

Exports findings as a SARIF 2.1.0 log with a single run, for code
scanning dashboards.

Notes
-----
``tool.driver.rules`` holds one entry per vulnerability, not per distinct
rule, so the same rule id can appear several times. Consumers that key
rules by id see the last entry. Each result's ``ruleId`` is the rule part
of the vulnerability id and its artifact location is the resource id.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict

from cloudposture.core.models import ScanResult, Vulnerability
from cloudposture.reporters.base import BaseReporter

# Module logger
logger = logging.getLogger(__name__)

SARIF_VERSION = "2.1.0"
SARIF_SCHEMA = "https://json.schemastore.org/sarif-2.1.0.json"
INFORMATION_URI = "https://optimisely.ai"

SARIF_LEVELS = {
    "critical": "error",
    "high": "error",
    "medium": "warning",
    "low": "note",
}


def sarif_level(severity: str) -> str:
    """Map a severity onto a SARIF result level."""
    return SARIF_LEVELS.get(severity, "note")


class SARIFReporter(BaseReporter):
    """Reporter for exporting vulnerabilities to SARIF."""

    format_name = "sarif"
    extension = ".sarif"

    def _rule(self, vuln: Vulnerability) -> Dict[str, Any]:
        return {
            "id": vuln.rule_id,
            "shortDescription": {"text": vuln.title},
            "fullDescription": {"text": vuln.description},
            "help": {"text": vuln.recommendation},
            "properties": {
                "category": vuln.category,
                "severity": vuln.severity,
            },
        }

    def _result(self, vuln: Vulnerability) -> Dict[str, Any]:
        return {
            "ruleId": vuln.rule_id,
            "level": sarif_level(vuln.severity),
            "message": {"text": vuln.description},
            "locations": [
                {
                    "physicalLocation": {
                        "artifactLocation": {"uri": vuln.resource_id},
                        "region": {"startLine": 1, "startColumn": 1},
                    }
                }
            ],
            "properties": {
                "resourceType": vuln.resource_type,
                "resourceName": vuln.resource_name,
                "region": vuln.region,
                "provider": vuln.provider,
                "category": vuln.category,
                "recommendation": vuln.recommendation,
            },
        }

    def to_dict(self, result: ScanResult) -> Dict[str, Any]:
        """Build the SARIF log as a dictionary."""
        return {
            "version": SARIF_VERSION,
            "$schema": SARIF_SCHEMA,
            "runs": [
                {
                    "tool": {
                        "driver": {
                            "name": result.metadata.scanner,
                            "version": result.metadata.version,
                            "informationUri": INFORMATION_URI,
                            "rules": [self._rule(v) for v in result.vulnerabilities],
                        }
                    },
                    "results": [self._result(v) for v in result.vulnerabilities],
                }
            ],
        }

    def to_string(self, result: ScanResult) -> str:
        return json.dumps(self.to_dict(result), indent=2)
