"""
JSON Reporter Module
====================

Exports the complete scan result as pretty-printed JSON for programmatic
access and API integration.

Example
-------
>>> from cloudposture.reporters import JSONReporter
>>>
>>> reporter = JSONReporter()
>>> data = json.loads(reporter.to_string(scan_result))
>>> data["summary"]["risk_score"]
42

Output Structure
----------------
The document mirrors :meth:`ScanResult.to_dict`::

    {
      "timestamp": "2024-01-15T10:30:00+00:00",
      "provider": "aws",
      "regions": ["us-east-1"],
      "total_resources": 12,
      "total_vulnerabilities": 3,
      "severity_breakdown": {"critical": 1, "high": 2, "medium": 0, "low": 0},
      "vulnerabilities": [...],
      "summary": {...},
      "metadata": {"scanner": "...", "version": "...", "rules": {...}},
      ...
    }
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

from cloudposture.core.models import ScanResult
from cloudposture.reporters.base import BaseReporter

# Module logger
logger = logging.getLogger(__name__)


class JSONReporter(BaseReporter):
    """
    Reporter for exporting scan results to JSON.

    Parameters
    ----------
    output_path : str, optional
        Default output file.
    indent : int, default=2
        JSON indentation level. None gives compact output.
    """

    format_name = "json"
    extension = ".json"

    def __init__(
        self,
        output_path: Optional[Union[str, Path]] = None,
        indent: Optional[int] = 2,
        include_compliance: bool = True,
    ) -> None:
        super().__init__(output_path, include_compliance)
        self.indent = indent

    def to_dict(self, result: ScanResult) -> Dict[str, Any]:
        """Convert the scan result to a JSON-ready dictionary."""
        return result.to_dict()

    def to_string(self, result: ScanResult) -> str:
        # default=str covers datetimes nested inside resource evidence
        return json.dumps(self.to_dict(result), indent=self.indent, default=str)
