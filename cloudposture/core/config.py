"""
Scan Configuration
==================

Options for a single scan and the optional security configuration file.

Classes
-------
ScanOptions
    Per-invocation options (provider, regions, severity/category filters).
SecurityConfig
    File-based configuration: rule allow/deny lists plus reporting hints.

Functions
---------
load_security_config
    Load a SecurityConfig from a JSON or YAML file.

Example
-------
>>> from cloudposture.core.config import ScanOptions, load_security_config
>>>
>>> config = load_security_config("security.yaml")
>>> options = ScanOptions(provider="aws", regions=["us-east-1"], severity=["critical"])

Configuration file format::

    rules:
      enabled: []            # allow-list of rule ids (empty = all)
      disabled: [AWS-002]    # deny-list of rule ids
    thresholds: {critical: 0, high: 5, medium: 20, low: 50}
    compliance:
      frameworks: [CIS AWS Foundations]
    reporting:
      includeEvidence: true
      includeFalsePositives: false
      groupBy: severity

Notes
-----
Only ``rules.enabled`` and ``rules.disabled`` change engine behavior.
The other sections are parsed and carried for reporters and callers.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from cloudposture.core.exceptions import ConfigError
from cloudposture.core.models import CATEGORIES, SEVERITIES

# Module logger
logger = logging.getLogger(__name__)

OUTPUT_FORMATS = ("json", "html", "csv", "sarif", "junit")
GROUP_BY_CHOICES = ("severity", "category", "resource")


@dataclass
class ScanOptions:
    """
    Options for one security scan.

    Parameters
    ----------
    provider : str
        'aws', 'azure' or 'gcp'. Validated by the engine, not here, so that
        an unknown provider surfaces as UnsupportedProviderError.
    regions : list of str, optional
        Regions to discover. Defaults to the provider's default region.
    severity : list of str, optional
        Keep only rules with these severities.
    categories : list of str, optional
        Keep only rules in these categories.
    include_compliance : bool, default=True
        Whether the summary and HTML report show the compliance section.
    output_format : str, optional
        Preferred report format.
    output_file : str, optional
        Where to write the report.
    """

    provider: str
    regions: Optional[List[str]] = None
    severity: Optional[List[str]] = None
    categories: Optional[List[str]] = None
    include_compliance: bool = True
    output_format: Optional[str] = None
    output_file: Optional[str] = None

    def __post_init__(self) -> None:
        for value in self.severity or []:
            if value not in SEVERITIES:
                raise ValueError(f"Unknown severity: {value}")
        for value in self.categories or []:
            if value not in CATEGORIES:
                raise ValueError(f"Unknown category: {value}")
        if self.output_format and self.output_format not in OUTPUT_FORMATS:
            raise ValueError(f"Unknown output format: {self.output_format}")


@dataclass
class RuleOverrides:
    """Rule allow-list and deny-list by rule id."""

    enabled: List[str] = field(default_factory=list)
    disabled: List[str] = field(default_factory=list)


@dataclass
class ReportingOptions:
    """Reporting hints carried by the configuration file."""

    include_evidence: bool = True
    include_false_positives: bool = False
    group_by: str = "severity"


@dataclass
class SecurityConfig:
    """
    Security configuration loaded from a file or built in code.

    Attributes
    ----------
    rules : RuleOverrides
        Allow-list (applied first) and deny-list of rule ids.
    thresholds : dict
        Maximum tolerated findings per severity.
    frameworks : list of str
        Compliance frameworks of interest.
    reporting : ReportingOptions
        Reporting hints.
    """

    rules: RuleOverrides = field(default_factory=RuleOverrides)
    thresholds: Dict[str, int] = field(default_factory=dict)
    frameworks: List[str] = field(default_factory=list)
    reporting: ReportingOptions = field(default_factory=ReportingOptions)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> SecurityConfig:
        """
        Build a SecurityConfig from a parsed mapping.

        Both the camelCase keys of the file format and snake_case keys
        are accepted for the reporting section.

        Raises
        ------
        ConfigError
            If a section has the wrong shape.
        """
        data = data or {}
        if not isinstance(data, dict):
            raise ConfigError("Security config must be a mapping")

        rules_raw = data.get("rules") or {}
        thresholds_raw = data.get("thresholds") or {}
        compliance_raw = data.get("compliance") or {}
        reporting_raw = data.get("reporting") or {}
        for name, section in (
            ("rules", rules_raw),
            ("thresholds", thresholds_raw),
            ("compliance", compliance_raw),
            ("reporting", reporting_raw),
        ):
            if not isinstance(section, dict):
                raise ConfigError(
                    f"'{name}' section must be a mapping",
                    details={"section": name},
                )

        enabled = rules_raw.get("enabled") or []
        disabled = rules_raw.get("disabled") or []
        if not isinstance(enabled, list) or not isinstance(disabled, list):
            raise ConfigError("'rules.enabled' and 'rules.disabled' must be lists")

        thresholds = {}
        for severity, value in thresholds_raw.items():
            if severity not in SEVERITIES:
                raise ConfigError(
                    f"Unknown severity in thresholds: {severity}",
                    details={"allowed": list(SEVERITIES)},
                )
            try:
                thresholds[severity] = int(value)
            except (TypeError, ValueError):
                raise ConfigError(
                    f"Invalid threshold for {severity}: {value!r}",
                    details={"severity": severity},
                )

        group_by = reporting_raw.get("groupBy", reporting_raw.get("group_by", "severity"))
        if group_by not in GROUP_BY_CHOICES:
            raise ConfigError(
                f"Invalid reporting.groupBy: {group_by}",
                details={"allowed": list(GROUP_BY_CHOICES)},
            )

        return cls(
            rules=RuleOverrides(
                enabled=[str(r) for r in enabled],
                disabled=[str(r) for r in disabled],
            ),
            thresholds=thresholds,
            frameworks=[str(f) for f in compliance_raw.get("frameworks") or []],
            reporting=ReportingOptions(
                include_evidence=bool(
                    reporting_raw.get(
                        "includeEvidence", reporting_raw.get("include_evidence", True)
                    )
                ),
                include_false_positives=bool(
                    reporting_raw.get(
                        "includeFalsePositives",
                        reporting_raw.get("include_false_positives", False),
                    )
                ),
                group_by=group_by,
            ),
        )


def load_security_config(path: Union[str, Path]) -> SecurityConfig:
    """
    Load a SecurityConfig from a JSON or YAML file.

    The format is chosen from the file extension: ``.json`` is parsed as
    JSON, anything else as YAML (YAML is a superset of JSON).

    Parameters
    ----------
    path : str or Path
        Configuration file path.

    Returns
    -------
    SecurityConfig
        Parsed configuration.

    Raises
    ------
    ConfigError
        If the file is missing or cannot be parsed.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise ConfigError(
            f"Config file not found: {config_path}",
            details={"path": str(config_path)},
        )

    try:
        with config_path.open("r", encoding="utf-8") as handle:
            if config_path.suffix.lower() == ".json":
                raw = json.load(handle)
            else:
                raw = yaml.safe_load(handle)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigError(
            f"Failed to parse config file {config_path}: {e}",
            details={"path": str(config_path)},
        )

    config = SecurityConfig.from_dict(raw)
    logger.debug(
        f"Loaded security config from {config_path}: "
        f"{len(config.rules.enabled)} enabled, {len(config.rules.disabled)} disabled"
    )
    return config

