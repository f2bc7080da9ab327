"""
Scan Data Model
===============

Data classes shared by discovery, the rule catalog, the scan engine and
the reporters.

Classes
-------
Resource
    Normalized cloud resource produced by discovery.
ComplianceFramework
    A framework requirement a rule maps to (e.g. CIS 2.1.1).
Remediation
    How to fix a finding, optionally with automated commands.
Finding / RuleResult
    Outcome of a single rule check.
ScanContext
    Read-only context handed to every rule check.
Vulnerability
    One failing (rule, resource) evaluation.
ComplianceStatus, ScanSummary, ResourceCounts, ScanMetadata
    Aggregated views attached to a ScanResult.
ScanResult
    Aggregate root of one scan invocation.

Notes
-----
Severities, categories and postures are plain lowercase strings so they
serialize directly to every report format. The module-level tuples below
are the authoritative vocabularies.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from cloudposture.core.exceptions import RuleEvaluationError

PROVIDERS = ("aws", "azure", "gcp")
WILDCARD = "*"

# Ordered most to least severe
SEVERITIES = ("critical", "high", "medium", "low")
SEVERITY_WEIGHTS = {"critical": 10, "high": 7, "medium": 4, "low": 1}

CATEGORIES = (
    "access_control",
    "network_security",
    "data_protection",
    "logging_monitoring",
    "encryption",
    "configuration",
    "compliance",
    "secrets_management",
    "vulnerability_management",
    "backup_recovery",
)

POSTURES = ("excellent", "good", "fair", "poor", "critical")


def utcnow() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


class VulnerabilityStatus(Enum):
    """Lifecycle status of a vulnerability. The engine only produces OPEN."""

    OPEN = "open"
    ACKNOWLEDGED = "acknowledged"
    FIXED = "fixed"
    FALSE_POSITIVE = "false_positive"


@dataclass(frozen=True)
class Resource:
    """
    Normalized representation of a discovered cloud resource.

    Parameters
    ----------
    id : str
        Provider-unique identifier (instance id, bucket name, ARM id, ...).
    name : str
        Human-readable name.
    type : str
        Terraform-style resource type (e.g. 'aws_s3_bucket').
    provider : str
        One of 'aws', 'azure', 'gcp'.
    region : str
        Region the resource lives in ('global' for global resources).
    configuration : dict
        Free-form provider configuration inspected by rules.
    tags : dict, optional
        Resource tags.
    metadata : dict, optional
        Discovery metadata not used by rules.

    Example
    -------
    >>> Resource(
    ...     id="i-1",
    ...     name="web",
    ...     type="aws_instance",
    ...     provider="aws",
    ...     region="us-east-1",
    ...     configuration={"publicIpAddress": "1.2.3.4"},
    ... )
    """

    id: str
    name: str
    type: str
    provider: str
    region: str
    configuration: Dict[str, Any] = field(default_factory=dict)
    tags: Optional[Dict[str, str]] = None
    metadata: Optional[Dict[str, Any]] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Resource:
        """Build a Resource from a plain mapping (e.g. loaded from JSON)."""
        return cls(
            id=data["id"],
            name=data.get("name") or data["id"],
            type=data["type"],
            provider=data["provider"],
            region=data.get("region", ""),
            configuration=dict(data.get("configuration") or {}),
            tags=data.get("tags"),
            metadata=data.get("metadata"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "provider": self.provider,
            "region": self.region,
            "tags": self.tags,
            "configuration": self.configuration,
            "metadata": self.metadata,
        }


@dataclass(frozen=True)
class ComplianceFramework:
    """A compliance requirement associated with a rule."""

    name: str
    requirement: str
    description: str

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "name": self.name,
            "requirement": self.requirement,
            "description": self.description,
        }


@dataclass(frozen=True)
class Remediation:
    """
    Remediation guidance for a rule.

    Attributes
    ----------
    description : str
        One-line summary of the fix.
    steps : list of str
        Manual console steps.
    automatable : bool
        Whether the fix can be scripted at all.
    automated : list of str
        Ready-to-run commands. A non-empty list makes a finding a quick win.
    terraform : str, optional
        Terraform snippet implementing the fix.
    """

    description: str
    steps: List[str] = field(default_factory=list)
    automatable: bool = False
    automated: List[str] = field(default_factory=list)
    terraform: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "description": self.description,
            "steps": list(self.steps),
            "automatable": self.automatable,
            "automated": list(self.automated),
            "terraform": self.terraform,
        }


@dataclass(frozen=True)
class Finding:
    """Details of a failed rule check."""

    description: str
    evidence: Dict[str, Any]
    recommendation: str


@dataclass(frozen=True)
class RuleResult:
    """
    Outcome of a single rule check.

    ``finding`` is present if and only if ``passed`` is False; anything
    else raises ``ValueError`` at construction time.

    Example
    -------
    >>> RuleResult.ok()
    RuleResult(passed=True, finding=None)
    >>> RuleResult.fail("Bucket is public", {"bucket": "b"}, "Block public access")
    """

    passed: bool
    finding: Optional[Finding] = None

    def __post_init__(self) -> None:
        if self.passed and self.finding is not None:
            raise ValueError("A passing RuleResult cannot carry a finding")
        if not self.passed and self.finding is None:
            raise ValueError("A failing RuleResult must carry a finding")

    @classmethod
    def ok(cls) -> RuleResult:
        """Return a passing result."""
        return cls(passed=True)

    @classmethod
    def fail(
        cls,
        description: str,
        evidence: Dict[str, Any],
        recommendation: str,
    ) -> RuleResult:
        """Return a failing result with the given finding details."""
        return cls(
            passed=False,
            finding=Finding(
                description=description,
                evidence=evidence,
                recommendation=recommendation,
            ),
        )


@dataclass(frozen=True)
class ScanContext:
    """
    Read-only context passed to every rule check.

    Attributes
    ----------
    provider : str
        Provider being scanned.
    region : str
        Region of the resource under evaluation (not the scan's region list).
    all_resources : sequence of Resource
        Every discovered resource, for cross-resource correlation.
    credentials : dict, optional
        Credentials the scan was invoked with.
    """

    provider: str
    region: str
    all_resources: Sequence[Resource] = ()
    credentials: Optional[Dict[str, Any]] = None

    def resources_of_type(self, resource_type: str) -> List[Resource]:
        """Return every discovered resource of the given type."""
        return [r for r in self.all_resources if r.type == resource_type]


@dataclass(frozen=True)
class Vulnerability:
    """
    One finding instance: a rule that failed against a resource.

    The ``id`` is ``<rule id>_<resource id>`` and is unique within a scan.
    Rule metadata is copied in so reports never need the catalog.
    """

    id: str
    title: str
    description: str
    severity: str
    category: str
    resource_id: str
    resource_type: str
    resource_name: Optional[str]
    region: Optional[str]
    provider: str
    recommendation: str
    remediation: Remediation
    references: List[str] = field(default_factory=list)
    compliance_frameworks: List[ComplianceFramework] = field(default_factory=list)
    evidence: Dict[str, Any] = field(default_factory=dict)
    first_detected: datetime = field(default_factory=utcnow)
    last_seen: datetime = field(default_factory=utcnow)
    status: VulnerabilityStatus = VulnerabilityStatus.OPEN
    tags: List[str] = field(default_factory=list)
    cwe: Optional[str] = None
    cve: Optional[str] = None
    cvss: Optional[float] = None

    @property
    def rule_id(self) -> str:
        """Rule identifier: the part of ``id`` before the first underscore."""
        return self.id.split("_", 1)[0]

    @property
    def weight(self) -> int:
        """Severity weight used for risk scoring and ordering."""
        return SEVERITY_WEIGHTS[self.severity]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "severity": self.severity,
            "category": self.category,
            "resource_id": self.resource_id,
            "resource_type": self.resource_type,
            "resource_name": self.resource_name,
            "region": self.region,
            "provider": self.provider,
            "cwe": self.cwe,
            "cve": self.cve,
            "cvss": self.cvss,
            "recommendation": self.recommendation,
            "remediation": self.remediation.to_dict(),
            "references": list(self.references),
            "compliance_frameworks": [f.to_dict() for f in self.compliance_frameworks],
            "evidence": self.evidence,
            "first_detected": self.first_detected.isoformat(),
            "last_seen": self.last_seen.isoformat(),
            "status": self.status.value,
            "tags": list(self.tags),
        }


@dataclass(frozen=True)
class ComplianceStatus:
    """
    Per-framework compliance counters.

    Only failures are tracked, so ``passed_checks`` is always 0 and
    ``score`` is always 0 for any framework that appears. This is a
    count of framework associations of findings, not a pass rate.
    """

    total_checks: int = 0
    passed_checks: int = 0
    failed_checks: int = 0
    score: int = 0

    def to_dict(self) -> Dict[str, int]:
        """Convert to dictionary."""
        return {
            "total_checks": self.total_checks,
            "passed_checks": self.passed_checks,
            "failed_checks": self.failed_checks,
            "score": self.score,
        }


@dataclass(frozen=True)
class ScanSummary:
    """Headline view of a scan's findings."""

    top_vulnerabilities: List[Vulnerability]
    critical_findings: List[Vulnerability]
    quick_wins: List[Vulnerability]
    risk_score: int
    security_posture: str

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "top_vulnerabilities": [v.to_dict() for v in self.top_vulnerabilities],
            "critical_findings": [v.to_dict() for v in self.critical_findings],
            "quick_wins": [v.to_dict() for v in self.quick_wins],
            "risk_score": self.risk_score,
            "security_posture": self.security_posture,
        }


@dataclass(frozen=True)
class ResourceCounts:
    """Scanned / vulnerable / compliant resource counts."""

    scanned: int
    vulnerable: int
    compliant: int
    non_compliant: int

    @property
    def compliance_rate(self) -> int:
        """Percentage of scanned resources without findings."""
        if self.scanned == 0:
            return 100
        return round_half_up(self.compliant / self.scanned * 100)

    def to_dict(self) -> Dict[str, int]:
        """Convert to dictionary."""
        return {
            "scanned": self.scanned,
            "vulnerable": self.vulnerable,
            "compliant": self.compliant,
            "non_compliant": self.non_compliant,
        }


@dataclass(frozen=True)
class ScanMetadata:
    """Scanner identity and rule counts."""

    scanner: str
    version: str
    rules_total: int
    rules_enabled: int

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "scanner": self.scanner,
            "version": self.version,
            "rules": {
                "total": self.rules_total,
                "enabled": self.rules_enabled,
            },
        }


@dataclass(frozen=True)
class ScanResult:
    """
    Aggregate root of one security scan.

    Produced once per ``SecurityScanner.scan`` call and never mutated
    afterwards; any number of reporters may render it.

    Parameters
    ----------
    timestamp : datetime
        When the scan finished.
    provider : str
        Provider scanned.
    regions : list of str
        Regions requested.
    total_resources : int
        Number of resources discovered.
    vulnerabilities : list of Vulnerability
        Every finding, in evaluation order.
    severity_breakdown : dict
        Count per severity; all four keys present.
    category_breakdown : dict
        Count per observed category.
    compliance_status : dict
        ComplianceStatus per framework name.
    summary : ScanSummary
        Top findings, risk score and posture.
    resources : ResourceCounts
        Scanned / vulnerable / compliant counts.
    scan_duration : int
        Wall-clock duration in milliseconds.
    metadata : ScanMetadata
        Scanner name, version and rule counts.
    rule_errors : list of RuleEvaluationError
        Rule checks that raised or timed out and were skipped.
    region_errors : dict
        Region name to error message, populated only in partial-region mode.

    Example
    -------
    >>> result = scanner.scan(ScanOptions(provider="aws"), credentials={})
    >>> print(f"{result.total_vulnerabilities} findings, "
    ...       f"posture {result.summary.security_posture}")
    """

    timestamp: datetime
    provider: str
    regions: List[str]
    total_resources: int
    vulnerabilities: List[Vulnerability]
    severity_breakdown: Dict[str, int]
    category_breakdown: Dict[str, int]
    compliance_status: Dict[str, ComplianceStatus]
    summary: ScanSummary
    resources: ResourceCounts
    scan_duration: int
    metadata: ScanMetadata
    rule_errors: List[RuleEvaluationError] = field(default_factory=list)
    region_errors: Dict[str, str] = field(default_factory=dict)

    @property
    def total_vulnerabilities(self) -> int:
        """Number of vulnerabilities found."""
        return len(self.vulnerabilities)

    @property
    def has_errors(self) -> bool:
        """True if any rule was skipped or any region failed."""
        return bool(self.rule_errors or self.region_errors)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert scan result to a dictionary for serialization.

        Returns
        -------
        dict
            Dictionary representation suitable for JSON serialization.
        """
        return {
            "timestamp": self.timestamp.isoformat(),
            "provider": self.provider,
            "regions": list(self.regions),
            "total_resources": self.total_resources,
            "total_vulnerabilities": self.total_vulnerabilities,
            "severity_breakdown": dict(self.severity_breakdown),
            "category_breakdown": dict(self.category_breakdown),
            "vulnerabilities": [v.to_dict() for v in self.vulnerabilities],
            "compliance_status": {
                name: status.to_dict()
                for name, status in self.compliance_status.items()
            },
            "summary": self.summary.to_dict(),
            "resources": self.resources.to_dict(),
            "scan_duration": self.scan_duration,
            "metadata": self.metadata.to_dict(),
            "rule_errors": [e.to_dict() for e in self.rule_errors],
            "region_errors": dict(self.region_errors),
        }

    def __repr__(self) -> str:
        """Return string representation."""
        return (
            f"ScanResult(provider='{self.provider}', "
            f"resources={self.total_resources}, "
            f"vulnerabilities={self.total_vulnerabilities}, "
            f"posture='{self.summary.security_posture}')"
        )


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves rounding up (JS Math.round)."""
    return math.floor(value + 0.5)
