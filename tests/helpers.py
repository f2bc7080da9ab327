"""
Test helpers shared across test modules.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from cloudposture.core import aggregator
from cloudposture.core.models import (
    ComplianceFramework,
    Remediation,
    Resource,
    ScanMetadata,
    ScanResult,
    Vulnerability,
)
from cloudposture.discovery.base import BaseDiscovery

FIXED_TIME = datetime(2024, 1, 15, 10, 30, 0, tzinfo=timezone.utc)


class StaticDiscovery(BaseDiscovery):
    """
    Discovery returning fixed resources per region.

    A region mapped to an exception raises it instead.
    """

    provider = "aws"
    default_region = "us-east-1"

    def __init__(self, inventory: Dict[str, Any], provider: str = "aws") -> None:
        super().__init__()
        self.inventory = inventory
        self.provider = provider
        self.calls: List[str] = []

    def discover_region(
        self,
        region: str,
        credentials: Optional[Dict[str, Any]],
    ) -> List[Resource]:
        self.calls.append(region)
        found = self.inventory.get(region, [])
        if isinstance(found, Exception):
            raise found
        return list(found)


def make_resource(
    resource_id: str,
    resource_type: str,
    configuration: Optional[Dict[str, Any]] = None,
    region: str = "us-east-1",
    provider: str = "aws",
    name: Optional[str] = None,
) -> Resource:
    """Build a Resource with sensible defaults."""
    return Resource(
        id=resource_id,
        name=name or resource_id,
        type=resource_type,
        provider=provider,
        region=region,
        configuration=configuration or {},
    )


def make_vulnerability(
    vuln_id: str,
    severity: str = "high",
    category: str = "network_security",
    automated: Optional[List[str]] = None,
    frameworks: Optional[List[str]] = None,
    title: str = "Test Finding",
    description: str = "Something is wrong",
    recommendation: str = "Fix it",
    resource_type: str = "aws_instance",
    region: Optional[str] = "us-east-1",
) -> Vulnerability:
    """Build a Vulnerability with sensible defaults."""
    resource_id = vuln_id.split("_", 1)[1] if "_" in vuln_id else vuln_id
    return Vulnerability(
        id=vuln_id,
        title=title,
        description=description,
        severity=severity,
        category=category,
        resource_id=resource_id,
        resource_type=resource_type,
        resource_name=resource_id,
        region=region,
        provider="aws",
        recommendation=recommendation,
        remediation=Remediation(description="Fix it", automated=list(automated or [])),
        compliance_frameworks=[
            ComplianceFramework(name, "1.1", "Requirement") for name in frameworks or []
        ],
        first_detected=FIXED_TIME,
        last_seen=FIXED_TIME,
    )


def make_scan_result(vulnerabilities: List[Vulnerability], total_resources: int = 4) -> ScanResult:
    """Aggregate vulnerabilities into a ScanResult."""
    return ScanResult(
        timestamp=FIXED_TIME,
        provider="aws",
        regions=["us-east-1"],
        total_resources=total_resources,
        vulnerabilities=vulnerabilities,
        severity_breakdown=aggregator.severity_breakdown(vulnerabilities),
        category_breakdown=aggregator.category_breakdown(vulnerabilities),
        compliance_status=aggregator.compliance_status(vulnerabilities),
        summary=aggregator.build_summary(vulnerabilities, total_resources),
        resources=aggregator.resource_counts(vulnerabilities, total_resources),
        scan_duration=1234,
        metadata=ScanMetadata(
            scanner="optimisely-security-scanner",
            version="1.0.0",
            rules_total=9,
            rules_enabled=6,
        ),
    )
