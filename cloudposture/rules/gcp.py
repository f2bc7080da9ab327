"""GCP security rules."""

from __future__ import annotations

from typing import List

from cloudposture.core.models import (
    ComplianceFramework,
    Remediation,
    Resource,
    RuleResult,
    ScanContext,
)
from cloudposture.rules.base import SecurityRule


def check_instance_external_ip(resource: Resource, context: ScanContext) -> RuleResult:
    """Fail if any network interface has an access config (external IP)."""
    interfaces = resource.configuration.get("networkInterfaces") or []
    if any(ni.get("accessConfigs") for ni in interfaces):
        return RuleResult.fail(
            "Compute instance has external IP address",
            {"instanceName": resource.name, "networkInterfaces": interfaces},
            "Remove external IP and use Cloud NAT for outbound connectivity",
        )
    return RuleResult.ok()


def get_gcp_rules() -> List[SecurityRule]:
    """Return the GCP rule group in catalog order."""
    return [
        SecurityRule(
            id="GCP-001",
            name="Compute Instance Public IP",
            description="Compute instances should not have external IP addresses unless necessary",
            severity="medium",
            category="network_security",
            provider="gcp",
            resource_types={"google_compute_instance"},
            check=check_instance_external_ip,
            remediation=Remediation(
                description="Remove external IP from compute instance",
                steps=[
                    "Go to Compute Engine console",
                    "Select the instance",
                    "Click Edit",
                    "Under Network interfaces, click the interface",
                    "Set External IP to None",
                ],
                automatable=True,
                automated=[
                    "gcloud compute instances delete-access-config <instance-name> "
                    "--zone <zone> --access-config-name 'External NAT'",
                ],
            ),
            references=["https://cloud.google.com/compute/docs/ip-addresses"],
            compliance_frameworks=[
                ComplianceFramework(
                    "CIS GCP Foundations",
                    "4.1",
                    "Ensure that instances are not configured to use the default service account",
                ),
            ],
            tags=["compute", "external-ip", "network"],
        ),
    ]
