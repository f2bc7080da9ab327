"""Provider-agnostic rules (``provider='*'``)."""

from __future__ import annotations

from typing import List

from cloudposture.core.models import (
    ComplianceFramework,
    Remediation,
    Resource,
    RuleResult,
    ScanContext,
    WILDCARD,
)
from cloudposture.rules.base import SecurityRule

# A field set to True, or to any non-null mapping, counts as encryption configured
ENCRYPTION_FIELDS = ("encrypted", "encryption", "kmsKeyId", "serverSideEncryption")

STORAGE_RESOURCE_TYPES = (
    "aws_s3_bucket",
    "aws_ebs_volume",
    "azurerm_storage_account",
    "azurerm_managed_disk",
    "google_storage_bucket",
    "google_compute_disk",
)


def check_storage_encrypted(resource: Resource, context: ScanContext) -> RuleResult:
    """Fail unless one of the known encryption fields is set."""
    config = resource.configuration
    encrypted = any(
        config.get(name) is True or isinstance(config.get(name), dict)
        for name in ENCRYPTION_FIELDS
    )
    if not encrypted:
        return RuleResult.fail(
            "Storage resource is not encrypted at rest",
            {
                "resourceName": resource.name,
                "resourceType": resource.type,
                "encryptionStatus": "disabled",
            },
            "Enable encryption at rest using provider-managed or customer-managed keys",
        )
    return RuleResult.ok()


def get_multicloud_rules() -> List[SecurityRule]:
    """Return the multi-cloud rule group in catalog order."""
    return [
        SecurityRule(
            id="MULTI-001",
            name="Unencrypted Storage",
            description="Storage resources should be encrypted at rest",
            severity="high",
            category="encryption",
            provider=WILDCARD,
            resource_types=STORAGE_RESOURCE_TYPES,
            check=check_storage_encrypted,
            remediation=Remediation(
                description="Enable encryption at rest",
                steps=[
                    "Navigate to the resource configuration",
                    "Enable encryption settings",
                    "Choose appropriate encryption key management",
                    "Apply changes",
                ],
                automatable=True,
            ),
            references=[
                "https://docs.aws.amazon.com/AmazonS3/latest/userguide/bucket-encryption.html",
                "https://learn.microsoft.com/en-us/azure/storage/common/storage-service-encryption",
                "https://cloud.google.com/storage/docs/encryption",
            ],
            compliance_frameworks=[
                ComplianceFramework("SOC 2", "CC6.1", "Data encryption"),
                ComplianceFramework("PCI DSS", "3.4", "Protect stored cardholder data"),
            ],
            tags=["encryption", "storage", "data-protection"],
        ),
    ]
