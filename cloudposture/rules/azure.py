"""Azure security rules: storage account public access and NSG SSH exposure."""

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

INTERNET_SOURCES = ("*", "Internet")


def check_storage_public_access(resource: Resource, context: ScanContext) -> RuleResult:
    """Fail unless public blob access is explicitly disabled."""
    allow_public = resource.configuration.get("allowBlobPublicAccess")
    # Azure defaults to allowing public access when the flag is unset
    if allow_public is not False:
        return RuleResult.fail(
            "Storage account allows public blob access",
            {
                "storageAccountName": resource.name,
                "allowBlobPublicAccess": allow_public,
            },
            "Disable public blob access and use SAS tokens or AAD authentication",
        )
    return RuleResult.ok()


def check_nsg_ssh(resource: Resource, context: ScanContext) -> RuleResult:
    """Fail if an inbound allow rule opens port 22 to the internet."""
    ssh_rules = [
        rule
        for rule in resource.configuration.get("securityRules") or []
        if rule.get("access") == "Allow"
        and rule.get("direction") == "Inbound"
        and rule.get("destinationPortRange") == "22"
        and rule.get("sourceAddressPrefix") in INTERNET_SOURCES
    ]
    if ssh_rules:
        return RuleResult.fail(
            "Network Security Group allows SSH access from internet",
            {"nsgName": resource.name, "sshRules": ssh_rules},
            "Restrict SSH access to specific IP ranges",
        )
    return RuleResult.ok()


def get_azure_rules() -> List[SecurityRule]:
    """Return the Azure rule group in catalog order."""
    return [
        SecurityRule(
            id="AZURE-001",
            name="Storage Account Public Access",
            description="Storage accounts should not allow public blob access",
            severity="critical",
            category="access_control",
            provider="azure",
            resource_types={"azurerm_storage_account"},
            check=check_storage_public_access,
            remediation=Remediation(
                description="Disable public blob access",
                steps=[
                    "Go to Azure Portal",
                    "Navigate to Storage Accounts",
                    "Select the storage account",
                    "Under Settings, click Configuration",
                    'Set "Allow Blob public access" to Disabled',
                ],
                automatable=True,
                automated=[
                    "az storage account update --name <storage-account> "
                    "--resource-group <resource-group> --allow-blob-public-access false",
                ],
            ),
            references=[
                "https://learn.microsoft.com/en-us/azure/storage/blobs/anonymous-read-access-prevent",
            ],
            compliance_frameworks=[
                ComplianceFramework(
                    "CIS Azure Foundations",
                    "3.1",
                    'Ensure that "Secure transfer required" is set to "Enabled"',
                ),
            ],
            tags=["storage", "public-access", "blob"],
        ),
        SecurityRule(
            id="AZURE-002",
            name="Network Security Group SSH Access",
            description="Network Security Groups should not allow SSH access from internet",
            severity="high",
            category="network_security",
            provider="azure",
            resource_types={"azurerm_network_security_group"},
            check=check_nsg_ssh,
            remediation=Remediation(
                description="Restrict SSH access in NSG rules",
                steps=[
                    "Go to Azure Portal",
                    "Navigate to Network Security Groups",
                    "Select the NSG",
                    "Click on Inbound security rules",
                    "Modify or delete rules allowing SSH from internet",
                ],
                automatable=True,
            ),
            references=[
                "https://learn.microsoft.com/en-us/azure/virtual-network/network-security-groups-overview",
            ],
            compliance_frameworks=[
                ComplianceFramework(
                    "CIS Azure Foundations",
                    "6.1",
                    "Ensure that RDP access is restricted from the internet",
                ),
            ],
            tags=["nsg", "ssh", "network-security"],
        ),
    ]
