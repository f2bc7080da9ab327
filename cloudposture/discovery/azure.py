"""
Azure Discovery Module
======================

Returns a fixed sample inventory (a storage account, a network security
group and a virtual machine) until a real Azure SDK integration exists.
The sample is deliberately misconfigured so every Azure rule has
something to report.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from cloudposture.core.models import Resource
from cloudposture.discovery.base import BaseDiscovery

# Module logger
logger = logging.getLogger(__name__)

SUBSCRIPTION_PREFIX = "/subscriptions/123/resourceGroups/rg1/providers"


class AzureDiscovery(BaseDiscovery):
    """
    Static Azure inventory.

    Only the first requested region is used; the sample resources are
    stamped with it.
    """

    provider = "azure"
    default_region = "eastus"

    def resolve_regions(self, regions: Optional[List[str]]) -> List[str]:
        resolved = super().resolve_regions(regions)
        if len(resolved) > 1:
            logger.debug(f"Static Azure inventory uses {resolved[0]} only")
        return resolved[:1]

    def discover_region(
        self,
        region: str,
        credentials: Optional[Dict[str, Any]],
    ) -> List[Resource]:
        return [
            Resource(
                id=f"{SUBSCRIPTION_PREFIX}/Microsoft.Storage/storageAccounts/mystorageaccount",
                name="mystorageaccount",
                type="azurerm_storage_account",
                provider="azure",
                region=region,
                configuration={
                    "accountTier": "Standard",
                    "accountReplicationType": "LRS",
                    "allowBlobPublicAccess": True,
                    "enableHttpsTrafficOnly": False,
                    "minimumTlsVersion": "TLS1_0",
                },
            ),
            Resource(
                id=f"{SUBSCRIPTION_PREFIX}/Microsoft.Network/networkSecurityGroups/myNSG",
                name="myNSG",
                type="azurerm_network_security_group",
                provider="azure",
                region=region,
                configuration={
                    "securityRules": [
                        {
                            "name": "SSH",
                            "access": "Allow",
                            "direction": "Inbound",
                            "priority": 100,
                            "protocol": "Tcp",
                            "sourceAddressPrefix": "*",
                            "sourcePortRange": "*",
                            "destinationAddressPrefix": "*",
                            "destinationPortRange": "22",
                        }
                    ]
                },
            ),
            Resource(
                id=f"{SUBSCRIPTION_PREFIX}/Microsoft.Compute/virtualMachines/myVM",
                name="myVM",
                type="azurerm_virtual_machine",
                provider="azure",
                region=region,
                configuration={
                    "vmSize": "Standard_B2s",
                    "osProfile": {"adminUsername": "azureuser"},
                    "storageOsDisk": {"managed": True, "encryption": None},
                    "networkInterfaces": [
                        {
                            "primary": True,
                            "ipConfigurations": [
                                {
                                    "publicIpAddress": {
                                        "id": f"{SUBSCRIPTION_PREFIX}/Microsoft.Network"
                                        "/publicIPAddresses/myPublicIP"
                                    }
                                }
                            ],
                        }
                    ],
                },
            ),
        ]
