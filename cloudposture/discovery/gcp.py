"""
GCP Discovery Module
====================

Returns a fixed sample inventory (a compute instance with an external
IP, the default network and a world-open SSH firewall rule) until a real
Google Cloud client integration exists. Network and firewall are global
resources and keep the region ``global``.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from cloudposture.core.models import Resource
from cloudposture.discovery.base import BaseDiscovery

# Module logger
logger = logging.getLogger(__name__)

PROJECT = "projects/my-project"


class GCPDiscovery(BaseDiscovery):
    """Static GCP inventory for the first requested region."""

    provider = "gcp"
    default_region = "us-central1"

    def resolve_regions(self, regions: Optional[List[str]]) -> List[str]:
        resolved = super().resolve_regions(regions)
        if len(resolved) > 1:
            logger.debug(f"Static GCP inventory uses {resolved[0]} only")
        return resolved[:1]

    def discover_region(
        self,
        region: str,
        credentials: Optional[Dict[str, Any]],
    ) -> List[Resource]:
        zone = f"{region}-a"
        return [
            Resource(
                id=f"{PROJECT}/zones/{zone}/instances/my-instance",
                name="my-instance",
                type="google_compute_instance",
                provider="gcp",
                region=region,
                configuration={
                    "machineType": f"{PROJECT}/zones/{zone}/machineTypes/n1-standard-1",
                    "status": "RUNNING",
                    "networkInterfaces": [
                        {
                            "network": f"{PROJECT}/global/networks/default",
                            "accessConfigs": [
                                {"type": "ONE_TO_ONE_NAT", "natIP": "34.123.45.67"}
                            ],
                        }
                    ],
                    "disks": [{"boot": True, "encrypted": False}],
                    "serviceAccounts": [
                        {
                            "email": "my-project@developer.gserviceaccount.com",
                            "scopes": ["https://www.googleapis.com/auth/cloud-platform"],
                        }
                    ],
                },
            ),
            Resource(
                id=f"{PROJECT}/global/networks/default",
                name="default",
                type="google_compute_network",
                provider="gcp",
                region="global",
                configuration={
                    "autoCreateSubnetworks": True,
                    "routingConfig": {"routingMode": "REGIONAL"},
                },
            ),
            Resource(
                id=f"{PROJECT}/global/firewalls/default-allow-ssh",
                name="default-allow-ssh",
                type="google_compute_firewall",
                provider="gcp",
                region="global",
                configuration={
                    "direction": "INGRESS",
                    "priority": 65534,
                    "sourceRanges": ["0.0.0.0/0"],
                    "allowed": [{"IPProtocol": "tcp", "ports": ["22"]}],
                    "targetTags": ["ssh-server"],
                },
            ),
        ]
