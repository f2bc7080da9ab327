"""
Resource Discovery
==================

One discovery class per provider. The engine looks providers up in
:data:`DISCOVERY_REGISTRY`; callers may pass their own registry.

Example
-------
>>> from cloudposture.discovery import get_discovery
>>>
>>> discovery = get_discovery("azure")
>>> [r.type for r in discovery.discover_resources({})]
['azurerm_storage_account', 'azurerm_network_security_group', 'azurerm_virtual_machine']
"""

from typing import Dict, Optional, Type

from cloudposture.core.exceptions import UnsupportedProviderError
from cloudposture.core.models import PROVIDERS
from cloudposture.core.region_manager import RegionManager
from cloudposture.discovery.aws import AWSDiscovery
from cloudposture.discovery.azure import AzureDiscovery
from cloudposture.discovery.base import BaseDiscovery
from cloudposture.discovery.gcp import GCPDiscovery

DISCOVERY_REGISTRY: Dict[str, Type[BaseDiscovery]] = {
    "aws": AWSDiscovery,
    "azure": AzureDiscovery,
    "gcp": GCPDiscovery,
}

DEFAULT_REGIONS: Dict[str, str] = {
    name: cls.default_region for name, cls in DISCOVERY_REGISTRY.items()
}


def get_discovery(
    provider: str,
    region_manager: Optional[RegionManager] = None,
) -> BaseDiscovery:
    """
    Instantiate the discovery class for a provider.

    Raises
    ------
    UnsupportedProviderError
        If the provider is not one of aws, azure, gcp.
    """
    if provider not in DISCOVERY_REGISTRY:
        raise UnsupportedProviderError(
            f"Unsupported provider: {provider}",
            provider=provider,
            details={"supported": list(PROVIDERS)},
        )
    return DISCOVERY_REGISTRY[provider](region_manager=region_manager)


__all__ = [
    "BaseDiscovery",
    "AWSDiscovery",
    "AzureDiscovery",
    "GCPDiscovery",
    "DISCOVERY_REGISTRY",
    "DEFAULT_REGIONS",
    "get_discovery",
]
