"""
Base Discovery Module
=====================

Abstract base class for provider discovery collaborators. A discovery
class knows how to list the resources of one region; multi-region
fan-out is delegated to :class:`~cloudposture.core.region_manager.RegionManager`.

Example
-------
>>> from cloudposture.discovery.base import BaseDiscovery
>>>
>>> class StaticDiscovery(BaseDiscovery):
...     provider = "aws"
...     default_region = "us-east-1"
...
...     def discover_region(self, region, credentials):
...         return [Resource(id="i-1", name="web", type="aws_instance",
...                          provider="aws", region=region)]
>>>
>>> StaticDiscovery().discover_resources({}, ["us-east-1"])
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from cloudposture.core.models import Resource
from cloudposture.core.region_manager import (
    ProgressCallback,
    RegionDiscoveryResult,
    RegionManager,
)

# Module logger
logger = logging.getLogger(__name__)


class BaseDiscovery(ABC):
    """
    Abstract base class for resource discovery.

    Subclasses set ``provider`` and ``default_region`` and implement
    :meth:`discover_region`.

    Parameters
    ----------
    region_manager : RegionManager, optional
        Fan-out helper. A single-worker manager is used if omitted.
    """

    provider: str = ""
    default_region: str = ""

    def __init__(self, region_manager: Optional[RegionManager] = None) -> None:
        self.region_manager = region_manager or RegionManager(max_workers=1)
        logger.debug(f"Initialized {self.__class__.__name__}")

    @abstractmethod
    def discover_region(
        self,
        region: str,
        credentials: Optional[Dict[str, Any]],
    ) -> List[Resource]:
        """
        Discover every resource in one region.

        Returns
        -------
        list of Resource
            Resources in a stable discovery order.

        Raises
        ------
        Exception
            Any failure marks the whole region as failed.
        """
        pass

    def resolve_regions(self, regions: Optional[List[str]]) -> List[str]:
        """Return the requested regions, or the provider default."""
        return list(regions) if regions else [self.default_region]

    def discover(
        self,
        credentials: Optional[Dict[str, Any]],
        regions: Optional[List[str]] = None,
        fail_fast: bool = True,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> RegionDiscoveryResult:
        """
        Discover resources across regions, keeping per-region errors.

        Raises
        ------
        DiscoveryError
            In fail-fast mode, when any region fails.
        """
        return self.region_manager.discover_regions(
            lambda region: self.discover_region(region, credentials),
            self.resolve_regions(regions),
            provider=self.provider,
            fail_fast=fail_fast,
            progress_callback=progress_callback,
        )

    def discover_resources(
        self,
        credentials: Optional[Dict[str, Any]],
        regions: Optional[List[str]] = None,
    ) -> List[Resource]:
        """
        Discover resources across regions.

        Raises
        ------
        DiscoveryError
            If any region fails.
        """
        return self.discover(credentials, regions).resources

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(provider='{self.provider}')"
