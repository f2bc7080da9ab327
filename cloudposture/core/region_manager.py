"""
Region Manager Module
=====================

Fans resource discovery out across regions on a thread pool and fans the
results back in, in the order the regions were requested.

This module handles:
- Dynamic discovery of available AWS regions
- Parallel per-region discovery
- Fail-fast or partial handling of region failures

Classes
-------
RegionDiscoveryResult
    Resources and per-region errors from a multi-region discovery.
RegionManager
    Orchestrates multi-region discovery.

Example
-------
>>> from cloudposture.core.region_manager import RegionManager
>>>
>>> manager = RegionManager(max_workers=4)
>>> result = manager.discover_regions(
...     discovery.discover_region,
...     regions=["us-east-1", "eu-west-1"],
...     provider="aws",
... )
>>> print(f"Found {len(result.resources)} resources")

Notes
-----
Each region runs in its own thread. The callable receives only the
region name, so it must build its own per-region clients.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from cloudposture.core.aws_client import AWSClient
from cloudposture.core.exceptions import AWSClientError, DiscoveryError
from cloudposture.core.models import Resource

# Module logger
logger = logging.getLogger(__name__)

RegionCallable = Callable[[str], List[Resource]]
ProgressCallback = Callable[[str, str], None]


@dataclass
class RegionDiscoveryResult:
    """
    Aggregated results from discovering several regions.

    Parameters
    ----------
    regions : list of str
        Regions that were requested, in request order.
    resources : list of Resource
        Resources from every successful region, grouped by region in
        request order and in discovery order within a region.
    errors : dict
        Region name to error message for failed regions.
    """

    regions: List[str]
    resources: List[Resource] = field(default_factory=list)
    errors: Dict[str, str] = field(default_factory=dict)

    @property
    def has_errors(self) -> bool:
        """True if any region failed."""
        return len(self.errors) > 0

    @property
    def successful_regions(self) -> List[str]:
        """Regions that completed without errors."""
        return [r for r in self.regions if r not in self.errors]

    @property
    def failed_regions(self) -> List[str]:
        """Regions that failed."""
        return list(self.errors.keys())

    def __repr__(self) -> str:
        return (
            f"RegionDiscoveryResult(regions={len(self.regions)}, "
            f"resources={len(self.resources)}, "
            f"failed={len(self.errors)})"
        )


class RegionManager:
    """
    Manages multi-region discovery.

    Parameters
    ----------
    max_workers : int, default=10
        Maximum number of regions discovered in parallel.
    aws_client : AWSClient, optional
        Client used to list AWS regions. Defaults to a us-east-1 client
        using the default credential chain.

    Examples
    --------
    Fail-fast (default): the first failing region aborts discovery.

    >>> manager = RegionManager()
    >>> result = manager.discover_regions(fn, ["us-east-1"], provider="aws")

    Partial: failures are collected and the rest continue.

    >>> result = manager.discover_regions(
    ...     fn, ["us-east-1", "eu-west-1"], provider="aws", fail_fast=False
    ... )
    >>> result.errors
    {'eu-west-1': 'AccessDenied'}
    """

    def __init__(
        self,
        max_workers: int = 10,
        aws_client: Optional[AWSClient] = None,
    ) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.max_workers = max_workers
        self._aws_client = aws_client

        logger.debug(f"Initialized RegionManager with max_workers={max_workers}")

    def get_all_regions(self) -> List[str]:
        """
        Fetch all available AWS regions.

        Returns
        -------
        list of str
            Sorted list of available region names.

        Raises
        ------
        AWSClientError
            If unable to fetch the region list.
        """
        client = self._aws_client or AWSClient(region="us-east-1")
        try:
            ec2 = client.get_ec2_client()
            response = ec2.describe_regions(AllRegions=False)
            regions = sorted(r["RegionName"] for r in response["Regions"])
            logger.info(f"Discovered {len(regions)} available AWS regions")
            return regions
        except AWSClientError:
            raise
        except Exception as e:
            logger.exception("Failed to fetch AWS regions")
            raise AWSClientError(f"Failed to fetch AWS regions: {e}", service="ec2")

    def _discover_region(
        self,
        region: str,
        discover: RegionCallable,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> List[Resource]:
        if progress_callback:
            progress_callback(region, "discovering")
        try:
            resources = list(discover(region))
        except Exception:
            if progress_callback:
                progress_callback(region, "error")
            raise
        if progress_callback:
            progress_callback(region, "complete")
        logger.debug(f"Discovered {len(resources)} resources in {region}")
        return resources

    def discover_regions(
        self,
        discover: RegionCallable,
        regions: List[str],
        provider: Optional[str] = None,
        fail_fast: bool = True,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> RegionDiscoveryResult:
        """
        Run ``discover(region)`` for every region in parallel.

        Parameters
        ----------
        discover : callable
            Function returning the resources of one region.
        regions : list of str
            Regions to discover. Duplicates are discovered once.
        provider : str, optional
            Provider name, used in error details.
        fail_fast : bool, default=True
            Raise on the first failed region instead of recording it.
        progress_callback : callable, optional
            Called with (region, status); status is one of
            'discovering', 'complete', 'error'.

        Returns
        -------
        RegionDiscoveryResult
            Resources in requested region order plus any region errors.

        Raises
        ------
        DiscoveryError
            In fail-fast mode, when any region fails.
        """
        ordered = list(dict.fromkeys(regions))
        logger.info(f"Starting discovery across {len(ordered)} region(s)")

        by_region: Dict[str, List[Resource]] = {}
        failures: Dict[str, Exception] = {}

        workers = max(1, min(self.max_workers, len(ordered)))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = {
                executor.submit(
                    self._discover_region, region, discover, progress_callback
                ): region
                for region in ordered
            }

            for future in as_completed(futures):
                region = futures[future]
                try:
                    by_region[region] = future.result()
                except Exception as e:
                    logger.warning(f"Region {region} failed: {e}")
                    failures[region] = e
                    if fail_fast:
                        for pending in futures:
                            pending.cancel()
                        break

        if fail_fast and failures:
            region, error = next(
                (r, failures[r]) for r in ordered if r in failures
            )
            if isinstance(error, DiscoveryError):
                raise error
            raise DiscoveryError(
                f"Failed to discover resources in {region}: {error}",
                provider=provider,
                region=region,
                details={"error_type": type(error).__name__},
            ) from error

        result = RegionDiscoveryResult(regions=ordered)
        for region in ordered:
            if region in failures:
                result.errors[region] = str(failures[region])
            else:
                result.resources.extend(by_region.get(region, []))

        logger.info(
            f"Discovery complete: {len(result.resources)} resources from "
            f"{len(result.successful_regions)}/{len(ordered)} region(s)"
        )
        return result

    def __repr__(self) -> str:
        return f"RegionManager(max_workers={self.max_workers})"
