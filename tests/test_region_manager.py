"""
Tests for the Region Manager module.
"""

import threading
import time

import pytest

from cloudposture.core.aws_client import AWSClient
from cloudposture.core.exceptions import CredentialsError, DiscoveryError
from cloudposture.core.region_manager import RegionDiscoveryResult, RegionManager

from tests.helpers import make_resource


def discover_named(region):
    """Return one resource named after the region."""
    return [make_resource(f"r-{region}", "aws_instance", region=region)]


class TestRegionManager:
    """Tests for RegionManager class."""

    def test_initialization(self):
        """Test basic initialization."""
        manager = RegionManager()
        assert manager.max_workers == 10

    def test_initialization_with_options(self):
        """Test initialization with custom options."""
        manager = RegionManager(max_workers=5)
        assert manager.max_workers == 5
        assert repr(manager) == "RegionManager(max_workers=5)"

    def test_invalid_workers(self):
        """Zero workers is rejected."""
        with pytest.raises(ValueError):
            RegionManager(max_workers=0)

    def test_get_all_regions(self, mock_aws_environment):
        """Test fetching all AWS regions."""
        manager = RegionManager()
        regions = manager.get_all_regions()

        assert isinstance(regions, list)
        assert "us-east-1" in regions
        assert regions == sorted(regions)

    def test_get_all_regions_uses_given_client(self, mock_aws_environment):
        """A supplied client is used for listing regions."""
        client = AWSClient(region="eu-west-1")
        manager = RegionManager(aws_client=client)

        assert "eu-west-1" in manager.get_all_regions()
        assert "ec2" in client._clients

    def test_discover_multiple_regions_in_order(self):
        """Resources come back grouped in requested region order."""

        def slow_first(region):
            if region == "us-east-1":
                time.sleep(0.05)
            return discover_named(region)

        manager = RegionManager(max_workers=3)
        result = manager.discover_regions(
            slow_first, ["us-east-1", "eu-west-1", "ap-south-1"], provider="aws"
        )

        assert [r.id for r in result.resources] == [
            "r-us-east-1",
            "r-eu-west-1",
            "r-ap-south-1",
        ]
        assert not result.has_errors

    def test_duplicate_regions_discovered_once(self):
        """Repeated regions run once."""
        calls = []
        lock = threading.Lock()

        def record(region):
            with lock:
                calls.append(region)
            return discover_named(region)

        manager = RegionManager(max_workers=2)
        result = manager.discover_regions(record, ["us-east-1", "us-east-1", "eu-west-1"])

        assert sorted(calls) == ["eu-west-1", "us-east-1"]
        assert result.regions == ["us-east-1", "eu-west-1"]

    def test_progress_callback(self):
        """Test progress callback is called."""
        manager = RegionManager(max_workers=1)
        callback_calls = []

        def progress_callback(region, status):
            callback_calls.append((region, status))

        manager.discover_regions(
            discover_named, ["us-east-1"], progress_callback=progress_callback
        )

        assert callback_calls == [("us-east-1", "discovering"), ("us-east-1", "complete")]

    def test_progress_callback_on_error(self):
        """A failing region reports an error status."""
        manager = RegionManager(max_workers=1)
        callback_calls = []

        def fail(region):
            raise RuntimeError("boom")

        manager.discover_regions(
            fail,
            ["us-east-1"],
            fail_fast=False,
            progress_callback=lambda region, status: callback_calls.append(status),
        )

        assert callback_calls == ["discovering", "error"]


class TestRegionFailures:
    """Tests for fail-fast and partial region handling."""

    @staticmethod
    def fail_in_eu(region):
        if region == "eu-west-1":
            raise RuntimeError("AccessDenied")
        return discover_named(region)

    def test_fail_fast_raises_discovery_error(self):
        """A failing region aborts with a DiscoveryError."""
        manager = RegionManager(max_workers=2)

        with pytest.raises(DiscoveryError) as exc_info:
            manager.discover_regions(
                self.fail_in_eu, ["us-east-1", "eu-west-1"], provider="aws"
            )

        error = exc_info.value
        assert error.region == "eu-west-1"
        assert error.provider == "aws"
        assert error.message == "Failed to discover resources in eu-west-1: AccessDenied"
        assert error.details["error_type"] == "RuntimeError"
        assert isinstance(error.__cause__, RuntimeError)

    def test_fail_fast_keeps_discovery_error(self):
        """DiscoveryErrors from the callable propagate unchanged."""
        original = DiscoveryError("nope", provider="aws", region="us-east-1")

        def fail(region):
            raise original

        with pytest.raises(DiscoveryError) as exc_info:
            RegionManager().discover_regions(fail, ["us-east-1"])

        assert exc_info.value is original

    def test_fail_fast_wraps_credentials_error(self):
        """Credential failures surface as DiscoveryError."""

        def fail(region):
            raise CredentialsError("AWS credentials not found")

        with pytest.raises(DiscoveryError, match="AWS credentials not found"):
            RegionManager().discover_regions(fail, ["us-east-1"], provider="aws")

    def test_partial_collects_errors(self):
        """Partial mode keeps successful regions and records failures."""
        manager = RegionManager(max_workers=2)
        result = manager.discover_regions(
            self.fail_in_eu,
            ["us-east-1", "eu-west-1", "us-west-2"],
            fail_fast=False,
        )

        assert [r.id for r in result.resources] == ["r-us-east-1", "r-us-west-2"]
        assert result.errors == {"eu-west-1": "AccessDenied"}
        assert result.has_errors
        assert result.successful_regions == ["us-east-1", "us-west-2"]
        assert result.failed_regions == ["eu-west-1"]


class TestRegionDiscoveryResult:
    """Tests for RegionDiscoveryResult class."""

    def test_empty_result(self):
        """A fresh result has no errors."""
        result = RegionDiscoveryResult(regions=["us-east-1"])

        assert not result.has_errors
        assert result.successful_regions == ["us-east-1"]
        assert result.failed_regions == []

    def test_repr(self):
        """Test string representation."""
        result = RegionDiscoveryResult(
            regions=["us-east-1", "eu-west-1"],
            resources=discover_named("us-east-1"),
            errors={"eu-west-1": "boom"},
        )
        assert repr(result) == "RegionDiscoveryResult(regions=2, resources=1, failed=1)"
