"""
Core Components
===============

This package provides the foundational pieces of Cloud-Posture:

- :mod:`~cloudposture.core.models` - resources, vulnerabilities and scan results
- :mod:`~cloudposture.core.engine` - the scan engine
- :mod:`~cloudposture.core.aggregator` - breakdowns, risk score and posture
- :class:`AWSClient` - boto3 session and client management
- :class:`RegionManager` - parallel multi-region discovery
- Exception hierarchy for error handling

Exceptions
----------
CloudPostureError
    Base exception for all Cloud-Posture errors.
ConfigError
    Invalid or unreadable security configuration.
AWSClientError
    Base exception for AWS client errors.
ScannerError
    Base exception for scan errors.
ReportError
    Base exception for report rendering errors.

Notes
-----
The engine is imported from :mod:`cloudposture.core.engine` (or the
top-level package) rather than here, since it depends on the discovery
and rule packages, which depend on this one.
"""

from cloudposture.core.aws_client import AWSClient
from cloudposture.core.config import ScanOptions, SecurityConfig, load_security_config
from cloudposture.core.exceptions import (
    AWSClientError,
    CloudPostureError,
    ConfigError,
    CredentialsError,
    DiscoveryError,
    RegionError,
    ReportError,
    RuleEvaluationError,
    RuleTimeoutError,
    ScannerError,
    ServiceError,
    UnsupportedFormatError,
    UnsupportedProviderError,
)
from cloudposture.core.models import Resource, ScanResult, Vulnerability
from cloudposture.core.region_manager import RegionDiscoveryResult, RegionManager

__all__ = [
    # Client
    "AWSClient",
    # Region management
    "RegionManager",
    "RegionDiscoveryResult",
    # Configuration
    "ScanOptions",
    "SecurityConfig",
    "load_security_config",
    # Models
    "Resource",
    "ScanResult",
    "Vulnerability",
    # Exceptions - Base
    "CloudPostureError",
    "ConfigError",
    # Exceptions - AWS Client
    "AWSClientError",
    "CredentialsError",
    "RegionError",
    "ServiceError",
    # Exceptions - Scanner
    "ScannerError",
    "UnsupportedProviderError",
    "DiscoveryError",
    "RuleEvaluationError",
    "RuleTimeoutError",
    # Exceptions - Reports
    "ReportError",
    "UnsupportedFormatError",
]
