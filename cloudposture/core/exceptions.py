"""
Custom Exceptions for Cloud-Posture
===================================

This module defines a hierarchy of custom exceptions used throughout
the application for consistent error handling and reporting.

Exception Hierarchy
-------------------
::

    CloudPostureError (base)
    ├── ConfigError
    ├── AWSClientError
    │   ├── CredentialsError
    │   ├── RegionError
    │   └── ServiceError
    ├── ScannerError
    │   ├── UnsupportedProviderError
    │   ├── DiscoveryError
    │   └── RuleEvaluationError
    │       └── RuleTimeoutError
    └── ReportError
        └── UnsupportedFormatError

Only ``RuleEvaluationError`` is recoverable: the scan engine records it
per (resource, rule) pair and carries on. Everything else aborts the
operation that raised it.

Example
-------
>>> from cloudposture.core.exceptions import DiscoveryError, ScannerError
>>>
>>> try:
...     result = scanner.scan(options, credentials)
... except DiscoveryError as e:
...     print(f"Discovery failed: {e}")
... except ScannerError as e:
...     print(f"Scan failed: {e}")
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class CloudPostureError(Exception):
    """
    Base exception for all Cloud-Posture errors.

    All custom exceptions in the application inherit from this class,
    allowing for broad exception catching when needed.

    Parameters
    ----------
    message : str
        Human-readable error message.
    details : dict, optional
        Additional context about the error.

    Attributes
    ----------
    message : str
        The error message.
    details : dict
        Additional error details.

    Example
    -------
    >>> raise CloudPostureError("Something went wrong", details={"code": 500})
    """

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} (Details: {self.details})"
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert exception to dictionary for serialization.

        Returns
        -------
        dict
            Dictionary representation of the error.
        """
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


class ConfigError(CloudPostureError):
    """
    Raised when a security configuration file cannot be loaded.

    Example
    -------
    >>> raise ConfigError(
    ...     "Config file not found",
    ...     details={"path": "security.yaml"}
    ... )
    """

    pass


# =============================================================================
# AWS Client Exceptions
# =============================================================================


class AWSClientError(CloudPostureError):
    """
    Base exception for AWS client-related errors.

    Raised when there's an issue with AWS connectivity, authentication,
    or service access.

    Parameters
    ----------
    message : str
        Human-readable error message.
    service : str, optional
        The AWS service that caused the error.
    region : str, optional
        The AWS region where the error occurred.
    details : dict, optional
        Additional context about the error.
    """

    def __init__(
        self,
        message: str,
        service: Optional[str] = None,
        region: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.service = service
        self.region = region
        full_details = details or {}
        if service:
            full_details["service"] = service
        if region:
            full_details["region"] = region
        super().__init__(message, full_details)


class CredentialsError(AWSClientError):
    """
    Raised when AWS credentials are invalid, missing, or expired.

    Example
    -------
    >>> raise CredentialsError(
    ...     "AWS credentials not found",
    ...     details={"hint": "Run 'aws configure' to set up credentials"}
    ... )
    """

    pass


class RegionError(AWSClientError):
    """Raised when there's an issue with the specified AWS region."""

    pass


class ServiceError(AWSClientError):
    """
    Raised when there's an error accessing a specific AWS service.

    Example
    -------
    >>> raise ServiceError(
    ...     "Failed to access EC2 service",
    ...     service="ec2",
    ...     region="us-east-1"
    ... )
    """

    pass


# =============================================================================
# Scanner Exceptions
# =============================================================================


class ScannerError(CloudPostureError):
    """
    Base exception for scan-related errors.

    Parameters
    ----------
    message : str
        Human-readable error message.
    provider : str, optional
        The cloud provider being scanned.
    region : str, optional
        The region being scanned.
    details : dict, optional
        Additional context about the error.
    """

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        region: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.provider = provider
        self.region = region
        full_details = details or {}
        if provider:
            full_details["provider"] = provider
        if region:
            full_details["region"] = region
        super().__init__(message, full_details)


class UnsupportedProviderError(ScannerError):
    """
    Raised before discovery when the provider is not aws, azure or gcp.

    Example
    -------
    >>> raise UnsupportedProviderError(
    ...     "Unsupported provider: oracle",
    ...     provider="oracle"
    ... )
    """

    pass


class DiscoveryError(ScannerError):
    """
    Raised when a discovery collaborator fails.

    Fatal to the whole scan: no partial result is returned.

    Example
    -------
    >>> raise DiscoveryError(
    ...     "Failed to discover resources",
    ...     provider="aws",
    ...     region="eu-west-1"
    ... )
    """

    pass


class RuleEvaluationError(ScannerError):
    """
    Raised (and recorded) when a single rule check fails for a resource.

    Parameters
    ----------
    message : str
        Human-readable error message.
    rule_id : str
        Identifier of the failing rule.
    resource_id : str
        Identifier of the resource being evaluated.
    provider : str, optional
        The cloud provider being scanned.
    region : str, optional
        Region of the resource.
    details : dict, optional
        Additional context about the error.
    """

    def __init__(
        self,
        message: str,
        rule_id: str,
        resource_id: str,
        provider: Optional[str] = None,
        region: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.rule_id = rule_id
        self.resource_id = resource_id
        full_details = details or {}
        full_details["rule_id"] = rule_id
        full_details["resource_id"] = resource_id
        super().__init__(message, provider=provider, region=region, details=full_details)


class RuleTimeoutError(RuleEvaluationError):
    """Raised when a rule check exceeds the configured per-rule timeout."""

    pass


# =============================================================================
# Report Exceptions
# =============================================================================


class ReportError(CloudPostureError):
    """
    Base exception for report rendering errors.

    Local to one render call; never affects the underlying scan result.
    """

    pass


class UnsupportedFormatError(ReportError):
    """
    Raised when a report format is not one of json, html, csv, sarif, junit.

    Example
    -------
    >>> raise UnsupportedFormatError(
    ...     "Unsupported format: pdf",
    ...     details={"supported": ["json", "html", "csv", "sarif", "junit"]}
    ... )
    """

    pass
