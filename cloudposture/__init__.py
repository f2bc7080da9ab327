"""
Cloud-Posture: Multi-Cloud Security Scanner
===========================================

Discovers cloud resources, evaluates them against a catalog of security
rules and reports vulnerabilities with a risk score, security posture and
compliance status.

Modules
-------
core
    Models, configuration, aggregation, the scan engine and AWS plumbing
rules
    Security rule definitions and the rule catalog
discovery
    Per-provider resource discovery
reporters
    Output formatters (JSON, HTML, CSV, SARIF, JUnit, CLI)

Example
-------
>>> from cloudposture import ScanOptions, SecurityScanner, render
>>>
>>> scanner = SecurityScanner()
>>> result = scanner.scan(ScanOptions(provider="aws", regions=["us-east-1"]))
>>> print(f"Found {result.total_vulnerabilities} vulnerabilities")
>>> render(result, "sarif", output_path="results.sarif")

Notes
-----
AWS discovery requires credentials configured via:
- Environment variables (AWS_ACCESS_KEY_ID, AWS_SECRET_ACCESS_KEY)
- AWS credentials file (~/.aws/credentials)
- IAM role (when running on AWS infrastructure)
- An explicit ``{"aws": {...}}`` credentials mapping passed to ``scan``

See Also
--------
boto3 : AWS SDK for Python
"""

__version__ = "1.0.0"
__author__ = "Cloud-Posture Team"
__license__ = "MIT"

# Public API
from cloudposture.core.config import ScanOptions, SecurityConfig, load_security_config
from cloudposture.core.engine import SecurityScanner
from cloudposture.core.exceptions import CloudPostureError
from cloudposture.core.models import Resource, ScanResult, Vulnerability
from cloudposture.reporters import render
from cloudposture.rules import RuleCatalog, SecurityRule

__all__ = [
    # Version info
    "__version__",
    "__author__",
    "__license__",
    # Engine
    "SecurityScanner",
    "ScanOptions",
    "SecurityConfig",
    "load_security_config",
    # Rules
    "RuleCatalog",
    "SecurityRule",
    # Models
    "Resource",
    "ScanResult",
    "Vulnerability",
    # Reports
    "render",
    # Errors
    "CloudPostureError",
]
