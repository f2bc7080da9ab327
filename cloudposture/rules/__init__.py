"""
Security Rules
==============

Built-in rule groups and the catalog that assembles them.

- :mod:`cloudposture.rules.aws` - S3, EC2, RDS, security groups, CloudTrail
- :mod:`cloudposture.rules.azure` - storage accounts, network security groups
- :mod:`cloudposture.rules.gcp` - compute instances
- :mod:`cloudposture.rules.multicloud` - provider-agnostic storage encryption

Example
-------
>>> from cloudposture.rules import RuleCatalog
>>>
>>> catalog = RuleCatalog()
>>> rule = catalog.get_rule_by_id("AWS-001")
>>> print(rule.name, rule.severity)
S3 Bucket Public Read Access critical
"""

from cloudposture.rules.aws import get_aws_rules
from cloudposture.rules.azure import get_azure_rules
from cloudposture.rules.base import CheckFunction, SecurityRule
from cloudposture.rules.catalog import RuleCatalog
from cloudposture.rules.gcp import get_gcp_rules
from cloudposture.rules.multicloud import get_multicloud_rules

__all__ = [
    "CheckFunction",
    "SecurityRule",
    "RuleCatalog",
    "get_aws_rules",
    "get_azure_rules",
    "get_gcp_rules",
    "get_multicloud_rules",
]
