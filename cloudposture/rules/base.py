"""
Security Rule Definition
========================

A rule is a named predicate over a resource plus scan context. Each rule
carries its own metadata (severity, category, remediation, compliance
mappings) and a ``check`` callable.

Classes
-------
SecurityRule
    Rule metadata plus the check callable.

Example
-------
>>> from cloudposture.core.models import Remediation, RuleResult
>>> from cloudposture.rules.base import SecurityRule
>>>
>>> def check_tagged(resource, context):
...     if resource.tags:
...         return RuleResult.ok()
...     return RuleResult.fail(
...         "Resource has no tags",
...         {"resourceId": resource.id},
...         "Tag the resource with an owner",
...     )
>>>
>>> rule = SecurityRule(
...     id="CUSTOM-001",
...     name="Untagged resource",
...     description="Every resource should be tagged",
...     severity="low",
...     category="configuration",
...     provider="*",
...     resource_types=("*",),
...     check=check_tagged,
...     remediation=Remediation(description="Add tags"),
... )
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, FrozenSet, Iterable, List

from cloudposture.core.models import (
    CATEGORIES,
    SEVERITIES,
    WILDCARD,
    ComplianceFramework,
    Remediation,
    Resource,
    RuleResult,
    ScanContext,
)

CheckFunction = Callable[[Resource, ScanContext], RuleResult]


@dataclass(frozen=True)
class SecurityRule:
    """
    A declarative security rule.

    Parameters
    ----------
    id : str
        Globally unique identifier (e.g. 'AWS-001'). Must not contain '_'
        because vulnerability ids are ``<rule id>_<resource id>``.
    name : str
        Short title, used as the vulnerability title.
    description : str
        What the rule enforces.
    severity : str
        One of 'critical', 'high', 'medium', 'low'.
    category : str
        One of the categories in ``cloudposture.core.models.CATEGORIES``.
    provider : str
        'aws', 'azure', 'gcp' or '*' for any provider.
    resource_types : iterable of str
        Resource types the rule applies to; '*' matches every type.
    check : callable
        ``check(resource, context) -> RuleResult``. Must not mutate its inputs.
    remediation : Remediation
        Fix guidance copied into every vulnerability.
    enabled : bool, default=True
        Disabled rules are never selected.
    references : list of str
        Documentation links.
    compliance_frameworks : list of ComplianceFramework
        Framework requirements the rule maps to.
    tags : list of str
        Free-form labels.
    """

    id: str
    name: str
    description: str
    severity: str
    category: str
    provider: str
    resource_types: FrozenSet[str]
    check: CheckFunction = field(compare=False, repr=False)
    remediation: Remediation = field(compare=False)
    enabled: bool = True
    references: List[str] = field(default_factory=list, compare=False)
    compliance_frameworks: List[ComplianceFramework] = field(
        default_factory=list, compare=False
    )
    tags: List[str] = field(default_factory=list, compare=False)

    def __post_init__(self) -> None:
        if "_" in self.id:
            raise ValueError(f"Rule id must not contain '_': {self.id}")
        if self.severity not in SEVERITIES:
            raise ValueError(f"Rule {self.id} has unknown severity {self.severity}")
        if self.category not in CATEGORIES:
            raise ValueError(f"Rule {self.id} has unknown category {self.category}")
        # Accept any iterable but store an immutable set
        object.__setattr__(self, "resource_types", frozenset(self.resource_types))

    def applies_to_provider(self, provider: str) -> bool:
        """Return True if the rule targets this provider (or any provider)."""
        return self.provider == provider or self.provider == WILDCARD

    def applies_to(self, resource: Resource) -> bool:
        """Return True if the rule targets the resource's type."""
        return resource.type in self.resource_types or WILDCARD in self.resource_types

    def evaluate(self, resource: Resource, context: ScanContext) -> RuleResult:
        """
        Run the check against a resource.

        Exceptions from the check propagate; the scan engine is responsible
        for isolating them.
        """
        result = self.check(resource, context)
        if not isinstance(result, RuleResult):
            raise TypeError(
                f"Rule {self.id} returned {type(result).__name__}, expected RuleResult"
            )
        return result


def rules_with_unique_ids(rules: Iterable[SecurityRule]) -> List[SecurityRule]:
    """
    Return the rules as a list, raising if any id appears twice.

    Raises
    ------
    ValueError
        On a duplicate rule id.
    """
    seen = set()
    ordered: List[SecurityRule] = []
    for rule in rules:
        if rule.id in seen:
            raise ValueError(f"Duplicate rule id: {rule.id}")
        seen.add(rule.id)
        ordered.append(rule)
    return ordered
