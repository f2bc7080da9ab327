"""
Rule Catalog
============

Builds the full rule set once per catalog instance and answers lookup
queries against it.

Rule order is fixed: AWS rules, then Azure, then GCP, then multi-cloud,
then any extra rules supplied by the caller. Every scan that evaluates
rules from the same catalog sees them in this order.

Example
-------
>>> from cloudposture.rules import RuleCatalog
>>>
>>> catalog = RuleCatalog()
>>> [rule.id for rule in catalog.get_rules_by_provider("gcp")]
['GCP-001', 'MULTI-001']
"""

from __future__ import annotations

import logging
import threading
from typing import Iterable, List, Optional

from cloudposture.rules.aws import get_aws_rules
from cloudposture.rules.azure import get_azure_rules
from cloudposture.rules.base import SecurityRule, rules_with_unique_ids
from cloudposture.rules.gcp import get_gcp_rules
from cloudposture.rules.multicloud import get_multicloud_rules

# Module logger
logger = logging.getLogger(__name__)


class RuleCatalog:
    """
    Lazily-built, memoized collection of security rules.

    The rule list is built on first access and the same list object is
    returned on every later call. Concurrent first calls build it exactly
    once.

    Parameters
    ----------
    extra_rules : iterable of SecurityRule, optional
        Custom rules appended after the built-in groups. Their ids must
        not collide with built-in ids.

    Raises
    ------
    ValueError
        On first access, if two rules share an id.
    """

    def __init__(self, extra_rules: Optional[Iterable[SecurityRule]] = None) -> None:
        self._extra_rules = list(extra_rules or [])
        self._rules: Optional[List[SecurityRule]] = None
        self._lock = threading.Lock()

    def get_all_rules(self) -> List[SecurityRule]:
        """
        Return every rule in catalog order.

        Callers must treat the returned list as read-only.
        """
        if self._rules is None:
            with self._lock:
                if self._rules is None:
                    self._rules = self._build()
        return self._rules

    def _build(self) -> List[SecurityRule]:
        rules = rules_with_unique_ids(
            [
                *get_aws_rules(),
                *get_azure_rules(),
                *get_gcp_rules(),
                *get_multicloud_rules(),
                *self._extra_rules,
            ]
        )
        logger.debug(
            f"Built rule catalog: {len(rules)} rules "
            f"({len(self._extra_rules)} custom)"
        )
        return rules

    def get_rule_by_id(self, rule_id: str) -> Optional[SecurityRule]:
        """Return the rule with this id, or None."""
        for rule in self.get_all_rules():
            if rule.id == rule_id:
                return rule
        return None

    def get_rules_by_provider(self, provider: str) -> List[SecurityRule]:
        """Return rules for the provider plus provider-agnostic rules."""
        return [r for r in self.get_all_rules() if r.applies_to_provider(provider)]

    def get_rules_by_category(self, category: str) -> List[SecurityRule]:
        """Return rules in the category."""
        return [r for r in self.get_all_rules() if r.category == category]

    def get_rules_by_severity(self, severity: str) -> List[SecurityRule]:
        """Return rules with the severity."""
        return [r for r in self.get_all_rules() if r.severity == severity]

    def __len__(self) -> int:
        return len(self.get_all_rules())

