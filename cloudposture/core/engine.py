"""
Security Scan Engine
====================

Runs the scan pipeline: discover resources, select rules, evaluate every
applicable (resource, rule) pair, collect vulnerabilities and aggregate
them into a :class:`~cloudposture.core.models.ScanResult`.

Classes
-------
PairOutcome
    Result of evaluating one (resource, rule) pair.
SecurityScanner
    The scan engine.

Example
-------
>>> from cloudposture.core.config import ScanOptions
>>> from cloudposture.core.engine import SecurityScanner
>>>
>>> scanner = SecurityScanner(max_workers=4, partial_regions=True)
>>> result = scanner.scan(
...     ScanOptions(provider="aws", regions=["us-east-1"], severity=["critical"]),
...     credentials={"aws": {"profile": "audit"}},
... )
>>> print(result.summary.security_posture)

Notes
-----
With ``max_workers=1`` (the default) pairs are evaluated in resource
discovery order, then catalog order. With more workers the pairs run on a
thread pool but results are still collected in that order, so the
vulnerability list is identical either way.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List, Mapping, NamedTuple, Optional, Tuple, Type, Union

from cloudposture.core import aggregator
from cloudposture.core.config import ScanOptions, SecurityConfig
from cloudposture.core.exceptions import (
    RuleEvaluationError,
    RuleTimeoutError,
    UnsupportedProviderError,
)
from cloudposture.core.models import (
    PROVIDERS,
    Resource,
    RuleResult,
    ScanContext,
    ScanMetadata,
    ScanResult,
    Vulnerability,
    VulnerabilityStatus,
    utcnow,
)
from cloudposture.core.region_manager import RegionManager
from cloudposture.discovery import DISCOVERY_REGISTRY
from cloudposture.discovery.base import BaseDiscovery
from cloudposture.rules.base import SecurityRule
from cloudposture.rules.catalog import RuleCatalog

# Module logger
logger = logging.getLogger(__name__)

SCANNER_NAME = "optimisely-security-scanner"
SCANNER_VERSION = "1.0.0"

DiscoveryEntry = Union[BaseDiscovery, Type[BaseDiscovery]]


class PairOutcome(NamedTuple):
    """Either a vulnerability, an error, or neither (the check passed)."""

    vulnerability: Optional[Vulnerability] = None
    error: Optional[RuleEvaluationError] = None


class SecurityScanner:
    """
    Security scan engine.

    Parameters
    ----------
    catalog : RuleCatalog, optional
        Rules to evaluate. A catalog of the built-in rules if omitted.
    config : SecurityConfig, optional
        Rule allow-list and deny-list.
    discovery_registry : mapping, optional
        Provider name to discovery instance or class. Defaults to the
        built-in AWS, Azure and GCP discoveries.
    max_workers : int, default=1
        Threads used for rule evaluation.
    rule_timeout : float, optional
        Seconds a single check may run before it is recorded as a
        :class:`RuleTimeoutError` and skipped.
    partial_regions : bool, default=False
        Keep going when a region fails, recording it in
        ``ScanResult.region_errors``. By default any region failure
        aborts the scan with :class:`DiscoveryError`.
    region_workers : int, default=10
        Threads used for region discovery.

    Examples
    --------
    Restricting rules through a config:

    >>> config = SecurityConfig.from_dict({"rules": {"disabled": ["AWS-002"]}})
    >>> scanner = SecurityScanner(config=config)

    Custom rules:

    >>> scanner = SecurityScanner(catalog=RuleCatalog(extra_rules=[my_rule]))
    """

    def __init__(
        self,
        catalog: Optional[RuleCatalog] = None,
        config: Optional[SecurityConfig] = None,
        discovery_registry: Optional[Mapping[str, DiscoveryEntry]] = None,
        max_workers: int = 1,
        rule_timeout: Optional[float] = None,
        partial_regions: bool = False,
        region_workers: int = 10,
    ) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        if rule_timeout is not None and rule_timeout <= 0:
            raise ValueError("rule_timeout must be positive")

        self.catalog = catalog or RuleCatalog()
        self.config = config or SecurityConfig()
        self.discovery_registry: Dict[str, DiscoveryEntry] = dict(
            discovery_registry if discovery_registry is not None else DISCOVERY_REGISTRY
        )
        self.max_workers = max_workers
        self.rule_timeout = rule_timeout
        self.partial_regions = partial_regions
        self.region_workers = region_workers

        logger.debug(
            f"Initialized SecurityScanner (max_workers={max_workers}, "
            f"rule_timeout={rule_timeout}, partial_regions={partial_regions})"
        )

    # =========================================================================
    # Pipeline steps
    # =========================================================================

    def get_discovery(self, provider: str) -> BaseDiscovery:
        """
        Return the discovery collaborator for a provider.

        Raises
        ------
        UnsupportedProviderError
            If no discovery is registered for the provider.
        """
        entry = self.discovery_registry.get(provider)
        if entry is None:
            raise UnsupportedProviderError(
                f"Unsupported provider: {provider}",
                provider=provider,
                details={"supported": sorted(self.discovery_registry) or list(PROVIDERS)},
            )
        if isinstance(entry, BaseDiscovery):
            return entry
        return entry(region_manager=RegionManager(max_workers=self.region_workers))

    def select_rules(
        self,
        provider: str,
        severity: Optional[List[str]] = None,
        categories: Optional[List[str]] = None,
    ) -> List[SecurityRule]:
        """
        Return the rules a scan will evaluate, in catalog order.

        Filters apply in order: enabled and provider match, severity,
        category, config allow-list, config deny-list. Empty filters
        select everything.
        """
        rules = [
            rule
            for rule in self.catalog.get_all_rules()
            if rule.enabled and rule.applies_to_provider(provider)
        ]
        if severity:
            rules = [r for r in rules if r.severity in severity]
        if categories:
            rules = [r for r in rules if r.category in categories]

        allowed = self.config.rules.enabled
        if allowed:
            rules = [r for r in rules if r.id in allowed]
        denied = self.config.rules.disabled
        if denied:
            rules = [r for r in rules if r.id not in denied]
        return rules

    def _run_check(
        self,
        rule: SecurityRule,
        resource: Resource,
        context: ScanContext,
    ) -> RuleResult:
        if self.rule_timeout is None:
            return rule.evaluate(resource, context)

        outcome: Dict[str, Any] = {}

        def target() -> None:
            try:
                outcome["result"] = rule.evaluate(resource, context)
            except Exception as e:
                outcome["error"] = e

        # A check that overruns keeps running in its daemon thread; its result is ignored
        worker = threading.Thread(target=target, name=f"rule-{rule.id}", daemon=True)
        worker.start()
        worker.join(self.rule_timeout)
        if worker.is_alive():
            raise RuleTimeoutError(
                f"Rule {rule.id} timed out after {self.rule_timeout}s",
                rule_id=rule.id,
                resource_id=resource.id,
                provider=context.provider,
                region=resource.region,
                details={"timeout": self.rule_timeout},
            )
        if "error" in outcome:
            raise outcome["error"]
        return outcome["result"]

    def evaluate_pair(
        self,
        rule: SecurityRule,
        resource: Resource,
        context: ScanContext,
    ) -> PairOutcome:
        """
        Evaluate one rule against one resource.

        Never raises for a failing check: the failure is returned as
        ``PairOutcome.error``.
        """
        try:
            result = self._run_check(rule, resource, context)
        except RuleTimeoutError as e:
            logger.warning(f"Rule {rule.id} timed out for resource {resource.id}")
            return PairOutcome(error=e)
        except Exception as e:
            logger.warning(f"Rule {rule.id} failed for resource {resource.id}: {e}")
            return PairOutcome(
                error=RuleEvaluationError(
                    f"Rule {rule.id} failed for resource {resource.id}: {e}",
                    rule_id=rule.id,
                    resource_id=resource.id,
                    provider=context.provider,
                    region=resource.region,
                    details={"error_type": type(e).__name__},
                )
            )

        if result.passed:
            return PairOutcome()
        return PairOutcome(vulnerability=self._build_vulnerability(rule, resource, result, context))

    def _build_vulnerability(
        self,
        rule: SecurityRule,
        resource: Resource,
        result: RuleResult,
        context: ScanContext,
    ) -> Vulnerability:
        finding = result.finding
        detected = utcnow()
        return Vulnerability(
            id=f"{rule.id}_{resource.id}",
            title=rule.name,
            description=finding.description,
            severity=rule.severity,
            category=rule.category,
            resource_id=resource.id,
            resource_type=resource.type,
            resource_name=resource.name,
            region=resource.region,
            provider=context.provider,
            recommendation=finding.recommendation,
            remediation=rule.remediation,
            references=list(rule.references),
            compliance_frameworks=list(rule.compliance_frameworks),
            evidence=finding.evidence,
            first_detected=detected,
            last_seen=detected,
            status=VulnerabilityStatus.OPEN,
            tags=list(rule.tags),
        )

    def _pairs(
        self,
        resources: List[Resource],
        rules: List[SecurityRule],
        provider: str,
        credentials: Optional[Dict[str, Any]],
    ) -> List[Tuple[SecurityRule, Resource, ScanContext]]:
        all_resources = tuple(resources)
        pairs = []
        for resource in resources:
            context = ScanContext(
                provider=provider,
                region=resource.region,
                all_resources=all_resources,
                credentials=credentials,
            )
            for rule in rules:
                if rule.applies_to(resource):
                    pairs.append((rule, resource, context))
        return pairs

    def evaluate(
        self,
        resources: List[Resource],
        rules: List[SecurityRule],
        provider: str,
        credentials: Optional[Dict[str, Any]] = None,
    ) -> Tuple[List[Vulnerability], List[RuleEvaluationError]]:
        """
        Evaluate rules against resources.

        Returns
        -------
        tuple
            (vulnerabilities, rule_errors). Vulnerabilities are unique by id;
            a repeated id keeps its first position and the latest value.
        """
        pairs = self._pairs(resources, rules, provider, credentials)
        logger.debug(f"Evaluating {len(pairs)} (resource, rule) pairs")

        if self.max_workers > 1 and len(pairs) > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                outcomes = list(executor.map(lambda p: self.evaluate_pair(*p), pairs))
        else:
            outcomes = [self.evaluate_pair(*pair) for pair in pairs]

        by_id: Dict[str, Vulnerability] = {}
        errors: List[RuleEvaluationError] = []
        for outcome in outcomes:
            if outcome.error is not None:
                errors.append(outcome.error)
            elif outcome.vulnerability is not None:
                by_id[outcome.vulnerability.id] = outcome.vulnerability
        return list(by_id.values()), errors

    # =========================================================================
    # Entry point
    # =========================================================================

    def scan(
        self,
        options: ScanOptions,
        credentials: Optional[Dict[str, Any]] = None,
    ) -> ScanResult:
        """
        Run a complete security scan.

        Parameters
        ----------
        options : ScanOptions
            Provider, regions and rule filters.
        credentials : dict, optional
            Provider credentials, e.g. ``{"aws": {"profile": "audit"}}``.

        Returns
        -------
        ScanResult
            Aggregated scan result.

        Raises
        ------
        UnsupportedProviderError
            If the provider is unknown. Raised before any discovery.
        DiscoveryError
            If discovery fails (any region, unless ``partial_regions``).
        """
        start = time.monotonic()
        logger.info(f"Starting security scan for {options.provider}")

        try:
            discovery = self.get_discovery(options.provider)
            regions = discovery.resolve_regions(options.regions)
            requested_regions = list(options.regions) if options.regions else regions

            discovered = discovery.discover(
                credentials,
                requested_regions,
                fail_fast=not self.partial_regions,
            )
            resources = discovered.resources
            for region, message in discovered.errors.items():
                logger.warning(f"Skipping region {region}: {message}")
            logger.info(
                f"Discovered {len(resources)} resources across "
                f"{len(requested_regions)} region(s)"
            )

            rules = self.select_rules(options.provider, options.severity, options.categories)
            logger.info(f"Running {len(rules)} security rules")

            vulnerabilities, rule_errors = self.evaluate(
                resources, rules, options.provider, credentials
            )
        except Exception as e:
            logger.error(f"Security scan failed: {e}")
            raise

        total = len(resources)
        result = ScanResult(
            timestamp=utcnow(),
            provider=options.provider,
            regions=requested_regions,
            total_resources=total,
            vulnerabilities=vulnerabilities,
            severity_breakdown=aggregator.severity_breakdown(vulnerabilities),
            category_breakdown=aggregator.category_breakdown(vulnerabilities),
            compliance_status=aggregator.compliance_status(vulnerabilities),
            summary=aggregator.build_summary(vulnerabilities, total),
            resources=aggregator.resource_counts(vulnerabilities, total),
            scan_duration=int((time.monotonic() - start) * 1000),
            metadata=ScanMetadata(
                scanner=SCANNER_NAME,
                version=SCANNER_VERSION,
                rules_total=len(self.catalog.get_all_rules()),
                rules_enabled=len(rules),
            ),
            rule_errors=rule_errors,
            region_errors=dict(discovered.errors),
        )

        logger.info(
            f"Security scan completed. Found {result.total_vulnerabilities} "
            f"vulnerabilities in {result.scan_duration}ms"
        )
        if rule_errors:
            logger.warning(f"{len(rule_errors)} rule evaluation(s) were skipped")
        return result

    def __repr__(self) -> str:
        return (
            f"SecurityScanner(rules={len(self.catalog)}, "
            f"max_workers={self.max_workers})"
        )
