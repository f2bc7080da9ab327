"""
Tests for the scan engine.
"""

import threading
import time

import pytest

from cloudposture.core.config import ScanOptions, SecurityConfig
from cloudposture.core.engine import SCANNER_NAME, SCANNER_VERSION, SecurityScanner
from cloudposture.core.exceptions import (
    DiscoveryError,
    RuleEvaluationError,
    RuleTimeoutError,
    UnsupportedProviderError,
)
from cloudposture.core.models import Remediation, RuleResult
from cloudposture.rules.base import SecurityRule
from cloudposture.rules.catalog import RuleCatalog

from tests.helpers import StaticDiscovery, make_resource


def make_rule(rule_id, check, resource_types=("aws_instance",), severity="low", **kwargs):
    """Build a custom AWS rule for testing."""
    return SecurityRule(
        id=rule_id,
        name=f"Test rule {rule_id}",
        description="Test rule",
        severity=severity,
        category="configuration",
        provider=kwargs.pop("provider", "aws"),
        resource_types=resource_types,
        check=check,
        remediation=Remediation(description="Fix it"),
        **kwargs,
    )


def always_fail(resource, context):
    return RuleResult.fail("Failed", {"id": resource.id}, "Fix it")


def explode(resource, context):
    raise RuntimeError("boom")


def options(**kwargs):
    kwargs.setdefault("provider", "aws")
    kwargs.setdefault("regions", ["us-east-1"])
    return ScanOptions(**kwargs)


class TestConcreteScenarios:
    """Tests for the documented single-resource scenarios."""

    def test_public_instance_yields_one_high_vulnerability(self, scanner_for, public_instance):
        """An instance with a public IP fails AWS-002 only."""
        scanner = scanner_for({"us-east-1": [public_instance]})
        result = scanner.scan(options())

        assert [v.id for v in result.vulnerabilities] == ["AWS-002_i-1"]
        vuln = result.vulnerabilities[0]
        assert vuln.severity == "high"
        assert vuln.rule_id == "AWS-002"
        assert vuln.resource_name == "web"
        assert vuln.status.value == "open"

    def test_public_bucket_yields_critical_vulnerability(self, scanner_for):
        """A bucket readable by AllUsers fails AWS-001 as critical."""
        bucket = make_resource(
            "bucket-1",
            "aws_s3_bucket",
            {"acl": {"grants": [{"grantee": {"uri": "AllUsers"}, "permission": "READ"}]}},
        )
        scanner = scanner_for({"us-east-1": [bucket]})
        result = scanner.scan(options(severity=["critical"]))

        assert len(result.vulnerabilities) == 1
        vuln = result.vulnerabilities[0]
        assert vuln.id == "AWS-001_bucket-1"
        assert vuln.severity == "critical"
        assert result.summary.critical_findings == [vuln]


class TestScanResult:
    """Tests for the aggregated scan result."""

    def test_vulnerabilities_in_discovery_then_catalog_order(self, sample_scan_result):
        """Resources are walked in discovery order, rules in catalog order."""
        assert [v.id for v in sample_scan_result.vulnerabilities] == [
            "AWS-002_i-1",
            "AWS-001_bucket-1",
            "MULTI-001_bucket-1",
            "AWS-004_sg-1",
        ]

    def test_breakdowns_and_counts(self, sample_scan_result):
        """Breakdowns, resource counts and score are aggregated."""
        result = sample_scan_result

        assert result.total_resources == 4
        assert result.severity_breakdown == {"critical": 1, "high": 3, "medium": 0, "low": 0}
        assert result.category_breakdown == {
            "network_security": 2,
            "access_control": 1,
            "encryption": 1,
        }
        assert result.resources.scanned == 4
        assert result.resources.vulnerable == 3
        assert result.resources.compliant == 1
        # (10 + 7 + 7 + 7) / 40 = 77.5
        assert result.summary.risk_score == 78
        assert result.summary.security_posture == "poor"

    def test_summary_lists(self, sample_scan_result):
        """Top vulnerabilities, critical findings and quick wins."""
        summary = sample_scan_result.summary

        assert [v.id for v in summary.top_vulnerabilities] == [
            "AWS-001_bucket-1",
            "AWS-002_i-1",
            "MULTI-001_bucket-1",
            "AWS-004_sg-1",
        ]
        assert [v.id for v in summary.critical_findings] == ["AWS-001_bucket-1"]
        assert [v.id for v in summary.quick_wins] == ["AWS-001_bucket-1", "AWS-004_sg-1"]

    def test_compliance_status(self, sample_scan_result):
        """Each framework reference counts as one failed check."""
        status = sample_scan_result.compliance_status

        assert list(status) == ["CIS AWS Foundations", "SOC 2", "PCI DSS"]
        assert status["CIS AWS Foundations"].total_checks == 3
        assert status["CIS AWS Foundations"].failed_checks == 3
        assert status["CIS AWS Foundations"].passed_checks == 0
        assert status["CIS AWS Foundations"].score == 0
        assert status["SOC 2"].total_checks == 2

    def test_metadata(self, sample_scan_result):
        """Metadata names the scanner and counts rules."""
        meta = sample_scan_result.metadata

        assert meta.scanner == SCANNER_NAME
        assert meta.version == SCANNER_VERSION
        assert meta.rules_total == 9
        # AWS-001..005 plus MULTI-001
        assert meta.rules_enabled == 6

    def test_result_fields(self, sample_scan_result):
        """Provider, regions, duration and errors."""
        result = sample_scan_result

        assert result.provider == "aws"
        assert result.regions == ["us-east-1"]
        assert result.scan_duration >= 0
        assert result.timestamp.tzinfo is not None
        assert result.rule_errors == []
        assert result.region_errors == {}
        assert not result.has_errors

    def test_evidence_copied_from_finding(self, sample_scan_result):
        """Vulnerabilities carry the check's evidence and rule metadata."""
        vuln = sample_scan_result.vulnerabilities[0]

        assert vuln.evidence["publicIp"] == "1.2.3.4"
        assert vuln.recommendation.startswith("Use NAT Gateway")
        assert vuln.tags == ["ec2", "network", "public-ip"]
        assert vuln.first_detected == vuln.last_seen

    def test_empty_inventory(self, scanner_for):
        """No resources gives an excellent posture."""
        result = scanner_for({"us-east-1": []}).scan(options())

        assert result.vulnerabilities == []
        assert result.summary.risk_score == 0
        assert result.summary.security_posture == "excellent"
        assert result.resources.compliance_rate == 100


class TestRuleSelection:
    """Tests for severity, category and config filters."""

    def test_severity_filter_only_returns_that_severity(self, scanner_for, aws_inventory):
        """Only critical vulnerabilities survive a critical filter."""
        scanner = scanner_for({"us-east-1": aws_inventory})
        result = scanner.scan(options(severity=["critical"]))

        assert result.vulnerabilities
        assert all(v.severity == "critical" for v in result.vulnerabilities)
        assert result.metadata.rules_enabled == 2

    def test_category_filter(self, scanner_for, aws_inventory):
        """Category filter keeps matching rules only."""
        scanner = scanner_for({"us-east-1": aws_inventory})
        result = scanner.scan(options(categories=["encryption"]))

        assert [v.id for v in result.vulnerabilities] == ["MULTI-001_bucket-1"]

    def test_allow_list(self, scanner_for, aws_inventory):
        """Only allow-listed rules run."""
        config = SecurityConfig.from_dict({"rules": {"enabled": ["AWS-004"]}})
        scanner = scanner_for({"us-east-1": aws_inventory}, config=config)

        assert [r.id for r in scanner.select_rules("aws")] == ["AWS-004"]
        assert [v.id for v in scanner.scan(options()).vulnerabilities] == ["AWS-004_sg-1"]

    def test_deny_list(self, scanner_for, aws_inventory):
        """Deny-listed rules never run."""
        config = SecurityConfig.from_dict({"rules": {"disabled": ["AWS-002", "MULTI-001"]}})
        scanner = scanner_for({"us-east-1": aws_inventory}, config=config)
        result = scanner.scan(options())

        assert [v.id for v in result.vulnerabilities] == ["AWS-001_bucket-1", "AWS-004_sg-1"]

    def test_deny_list_applies_after_allow_list(self):
        """A rule in both lists is excluded."""
        config = SecurityConfig.from_dict(
            {"rules": {"enabled": ["AWS-001", "AWS-003"], "disabled": ["AWS-001"]}}
        )
        scanner = SecurityScanner(config=config)

        assert [r.id for r in scanner.select_rules("aws")] == ["AWS-003"]

    def test_disabled_rules_are_skipped(self):
        """Rules with enabled=False are never selected."""
        rule = make_rule("TEST-OFF", always_fail, enabled=False)
        scanner = SecurityScanner(catalog=RuleCatalog(extra_rules=[rule]))

        assert "TEST-OFF" not in [r.id for r in scanner.select_rules("aws")]

    def test_provider_selection(self):
        """Provider rules plus wildcard rules are selected."""
        scanner = SecurityScanner()

        assert [r.id for r in scanner.select_rules("azure")] == [
            "AZURE-001",
            "AZURE-002",
            "MULTI-001",
        ]
        assert [r.id for r in scanner.select_rules("gcp")] == ["GCP-001", "MULTI-001"]


class TestRuleIsolation:
    """Tests for failing and slow rule checks."""

    def test_throwing_rule_does_not_hide_other_findings(self, scanner_for, public_instance, open_security_group):
        """A check that raises is recorded and the scan continues."""
        catalog = RuleCatalog(extra_rules=[make_rule("TEST-BOOM", explode)])
        scanner = scanner_for(
            {"us-east-1": [public_instance, open_security_group]},
            catalog=catalog,
        )
        result = scanner.scan(options())

        assert [v.id for v in result.vulnerabilities] == ["AWS-002_i-1", "AWS-004_sg-1"]
        assert len(result.rule_errors) == 1
        error = result.rule_errors[0]
        assert isinstance(error, RuleEvaluationError)
        assert error.rule_id == "TEST-BOOM"
        assert error.resource_id == "i-1"
        assert "boom" in error.message
        assert result.has_errors

    def test_non_rule_result_is_a_rule_error(self, scanner_for, public_instance):
        """A check returning the wrong type is isolated like an exception."""
        rule = make_rule("TEST-BAD", lambda resource, context: None)
        scanner = scanner_for(
            {"us-east-1": [public_instance]},
            catalog=RuleCatalog(extra_rules=[rule]),
        )
        result = scanner.scan(options())

        assert [v.id for v in result.vulnerabilities] == ["AWS-002_i-1"]
        assert [e.rule_id for e in result.rule_errors] == ["TEST-BAD"]

    def test_rule_timeout(self, scanner_for, public_instance):
        """A check running past the timeout becomes a RuleTimeoutError."""
        release = threading.Event()

        def slow(resource, context):
            release.wait(5)
            return RuleResult.ok()

        rule = make_rule("TEST-SLOW", slow)
        scanner = scanner_for(
            {"us-east-1": [public_instance]},
            catalog=RuleCatalog(extra_rules=[rule]),
            rule_timeout=0.05,
        )
        try:
            result = scanner.scan(options())
        finally:
            release.set()

        assert [v.id for v in result.vulnerabilities] == ["AWS-002_i-1"]
        assert len(result.rule_errors) == 1
        assert isinstance(result.rule_errors[0], RuleTimeoutError)
        assert result.rule_errors[0].rule_id == "TEST-SLOW"

    def test_context_exposes_all_resources(self, scanner_for, public_instance, open_security_group):
        """Checks see every discovered resource and their own region."""
        seen = {}

        def record(resource, context):
            seen["count"] = len(context.all_resources)
            seen["region"] = context.region
            seen["provider"] = context.provider
            return RuleResult.ok()

        scanner = scanner_for(
            {"us-east-1": [public_instance, open_security_group]},
            catalog=RuleCatalog(extra_rules=[make_rule("TEST-CTX", record)]),
        )
        scanner.scan(options())

        assert seen == {"count": 2, "region": "us-east-1", "provider": "aws"}


class TestDeduplication:
    """Tests for duplicate vulnerability ids."""

    def test_duplicate_resource_keeps_first_position_latest_value(self, scanner_for):
        """A repeated id keeps its first position and the last value."""
        first = make_resource("i-1", "aws_instance", {"publicIpAddress": "1.1.1.1"})
        other = make_resource("i-9", "aws_instance", {"publicIpAddress": "9.9.9.9"})
        again = make_resource("i-1", "aws_instance", {"publicIpAddress": "2.2.2.2"})
        scanner = scanner_for({"us-east-1": [first, other, again]})

        result = scanner.scan(options())

        assert [v.id for v in result.vulnerabilities] == ["AWS-002_i-1", "AWS-002_i-9"]
        assert result.vulnerabilities[0].evidence["publicIp"] == "2.2.2.2"

    def test_vulnerability_ids_unique(self, sample_scan_result):
        """Ids are unique within a scan."""
        ids = [v.id for v in sample_scan_result.vulnerabilities]
        assert len(ids) == len(set(ids))


class TestConcurrency:
    """Tests for parallel evaluation and multi-region discovery."""

    def test_parallel_evaluation_matches_sequential(self, scanner_for):
        """max_workers > 1 returns the same vulnerabilities in the same order."""
        inventory = [
            make_resource(f"i-{n}", "aws_instance", {"publicIpAddress": f"10.0.0.{n}"})
            for n in range(20)
        ]

        def jitter(resource, context):
            time.sleep(0.001 * (20 - int(resource.id.split("-")[1])))
            return always_fail(resource, context)

        catalog = RuleCatalog(extra_rules=[make_rule("TEST-JITTER", jitter)])
        sequential = scanner_for({"us-east-1": inventory}, catalog=catalog).scan(options())
        parallel = scanner_for(
            {"us-east-1": inventory}, catalog=catalog, max_workers=8
        ).scan(options())

        assert [v.id for v in parallel.vulnerabilities] == [
            v.id for v in sequential.vulnerabilities
        ]
        assert len(parallel.vulnerabilities) == 40

    def test_regions_concatenated_in_request_order(self, scanner_for):
        """Resources from several regions keep the requested order."""
        west = make_resource("i-w", "aws_instance", {"publicIpAddress": "1.1.1.1"}, region="us-west-2")
        east = make_resource("i-e", "aws_instance", {"publicIpAddress": "2.2.2.2"})
        scanner = scanner_for({"us-east-1": [east], "us-west-2": [west]})

        result = scanner.scan(options(regions=["us-west-2", "us-east-1"]))

        assert [v.id for v in result.vulnerabilities] == ["AWS-002_i-w", "AWS-002_i-e"]
        assert result.regions == ["us-west-2", "us-east-1"]
        assert result.vulnerabilities[0].region == "us-west-2"

    def test_region_failure_aborts_by_default(self, scanner_for, public_instance):
        """Any failing region raises DiscoveryError."""
        scanner = scanner_for(
            {"us-east-1": [public_instance], "eu-west-1": RuntimeError("AccessDenied")}
        )

        with pytest.raises(DiscoveryError) as exc_info:
            scanner.scan(options(regions=["us-east-1", "eu-west-1"]))

        assert exc_info.value.region == "eu-west-1"
        assert "AccessDenied" in str(exc_info.value)

    def test_partial_regions_records_failures(self, scanner_for, public_instance):
        """partial_regions keeps results from healthy regions."""
        scanner = scanner_for(
            {"us-east-1": [public_instance], "eu-west-1": RuntimeError("AccessDenied")},
            partial_regions=True,
        )

        result = scanner.scan(options(regions=["us-east-1", "eu-west-1"]))

        assert [v.id for v in result.vulnerabilities] == ["AWS-002_i-1"]
        assert list(result.region_errors) == ["eu-west-1"]
        assert "AccessDenied" in result.region_errors["eu-west-1"]
        assert result.has_errors

    def test_default_region_used_when_none_requested(self, scanner_for, public_instance):
        """Without regions the provider default is discovered."""
        discovery = StaticDiscovery({"us-east-1": [public_instance]})
        scanner = SecurityScanner(discovery_registry={"aws": discovery})

        result = scanner.scan(ScanOptions(provider="aws"))

        assert discovery.calls == ["us-east-1"]
        assert result.regions == ["us-east-1"]


class TestProviders:
    """Tests for provider resolution and the static inventories."""

    def test_unsupported_provider(self):
        """Unknown providers fail before discovery."""
        with pytest.raises(UnsupportedProviderError) as exc_info:
            SecurityScanner().scan(ScanOptions(provider="oracle"))

        assert exc_info.value.provider == "oracle"

    def test_azure_scan(self):
        """The Azure inventory yields storage and NSG findings."""
        result = SecurityScanner().scan(ScanOptions(provider="azure"))

        assert [v.rule_id for v in result.vulnerabilities] == [
            "AZURE-001",
            "MULTI-001",
            "AZURE-002",
        ]
        assert result.regions == ["eastus"]
        assert result.total_resources == 3
        # (10 + 7 + 7) / 30 = 80%
        assert result.summary.risk_score == 80
        assert result.summary.security_posture == "critical"

    def test_gcp_scan(self):
        """The GCP inventory yields the external IP finding."""
        result = SecurityScanner().scan(ScanOptions(provider="gcp", regions=["europe-west1"]))

        assert [v.rule_id for v in result.vulnerabilities] == ["GCP-001"]
        assert result.vulnerabilities[0].region == "europe-west1"
        assert result.summary.risk_score == 13
        assert result.summary.security_posture == "excellent"

    def test_registry_accepts_classes(self, public_instance):
        """Registry entries may be discovery classes."""

        class OneInstance(StaticDiscovery):
            def __init__(self, region_manager=None):
                super().__init__({"us-east-1": [public_instance]})

        scanner = SecurityScanner(discovery_registry={"aws": OneInstance})
        result = scanner.scan(options())

        assert [v.id for v in result.vulnerabilities] == ["AWS-002_i-1"]


class TestScannerValidation:
    """Tests for constructor validation."""

    def test_invalid_max_workers(self):
        """max_workers must be positive."""
        with pytest.raises(ValueError):
            SecurityScanner(max_workers=0)

    def test_invalid_rule_timeout(self):
        """rule_timeout must be positive."""
        with pytest.raises(ValueError):
            SecurityScanner(rule_timeout=0)

    def test_repr(self):
        """repr shows rule count and workers."""
        assert repr(SecurityScanner(max_workers=3)) == "SecurityScanner(rules=9, max_workers=3)"
