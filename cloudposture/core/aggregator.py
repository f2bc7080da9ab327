"""
Scan Result Aggregation
=======================

Pure functions that turn a flat list of vulnerabilities into the
breakdowns, scores and summary attached to a ScanResult.

Functions
---------
severity_breakdown
    Count per severity, all four severities present.
category_breakdown
    Count per category that actually occurs.
compliance_status
    Per-framework counters of failing checks.
risk_score
    Weighted 0-100 risk score.
security_posture
    Five-band classification of a risk score.
build_summary
    Top vulnerabilities, critical findings, quick wins, score, posture.
resource_counts
    Scanned / vulnerable / compliant resource counts.

Notes
-----
Compliance status only sees failures: every framework reference on a
vulnerability counts as one total check and one failed check, so
``passed_checks`` and ``score`` are always 0. It is a count of
framework associations of findings, not a pass rate.
"""

from __future__ import annotations

from typing import Dict, List, Sequence

from cloudposture.core.models import (
    SEVERITIES,
    SEVERITY_WEIGHTS,
    ComplianceStatus,
    ResourceCounts,
    ScanSummary,
    Vulnerability,
    round_half_up,
)

TOP_VULNERABILITIES_LIMIT = 10
QUICK_WINS_LIMIT = 5
MAX_RISK_SCORE = 100

# (minimum risk score, posture), checked in order
POSTURE_THRESHOLDS = (
    (80, "critical"),
    (60, "poor"),
    (40, "fair"),
    (20, "good"),
)


def severity_breakdown(vulnerabilities: Sequence[Vulnerability]) -> Dict[str, int]:
    """Return the count of vulnerabilities per severity, zero-filled."""
    counts = {severity: 0 for severity in SEVERITIES}
    for vuln in vulnerabilities:
        counts[vuln.severity] += 1
    return counts


def category_breakdown(vulnerabilities: Sequence[Vulnerability]) -> Dict[str, int]:
    """Return the count of vulnerabilities per observed category."""
    counts: Dict[str, int] = {}
    for vuln in vulnerabilities:
        counts[vuln.category] = counts.get(vuln.category, 0) + 1
    return counts


def compliance_status(
    vulnerabilities: Sequence[Vulnerability],
) -> Dict[str, ComplianceStatus]:
    """
    Return per-framework compliance counters.

    Each framework reference on each vulnerability adds one total check
    and one failed check. Frameworks never referenced are absent.
    """
    totals: Dict[str, int] = {}
    for vuln in vulnerabilities:
        for framework in vuln.compliance_frameworks:
            totals[framework.name] = totals.get(framework.name, 0) + 1

    statuses: Dict[str, ComplianceStatus] = {}
    for name, total in totals.items():
        failed = total
        passed = total - failed
        statuses[name] = ComplianceStatus(
            total_checks=total,
            passed_checks=passed,
            failed_checks=failed,
            score=round_half_up(passed / total * 100),
        )
    return statuses


def risk_score(vulnerabilities: Sequence[Vulnerability], total_resources: int) -> int:
    """
    Return the 0-100 risk score.

    The weighted sum of findings is normalized by the weight every
    resource would carry with one critical finding, and capped at 100.

    Examples
    --------
    >>> risk_score([], 5)
    0
    """
    if not vulnerabilities:
        return 0
    total_weight = sum(vuln.weight for vuln in vulnerabilities)
    max_weight = total_resources * SEVERITY_WEIGHTS["critical"]
    if max_weight <= 0:
        return MAX_RISK_SCORE
    return min(MAX_RISK_SCORE, round_half_up(total_weight / max_weight * 100))


def security_posture(score: int) -> str:
    """
    Classify a risk score.

    Higher scores are worse: 80 and above is 'critical', below 20 is
    'excellent'.
    """
    for threshold, posture in POSTURE_THRESHOLDS:
        if score >= threshold:
            return posture
    return "excellent"


def top_vulnerabilities(
    vulnerabilities: Sequence[Vulnerability],
    limit: int = TOP_VULNERABILITIES_LIMIT,
) -> List[Vulnerability]:
    """Return the most severe vulnerabilities; ties keep discovery order."""
    # sorted() is stable, so equal weights stay in input order
    return sorted(vulnerabilities, key=lambda v: v.weight, reverse=True)[:limit]


def quick_wins(
    vulnerabilities: Sequence[Vulnerability],
    limit: int = QUICK_WINS_LIMIT,
) -> List[Vulnerability]:
    """Return the first vulnerabilities that have automated remediation."""
    return [v for v in vulnerabilities if v.remediation.automated][:limit]


def build_summary(
    vulnerabilities: Sequence[Vulnerability],
    total_resources: int,
) -> ScanSummary:
    """Build the scan summary without reordering ``vulnerabilities``."""
    score = risk_score(vulnerabilities, total_resources)
    return ScanSummary(
        top_vulnerabilities=top_vulnerabilities(vulnerabilities),
        critical_findings=[v for v in vulnerabilities if v.severity == "critical"],
        quick_wins=quick_wins(vulnerabilities),
        risk_score=score,
        security_posture=security_posture(score),
    )


def resource_counts(
    vulnerabilities: Sequence[Vulnerability],
    total_resources: int,
) -> ResourceCounts:
    """Return scanned, vulnerable, compliant and non-compliant counts."""
    vulnerable = len({v.resource_id for v in vulnerabilities})
    return ResourceCounts(
        scanned=total_resources,
        vulnerable=vulnerable,
        compliant=total_resources - vulnerable,
        non_compliant=vulnerable,
    )
