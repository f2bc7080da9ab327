"""
HTML Reporter Module
====================

Renders a self-contained HTML page (inline styles, no external assets)
with metric tiles, the posture badge, critical findings, every
vulnerability, compliance status and a metadata footer.

All text taken from the scan result is HTML-escaped.

Example
-------
>>> from cloudposture.reporters import HTMLReporter
>>>
>>> HTMLReporter(output_path="report.html").render(scan_result)
"""

from __future__ import annotations

import html as html_mod
import logging
from typing import List

from cloudposture.core.models import SEVERITIES, ComplianceStatus, ScanResult, Vulnerability
from cloudposture.reporters.base import BaseReporter

# Module logger
logger = logging.getLogger(__name__)

STYLES = """
        body { font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; margin: 0; padding: 20px; background: #f5f5f5; }
        .container { max-width: 1200px; margin: 0 auto; background: white; padding: 30px; border-radius: 10px; box-shadow: 0 4px 6px rgba(0,0,0,0.1); }
        .header { border-bottom: 2px solid #e1e8ed; padding-bottom: 20px; margin-bottom: 30px; }
        .title { color: #1a1a1a; font-size: 28px; font-weight: 600; margin: 0; }
        .subtitle { color: #666; font-size: 16px; margin: 10px 0 0 0; }
        .metrics { display: grid; grid-template-columns: repeat(auto-fit, minmax(200px, 1fr)); gap: 20px; margin-bottom: 30px; }
        .metric { background: #f8fafc; padding: 20px; border-radius: 8px; text-align: center; border-left: 4px solid #3b82f6; }
        .metric-value { font-size: 32px; font-weight: 700; color: #1e293b; margin: 0; }
        .metric-label { color: #64748b; font-size: 14px; text-transform: uppercase; letter-spacing: 0.5px; margin-top: 5px; }
        .severity-critical { border-left-color: #dc2626; }
        .severity-high { border-left-color: #ea580c; }
        .severity-medium { border-left-color: #d97706; }
        .severity-low { border-left-color: #65a30d; }
        .section { margin-bottom: 40px; }
        .section-title { font-size: 20px; font-weight: 600; color: #1a1a1a; margin-bottom: 15px; border-bottom: 1px solid #e1e8ed; padding-bottom: 10px; }
        .panel { background: #f8fafc; padding: 15px; border-radius: 8px; margin-bottom: 10px; }
        .grid { display: grid; grid-template-columns: repeat(auto-fit, minmax(200px, 1fr)); gap: 15px; }
        .vulnerability { background: white; border: 1px solid #e1e8ed; border-radius: 6px; margin-bottom: 15px; overflow: hidden; }
        .vuln-header { padding: 15px 20px; display: flex; justify-content: space-between; align-items: center; background: #f8fafc; }
        .vuln-title { font-weight: 600; color: #1a1a1a; margin: 0; }
        .vuln-severity { padding: 4px 8px; border-radius: 4px; font-size: 12px; font-weight: 600; text-transform: uppercase; }
        .vuln-severity.critical { background: #fef2f2; color: #dc2626; }
        .vuln-severity.high { background: #fff7ed; color: #ea580c; }
        .vuln-severity.medium { background: #fefce8; color: #d97706; }
        .vuln-severity.low { background: #f0fdf4; color: #65a30d; }
        .vuln-body { padding: 20px; }
        .vuln-description { color: #374151; line-height: 1.6; margin-bottom: 15px; }
        .vuln-details { display: grid; grid-template-columns: repeat(auto-fit, minmax(250px, 1fr)); gap: 15px; }
        .detail-item { background: #f8fafc; padding: 12px; border-radius: 4px; }
        .detail-label { font-weight: 600; color: #374151; font-size: 12px; text-transform: uppercase; letter-spacing: 0.5px; }
        .detail-value { color: #1f2937; margin-top: 4px; }
        .recommendation { background: #ecfdf5; border: 1px solid #a7f3d0; border-radius: 6px; padding: 15px; margin-top: 15px; }
        .recommendation-title { font-weight: 600; color: #065f46; margin: 0 0 8px 0; }
        .recommendation-text { color: #047857; margin: 0; }
        .posture-badge { display: inline-block; padding: 8px 16px; border-radius: 20px; font-weight: 600; font-size: 14px; text-transform: uppercase; }
        .posture-excellent { background: #dcfce7; color: #166534; }
        .posture-good { background: #dbeafe; color: #1d4ed8; }
        .posture-fair { background: #fef3c7; color: #92400e; }
        .posture-poor { background: #fed7d7; color: #c53030; }
        .posture-critical { background: #fee2e2; color: #dc2626; }
"""


def esc(value: object) -> str:
    """HTML-escape any value, including quotes."""
    return html_mod.escape("" if value is None else str(value), quote=True)


class HTMLReporter(BaseReporter):
    """Reporter for exporting scan results to a standalone HTML page."""

    format_name = "html"
    extension = ".html"

    def _metric(self, value: int, label: str, css: str = "") -> str:
        classes = f"metric {css}".strip()
        return (
            f'<div class="{classes}">'
            f'<div class="metric-value">{value}</div>'
            f'<div class="metric-label">{esc(label)}</div>'
            f"</div>"
        )

    def _metrics(self, result: ScanResult) -> str:
        tiles = [self._metric(result.total_vulnerabilities, "Total Vulnerabilities")]
        for severity in SEVERITIES:
            tiles.append(
                self._metric(
                    result.severity_breakdown.get(severity, 0),
                    severity.title(),
                    f"severity-{severity}",
                )
            )
        return (
            '<div class="section"><div class="metrics">'
            + "".join(tiles)
            + "</div></div>"
        )

    def _posture(self, result: ScanResult) -> str:
        posture = result.summary.security_posture
        return f"""
        <div class="section">
            <h2 class="section-title">Security Posture</h2>
            <div style="margin-bottom: 15px;">
                <span class="posture-badge posture-{esc(posture)}">{esc(posture.upper())}</span>
                <span style="margin-left: 15px; color: #64748b;">Risk Score: {result.summary.risk_score}/100</span>
            </div>
            <div class="panel"><div class="grid">
                <div><strong>Resources Scanned:</strong> {result.resources.scanned}</div>
                <div><strong>Vulnerable Resources:</strong> {result.resources.vulnerable}</div>
                <div><strong>Compliance Rate:</strong> {result.resources.compliance_rate}%</div>
            </div></div>
        </div>"""

    def _vulnerability(self, vuln: Vulnerability) -> str:
        details = [
            ("Resource", vuln.resource_name or vuln.resource_id),
            ("Type", vuln.resource_type),
            ("Region", vuln.region or "N/A"),
            ("Category", vuln.category.replace("_", " ").upper()),
        ]
        detail_html = "".join(
            f'<div class="detail-item"><div class="detail-label">{label}</div>'
            f'<div class="detail-value">{esc(value)}</div></div>'
            for label, value in details
        )
        return f"""
        <div class="vulnerability">
            <div class="vuln-header">
                <h3 class="vuln-title">{esc(vuln.title)}</h3>
                <span class="vuln-severity {esc(vuln.severity)}">{esc(vuln.severity)}</span>
            </div>
            <div class="vuln-body">
                <p class="vuln-description">{esc(vuln.description)}</p>
                <div class="vuln-details">{detail_html}</div>
                <div class="recommendation">
                    <h4 class="recommendation-title">Recommendation</h4>
                    <p class="recommendation-text">{esc(vuln.recommendation)}</p>
                </div>
            </div>
        </div>"""

    def _vulnerability_section(self, title: str, vulns: List[Vulnerability]) -> str:
        if not vulns:
            return ""
        body = "".join(self._vulnerability(v) for v in vulns)
        return (
            f'\n        <div class="section">'
            f'<h2 class="section-title">{esc(title)} ({len(vulns)})</h2>'
            f"{body}</div>"
        )

    def _compliance(self, result: ScanResult) -> str:
        if not self.include_compliance or not result.compliance_status:
            return ""
        blocks = []
        for framework, status in result.compliance_status.items():
            blocks.append(self._compliance_block(framework, status))
        return (
            '\n        <div class="section">'
            '<h2 class="section-title">Compliance Status</h2>'
            + "".join(blocks)
            + "</div>"
        )

    def _compliance_block(self, framework: str, status: ComplianceStatus) -> str:
        return (
            f'<div class="panel"><h3 style="margin: 0 0 10px 0; color: #1a1a1a;">{esc(framework)}</h3>'
            f'<div style="display: flex; gap: 20px;">'
            f"<div>Score: <strong>{status.score}%</strong></div>"
            f"<div>Passed: <strong>{status.passed_checks}</strong></div>"
            f"<div>Failed: <strong>{status.failed_checks}</strong></div>"
            f"<div>Total: <strong>{status.total_checks}</strong></div>"
            f"</div></div>"
        )

    def _footer(self, result: ScanResult) -> str:
        meta = result.metadata
        return f"""
        <div class="section">
            <h2 class="section-title">Scan Metadata</h2>
            <div class="panel"><div class="grid">
                <div><strong>Scanner:</strong> {esc(meta.scanner)}</div>
                <div><strong>Version:</strong> {esc(meta.version)}</div>
                <div><strong>Rules Used:</strong> {meta.rules_enabled}/{meta.rules_total}</div>
                <div><strong>Regions:</strong> {esc(", ".join(result.regions))}</div>
            </div></div>
        </div>"""

    def to_string(self, result: ScanResult) -> str:
        provider = esc(result.provider.upper())
        generated = result.timestamp.strftime("%Y-%m-%d %H:%M:%S UTC")
        duration = f"{result.scan_duration / 1000:.2f}s"
        return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Security Scan Report - {provider}</title>
    <style>{STYLES}    </style>
</head>
<body>
    <div class="container">
        <div class="header">
            <h1 class="title">Security Scan Report</h1>
            <p class="subtitle">Generated on {generated} | Provider: {provider} | Scan Duration: {duration}</p>
        </div>
        {self._metrics(result)}
        {self._posture(result)}
        {self._vulnerability_section("Critical Findings", result.summary.critical_findings)}
        {self._vulnerability_section("All Vulnerabilities", result.vulnerabilities)}
        {self._compliance(result)}
        {self._footer(result)}
    </div>
</body>
</html>"""
