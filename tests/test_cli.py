"""
Tests for the command-line interface.
"""

import json

import click
import pytest
from click.testing import CliRunner

from cloudposture import __version__
from cloudposture.main import cli, split_list


@pytest.fixture
def runner():
    """Click test runner."""
    return CliRunner()


class TestSplitList:
    """Tests for comma-separated option parsing."""

    def test_strips_and_drops_empty(self):
        """Whitespace and empty items are ignored."""
        assert split_list(" us-east-1, ,eu-west-1 ") == ["us-east-1", "eu-west-1"]

    def test_none(self):
        """A missing option stays None."""
        assert split_list(None) is None

    def test_unknown_value(self):
        """Values outside the allowed set are rejected."""
        with pytest.raises(click.BadParameter, match="urgent"):
            split_list("high,urgent", ["critical", "high"])


class TestScanCommand:
    """Tests for the scan command."""

    def test_azure_scan_exits_critical(self, runner):
        """Critical Azure findings give exit status 2."""
        result = runner.invoke(cli, ["scan", "--provider", "azure"])

        assert result.exit_code == 2
        assert "Security Scan Results Summary" in result.output
        assert "AZURE-001" in result.output or "Critical Findings" in result.output
        assert "Scan complete!" in result.output

    def test_gcp_scan_exits_ok(self, runner):
        """Only a medium GCP finding gives exit status 0."""
        result = runner.invoke(cli, ["scan", "--provider", "gcp"])

        assert result.exit_code == 0
        assert "EXCELLENT" in result.output

    def test_format_without_output_prints_report(self, runner):
        """--format alone prints only the report on stdout."""
        result = runner.invoke(cli, ["scan", "--provider", "azure", "--format", "json"])

        assert result.exit_code == 2
        data = json.loads(result.stdout)
        assert data["provider"] == "azure"
        assert data["summary"]["risk_score"] == 80
        assert [v["id"].split("_")[0] for v in data["vulnerabilities"]] == [
            "AZURE-001",
            "MULTI-001",
            "AZURE-002",
        ]

    def test_format_is_case_insensitive(self, runner):
        """Format names ignore case."""
        result = runner.invoke(cli, ["scan", "--provider", "gcp", "--format", "CSV"])

        assert result.exit_code == 0
        assert result.stdout.startswith("Vulnerability ID,Title,Severity")

    def test_output_infers_format(self, runner, tmp_path):
        """The report format follows the output extension."""
        output = tmp_path / "results.sarif"
        result = runner.invoke(cli, ["scan", "--provider", "gcp", "--output", str(output)])

        assert result.exit_code == 0
        sarif = json.loads(output.read_text())
        assert sarif["version"] == "2.1.0"
        assert "Report saved to:" in result.output

    def test_unknown_extension_defaults_to_json(self, runner, tmp_path):
        """Unrecognized extensions write JSON."""
        output = tmp_path / "results.out"
        result = runner.invoke(cli, ["scan", "--provider", "gcp", "--output", str(output)])

        assert result.exit_code == 0
        assert json.loads(output.read_text())["provider"] == "gcp"

    def test_severity_filter(self, runner):
        """Severity filters limit the rules evaluated."""
        result = runner.invoke(
            cli, ["scan", "--provider", "azure", "--severity", "medium", "--format", "json"]
        )

        assert result.exit_code == 0
        assert json.loads(result.stdout)["vulnerabilities"] == []

    def test_config_disables_rules(self, runner, tmp_path):
        """A config deny-list removes rules from the scan."""
        config = tmp_path / "security.yaml"
        config.write_text("rules:\n  disabled: [AZURE-001]\n")
        result = runner.invoke(
            cli,
            ["scan", "--provider", "azure", "--config", str(config), "--format", "json"],
        )

        assert result.exit_code == 1
        ids = [v["id"].split("_")[0] for v in json.loads(result.stdout)["vulnerabilities"]]
        assert "AZURE-001" not in ids

    def test_missing_config_file(self, runner, tmp_path):
        """A missing config file is reported as an error."""
        result = runner.invoke(
            cli, ["scan", "--provider", "gcp", "--config", str(tmp_path / "nope.yaml")]
        )

        assert result.exit_code == 1
        assert "Config file not found" in result.output

    def test_errors_stay_off_stdout(self, runner, tmp_path):
        """With --format alone, errors go to stderr and stdout stays empty."""
        config = tmp_path / "security.yaml"
        config.write_text("thresholds:\n  high: many\n")
        result = runner.invoke(
            cli,
            ["scan", "--provider", "gcp", "--config", str(config), "--format", "json"],
        )

        assert result.exit_code == 1
        assert result.stdout == ""
        assert "Invalid threshold for high" in result.stderr

    def test_default_region_announced(self, runner):
        """Without --regions the provider default region is shown."""
        result = runner.invoke(cli, ["scan", "--provider", "gcp"])

        assert result.exit_code == 0
        assert "Scanning GCP in us-central1..." in result.stdout

    def test_compliance_section_toggle(self, runner):
        """--no-compliance hides the compliance status in the summary."""
        shown = runner.invoke(cli, ["scan", "--provider", "azure"])
        hidden = runner.invoke(cli, ["scan", "--provider", "azure", "--no-compliance"])

        assert "Compliance Status:" in shown.stdout
        assert "Compliance Status:" not in hidden.stdout
        assert "Security Scan Results Summary" in hidden.stdout

    def test_no_compliance_html_report(self, runner, tmp_path):
        """--no-compliance also drops the HTML compliance section."""
        output = tmp_path / "report.html"
        result = runner.invoke(
            cli,
            ["scan", "--provider", "azure", "--no-compliance", "--output", str(output)],
        )

        assert result.exit_code == 2
        assert "Compliance Status" not in output.read_text()

    def test_invalid_severity(self, runner):
        """Unknown severities are usage errors."""
        result = runner.invoke(cli, ["scan", "--severity", "urgent"])

        assert result.exit_code == 2
        assert "Unknown value(s): urgent" in result.output

    def test_invalid_provider(self, runner):
        """Unknown providers are usage errors."""
        result = runner.invoke(cli, ["scan", "--provider", "oracle"])

        assert result.exit_code == 2
        assert "Invalid value" in result.output

    def test_aws_scan(self, runner, mock_aws_environment, open_ssh_group):
        """An open SSH group is a high finding."""
        result = runner.invoke(
            cli, ["scan", "--regions", "us-east-1", "--format", "json", "--max-workers", "2"]
        )

        assert result.exit_code == 1
        ids = [v["id"] for v in json.loads(result.stdout)["vulnerabilities"]]
        assert f"AWS-004_{open_ssh_group}" in ids


class TestRulesCommand:
    """Tests for the rules command."""

    def test_lists_all_rules(self, runner):
        """Every catalog rule is listed."""
        result = runner.invoke(cli, ["rules"])

        assert result.exit_code == 0
        assert "Security Rules (9 of 9)" in result.output
        for rule_id in ("AWS-001", "AZURE-002", "GCP-001", "MULTI-001"):
            assert rule_id in result.output

    def test_provider_filter(self, runner):
        """Provider filters keep provider-agnostic rules."""
        result = runner.invoke(cli, ["rules", "--provider", "gcp"])

        assert result.exit_code == 0
        assert "Security Rules (2 of 9)" in result.output
        assert "AWS-001" not in result.output

    def test_severity_filter(self, runner):
        """Severity filters apply to the listing."""
        result = runner.invoke(cli, ["rules", "--severity", "critical"])

        assert result.exit_code == 0
        assert "Security Rules (3 of 9)" in result.output


class TestRegionsCommand:
    """Tests for the regions command."""

    def test_lists_regions(self, runner, mock_aws_environment):
        """AWS regions are listed."""
        result = runner.invoke(cli, ["regions"])

        assert result.exit_code == 0
        assert "Available AWS Regions" in result.output
        assert "us-east-1" in result.output


class TestVersion:
    """Tests for --version."""

    def test_version(self, runner):
        """The package version is printed."""
        result = runner.invoke(cli, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.output
