"""Tests for CLI interface."""

import json

import pytest
import yaml
from click.testing import CliRunner

from sbomhub import __version__
from sbomhub.cli import main


@pytest.fixture
def runner():
    """Create a CLI test runner."""
    return CliRunner()


@pytest.fixture(autouse=True)
def isolated_cwd(tmp_path, monkeypatch):
    """Run each command away from any real configuration file."""
    for name in ("SBOMHUB_LOG_LEVEL", "SBOMHUB_IDENTITY_MODE", "SBOMHUB_OSV_URL"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def sbom_files(tmp_path):
    """Create base and target CycloneDX documents."""
    base = tmp_path / "base.json"
    base.write_text(
        json.dumps(
            {
                "bomFormat": "CycloneDX",
                "components": [
                    {"name": "django", "version": "3.2.0"},
                    {"name": "six", "version": "1.16.0"},
                ],
            }
        )
    )
    target = tmp_path / "target.json"
    target.write_text(
        json.dumps(
            {
                "bomFormat": "CycloneDX",
                "components": [
                    {"name": "django", "version": "4.2.0"},
                    {"name": "pyyaml", "version": "5.3", "licenses": [{"license": {"id": "MIT"}}]},
                ],
            }
        )
    )
    return base, target


@pytest.fixture
def vuln_catalog(tmp_path):
    """Create a vulnerability catalog."""
    path = tmp_path / "vulns.json"
    path.write_text(
        json.dumps(
            [
                {"component": "django", "version": "3.2.0", "cve_id": "CVE-2023-0001", "severity": "HIGH"},
                {"component": "pyyaml", "version": "5.3", "cve_id": "CVE-2020-14343", "cvss_score": 9.8},
            ]
        )
    )
    return path


@pytest.fixture
def events_file(tmp_path):
    """Create a resolution events file."""
    path = tmp_path / "events.json"
    path.write_text(
        json.dumps(
            {
                "events": [
                    {"severity": "HIGH", "detected_at": "2020-01-01T00:00:00Z", "resolved_at": "2020-01-02T00:00:00Z"},
                    {"severity": "CRITICAL", "detected_at": "2020-01-01T00:00:00Z"},
                ]
            }
        )
    )
    return path


SSVC_ARGS = [
    "--exploitation", "active",
    "--automatable", "yes",
    "--technical-impact", "total",
    "--mission-prevalence", "essential",
    "--safety-impact", "significant",
]


class TestVersion:
    """Tests for version command."""

    def test_version_command(self, runner):
        result = runner.invoke(main, ["version"])
        assert result.exit_code == 0
        assert f"sbomhub version {__version__}" in result.output

    def test_version_option(self, runner):
        result = runner.invoke(main, ["--version"])
        assert result.exit_code == 0
        assert "sbomhub" in result.output


class TestDiff:
    """Tests for diff command."""

    def test_diff_json(self, runner, sbom_files):
        base, target = sbom_files
        result = runner.invoke(main, ["diff", str(base), str(target), "--format", "json"])

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["summary"]["added_count"] == 1
        assert data["summary"]["removed_count"] == 1
        assert data["updated"][0]["name"] == "django"
        assert data["added"][0]["license"] == "MIT"

    def test_diff_table(self, runner, sbom_files):
        base, target = sbom_files
        result = runner.invoke(main, ["diff", str(base), str(target)])

        assert result.exit_code == 0
        assert "SBOM Diff Summary" in result.output

    def test_diff_with_catalog(self, runner, sbom_files, vuln_catalog):
        base, target = sbom_files
        result = runner.invoke(
            main, ["diff", str(base), str(target), "--vulns", str(vuln_catalog), "--format", "json"]
        )

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["updated"][0]["vulnerabilities_fixed"] == ["CVE-2023-0001"]
        assert data["new_vulnerabilities"] == [
            {"cve_id": "CVE-2020-14343", "severity": "CRITICAL", "component": "pyyaml", "version": "5.3"}
        ]

    def test_fail_on_new(self, runner, sbom_files, vuln_catalog):
        base, target = sbom_files
        result = runner.invoke(
            main,
            ["diff", str(base), str(target), "--vulns", str(vuln_catalog), "--format", "json", "--fail-on-new"],
        )
        assert result.exit_code == 1

    def test_fail_on_new_clean(self, runner, sbom_files):
        base, target = sbom_files
        result = runner.invoke(main, ["diff", str(base), str(target), "--fail-on-new"])
        assert result.exit_code == 0

    def test_output_file(self, runner, sbom_files, tmp_path):
        base, target = sbom_files
        out = tmp_path / "diff.json"
        result = runner.invoke(main, ["diff", str(base), str(target), "-f", "json", "-o", str(out)])

        assert result.exit_code == 0
        assert json.loads(out.read_text())["summary"]["updated_count"] == 1

    def test_identity_option(self, runner, tmp_path):
        base = tmp_path / "a.json"
        target = tmp_path / "b.json"
        base.write_text(json.dumps([{"name": "Django", "version": "1"}]))
        target.write_text(json.dumps([{"name": "django", "version": "2"}]))

        result = runner.invoke(
            main, ["diff", str(base), str(target), "--identity", "normalized", "-f", "json"]
        )

        assert result.exit_code == 0
        assert json.loads(result.output)["summary"]["updated_count"] == 1

    def test_invalid_component(self, runner, tmp_path, sbom_files):
        base, _ = sbom_files
        bad = tmp_path / "bad.json"
        bad.write_text(json.dumps({"components": [{"version": "1.0"}]}))

        result = runner.invoke(main, ["diff", str(base), str(bad)])

        assert result.exit_code == 2
        assert "component name is required" in result.output

    def test_string_license_entry(self, runner, tmp_path):
        bom = tmp_path / "bom.json"
        bom.write_text(json.dumps({"components": [{"name": "a", "version": "1", "licenses": [{"license": "MIT"}]}]}))

        result = runner.invoke(main, ["diff", str(bom), str(bom), "-f", "json"])

        assert result.exit_code == 0
        assert json.loads(result.output)["summary"]["added_count"] == 0

    def test_malformed_license_is_invalid_input(self, runner, tmp_path):
        base = tmp_path / "base.json"
        base.write_text(json.dumps([]))
        bad = tmp_path / "bad.json"
        bad.write_text(json.dumps({"components": [{"name": "a", "licenses": [{"license": ["MIT"]}]}]}))

        result = runner.invoke(main, ["diff", str(base), str(bad), "-f", "json"])

        assert result.exit_code == 2
        assert "license must be an object or a string" in result.output

    def test_vulns_and_osv_exclusive(self, runner, sbom_files, vuln_catalog):
        base, target = sbom_files
        result = runner.invoke(main, ["diff", str(base), str(target), "--vulns", str(vuln_catalog), "--osv"])
        assert result.exit_code == 2


class TestSSVC:
    """Tests for ssvc commands."""

    def test_calculate(self, runner):
        result = runner.invoke(main, ["ssvc", "calculate", *SSVC_ARGS])

        assert result.exit_code == 0
        assert json.loads(result.output) == {"decision": "immediate"}

    def test_calculate_conservative(self, runner):
        args = [
            "--exploitation", "active",
            "--automatable", "no",
            "--technical-impact", "partial",
            "--mission-prevalence", "minimal",
            "--safety-impact", "significant",
        ]
        deployer = runner.invoke(main, ["ssvc", "calculate", *args])
        conservative = runner.invoke(main, ["ssvc", "calculate", *args, "--policy", "conservative"])

        assert json.loads(deployer.output) == {"decision": "immediate"}
        assert json.loads(conservative.output) == {"decision": "scheduled"}

    def test_calculate_invalid_value(self, runner):
        args = list(SSVC_ARGS)
        args[1] = "sometimes"
        result = runner.invoke(main, ["ssvc", "calculate", *args])

        assert result.exit_code == 2
        assert "exploitation" in result.output

    def test_calculate_missing_factor(self, runner):
        result = runner.invoke(main, ["ssvc", "calculate", *SSVC_ARGS[:-2]])
        assert result.exit_code == 2

    def test_calculate_table_format(self, runner):
        result = runner.invoke(main, ["ssvc", "calculate", *SSVC_ARGS, "--format", "table"])

        assert result.exit_code == 0
        assert "immediate" in result.output

    def test_table(self, runner):
        result = runner.invoke(main, ["ssvc", "table"])

        assert result.exit_code == 0
        assert len(json.loads(result.output)["rows"]) == 72

    def test_auto(self, runner):
        result = runner.invoke(main, ["ssvc", "auto", "CVE-2024-3400", "--in-kev", "--epss", "0.9", "--cvss", "10"])

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["decision"] == "out_of_cycle"
        assert data["exploitation_auto"] is True
        assert data["cve_id"] == "CVE-2024-3400"

    def test_config_policy_used(self, runner, tmp_path):
        config = tmp_path / "custom.yaml"
        config.write_text(yaml.dump({"ssvc": {"policy": "conservative"}}))

        result = runner.invoke(main, ["--config", str(config), "ssvc", "table"])

        assert json.loads(result.output)["policy"] == "conservative"


class TestAnalytics:
    """Tests for analytics command."""

    def test_analytics_json(self, runner, events_file):
        result = runner.invoke(main, ["analytics", str(events_file), "-f", "json", "-p", "365"])

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["period"] == 365
        assert data["summary"]["total_open_vulnerabilities"] == 1
        assert len(data["vulnerability_trend"]) == 366

    def test_analytics_table(self, runner, events_file):
        result = runner.invoke(main, ["analytics", str(events_file)])

        assert result.exit_code == 0
        assert "Remediation Analytics" in result.output

    @pytest.mark.parametrize("days", ["0", "366"])
    def test_invalid_period(self, runner, events_file, days):
        result = runner.invoke(main, ["analytics", str(events_file), "--period-days", days])

        assert result.exit_code == 2
        assert "period_days" in result.output

    def test_with_decisions_and_compliance(self, runner, events_file, tmp_path):
        decisions = tmp_path / "decisions.json"
        decisions.write_text(json.dumps([{"decision": "defer", "decided_at": "2099-01-01T00:00:00Z"}]))
        compliance = tmp_path / "compliance.json"
        compliance.write_text(json.dumps([{"snapshot_date": "2020-01-01", "overall_score": 5, "max_score": 10}]))

        result = runner.invoke(
            main,
            [
                "analytics", str(events_file),
                "--decisions", str(decisions),
                "--compliance", str(compliance),
                "-f", "json",
            ],
        )

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["summary"]["current_compliance_score"] == 5
        assert data["ssvc"]["total_assessed"] == 0

    def test_invalid_event(self, runner, tmp_path):
        events = tmp_path / "events.json"
        events.write_text(json.dumps([{"severity": "HIGH"}]))

        result = runner.invoke(main, ["analytics", str(events)])
        assert result.exit_code == 2


class TestConfigHandling:
    """Tests for group-level configuration handling."""

    def test_invalid_config_file(self, runner, tmp_path):
        config = tmp_path / "bad.yaml"
        config.write_text("ssvc: [unclosed\n")

        result = runner.invoke(main, ["--config", str(config), "version"])
        assert result.exit_code == 2

    def test_init_writes_config(self, runner, tmp_path):
        result = runner.invoke(main, ["init", str(tmp_path)])

        assert result.exit_code == 0
        written = yaml.safe_load((tmp_path / ".sbomhub.yaml").read_text())
        assert written["ssvc"]["policy"] == "deployer"
        assert written["slo_targets"]["CRITICAL"] == 24

    def test_init_refuses_overwrite(self, runner, tmp_path):
        (tmp_path / ".sbomhub.yaml").write_text("identity_mode: name\n")

        result = runner.invoke(main, ["init", str(tmp_path)])
        assert result.exit_code == 1

    def test_init_force(self, runner, tmp_path):
        (tmp_path / ".sbomhub.yaml").write_text("identity_mode: purl\n")

        result = runner.invoke(main, ["init", str(tmp_path), "--force"])

        assert result.exit_code == 0
        # effective settings were loaded from the discovered file
        assert yaml.safe_load((tmp_path / ".sbomhub.yaml").read_text())["identity_mode"] == "purl"
