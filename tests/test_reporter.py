"""Tests for report generators."""

import json
from datetime import datetime, timedelta, timezone

import pytest

from sbomhub.analytics import ResolutionEvent, aggregate
from sbomhub.models import Severity, Vulnerability
from sbomhub.reporter import (
    DecisionReport,
    DecisionTableReport,
    JSONReporter,
    TableReporter,
    create_reporter,
)
from sbomhub.sbom.models import DiffComponent, DiffResult, DiffUpdated, DiffVulnerability
from sbomhub.ssvc import DecisionPolicy, SSVCContext, decide, decision_table

NOW = datetime(2024, 3, 10, tzinfo=timezone.utc)


@pytest.fixture
def sample_diff():
    """Create a sample diff result for testing."""
    return DiffResult(
        added=[
            DiffComponent(
                name="pyyaml",
                version="5.3",
                license="MIT",
                vulnerabilities=[Vulnerability(id="CVE-2020-14343", severity=Severity.CRITICAL)],
            )
        ],
        removed=[DiffComponent(name="six", version="1.16.0")],
        updated=[
            DiffUpdated(
                name="django",
                old_version="3.2.0",
                new_version="4.2.0",
                vulnerabilities_fixed=["CVE-2023-0001"],
            )
        ],
        new_vulnerabilities=[
            DiffVulnerability(cve_id="CVE-2020-14343", severity="CRITICAL", component="pyyaml", version="5.3"),
            DiffVulnerability(cve_id="CVE-2024-0200", severity="LOW", component="django", version="4.2.0"),
        ],
    )


@pytest.fixture
def sample_context():
    return SSVCContext.from_dict(
        {
            "exploitation": "active",
            "automatable": "yes",
            "technical_impact": "total",
            "mission_prevalence": "essential",
            "safety_impact": "significant",
        }
    )


@pytest.fixture
def sample_summary():
    events = [
        ResolutionEvent(Severity.HIGH, NOW - timedelta(days=3), NOW - timedelta(days=2)),
        ResolutionEvent(Severity.CRITICAL, NOW - timedelta(days=1)),
    ]
    return aggregate(events, window_days=7, now=NOW)


class TestJSONReporter:
    """Tests for JSON reporter."""

    def test_diff(self, sample_diff):
        data = json.loads(JSONReporter().generate(sample_diff))

        assert data["summary"]["added_count"] == 1
        assert data["summary"]["new_vulnerabilities_count"] == 2
        assert data["added"][0]["license"] == "MIT"
        assert data["updated"][0]["vulnerabilities_fixed"] == ["CVE-2023-0001"]

    def test_decision(self, sample_context):
        report = DecisionReport(context=sample_context, decision=decide(sample_context))
        assert json.loads(JSONReporter().generate(report)) == {"decision": "immediate"}

    def test_decision_table(self):
        report = DecisionTableReport(DecisionPolicy.CONSERVATIVE, decision_table(DecisionPolicy.CONSERVATIVE))
        data = json.loads(JSONReporter().generate(report))

        assert data["policy"] == "conservative"
        assert len(data["rows"]) == 72
        assert set(data["rows"][0]) == {
            "exploitation",
            "automatable",
            "technical_impact",
            "mission_prevalence",
            "safety_impact",
            "decision",
        }

    def test_analytics(self, sample_summary):
        data = json.loads(JSONReporter().generate(sample_summary))

        assert data["period"] == 7
        assert data["summary"]["total_open_vulnerabilities"] == 1
        assert {"mttr", "vulnerability_trend", "slo_achievement", "compliance_trend", "summary"} <= set(data)

    def test_indent(self, sample_diff):
        assert "\n    " in JSONReporter(indent=4).generate(sample_diff)


class TestTableReporter:
    """Tests for table reporter."""

    def test_diff(self, sample_diff):
        output = TableReporter().generate(sample_diff)

        assert "SBOM Diff Summary" in output
        assert "pyyaml" in output
        assert "six" in output
        assert "CVE-2023-0001" in output
        assert "CVE-2020-14343" in output

    def test_new_vulnerabilities_most_severe_first(self, sample_diff):
        output = TableReporter().generate(sample_diff)
        section = output[output.index("New Vulnerabilities"):]

        assert section.index("CVE-2020-14343") < section.index("CVE-2024-0200")

    def test_empty_diff(self):
        output = TableReporter().generate(DiffResult())

        assert "SBOM Diff Summary" in output
        assert "Component Changes" not in output

    def test_decision(self, sample_context):
        report = DecisionReport(context=sample_context, decision=decide(sample_context))
        output = TableReporter().generate(report)

        assert "immediate" in output
        assert "deployer" in output

    def test_decision_table(self):
        output = TableReporter().generate(DecisionTableReport(DecisionPolicy.DEPLOYER, decision_table()))
        assert "out_of_cycle" in output

    def test_analytics(self, sample_summary):
        output = TableReporter().generate(sample_summary)

        assert "Remediation Analytics" in output
        assert "MTTR and SLO by Severity" in output
        assert "24.0h" in output

    def test_unsupported_result(self):
        with pytest.raises(TypeError):
            TableReporter().generate({"decision": "defer"})


class TestCreateReporter:
    """Tests for reporter factory."""

    def test_create_json_reporter(self):
        assert isinstance(create_reporter("json"), JSONReporter)

    def test_create_table_reporter(self):
        assert isinstance(create_reporter("table"), TableReporter)

    def test_invalid_format(self):
        with pytest.raises(ValueError):
            create_reporter("sarif")
