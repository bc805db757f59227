"""Tests for SSVC auto-assessment and assessment records."""

from datetime import datetime, timezone

import pytest

from sbomhub.ssvc import (
    Automatable,
    Exploitation,
    MissionPrevalence,
    ProjectDefaults,
    SafetyImpact,
    SSVCContext,
    SSVCDecision,
    TechnicalImpact,
    ThreatSignals,
    assess,
    auto_assess,
    auto_context,
    reassess,
    summarize_assessments,
)
from sbomhub.ssvc.assessment import AUTO_ASSESS_NOTE

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def critical_context():
    return SSVCContext(
        exploitation=Exploitation.ACTIVE,
        automatable=Automatable.YES,
        technical_impact=TechnicalImpact.TOTAL,
        mission_prevalence=MissionPrevalence.ESSENTIAL,
        safety_impact=SafetyImpact.SIGNIFICANT,
    )


@pytest.fixture
def minimal_context():
    return SSVCContext(
        exploitation=Exploitation.NONE,
        automatable=Automatable.NO,
        technical_impact=TechnicalImpact.PARTIAL,
        mission_prevalence=MissionPrevalence.MINIMAL,
        safety_impact=SafetyImpact.MINIMAL,
    )


class TestAutoContext:
    """Tests for deriving a context from threat signals."""

    def test_kev_means_active(self):
        derived = auto_context(ThreatSignals(in_kev=True))

        assert derived.context.exploitation is Exploitation.ACTIVE
        assert derived.exploitation_auto is True

    def test_not_in_kev_means_none(self):
        derived = auto_context(ThreatSignals())

        assert derived.context.exploitation is Exploitation.NONE
        assert derived.exploitation_auto is False

    def test_epss_threshold_is_strict(self):
        assert auto_context(ThreatSignals(epss_score=0.5)).context.automatable is Automatable.NO
        derived = auto_context(ThreatSignals(epss_score=0.51))

        assert derived.context.automatable is Automatable.YES
        assert derived.automatable_auto is True

    def test_cvss_threshold_is_inclusive(self):
        assert auto_context(ThreatSignals(cvss_score=7.0)).context.technical_impact is TechnicalImpact.TOTAL
        assert auto_context(ThreatSignals(cvss_score=6.9)).context.technical_impact is TechnicalImpact.PARTIAL
        assert auto_context(ThreatSignals()).context.technical_impact is TechnicalImpact.PARTIAL

    def test_project_defaults_fill_mission_and_safety(self):
        defaults = ProjectDefaults(
            mission_prevalence=MissionPrevalence.ESSENTIAL,
            safety_impact=SafetyImpact.SIGNIFICANT,
            epss_automatable_threshold=0.1,
        )
        derived = auto_context(ThreatSignals(epss_score=0.2), defaults)

        assert derived.context.mission_prevalence is MissionPrevalence.ESSENTIAL
        assert derived.context.safety_impact is SafetyImpact.SIGNIFICANT
        assert derived.context.automatable is Automatable.YES


class TestAutoAssess:
    """Tests for auto_assess."""

    def test_kev_critical(self):
        assessment = auto_assess(
            "proj",
            "vuln-1",
            "CVE-2024-3400",
            ThreatSignals(in_kev=True, epss_score=0.97, cvss_score=10.0),
            now=NOW,
        )

        # support mission, minimal safety, total impact
        assert assessment.decision is SSVCDecision.OUT_OF_CYCLE
        assert assessment.notes == AUTO_ASSESS_NOTE
        assert assessment.assessed_at == NOW
        assert not assessment.is_manual

    def test_no_signals_defers(self):
        defaults = ProjectDefaults(mission_prevalence=MissionPrevalence.MINIMAL)
        assessment = auto_assess("proj", "vuln-1", "CVE-1", ThreatSignals(), defaults, now=NOW)

        assert assessment.decision is SSVCDecision.DEFER

    def test_manual_assessment_kept(self, minimal_context):
        manual = assess("proj", "vuln-1", "CVE-1", minimal_context, notes="reviewed", now=NOW)
        result = auto_assess("proj", "vuln-1", "CVE-1", ThreatSignals(in_kev=True), existing=manual)

        assert result is manual
        assert result.decision is SSVCDecision.DEFER

    def test_auto_assessment_refreshed_in_place(self):
        first = auto_assess("proj", "vuln-1", "CVE-1", ThreatSignals(epss_score=0.9), now=NOW)
        second = auto_assess("proj", "vuln-1", "CVE-1", ThreatSignals(in_kev=True), existing=first, now=NOW)

        assert second.id == first.id
        assert second.context.exploitation is Exploitation.ACTIVE


class TestAssess:
    """Tests for manual assessments."""

    def test_assess(self, critical_context):
        assessment = assess("proj", "vuln-1", "CVE-1", critical_context, notes="exposed", assessed_by="alice", now=NOW)

        assert assessment.decision is SSVCDecision.IMMEDIATE
        assert assessment.is_manual

    def test_to_dict_echoes_inputs(self, critical_context):
        data = assess("proj", "vuln-1", "CVE-1", critical_context, notes="exposed", now=NOW).to_dict()

        assert data["decision"] == "immediate"
        assert data["exploitation"] == "active"
        assert data["safety_impact"] == "significant"
        assert data["notes"] == "exposed"
        assert data["id"]

    def test_reassess_records_history(self, critical_context, minimal_context):
        original = assess("proj", "vuln-1", "CVE-1", critical_context, now=NOW)
        updated, history = reassess(original, minimal_context, notes="mitigated", assessed_by="bob", now=NOW)

        assert updated.id == original.id
        assert updated.decision is SSVCDecision.DEFER
        assert original.decision is SSVCDecision.IMMEDIATE
        assert history.assessment_id == original.id
        assert history.prev_decision is SSVCDecision.IMMEDIATE
        assert history.new_decision is SSVCDecision.DEFER
        assert history.changed_by == "bob"

    def test_reassess_makes_manual(self, minimal_context):
        auto = auto_assess("proj", "vuln-1", "CVE-1", ThreatSignals(in_kev=True), now=NOW)
        updated, _ = reassess(auto, minimal_context, now=NOW)

        assert updated.is_manual

    def test_history_to_dict(self, critical_context, minimal_context):
        original = assess("proj", "vuln-1", "CVE-1", critical_context, now=NOW)
        _, history = reassess(original, minimal_context, now=NOW)
        data = history.to_dict()

        assert data["prev_decision"] == "immediate"
        assert data["new_decision"] == "defer"
        assert data["prev_exploitation"] == "active"
        assert data["new_exploitation"] == "none"


class TestSummarize:
    """Tests for summarize_assessments."""

    def test_counts(self, critical_context, minimal_context):
        assessments = [
            assess("p", "v1", "CVE-1", critical_context),
            assess("p", "v2", "CVE-2", minimal_context),
            assess("p", "v3", "CVE-3", minimal_context),
        ]
        summary = summarize_assessments(assessments, total_vulnerabilities=5)

        assert summary.immediate == 1
        assert summary.defer == 2
        assert summary.total_assessed == 3
        assert summary.unassessed == 2

    def test_bare_decisions(self):
        summary = summarize_assessments([SSVCDecision.SCHEDULED, SSVCDecision.OUT_OF_CYCLE])

        assert summary.scheduled == 1
        assert summary.out_of_cycle == 1
        assert summary.unassessed == 0

    def test_unassessed_never_negative(self):
        summary = summarize_assessments([SSVCDecision.DEFER, SSVCDecision.DEFER], total_vulnerabilities=1)
        assert summary.unassessed == 0
