"""SSVC (Stakeholder-Specific Vulnerability Categorization) triage module."""

from sbomhub.ssvc.assessment import assess, auto_assess, reassess, summarize_assessments
from sbomhub.ssvc.auto import AutoContext, ThreatSignals, auto_context
from sbomhub.ssvc.engine import DecisionPolicy, all_contexts, decide, decision_table
from sbomhub.ssvc.models import (
    Assessment,
    AssessmentHistory,
    Automatable,
    Exploitation,
    MissionPrevalence,
    ProjectDefaults,
    SafetyImpact,
    SSVCContext,
    SSVCDecision,
    SSVCSummary,
    TechnicalImpact,
)

__all__ = [
    "Assessment",
    "AssessmentHistory",
    "AutoContext",
    "Automatable",
    "DecisionPolicy",
    "Exploitation",
    "MissionPrevalence",
    "ProjectDefaults",
    "SafetyImpact",
    "SSVCContext",
    "SSVCDecision",
    "SSVCSummary",
    "TechnicalImpact",
    "ThreatSignals",
    "all_contexts",
    "assess",
    "auto_assess",
    "auto_context",
    "decide",
    "decision_table",
    "reassess",
    "summarize_assessments",
]
