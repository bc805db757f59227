"""Build and update SSVC assessment records."""

import dataclasses
import logging
from datetime import datetime, timezone
from typing import Iterable, Optional

from sbomhub.ssvc.auto import ThreatSignals, auto_context
from sbomhub.ssvc.engine import DecisionPolicy, decide
from sbomhub.ssvc.models import (
    Assessment,
    AssessmentHistory,
    ProjectDefaults,
    SSVCContext,
    SSVCDecision,
    SSVCSummary,
)

logger = logging.getLogger(__name__)

AUTO_ASSESS_NOTE = "Auto-assessed based on KEV/EPSS data"


def assess(
    project_id: str,
    vulnerability_id: str,
    cve_id: str,
    context: SSVCContext,
    notes: str = "",
    assessed_by: Optional[str] = None,
    policy: DecisionPolicy = DecisionPolicy.DEPLOYER,
    now: Optional[datetime] = None,
) -> Assessment:
    """Create a manual assessment."""
    return Assessment(
        project_id=project_id,
        vulnerability_id=vulnerability_id,
        cve_id=cve_id,
        context=context,
        decision=decide(context, policy),
        assessed_by=assessed_by,
        assessed_at=now or datetime.now(timezone.utc),
        notes=notes,
    )


def reassess(
    existing: Assessment,
    context: SSVCContext,
    notes: str = "",
    assessed_by: Optional[str] = None,
    policy: DecisionPolicy = DecisionPolicy.DEPLOYER,
    now: Optional[datetime] = None,
) -> tuple[Assessment, AssessmentHistory]:
    """Replace an assessment with a manual one and record the change.

    The existing assessment is left untouched; the returned assessment
    keeps its id.
    """
    now = now or datetime.now(timezone.utc)
    decision = decide(context, policy)

    history = AssessmentHistory(
        assessment_id=existing.id,
        prev_context=existing.context,
        prev_decision=existing.decision,
        new_context=context,
        new_decision=decision,
        changed_by=assessed_by,
        changed_at=now,
    )
    updated = dataclasses.replace(
        existing,
        context=context,
        decision=decision,
        exploitation_auto=False,
        automatable_auto=False,
        assessed_by=assessed_by,
        assessed_at=now,
        notes=notes,
    )
    if decision is not existing.decision:
        logger.info(
            f"{existing.cve_id} reassessed: {existing.decision.value} -> {decision.value}"
        )
    return updated, history


def auto_assess(
    project_id: str,
    vulnerability_id: str,
    cve_id: str,
    signals: ThreatSignals,
    defaults: Optional[ProjectDefaults] = None,
    existing: Optional[Assessment] = None,
    policy: DecisionPolicy = DecisionPolicy.DEPLOYER,
    now: Optional[datetime] = None,
) -> Assessment:
    """Assess a vulnerability from threat signals.

    A manual assessment already on record is returned unchanged.
    """
    if existing is not None and existing.is_manual:
        logger.debug(f"Keeping manual assessment for {cve_id}")
        return existing

    derived = auto_context(signals, defaults)
    assessment = Assessment(
        project_id=project_id,
        vulnerability_id=vulnerability_id,
        cve_id=cve_id,
        context=derived.context,
        decision=decide(derived.context, policy),
        exploitation_auto=derived.exploitation_auto,
        automatable_auto=derived.automatable_auto,
        assessed_at=now or datetime.now(timezone.utc),
        notes=AUTO_ASSESS_NOTE,
    )
    if existing is not None:
        assessment.id = existing.id
    return assessment


def summarize_assessments(
    decisions: Iterable["Assessment | SSVCDecision"],
    total_vulnerabilities: Optional[int] = None,
) -> SSVCSummary:
    """Count assessments per decision.

    Args:
        decisions: Assessments or bare decisions.
        total_vulnerabilities: Number of vulnerabilities in scope; when
            given, the remainder is reported as unassessed.
    """
    summary = SSVCSummary()
    for item in decisions:
        decision = item.decision if isinstance(item, Assessment) else item
        setattr(summary, decision.value, summary.count(decision) + 1)

    if total_vulnerabilities is not None:
        summary.unassessed = max(total_vulnerabilities - summary.total_assessed, 0)
    return summary
