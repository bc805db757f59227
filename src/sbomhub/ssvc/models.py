"""Data models for SSVC vulnerability triage."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Type

from sbomhub.models import ValidationError


class Exploitation(Enum):
    """Evidence of exploitation."""

    NONE = "none"
    POC = "poc"
    ACTIVE = "active"


class Automatable(Enum):
    """Whether exploitation can be automated."""

    YES = "yes"
    NO = "no"


class TechnicalImpact(Enum):
    """Scope of control an exploit grants."""

    PARTIAL = "partial"
    TOTAL = "total"


class MissionPrevalence(Enum):
    """How central the affected system is to the mission."""

    MINIMAL = "minimal"
    SUPPORT = "support"
    ESSENTIAL = "essential"


class SafetyImpact(Enum):
    """Safety consequences of exploitation."""

    MINIMAL = "minimal"
    SIGNIFICANT = "significant"


class SSVCDecision(Enum):
    """Remediation urgency outcomes, least to most urgent."""

    DEFER = "defer"
    SCHEDULED = "scheduled"
    OUT_OF_CYCLE = "out_of_cycle"
    IMMEDIATE = "immediate"


# Field name -> enum, in decision-point order
FACTORS: dict[str, Type[Enum]] = {
    "exploitation": Exploitation,
    "automatable": Automatable,
    "technical_impact": TechnicalImpact,
    "mission_prevalence": MissionPrevalence,
    "safety_impact": SafetyImpact,
}


def parse_factor(name: str, value: object) -> Enum:
    """Parse one decision point value.

    Raises:
        ValidationError: If the value is missing or outside the domain.
    """
    enum_cls = FACTORS[name]
    if isinstance(value, enum_cls):
        return value
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(name, value, f"'{name}' is required")
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValidationError(name, value, f"invalid value for '{name}': {value!r} (expected one of: {allowed})") from None


@dataclass(frozen=True)
class SSVCContext:
    """The five decision points of a vulnerability in context."""

    exploitation: Exploitation
    automatable: Automatable
    technical_impact: TechnicalImpact
    mission_prevalence: MissionPrevalence
    safety_impact: SafetyImpact

    @classmethod
    def from_dict(cls, data: dict) -> "SSVCContext":
        """Validate and build a context from raw request data.

        No defaults are substituted: every factor must be present.
        """
        if not isinstance(data, dict):
            raise ValidationError("context", data, "SSVC context must be an object")
        return cls(**{name: parse_factor(name, data.get(name)) for name in FACTORS})

    def to_dict(self) -> dict:
        """Convert to dictionary representation."""
        return {name: getattr(self, name).value for name in FACTORS}


@dataclass
class ProjectDefaults:
    """Project-level values used when auto-assessing."""

    mission_prevalence: MissionPrevalence = MissionPrevalence.SUPPORT
    safety_impact: SafetyImpact = SafetyImpact.MINIMAL
    epss_automatable_threshold: float = 0.5
    cvss_total_impact_threshold: float = 7.0

    @classmethod
    def from_dict(cls, data: dict) -> "ProjectDefaults":
        """Create defaults from a configuration mapping."""
        return cls(
            mission_prevalence=parse_factor(
                "mission_prevalence", data.get("mission_prevalence", "support")
            ),
            safety_impact=parse_factor("safety_impact", data.get("safety_impact", "minimal")),
            epss_automatable_threshold=float(data.get("epss_automatable_threshold", 0.5)),
            cvss_total_impact_threshold=float(data.get("cvss_total_impact_threshold", 7.0)),
        )

    def to_dict(self) -> dict:
        """Convert to dictionary representation."""
        return {
            "mission_prevalence": self.mission_prevalence.value,
            "safety_impact": self.safety_impact.value,
            "epss_automatable_threshold": self.epss_automatable_threshold,
            "cvss_total_impact_threshold": self.cvss_total_impact_threshold,
        }


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Assessment:
    """A decision recorded for one vulnerability in one project."""

    project_id: str
    vulnerability_id: str
    cve_id: str
    context: SSVCContext
    decision: SSVCDecision
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    exploitation_auto: bool = False
    automatable_auto: bool = False
    assessed_by: Optional[str] = None
    assessed_at: datetime = field(default_factory=_now)
    notes: str = ""

    @property
    def is_manual(self) -> bool:
        """True when no factor was filled in automatically."""
        return not (self.exploitation_auto or self.automatable_auto)

    def to_dict(self) -> dict:
        """Convert to the assess API response shape, echoing the inputs."""
        data = {
            "id": self.id,
            "project_id": self.project_id,
            "vulnerability_id": self.vulnerability_id,
            "cve_id": self.cve_id,
            **self.context.to_dict(),
            "decision": self.decision.value,
            "exploitation_auto": self.exploitation_auto,
            "automatable_auto": self.automatable_auto,
            "assessed_at": self.assessed_at.isoformat(),
        }
        if self.assessed_by:
            data["assessed_by"] = self.assessed_by
        if self.notes:
            data["notes"] = self.notes
        return data


@dataclass
class AssessmentHistory:
    """A change from one assessment state to the next."""

    assessment_id: str
    new_context: SSVCContext
    new_decision: SSVCDecision
    prev_context: Optional[SSVCContext] = None
    prev_decision: Optional[SSVCDecision] = None
    changed_by: Optional[str] = None
    changed_at: datetime = field(default_factory=_now)
    change_reason: str = ""
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def to_dict(self) -> dict:
        """Convert to dictionary representation."""
        data: dict = {
            "id": self.id,
            "assessment_id": self.assessment_id,
            "changed_at": self.changed_at.isoformat(),
        }
        if self.prev_context is not None:
            for name, value in self.prev_context.to_dict().items():
                data[f"prev_{name}"] = value
        if self.prev_decision is not None:
            data["prev_decision"] = self.prev_decision.value
        for name, value in self.new_context.to_dict().items():
            data[f"new_{name}"] = value
        data["new_decision"] = self.new_decision.value
        if self.changed_by:
            data["changed_by"] = self.changed_by
        if self.change_reason:
            data["change_reason"] = self.change_reason
        return data


@dataclass
class SSVCSummary:
    """Counts of assessments per decision."""

    immediate: int = 0
    out_of_cycle: int = 0
    scheduled: int = 0
    defer: int = 0
    unassessed: int = 0

    @property
    def total_assessed(self) -> int:
        return self.immediate + self.out_of_cycle + self.scheduled + self.defer

    def count(self, decision: SSVCDecision) -> int:
        """Return the count for one decision."""
        return getattr(self, decision.value)

    def to_dict(self) -> dict:
        """Convert to dictionary representation."""
        return {
            "total_assessed": self.total_assessed,
            "immediate": self.immediate,
            "out_of_cycle": self.out_of_cycle,
            "scheduled": self.scheduled,
            "defer": self.defer,
            "unassessed": self.unassessed,
        }
