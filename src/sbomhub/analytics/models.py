"""Data models for remediation analytics."""

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Optional

from sbomhub.models import RATED_SEVERITIES, Severity, ValidationError
from sbomhub.ssvc.models import SSVCDecision, SSVCSummary

# Default remediation targets in hours
DEFAULT_SLO_HOURS = {
    Severity.CRITICAL: 24,
    Severity.HIGH: 168,
    Severity.MEDIUM: 720,
    Severity.LOW: 2160,
}


def as_utc(value: datetime) -> datetime:
    """Return an aware UTC datetime; naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_timestamp(value: "str | datetime | None", field_name: str) -> Optional[datetime]:
    """Parse an ISO 8601 timestamp (``Z`` suffix allowed)."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return as_utc(value)
    if not isinstance(value, str):
        raise ValidationError(field_name, value)
    text = value.strip()
    if text.endswith("Z") or text.endswith("z"):
        text = text[:-1] + "+00:00"
    try:
        return as_utc(datetime.fromisoformat(text))
    except ValueError:
        raise ValidationError(field_name, value, f"invalid timestamp for '{field_name}': {value!r}") from None


@dataclass
class SLOTargets:
    """Remediation target hours per severity."""

    hours: dict[Severity, int] = field(default_factory=lambda: dict(DEFAULT_SLO_HOURS))

    def __post_init__(self) -> None:
        for severity, target in self.hours.items():
            if severity not in RATED_SEVERITIES:
                raise ValidationError("slo_targets", severity.value, f"no SLO target allowed for {severity.value}")
            if isinstance(target, bool) or not isinstance(target, int) or target <= 0:
                raise ValidationError(
                    f"slo_targets.{severity.value}", target, "target hours must be a positive integer"
                )

    def target_hours(self, severity: Severity) -> Optional[int]:
        """Target for a severity, or None when it has none."""
        return self.hours.get(severity)

    @classmethod
    def from_dict(cls, data: dict) -> "SLOTargets":
        """Create targets from a severity -> hours mapping.

        Missing severities keep their default target.
        """
        hours = dict(DEFAULT_SLO_HOURS)
        for key, value in (data or {}).items():
            hours[Severity.parse(key, field="slo_targets")] = value
        return cls(hours=hours)

    def to_dict(self) -> dict:
        """Convert to dictionary representation."""
        return {s.value: self.hours[s] for s in RATED_SEVERITIES if s in self.hours}


@dataclass(frozen=True)
class ResolutionEvent:
    """Detection and (optional) resolution of a vulnerability."""

    severity: Severity
    detected_at: datetime
    resolved_at: Optional[datetime] = None
    cve_id: str = ""
    project_id: Optional[str] = None
    resolution_type: Optional[str] = None

    def __post_init__(self) -> None:
        if self.resolved_at is not None and as_utc(self.resolved_at) < as_utc(self.detected_at):
            raise ValidationError(
                "resolved_at", self.resolved_at, "'resolved_at' precedes 'detected_at'"
            )

    @property
    def is_resolved(self) -> bool:
        return self.resolved_at is not None

    @property
    def hours_to_resolve(self) -> Optional[float]:
        """Elapsed hours between detection and resolution."""
        if self.resolved_at is None:
            return None
        delta = as_utc(self.resolved_at) - as_utc(self.detected_at)
        return delta.total_seconds() / 3600

    @classmethod
    def from_dict(cls, data: dict) -> "ResolutionEvent":
        """Create an event from dictionary data."""
        detected_at = parse_timestamp(data.get("detected_at"), "detected_at")
        if detected_at is None:
            raise ValidationError("detected_at", None, "'detected_at' is required")
        resolved_at = parse_timestamp(data.get("resolved_at"), "resolved_at")

        return cls(
            severity=Severity.parse(data.get("severity", "")),
            detected_at=detected_at,
            resolved_at=resolved_at,
            cve_id=data.get("cve_id", ""),
            project_id=data.get("project_id"),
            resolution_type=data.get("resolution_type"),
        )


@dataclass(frozen=True)
class TimedDecision:
    """An SSVC decision and when it was made."""

    decision: SSVCDecision
    decided_at: datetime

    @classmethod
    def from_dict(cls, data: dict) -> "TimedDecision":
        """Create from dictionary data (``decided_at`` or ``assessed_at``)."""
        raw = data.get("decision")
        try:
            decision = SSVCDecision(str(raw).strip().lower())
        except ValueError:
            raise ValidationError("decision", raw) from None
        decided_at = parse_timestamp(data.get("decided_at") or data.get("assessed_at"), "decided_at")
        if decided_at is None:
            raise ValidationError("decided_at", None, "'decided_at' is required")
        return cls(decision=decision, decided_at=decided_at)


@dataclass(frozen=True)
class ComplianceSnapshot:
    """A daily compliance score."""

    snapshot_date: date
    overall_score: int
    max_score: int
    sbom_generation_score: int = 0
    vulnerability_management_score: int = 0
    license_management_score: int = 0

    @classmethod
    def from_dict(cls, data: dict) -> "ComplianceSnapshot":
        """Create from dictionary data."""
        raw_date = data.get("snapshot_date") or data.get("date")
        try:
            snapshot_date = date.fromisoformat(str(raw_date)[:10])
        except ValueError:
            raise ValidationError("snapshot_date", raw_date) from None
        return cls(
            snapshot_date=snapshot_date,
            overall_score=int(data.get("overall_score", data.get("score", 0))),
            max_score=int(data.get("max_score", 0)),
            sbom_generation_score=int(data.get("sbom_generation_score", 0)),
            vulnerability_management_score=int(data.get("vulnerability_management_score", 0)),
            license_management_score=int(data.get("license_management_score", 0)),
        )


@dataclass
class MTTRResult:
    """Mean time to remediate for one severity.

    ``mttr_hours`` is None when nothing of that severity was resolved,
    which is distinct from a mean of zero hours.
    """

    severity: Severity
    mttr_hours: Optional[float]
    count: int
    target_hours: Optional[int]

    @property
    def on_target(self) -> Optional[bool]:
        if self.mttr_hours is None or self.target_hours is None:
            return None
        return self.mttr_hours <= self.target_hours

    def to_dict(self) -> dict:
        """Convert to dictionary representation."""
        return {
            "severity": self.severity.value,
            "mttr_hours": self.mttr_hours,
            "count": self.count,
            "target_hours": self.target_hours,
            "on_target": self.on_target,
        }


@dataclass
class SLOAchievement:
    """Share of resolved events that met the severity's target."""

    severity: Severity
    total_count: int
    on_target_count: int
    target_hours: Optional[int]
    average_mttr_hours: Optional[float] = None

    @property
    def achievement_pct(self) -> float:
        if self.total_count == 0:
            return 0.0
        return self.on_target_count / self.total_count * 100

    def to_dict(self) -> dict:
        """Convert to dictionary representation."""
        return {
            "severity": self.severity.value,
            "total_count": self.total_count,
            "on_target_count": self.on_target_count,
            "achievement_pct": self.achievement_pct,
            "target_hours": self.target_hours,
            "average_mttr_hours": self.average_mttr_hours,
        }


@dataclass
class VulnerabilityTrendPoint:
    """Detections per severity and resolutions on one calendar day."""

    date: date
    critical: int = 0
    high: int = 0
    medium: int = 0
    low: int = 0
    resolved: int = 0

    @property
    def total(self) -> int:
        return self.critical + self.high + self.medium + self.low

    def to_dict(self) -> dict:
        """Convert to dictionary representation."""
        return {
            "date": self.date.isoformat(),
            "critical": self.critical,
            "high": self.high,
            "medium": self.medium,
            "low": self.low,
            "total": self.total,
            "resolved": self.resolved,
        }


@dataclass
class ComplianceTrendPoint:
    """Compliance score on one day."""

    date: date
    score: int
    max_score: int
    sbom_score: int = 0
    vulnerability_score: int = 0
    license_score: int = 0

    @property
    def percentage(self) -> float:
        if self.max_score == 0:
            return 0.0
        return self.score / self.max_score * 100

    def to_dict(self) -> dict:
        """Convert to dictionary representation."""
        return {
            "date": self.date.isoformat(),
            "score": self.score,
            "max_score": self.max_score,
            "percentage": self.percentage,
            "sbom_score": self.sbom_score,
            "vulnerability_score": self.vulnerability_score,
            "license_score": self.license_score,
        }


@dataclass
class QuickStats:
    """Headline numbers for the analytics dashboard."""

    total_open_vulnerabilities: int = 0
    resolved_in_period: int = 0
    average_mttr_hours: Optional[float] = None
    overall_slo_achievement_pct: float = 0.0
    current_compliance_score: int = 0
    compliance_max_score: int = 0

    def to_dict(self) -> dict:
        """Convert to dictionary representation."""
        return {
            "total_open_vulnerabilities": self.total_open_vulnerabilities,
            "resolved_in_period": self.resolved_in_period,
            "average_mttr_hours": self.average_mttr_hours,
            "overall_slo_achievement_pct": self.overall_slo_achievement_pct,
            "current_compliance_score": self.current_compliance_score,
            "compliance_max_score": self.compliance_max_score,
        }


@dataclass
class AnalyticsSummary:
    """Complete analytics dashboard response."""

    period: int
    mttr: list[MTTRResult] = field(default_factory=list)
    vulnerability_trend: list[VulnerabilityTrendPoint] = field(default_factory=list)
    slo_achievement: list[SLOAchievement] = field(default_factory=list)
    compliance_trend: list[ComplianceTrendPoint] = field(default_factory=list)
    ssvc: SSVCSummary = field(default_factory=SSVCSummary)
    summary: QuickStats = field(default_factory=QuickStats)

    def mttr_for(self, severity: Severity) -> Optional[MTTRResult]:
        """Return the MTTR entry of a severity."""
        return next((m for m in self.mttr if m.severity is severity), None)

    def slo_for(self, severity: Severity) -> Optional[SLOAchievement]:
        """Return the SLO achievement entry of a severity."""
        return next((s for s in self.slo_achievement if s.severity is severity), None)

    def to_dict(self) -> dict:
        """Convert to the analytics API response shape."""
        return {
            "period": self.period,
            "mttr": [m.to_dict() for m in self.mttr],
            "vulnerability_trend": [p.to_dict() for p in self.vulnerability_trend],
            "slo_achievement": [s.to_dict() for s in self.slo_achievement],
            "compliance_trend": [p.to_dict() for p in self.compliance_trend],
            "ssvc": self.ssvc.to_dict(),
            "summary": self.summary.to_dict(),
        }
