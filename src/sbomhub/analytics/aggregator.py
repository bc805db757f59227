"""Risk analytics: MTTR, SLO achievement and trend series."""

import logging
from datetime import date, datetime, timedelta, timezone
from typing import Iterable, Optional

from sbomhub.analytics.models import (
    AnalyticsSummary,
    ComplianceSnapshot,
    ComplianceTrendPoint,
    MTTRResult,
    QuickStats,
    ResolutionEvent,
    SLOAchievement,
    SLOTargets,
    TimedDecision,
    VulnerabilityTrendPoint,
    as_utc,
)
from sbomhub.models import RATED_SEVERITIES, Severity, ValidationError
from sbomhub.ssvc.assessment import summarize_assessments
from sbomhub.ssvc.models import Assessment, SSVCSummary

logger = logging.getLogger(__name__)

DEFAULT_PERIOD_DAYS = 30
MAX_PERIOD_DAYS = 365


def validate_period_days(
    days: Optional[int],
    default: int = DEFAULT_PERIOD_DAYS,
    maximum: int = MAX_PERIOD_DAYS,
) -> int:
    """Validate an analytics window length.

    Raises:
        ValidationError: If days is not an integer between 1 and maximum.
    """
    if days is None:
        return default
    if isinstance(days, bool) or not isinstance(days, int) or not 1 <= days <= maximum:
        raise ValidationError(
            "period_days", days, f"period_days must be an integer between 1 and {maximum}"
        )
    return days


class RiskAnalyticsAggregator:
    """Aggregate resolution events and SSVC decisions over a trailing window.

    Every method takes ``now`` explicitly (defaulting to the current time)
    so that results depend only on the inputs.
    """

    def __init__(
        self,
        slo_targets: Optional[SLOTargets] = None,
        max_period_days: int = MAX_PERIOD_DAYS,
    ) -> None:
        self.slo_targets = slo_targets or SLOTargets()
        self.max_period_days = max_period_days

    def aggregate(
        self,
        events: Iterable[ResolutionEvent],
        decisions: Iterable["TimedDecision | Assessment"] = (),
        window_days: int = DEFAULT_PERIOD_DAYS,
        compliance: Iterable[ComplianceSnapshot] = (),
        now: Optional[datetime] = None,
    ) -> AnalyticsSummary:
        """Build the full analytics summary for a window.

        Raises:
            ValidationError: If window_days is outside 1..max_period_days.
        """
        window_days = validate_period_days(window_days, maximum=self.max_period_days)
        now = as_utc(now) if now else datetime.now(timezone.utc)
        events = list(events)
        compliance = list(compliance)

        resolved = self._resolved_in_window(events, window_days, now)
        mttr = self.mttr(events, window_days, now)
        slo = self.slo_achievement(events, window_days, now)

        stats = QuickStats(
            total_open_vulnerabilities=sum(1 for e in events if self._is_open(e, now)),
            resolved_in_period=len(resolved),
            average_mttr_hours=_mean([e.hours_to_resolve for e in resolved]),
        )

        rated_total = sum(s.total_count for s in slo)
        if rated_total:
            stats.overall_slo_achievement_pct = (
                sum(s.on_target_count for s in slo) / rated_total * 100
            )

        if compliance:
            latest = max(compliance, key=lambda s: s.snapshot_date)
            stats.current_compliance_score = latest.overall_score
            stats.compliance_max_score = latest.max_score

        summary = AnalyticsSummary(
            period=window_days,
            mttr=mttr,
            vulnerability_trend=self.vulnerability_trend(events, window_days, now),
            slo_achievement=slo,
            compliance_trend=self.compliance_trend(compliance, window_days, now),
            ssvc=self.decision_summary(decisions, window_days, now),
            summary=stats,
        )
        logger.debug(
            f"Aggregated {len(events)} events over {window_days} days: "
            f"{stats.resolved_in_period} resolved, {stats.total_open_vulnerabilities} open"
        )
        return summary

    def mttr(
        self,
        events: Iterable[ResolutionEvent],
        window_days: int = DEFAULT_PERIOD_DAYS,
        now: Optional[datetime] = None,
    ) -> list[MTTRResult]:
        """Mean hours to resolve per severity, for events resolved in the window."""
        now = as_utc(now) if now else datetime.now(timezone.utc)
        by_severity = self._group(self._resolved_in_window(events, window_days, now))

        return [
            MTTRResult(
                severity=severity,
                mttr_hours=_mean(by_severity[severity]),
                count=len(by_severity[severity]),
                target_hours=self.slo_targets.target_hours(severity),
            )
            for severity in RATED_SEVERITIES
        ]

    def slo_achievement(
        self,
        events: Iterable[ResolutionEvent],
        window_days: int = DEFAULT_PERIOD_DAYS,
        now: Optional[datetime] = None,
    ) -> list[SLOAchievement]:
        """Percentage of resolved events meeting their severity target."""
        now = as_utc(now) if now else datetime.now(timezone.utc)
        by_severity = self._group(self._resolved_in_window(events, window_days, now))

        results = []
        for severity in RATED_SEVERITIES:
            hours = by_severity[severity]
            target = self.slo_targets.target_hours(severity)
            on_target = sum(1 for h in hours if target is not None and h <= target)
            results.append(
                SLOAchievement(
                    severity=severity,
                    total_count=len(hours),
                    on_target_count=on_target,
                    target_hours=target,
                    average_mttr_hours=_mean(hours),
                )
            )
        return results

    def vulnerability_trend(
        self,
        events: Iterable[ResolutionEvent],
        window_days: int = DEFAULT_PERIOD_DAYS,
        now: Optional[datetime] = None,
    ) -> list[VulnerabilityTrendPoint]:
        """Daily detections per severity and daily resolutions.

        One point per calendar day (UTC) from ``window_days`` days ago up to
        and including today; empty days are zero-filled.
        """
        now = as_utc(now) if now else datetime.now(timezone.utc)
        today = now.date()
        first = today - timedelta(days=window_days)
        points = {
            first + timedelta(days=offset): VulnerabilityTrendPoint(date=first + timedelta(days=offset))
            for offset in range(window_days + 1)
        }

        for event in events:
            detected = as_utc(event.detected_at).date()
            point = points.get(detected)
            if point is not None and event.severity in RATED_SEVERITIES:
                attr = event.severity.value.lower()
                setattr(point, attr, getattr(point, attr) + 1)

            if event.resolved_at is not None:
                point = points.get(as_utc(event.resolved_at).date())
                if point is not None:
                    point.resolved += 1

        return [points[day] for day in sorted(points)]

    def compliance_trend(
        self,
        snapshots: Iterable[ComplianceSnapshot],
        window_days: int = DEFAULT_PERIOD_DAYS,
        now: Optional[datetime] = None,
    ) -> list[ComplianceTrendPoint]:
        """Compliance scores within the window, oldest first."""
        now = as_utc(now) if now else datetime.now(timezone.utc)
        first: date = now.date() - timedelta(days=window_days)

        return [
            ComplianceTrendPoint(
                date=s.snapshot_date,
                score=s.overall_score,
                max_score=s.max_score,
                sbom_score=s.sbom_generation_score,
                vulnerability_score=s.vulnerability_management_score,
                license_score=s.license_management_score,
            )
            for s in sorted(snapshots, key=lambda s: s.snapshot_date)
            if first <= s.snapshot_date <= now.date()
        ]

    def decision_summary(
        self,
        decisions: Iterable["TimedDecision | Assessment"],
        window_days: int = DEFAULT_PERIOD_DAYS,
        now: Optional[datetime] = None,
    ) -> SSVCSummary:
        """Count SSVC decisions made within the window."""
        now = as_utc(now) if now else datetime.now(timezone.utc)
        start = now - timedelta(days=window_days)

        in_window = []
        for item in decisions:
            when = item.assessed_at if isinstance(item, Assessment) else item.decided_at
            if start <= as_utc(when) <= now:
                in_window.append(item.decision)
        return summarize_assessments(in_window)

    def _resolved_in_window(
        self,
        events: Iterable[ResolutionEvent],
        window_days: int,
        now: datetime,
    ) -> list[ResolutionEvent]:
        start = now - timedelta(days=window_days)
        return [
            e for e in events
            if e.resolved_at is not None and start <= as_utc(e.resolved_at) <= now
        ]

    def _is_open(self, event: ResolutionEvent, now: datetime) -> bool:
        """Open at ``now``: unresolved, or resolved only later."""
        return event.resolved_at is None or as_utc(event.resolved_at) > now

    def _group(self, events: list[ResolutionEvent]) -> dict[Severity, list[float]]:
        grouped: dict[Severity, list[float]] = {s: [] for s in RATED_SEVERITIES}
        for event in events:
            if event.severity in grouped:
                grouped[event.severity].append(event.hours_to_resolve)
        return grouped


def _mean(values: list[float]) -> Optional[float]:
    if not values:
        return None
    return sum(values) / len(values)


def aggregate(
    events: Iterable[ResolutionEvent],
    decisions: Iterable["TimedDecision | Assessment"] = (),
    window_days: int = DEFAULT_PERIOD_DAYS,
    slo_targets: Optional[SLOTargets] = None,
    compliance: Iterable[ComplianceSnapshot] = (),
    now: Optional[datetime] = None,
) -> AnalyticsSummary:
    """Convenience wrapper around ``RiskAnalyticsAggregator.aggregate``."""
    return RiskAnalyticsAggregator(slo_targets).aggregate(
        events, decisions, window_days, compliance, now
    )
