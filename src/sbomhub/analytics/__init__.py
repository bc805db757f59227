"""Remediation analytics module."""

from sbomhub.analytics.aggregator import (
    RiskAnalyticsAggregator,
    aggregate,
    validate_period_days,
)
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
)

__all__ = [
    "AnalyticsSummary",
    "ComplianceSnapshot",
    "ComplianceTrendPoint",
    "MTTRResult",
    "QuickStats",
    "ResolutionEvent",
    "RiskAnalyticsAggregator",
    "SLOAchievement",
    "SLOTargets",
    "TimedDecision",
    "VulnerabilityTrendPoint",
    "aggregate",
    "validate_period_days",
]
