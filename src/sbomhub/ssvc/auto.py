"""Pre-fill SSVC decision points from external threat signals."""

from dataclasses import dataclass
from typing import Optional

from sbomhub.ssvc.models import (
    Automatable,
    Exploitation,
    ProjectDefaults,
    SSVCContext,
    TechnicalImpact,
)


@dataclass(frozen=True)
class ThreatSignals:
    """Signals known about a vulnerability from KEV, EPSS and CVSS."""

    in_kev: bool = False
    epss_score: Optional[float] = None
    cvss_score: Optional[float] = None


@dataclass(frozen=True)
class AutoContext:
    """A context derived from signals, flagging which factors were inferred."""

    context: SSVCContext
    exploitation_auto: bool
    automatable_auto: bool


def auto_context(signals: ThreatSignals, defaults: Optional[ProjectDefaults] = None) -> AutoContext:
    """Derive an SSVC context from threat signals and project defaults.

    - KEV membership means exploitation is active, otherwise none.
    - An EPSS score above the threshold means exploitation is automatable.
    - A CVSS score at or above the threshold means total technical impact.
    - Mission prevalence and safety impact come from the project defaults.
    """
    defaults = defaults or ProjectDefaults()

    exploitation = Exploitation.ACTIVE if signals.in_kev else Exploitation.NONE

    automatable_auto = (
        signals.epss_score is not None
        and signals.epss_score > defaults.epss_automatable_threshold
    )
    automatable = Automatable.YES if automatable_auto else Automatable.NO

    if signals.cvss_score is not None and signals.cvss_score >= defaults.cvss_total_impact_threshold:
        technical_impact = TechnicalImpact.TOTAL
    else:
        technical_impact = TechnicalImpact.PARTIAL

    return AutoContext(
        context=SSVCContext(
            exploitation=exploitation,
            automatable=automatable,
            technical_impact=technical_impact,
            mission_prevalence=defaults.mission_prevalence,
            safety_impact=defaults.safety_impact,
        ),
        exploitation_auto=signals.in_kev,
        automatable_auto=automatable_auto,
    )
