"""SSVC decision engine.

Maps the five SSVC decision points of a vulnerability to a remediation
urgency. Two policies are available:

``DEPLOYER``
    The CISA SSVC 2.0 deployer tree. This is the default.

``CONSERVATIVE``
    A four-rule ladder: everything maximal is immediate, active and
    automatable is out of cycle, everything minimal is deferred, the
    rest is scheduled.

Both policies are total over the 72 input combinations.
"""

import itertools
import logging
from enum import Enum
from typing import Callable

from sbomhub.ssvc.models import (
    Automatable,
    Exploitation,
    MissionPrevalence,
    SafetyImpact,
    SSVCContext,
    SSVCDecision,
    TechnicalImpact,
)

logger = logging.getLogger(__name__)


class DecisionPolicy(Enum):
    """Available decision tables."""

    DEPLOYER = "deployer"
    CONSERVATIVE = "conservative"


def _deployer(ctx: SSVCContext) -> SSVCDecision:
    total = ctx.technical_impact is TechnicalImpact.TOTAL
    automatable = ctx.automatable is Automatable.YES
    significant = ctx.safety_impact is SafetyImpact.SIGNIFICANT
    mission = ctx.mission_prevalence

    if ctx.exploitation is Exploitation.ACTIVE:
        if significant or mission is MissionPrevalence.ESSENTIAL:
            return SSVCDecision.IMMEDIATE
        if total and mission is MissionPrevalence.SUPPORT:
            return SSVCDecision.OUT_OF_CYCLE
        if automatable:
            return SSVCDecision.OUT_OF_CYCLE
        return SSVCDecision.SCHEDULED

    if ctx.exploitation is Exploitation.POC:
        if significant:
            return SSVCDecision.OUT_OF_CYCLE
        if mission is MissionPrevalence.ESSENTIAL and total:
            return SSVCDecision.OUT_OF_CYCLE
        if automatable and total:
            return SSVCDecision.SCHEDULED
        if mission is not MissionPrevalence.MINIMAL:
            return SSVCDecision.SCHEDULED
        return SSVCDecision.DEFER

    # No known exploitation
    if significant and total:
        return SSVCDecision.SCHEDULED
    if mission is MissionPrevalence.ESSENTIAL and total:
        return SSVCDecision.SCHEDULED
    if automatable and total and mission is not MissionPrevalence.MINIMAL:
        return SSVCDecision.SCHEDULED
    return SSVCDecision.DEFER


def _conservative(ctx: SSVCContext) -> SSVCDecision:
    active_automatable = (
        ctx.exploitation is Exploitation.ACTIVE and ctx.automatable is Automatable.YES
    )
    if (
        active_automatable
        and ctx.technical_impact is TechnicalImpact.TOTAL
        and ctx.mission_prevalence is MissionPrevalence.ESSENTIAL
        and ctx.safety_impact is SafetyImpact.SIGNIFICANT
    ):
        return SSVCDecision.IMMEDIATE
    if active_automatable:
        return SSVCDecision.OUT_OF_CYCLE
    if (
        ctx.exploitation is Exploitation.NONE
        and ctx.automatable is Automatable.NO
        and ctx.technical_impact is TechnicalImpact.PARTIAL
        and ctx.mission_prevalence is MissionPrevalence.MINIMAL
        and ctx.safety_impact is SafetyImpact.MINIMAL
    ):
        return SSVCDecision.DEFER
    return SSVCDecision.SCHEDULED


_POLICIES: dict[DecisionPolicy, Callable[[SSVCContext], SSVCDecision]] = {
    DecisionPolicy.DEPLOYER: _deployer,
    DecisionPolicy.CONSERVATIVE: _conservative,
}


def decide(ctx: SSVCContext, policy: DecisionPolicy = DecisionPolicy.DEPLOYER) -> SSVCDecision:
    """Return the remediation decision for a validated context."""
    decision = _POLICIES[policy](ctx)
    logger.debug(f"SSVC {policy.value}: {ctx.to_dict()} -> {decision.value}")
    return decision


def all_contexts() -> list[SSVCContext]:
    """Enumerate every combination of decision point values."""
    return [
        SSVCContext(*values)
        for values in itertools.product(
            Exploitation,
            Automatable,
            TechnicalImpact,
            MissionPrevalence,
            SafetyImpact,
        )
    ]


def decision_table(
    policy: DecisionPolicy = DecisionPolicy.DEPLOYER,
) -> list[tuple[SSVCContext, SSVCDecision]]:
    """Return the full decision table for a policy."""
    return [(ctx, _POLICIES[policy](ctx)) for ctx in all_contexts()]
