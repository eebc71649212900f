"""
What-If Simulation Service

Projects financial outcomes for the current trajectory (baseline) and a set of
spend-adjustment scenarios.

Projection Model:
    revenue = leads * LTV (3000 per lead by default)
    profit  = revenue - spend

    baseline    current totals, avg_cpl = total_spend / total_leads (0 without leads)
    scale       spend * spend_multiplier, cpl = avg_cpl * cpl_multiplier,
                leads = scaled_spend / scaled_cpl
    efficiency  spend * spend_multiplier with lead volume held constant

Business Rule:
    Spend increases above +30% must carry a CPL penalty (diminishing returns).
    ScenarioDefinition enforces this at construction, so any scenario added
    here or passed in by a caller obeys it.

Leads are kept unrounded; rounding is a display concern of the executive
summary.
"""

import logging
from typing import Optional, Sequence

from campaign_intel.models.enums import RiskLevel, ScenarioKind
from campaign_intel.models.schemas import (
    NormalizedMetric,
    ProjectedOutcome,
    Scenario,
    ScenarioDefinition,
    SimulationOutput,
)


logger = logging.getLogger(__name__)

LTV_PER_LEAD: float = 3000.0


# =============================================================================
# Scenario Definitions
# =============================================================================

# Display order: scale-up scenarios first, then efficiency
DEFAULT_SCENARIOS: tuple = (
    ScenarioDefinition(
        id='increase_20_percent',
        name='Scale Aggressively (+20%)',
        description='Increase budget by 20% to capture more volume.',
        assumptions='Market saturation causes 7% CPL increase.',
        risk_level=RiskLevel.LOW,
        kind=ScenarioKind.SCALE,
        spend_multiplier=1.20,
        cpl_multiplier=1.07,
    ),
    ScenarioDefinition(
        id='increase_50_percent',
        name='Dominate Market (+50%)',
        description='Major budget push to maximize market share.',
        assumptions='Significant efficiency loss. CPL +20%.',
        risk_level=RiskLevel.MEDIUM,
        kind=ScenarioKind.SCALE,
        spend_multiplier=1.50,
        cpl_multiplier=1.20,
    ),
    ScenarioDefinition(
        id='pause_low_perf',
        name='Optimize Efficiency',
        description='Pause high-CPL ads (bottom 10% efficiency).',
        assumptions='Maintains lead volume while reducing waste.',
        risk_level=RiskLevel.LOW,
        kind=ScenarioKind.EFFICIENCY,
        spend_multiplier=0.90,
    ),
)


def _outcome(spend: float, leads: float, cpl: float, ltv: float) -> ProjectedOutcome:
    revenue = leads * ltv
    return ProjectedOutcome(
        spend=spend,
        leads=leads,
        cpl=cpl,
        revenue=revenue,
        profit=revenue - spend,
    )


def project_scenario(
    definition: ScenarioDefinition,
    total_spend: float,
    total_leads: float,
    avg_cpl: float,
    ltv: float = LTV_PER_LEAD,
) -> Scenario:
    """Apply one scenario definition to baseline totals."""
    spend = total_spend * definition.spend_multiplier

    if definition.kind == ScenarioKind.SCALE:
        cpl = avg_cpl * definition.cpl_multiplier if avg_cpl > 0 else 0.0
        leads = spend / cpl if cpl > 0 else 0.0
    else:
        leads = total_leads
        cpl = spend / leads if leads > 0 else 0.0

    return Scenario(
        id=definition.id,
        name=definition.name,
        description=definition.description,
        assumptions=definition.assumptions,
        risk_level=definition.risk_level,
        projected=_outcome(spend, leads, cpl, ltv),
    )


def simulate(
    metrics: Sequence[NormalizedMetric],
    ltv: float = LTV_PER_LEAD,
    scenarios: Optional[Sequence[ScenarioDefinition]] = None,
) -> Optional[SimulationOutput]:
    """
    Run the baseline and every scenario over the metric totals.

    Args:
        metrics: Normalized metric rows of the run.
        ltv: Revenue assumed per lead.
        scenarios: Scenario definitions; defaults to DEFAULT_SCENARIOS.

    Returns:
        SimulationOutput, or None when there are no metrics (insufficient
        data, as opposed to zeroed projections).
    """
    if not metrics:
        logger.info("No metrics to simulate")
        return None

    total_spend = sum(m.spend for m in metrics)
    total_leads = sum(m.leads for m in metrics)
    avg_cpl = total_spend / total_leads if total_leads > 0 else 0.0

    baseline = Scenario(
        id='baseline',
        name='Current Trajectory',
        description='Maintaining current daily spend and performance.',
        assumptions='CPL remains constant.',
        risk_level=RiskLevel.LOW,
        projected=_outcome(total_spend, total_leads, avg_cpl, ltv),
    )

    definitions = DEFAULT_SCENARIOS if scenarios is None else scenarios
    projected = [
        project_scenario(definition, total_spend, total_leads, avg_cpl, ltv)
        for definition in definitions
    ]

    logger.info(
        f"Simulated {len(projected)} scenarios "
        f"(spend={total_spend:.2f}, leads={total_leads:.2f}, avg_cpl={avg_cpl:.2f})"
    )
    return SimulationOutput(baseline=baseline, scenarios=projected)
