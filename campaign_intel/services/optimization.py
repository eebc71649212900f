"""
Rule-Based Optimization Service

Derives pause/scale (and optionally monitor) recommendations from the run's
normalized metrics.

Rows are first aggregated per entity (ad by default, or campaign) so an entity
is judged on its totals over the whole range rather than per hour, and appears
at most once in the plan.

Rules (defaults; every threshold is configurable):
    PAUSE    spend > 500 and cpl > 2.0 x avg_cpl            priority medium
    SCALE    leads > 5   and cpl < 0.7 x avg_cpl            priority high
    MONITOR  spend > 500 and monitor x avg_cpl < cpl <= 2.0 x avg_cpl
             (disabled unless monitor_cpl_multiple is set)   priority low

avg_cpl comes from the simulation baseline; when there is no simulation, or
the baseline CPL is 0, DEFAULT_AVG_CPL (200) is used.

Output order: all PAUSE, then all SCALE, then all MONITOR, each in order of
first appearance of the entity.
"""

import logging
from typing import Dict, List, Optional, Sequence

from campaign_intel.models.enums import EntityType, Priority, RecommendationAction
from campaign_intel.models.schemas import NormalizedMetric, Recommendation, SimulationOutput
from campaign_intel.services.metrics import safe_ratio


logger = logging.getLogger(__name__)

DEFAULT_AVG_CPL: float = 200.0


class _EntityTotals:
    __slots__ = ('entity_id', 'name', 'spend', 'leads')

    def __init__(self, entity_id: str, name: str):
        self.entity_id = entity_id
        self.name = name
        self.spend = 0.0
        self.leads = 0.0

    @property
    def cpl(self) -> float:
        return safe_ratio(self.spend, self.leads)


def aggregate_entities(
    metrics: Sequence[NormalizedMetric],
    entity_type: EntityType = EntityType.AD,
) -> List[_EntityTotals]:
    """Sum spend and leads per ad (or campaign), in order of first appearance."""
    totals: Dict[str, _EntityTotals] = {}
    for metric in metrics:
        if entity_type == EntityType.CAMPAIGN:
            entity_id, name = metric.campaign_id, metric.campaign_name
        else:
            entity_id, name = metric.ad_id, metric.ad_name
        if not entity_id:
            continue
        entity = totals.get(entity_id)
        if entity is None:
            entity = totals[entity_id] = _EntityTotals(entity_id, name)
        entity.spend += metric.spend
        entity.leads += metric.leads
    return list(totals.values())


def resolve_avg_cpl(simulation: Optional[SimulationOutput], default: float = DEFAULT_AVG_CPL) -> float:
    if simulation is not None and simulation.baseline.projected.cpl > 0:
        return simulation.baseline.projected.cpl
    return default


def optimize(
    metrics: Sequence[NormalizedMetric],
    simulation: Optional[SimulationOutput] = None,
    *,
    entity_type: EntityType = EntityType.AD,
    pause_min_spend: float = 500.0,
    pause_cpl_multiple: float = 2.0,
    scale_min_leads: float = 5.0,
    scale_cpl_multiple: float = 0.7,
    monitor_cpl_multiple: Optional[float] = None,
    default_avg_cpl: float = DEFAULT_AVG_CPL,
) -> List[Recommendation]:
    """
    Apply the threshold rules.

    An entity receives at most one recommendation; PAUSE is checked first.

    Returns:
        Ordered list of Recommendation (may be empty).
    """
    avg_cpl = resolve_avg_cpl(simulation, default_avg_cpl)
    pauses: List[Recommendation] = []
    scales: List[Recommendation] = []
    monitors: List[Recommendation] = []

    for entity in aggregate_entities(metrics, entity_type):
        cpl = entity.cpl

        if entity.spend > pause_min_spend and cpl > pause_cpl_multiple * avg_cpl:
            pauses.append(Recommendation(
                action=RecommendationAction.PAUSE,
                entity_id=entity.entity_id,
                entity_type=entity_type,
                entity_name=entity.name or None,
                reason=f"CPL {cpl:.0f} is > {pause_cpl_multiple:g}x Average ({avg_cpl:.0f})",
                priority=Priority.MEDIUM,
            ))
        elif entity.leads > scale_min_leads and cpl < scale_cpl_multiple * avg_cpl:
            scales.append(Recommendation(
                action=RecommendationAction.SCALE,
                entity_id=entity.entity_id,
                entity_type=entity_type,
                entity_name=entity.name or None,
                reason=f"Excellent CPL {cpl:.0f}. Candidate for scale.",
                priority=Priority.HIGH,
            ))
        elif (
            monitor_cpl_multiple is not None
            and entity.spend > pause_min_spend
            and cpl > monitor_cpl_multiple * avg_cpl
        ):
            monitors.append(Recommendation(
                action=RecommendationAction.MONITOR,
                entity_id=entity.entity_id,
                entity_type=entity_type,
                entity_name=entity.name or None,
                reason=f"CPL {cpl:.0f} is trending above Average ({avg_cpl:.0f})",
                priority=Priority.LOW,
            ))

    plan = pauses + scales + monitors
    logger.info(
        f"Optimization plan: {len(pauses)} pause, {len(scales)} scale, "
        f"{len(monitors)} monitor (avg CPL {avg_cpl:.2f})"
    )
    return plan
