"""
Executive summary rendering.

Pure Markdown rendering of a run's simulation, optimization plan and
accumulated errors. Never raises on a partial state: without a simulation the
summary is a short "insufficient data" notice.
"""

import logging
from typing import List, Optional, Sequence

from campaign_intel.models.schemas import PipelineState, Recommendation, SimulationOutput


logger = logging.getLogger(__name__)

INSUFFICIENT_DATA_SUMMARY = "### Data Unavailable\nInsufficient data to generate executive summary."

MAX_PLAN_ITEMS = 5


def format_money(value: float, symbol: str = '฿') -> str:
    return f"{symbol}{value:,.2f}"


def _plan_lines(plan: Optional[Sequence[Recommendation]]) -> List[str]:
    if not plan:
        return ["- No optimization actions triggered."]
    lines = [
        f"- **{item.action.value}** {item.entity_type.value} {item.entity_id}: {item.reason}"
        for item in plan[:MAX_PLAN_ITEMS]
    ]
    if len(plan) > MAX_PLAN_ITEMS:
        lines.append(f"...and {len(plan) - MAX_PLAN_ITEMS} more actions.")
    return lines


def render_summary(
    simulation: Optional[SimulationOutput],
    plan: Optional[Sequence[Recommendation]],
    errors: Sequence[str],
    period_start: str,
    period_end: str,
    currency_symbol: str = '฿',
) -> str:
    if simulation is None:
        return INSUFFICIENT_DATA_SUMMARY

    base = simulation.baseline.projected
    best = simulation.best_scenario()

    forecast = [
        f"- **{scenario.name}**: {scenario.description} "
        f"(Projected Profit: {format_money(scenario.projected.profit, currency_symbol)})"
        for scenario in simulation.scenarios
    ]
    risks = [f"- {error}" for error in errors] or ["- No critical system errors detected."]
    risks.append(f"- **Market Risk**: {best.risk_level.value.upper()}. {best.assumptions}")

    sections = [
        "# Executive Summary",
        f"**Period**: {period_start} to {period_end}",
        "",
        "## 1. Overall Performance",
        f"Our campaigns generated **{base.leads:,.0f} leads** with a total spend of "
        f"**{format_money(base.spend, currency_symbol)}**, resulting in an average "
        f"**CPL of {format_money(base.cpl, currency_symbol)}**.",
        "",
        "## 2. Forecast & Simulation",
        "Based on current performance modeling, here are the projected outcomes "
        "for different strategic moves:",
        "",
        *forecast,
        "",
        "### Recommended Strategy",
        f"The **{best.name}** strategy appears most profitable, potentially yielding "
        f"**{format_money(best.projected.profit, currency_symbol)}** in profit.",
        "",
        "## 3. Optimization Plan",
        *_plan_lines(plan),
        "",
        "## 4. Operational Risks",
        *risks,
    ]
    return "\n".join(sections)


def summarize(state: PipelineState, currency_symbol: str = '฿') -> str:
    """Render the executive summary for a (possibly partial) pipeline state."""
    date_range = state.config.date_range
    return render_summary(
        state.simulation,
        state.optimization_plan,
        state.status.errors,
        date_range.start,
        date_range.end,
        currency_symbol,
    )
