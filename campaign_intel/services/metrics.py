"""
Metrics Compute Service

Transforms raw insight rows into canonical ``NormalizedMetric`` records.

Derived Metrics:
    - leads = lead-form submissions ('lead' or 'offsite_conversion.lead')
              + on-platform lead-gen ('leadgen')
    - cpl = spend / leads (0 when leads = 0)
    - cpm = spend / impressions * 1000 (0 when impressions = 0)
    - frequency = impressions / reach (0 when reach = 0)

compute_metrics is pure and total: one output row per input row, no filtering,
no deduplication (the persistence upsert key handles duplicates), and it never
raises on malformed rows.
"""

import logging
import re
from typing import Any, Iterable, List, Optional

from campaign_intel.models.schemas import NormalizedMetric, RawInsightRow


logger = logging.getLogger(__name__)


# Both count the same conversion; the first one present wins
LEAD_ACTION_TYPES = ('lead', 'offsite_conversion.lead')
ON_PLATFORM_LEAD_ACTION_TYPES = ('leadgen',)

_HOUR_PREFIX = re.compile(r'^\s*(\d{1,2})')


def parse_hour(value: Any) -> int:
    """
    Hour of day from an hourly breakdown token such as ``"13:00:00 - 13:59:59"``.

    Anything unparsable or outside 0-23 maps to 0.
    """
    match = _HOUR_PREFIX.match(str(value or ''))
    if not match:
        return 0
    hour = int(match.group(1))
    return hour if 0 <= hour <= 23 else 0


def safe_ratio(numerator: float, denominator: float, scale: float = 1.0) -> float:
    """numerator / denominator * scale, or 0 when the denominator is not positive."""
    if denominator > 0:
        return numerator / denominator * scale
    return 0.0


def normalize_row(row: Any, account_id: Optional[str] = None) -> NormalizedMetric:
    """Normalize one raw row; ``account_id`` overrides the id carried by the row."""
    raw = RawInsightRow.from_api(row)

    leads = raw.action_count(*LEAD_ACTION_TYPES) + raw.action_count(*ON_PLATFORM_LEAD_ACTION_TYPES)

    return NormalizedMetric(
        account_id=account_id or raw.account_id,
        campaign_id=raw.campaign_id,
        campaign_name=raw.campaign_name,
        adset_id=raw.adset_id,
        adset_name=raw.adset_name,
        ad_id=raw.ad_id,
        ad_name=raw.ad_name,
        date_start=raw.date_start,
        hour=parse_hour(raw.hourly_stats_aggregated_by_advertiser_time_zone),
        spend=raw.spend,
        impressions=raw.impressions,
        reach=raw.reach,
        clicks=raw.clicks,
        leads=leads,
        cpl=safe_ratio(raw.spend, leads),
        cpm=safe_ratio(raw.spend, raw.impressions, 1000.0),
        frequency=safe_ratio(raw.impressions, raw.reach),
    )


def compute_metrics(
    raw_insights: Optional[Iterable[Any]],
    account_id: Optional[str] = None,
) -> List[NormalizedMetric]:
    """
    Normalize every raw row.

    Args:
        raw_insights: RawInsightRow records (or raw API dicts).
        account_id: Account the rows were fetched for.

    Returns:
        One NormalizedMetric per input row, in input order.
    """
    if not raw_insights:
        return []
    metrics = [normalize_row(row, account_id) for row in raw_insights]
    logger.info(f"Computed {len(metrics)} normalized metric rows")
    return metrics
