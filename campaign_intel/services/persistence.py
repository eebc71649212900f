"""
Metrics Persistence Service

Writes normalized hourly metrics to the shared store and maintains the
per-account sync markers.

Write Protocol:
1. Drop rows without an ISO ``date_start``; they cannot be keyed and are
   reported as ``skipped_count``.
2. Partition the rest into fixed-size chunks (default 500), in input order.
3. Upsert each chunk on (ad_id, date_start, hour); one transaction per chunk.
4. On the first failing chunk stop and report
   ``WriteStatus(success=False, inserted_count=<rows in committed chunks>)``.
   Committed chunks stay committed: the result is partial success, not
   all-or-nothing.
5. After a full write, best-effort side effects: campaign catalogue upsert,
   daily rollup upsert and the account's ``last_synced_at``. Their failures
   are logged and never fail the write.

Concurrency:
    ``sync_lock`` is an advisory per-account lock held around the write so two
    runs for the same account cannot interleave chunk writes.
"""

import logging
from contextlib import asynccontextmanager
from datetime import date, datetime, timezone
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence

import pandas as pd

from campaign_intel.core.exceptions import SyncInProgressError
from campaign_intel.models.schemas import NormalizedMetric, WriteStatus
from campaign_intel.services.campaign_parser import UNKNOWN, parse_campaign_name
from campaign_intel.services.metrics import safe_ratio


logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 500


# =============================================================================
# Chunking
# =============================================================================

def has_valid_date(metric: NormalizedMetric) -> bool:
    """True when ``date_start`` is an ISO date the insights table can key on."""
    try:
        date.fromisoformat(metric.date_start)
    except ValueError:
        return False
    return True


def chunked(rows: Sequence[NormalizedMetric], chunk_size: int) -> List[Sequence[NormalizedMetric]]:
    if chunk_size <= 0:
        raise ValueError('chunk_size must be positive')
    return [rows[i:i + chunk_size] for i in range(0, len(rows), chunk_size)]


# =============================================================================
# Derived Tables
# =============================================================================

def build_campaign_catalogue(metrics: Sequence[NormalizedMetric]) -> List[Dict[str, Any]]:
    """
    One catalogue entry per distinct campaign id, first occurrence wins.

    Campaign names are parsed for objective, partner, product and audience.
    """
    catalogue: Dict[str, Dict[str, Any]] = {}
    for metric in metrics:
        if not metric.campaign_id or metric.campaign_id in catalogue:
            continue
        parsed = parse_campaign_name(metric.campaign_name)
        catalogue[metric.campaign_id] = {
            'fb_campaign_id': metric.campaign_id,
            'name': metric.campaign_name,
            'objective': parsed.objective,
            'partner': parsed.partner,
            'product_code': None if parsed.product_code == UNKNOWN else parsed.product_code,
            'audience': parsed.audience,
            'audience_category': parsed.audience_category,
            'start_date': parsed.start_date,
        }
    return list(catalogue.values())


def rollup_daily_metrics(metrics: Sequence[NormalizedMetric]) -> List[Dict[str, Any]]:
    """
    Roll hourly rows up to one row per (campaign_id, date).

    Derived metrics on the rolled-up totals:
        - cpl = spend / leads
        - ctr = clicks / impressions * 100 (percent)
        - cpc = spend / clicks
    Each is 0 when its denominator is 0.
    """
    rows = [m for m in metrics if m.campaign_id and m.date_start]
    if not rows:
        return []

    df = pd.DataFrame(
        [
            {
                'campaign_id': m.campaign_id,
                'date': m.date_start,
                'spend': m.spend,
                'impressions': m.impressions,
                'clicks': m.clicks,
                'leads': m.leads,
            }
            for m in rows
        ]
    )
    daily = (
        df.groupby(['campaign_id', 'date'], sort=False, as_index=False)
        [['spend', 'impressions', 'clicks', 'leads']]
        .sum()
    )

    records = []
    for row in daily.to_dict(orient='records'):
        spend = float(row['spend'])
        impressions = float(row['impressions'])
        clicks = float(row['clicks'])
        leads = float(row['leads'])
        records.append({
            'campaign_id': row['campaign_id'],
            'date': row['date'],
            'spend': spend,
            'impressions': impressions,
            'clicks': clicks,
            'leads': leads,
            'cpl': safe_ratio(spend, leads),
            'ctr': safe_ratio(clicks, impressions, 100.0),
            'cpc': safe_ratio(spend, clicks),
        })
    return records


# =============================================================================
# Sync Lock
# =============================================================================

@asynccontextmanager
async def sync_lock(
    store: Any,
    account_id: str,
    stale_after_seconds: int = 900,
    now: Optional[datetime] = None,
) -> AsyncIterator[None]:
    """
    Hold the per-account advisory lock for the duration of the block.

    Raises:
        SyncInProgressError: If another run holds a lock younger than
            ``stale_after_seconds``.
    """
    now = now or datetime.now(timezone.utc)
    acquired = await store.try_acquire_sync_lock(account_id, now, stale_after_seconds)
    if not acquired:
        raise SyncInProgressError(f"Another sync is already running for account {account_id}")
    try:
        yield
    finally:
        try:
            await store.release_sync_lock(account_id)
        except Exception:
            # The lock expires after stale_after_seconds anyway
            logger.warning(f"Could not release sync lock for {account_id}", exc_info=True)


# =============================================================================
# Write
# =============================================================================

async def _record_side_effects(
    store: Any,
    metrics: Sequence[NormalizedMetric],
    account_id: str,
    now: datetime,
) -> None:
    try:
        campaigns = build_campaign_catalogue(metrics)
        count = await store.upsert_campaigns(account_id, campaigns)
        logger.info(f"Synced {count} campaigns for {account_id}")
    except Exception:
        logger.warning(f"Campaign catalogue upsert failed for {account_id}", exc_info=True)

    try:
        daily = rollup_daily_metrics(metrics)
        count = await store.upsert_daily_metrics(account_id, daily)
        logger.info(f"Synced {count} daily metric rows for {account_id}")
    except Exception:
        logger.warning(f"Daily metrics rollup failed for {account_id}", exc_info=True)

    try:
        await store.mark_account_synced(account_id, now)
    except Exception:
        logger.warning(f"Could not update last_synced_at for {account_id}", exc_info=True)


async def write_metrics(
    store: Any,
    metrics: Sequence[NormalizedMetric],
    account_id: str,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    now: Optional[datetime] = None,
) -> WriteStatus:
    """
    Upsert ``metrics`` chunk by chunk and report how far the write got.

    Args:
        store: Store handle (PostgresStore or a compatible fake).
        metrics: Normalized rows, written in this order.
        account_id: Owning ad account.
        chunk_size: Rows per upsert chunk.
        now: Timestamp recorded as ``last_synced_at``.

    Returns:
        WriteStatus; on failure ``inserted_count`` is the number of rows in
        chunks committed before the failing one, and no later chunk was tried.
        Rows whose ``date_start`` is not an ISO date are never sent to the
        store; they are counted in ``skipped_count``.
    """
    if not metrics:
        return WriteStatus(success=True, inserted_count=0)

    dated = [m for m in metrics if has_valid_date(m)]
    skipped = len(metrics) - len(dated)
    if skipped:
        logger.warning(f"Skipping {skipped} rows without a valid date_start for {account_id}")
    if not dated:
        return WriteStatus(success=True, inserted_count=0, skipped_count=skipped)

    chunks = chunked(dated, chunk_size)
    inserted = 0
    for index, chunk in enumerate(chunks, start=1):
        try:
            inserted += await store.upsert_insights(chunk)
        except Exception as exc:
            logger.error(f"Chunk {index}/{len(chunks)} failed for {account_id}: {exc}")
            return WriteStatus(
                success=False, inserted_count=inserted, skipped_count=skipped, error=str(exc)
            )

    logger.info(f"Upserted {inserted} hourly rows in {len(chunks)} chunks for {account_id}")
    await _record_side_effects(store, dated, account_id, now or datetime.now(timezone.utc))
    return WriteStatus(success=True, inserted_count=inserted, skipped_count=skipped)
