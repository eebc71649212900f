"""
Repository over the shared PostgreSQL store.

``PostgresStore`` is the store-client handle injected into the orchestrator,
the batch sync runner and the API routers. It wraps an asyncpg pool and is the
only code that executes SQL; callers exchange pydantic models and plain dicts.

Write semantics:
- upsert_insights writes one chunk inside one transaction: the chunk either
  commits as a whole or raises PersistenceError with nothing written.
- Every upsert is keyed on a natural key, so replaying a write is a no-op
  apart from refreshed values and ``updated_at``.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional, Sequence

import asyncpg
from asyncpg import Pool

from campaign_intel.core.exceptions import PersistenceError
from campaign_intel.models.schemas import Credential, LinkedAccount, NormalizedMetric
from campaign_intel.sql import (
    get_accounts_for_credential_query,
    get_accounts_upsert_query,
    get_acquire_lock_query,
    get_campaigns_upsert_query,
    get_credential_for_user_query,
    get_daily_metrics_upsert_query,
    get_insights_upsert_query,
    get_invalidate_credential_query,
    get_mark_synced_query,
    get_missing_tables_query,
    get_release_lock_query,
    get_save_credential_query,
    get_save_refreshed_token_query,
    get_select_account_query,
    get_selected_account_query,
    get_schema_statements,
    get_valid_credentials_query,
)


logger = logging.getLogger(__name__)


def _to_date(value: Any) -> date:
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value))


def _insight_record(metric: NormalizedMetric) -> tuple:
    """Parameter tuple in INSIGHT_COLUMNS order."""
    return (
        metric.account_id,
        metric.campaign_id,
        metric.campaign_name,
        metric.adset_id,
        metric.adset_name,
        metric.ad_id,
        metric.ad_name,
        _to_date(metric.date_start),
        metric.hour,
        metric.spend,
        metric.impressions,
        metric.reach,
        metric.clicks,
        metric.leads,
        metric.cpl,
        metric.cpm,
        metric.frequency,
    )


class PostgresStore:
    """
    asyncpg-backed implementation of the campaign store.

    Args:
        pool: An initialized asyncpg pool (see ``campaign_intel.core.database``).
    """

    def __init__(self, pool: Pool):
        self._pool = pool

    # =========================================================================
    # Schema
    # =========================================================================

    async def init_schema(self) -> int:
        """
        Create any missing table in one transaction.

        Every statement is ``CREATE TABLE IF NOT EXISTS``, so this is safe on
        every startup.

        Returns:
            Number of statements executed.
        """
        statements = get_schema_statements()
        async with self._pool.acquire() as conn:
            async with conn.transaction():
                for statement in statements:
                    await conn.execute(statement)
        logger.info(f"Schema ensured ({len(statements)} tables)")
        return len(statements)

    async def missing_tables(self, tables: Sequence[str]) -> List[str]:
        """Return the subset of ``tables`` that does not exist, in input order."""
        async with self._pool.acquire() as conn:
            rows = await conn.fetch(get_missing_tables_query(), list(tables))
        present = {row['table_name'] for row in rows}
        return [table for table in tables if table not in present]

    # =========================================================================
    # Metrics
    # =========================================================================

    async def upsert_insights(self, rows: Sequence[NormalizedMetric]) -> int:
        """
        Upsert one chunk of hourly metrics in a single transaction.

        Returns:
            Number of rows in the committed chunk.

        Raises:
            PersistenceError: If the chunk could not be written; the
                transaction is rolled back so no row of the chunk is kept.
        """
        if not rows:
            return 0
        try:
            records = [_insight_record(row) for row in rows]
            async with self._pool.acquire() as conn:
                async with conn.transaction():
                    await conn.executemany(get_insights_upsert_query(), records)
        except (asyncpg.PostgresError, OSError, ValueError) as exc:
            raise PersistenceError(str(exc)) from exc
        return len(rows)

    async def upsert_campaigns(self, account_id: str, campaigns: Sequence[Dict[str, Any]]) -> int:
        if not campaigns:
            return 0
        records = [
            (
                campaign['fb_campaign_id'],
                account_id,
                campaign.get('name'),
                campaign.get('objective'),
                campaign.get('partner'),
                campaign.get('product_code'),
                campaign.get('audience'),
                campaign.get('audience_category'),
                campaign.get('start_date'),
            )
            for campaign in campaigns
        ]
        async with self._pool.acquire() as conn:
            async with conn.transaction():
                await conn.executemany(get_campaigns_upsert_query(), records)
        return len(records)

    async def upsert_daily_metrics(self, account_id: str, rows: Sequence[Dict[str, Any]]) -> int:
        if not rows:
            return 0
        records = [
            (
                account_id,
                row['campaign_id'],
                _to_date(row['date']),
                float(row['spend']),
                float(row['impressions']),
                float(row['clicks']),
                float(row['leads']),
                float(row['cpl']),
                float(row['ctr']),
                float(row['cpc']),
            )
            for row in rows
        ]
        async with self._pool.acquire() as conn:
            async with conn.transaction():
                await conn.executemany(get_daily_metrics_upsert_query(), records)
        return len(records)

    # =========================================================================
    # Account Sync Markers
    # =========================================================================

    async def mark_account_synced(self, account_id: str, synced_at: datetime) -> None:
        async with self._pool.acquire() as conn:
            await conn.execute(get_mark_synced_query(), account_id, synced_at)

    async def try_acquire_sync_lock(
        self,
        account_id: str,
        now: datetime,
        stale_after_seconds: int,
    ) -> bool:
        """Take the per-account lock unless another run holds a fresh one."""
        stale_before = now - timedelta(seconds=stale_after_seconds)
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(get_acquire_lock_query(), account_id, now, stale_before)
        return row is not None

    async def release_sync_lock(self, account_id: str) -> None:
        async with self._pool.acquire() as conn:
            await conn.execute(get_release_lock_query(), account_id)

    # =========================================================================
    # Credentials
    # =========================================================================

    async def get_credential_for_user(self, user_id: str) -> Optional[Credential]:
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(get_credential_for_user_query(), user_id)
        return Credential.from_record(row) if row else None

    async def list_valid_credentials(self) -> List[Credential]:
        async with self._pool.acquire() as conn:
            rows = await conn.fetch(get_valid_credentials_query())
        return [Credential.from_record(row) for row in rows]

    async def invalidate_credential(self, credential_id: str) -> None:
        async with self._pool.acquire() as conn:
            await conn.execute(get_invalidate_credential_query(), credential_id)
        logger.warning(f"Credential {credential_id} marked invalid")

    async def save_refreshed_token(
        self,
        credential_id: str,
        encrypted_access_token: str,
        expires_at: Optional[datetime],
        refreshed_at: datetime,
    ) -> None:
        async with self._pool.acquire() as conn:
            await conn.execute(
                get_save_refreshed_token_query(),
                credential_id,
                encrypted_access_token,
                expires_at,
                refreshed_at,
            )

    async def save_credential(
        self,
        user_id: str,
        encrypted_access_token: str,
        expires_at: Optional[datetime],
        refreshed_at: datetime,
    ) -> Credential:
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(
                get_save_credential_query(),
                user_id,
                encrypted_access_token,
                expires_at,
                refreshed_at,
            )
        return Credential.from_record(row)

    # =========================================================================
    # Linked Accounts
    # =========================================================================

    async def list_active_accounts(self, credential_id: str) -> List[LinkedAccount]:
        async with self._pool.acquire() as conn:
            rows = await conn.fetch(
                get_accounts_for_credential_query(active_only=True), credential_id
            )
        return [LinkedAccount.from_record(row) for row in rows]

    async def list_accounts_for_credential(self, credential_id: str) -> List[LinkedAccount]:
        async with self._pool.acquire() as conn:
            rows = await conn.fetch(get_accounts_for_credential_query(), credential_id)
        return [LinkedAccount.from_record(row) for row in rows]

    async def get_selected_account(self, credential_id: str) -> Optional[LinkedAccount]:
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(get_selected_account_query(), credential_id)
        return LinkedAccount.from_record(row) if row else None

    async def upsert_accounts(self, credential_id: str, accounts: Sequence[Dict[str, Any]]) -> int:
        """Link ``accounts`` (dicts with account_id, name, timezone_name) to a credential."""
        if not accounts:
            return 0
        records = [
            (
                account['account_id'],
                account.get('name'),
                credential_id,
                account.get('timezone_name'),
            )
            for account in accounts
        ]
        async with self._pool.acquire() as conn:
            async with conn.transaction():
                await conn.executemany(get_accounts_upsert_query(), records)
        return len(records)

    async def select_account(self, credential_id: str, account_id: str) -> bool:
        """
        Make ``account_id`` the credential's only selected account.

        Returns False, leaving the previous selection intact, when the account
        is not linked to the credential.
        """
        async with self._pool.acquire() as conn:
            rows = await conn.fetch(get_select_account_query(), credential_id, account_id)
        return any(row['is_selected'] for row in rows)
