"""
SQL module for the Campaign Intelligence backend.

Provides DDL and parameterized queries for the shared store:
- schema: CREATE TABLE statements and the tables the schema check requires
- store_queries: upserts, sync markers, credential and account queries

Follows the Repository Pattern: ``campaign_intel.core.store.PostgresStore`` is
the only consumer, so business logic never embeds SQL.

Example usage:
    from campaign_intel.sql import REQUIRED_TABLES, get_insights_upsert_query

    await conn.executemany(get_insights_upsert_query(), records)
"""

from campaign_intel.sql.schema import (
    REQUIRED_TABLES,
    get_schema_statements,
)

from campaign_intel.sql.store_queries import (
    INSIGHT_COLUMNS,
    get_missing_tables_query,
    get_insights_upsert_query,
    get_campaigns_upsert_query,
    get_daily_metrics_upsert_query,
    get_mark_synced_query,
    get_acquire_lock_query,
    get_release_lock_query,
    get_credential_for_user_query,
    get_valid_credentials_query,
    get_invalidate_credential_query,
    get_save_refreshed_token_query,
    get_save_credential_query,
    get_accounts_for_credential_query,
    get_selected_account_query,
    get_accounts_upsert_query,
    get_select_account_query,
)


__all__ = [
    # Schema
    'REQUIRED_TABLES',
    'get_schema_statements',
    # Store queries
    'INSIGHT_COLUMNS',
    'get_missing_tables_query',
    'get_insights_upsert_query',
    'get_campaigns_upsert_query',
    'get_daily_metrics_upsert_query',
    'get_mark_synced_query',
    'get_acquire_lock_query',
    'get_release_lock_query',
    'get_credential_for_user_query',
    'get_valid_credentials_query',
    'get_invalidate_credential_query',
    'get_save_refreshed_token_query',
    'get_save_credential_query',
    'get_accounts_for_credential_query',
    'get_selected_account_query',
    'get_accounts_upsert_query',
    'get_select_account_query',
]
