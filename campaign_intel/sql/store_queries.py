"""
Parameterized SQL for the shared campaign store.

asyncpg placeholder style ($1, $2, ...). Each function returns the query text;
``PostgresStore`` owns parameter ordering and execution.

Upserts (idempotent on the natural key):
    - get_insights_upsert_query: facebook_ads_insights on (ad_id, date_start, hour)
    - get_campaigns_upsert_query: campaigns on fb_campaign_id
    - get_daily_metrics_upsert_query: daily_metrics on (account_id, campaign_id, date)
    - get_accounts_upsert_query: accounts on account_id

Sync markers:
    - get_mark_synced_query, get_acquire_lock_query, get_release_lock_query
"""


# Column order shared by get_insights_upsert_query and PostgresStore
INSIGHT_COLUMNS = (
    'ad_account_id',
    'campaign_id',
    'campaign_name',
    'adset_id',
    'adset_name',
    'ad_id',
    'ad_name',
    'date_start',
    'hour',
    'spend',
    'impressions',
    'reach',
    'clicks',
    'leads',
    'cpl',
    'cpm',
    'frequency',
)

_INSIGHT_NATURAL_KEY = ('ad_id', 'date_start', 'hour')


# =============================================================================
# Schema Introspection
# =============================================================================

def get_missing_tables_query() -> str:
    """Return the names (from the ``$1`` text array) that exist in the current schema."""
    return """
    SELECT table_name
    FROM information_schema.tables
    WHERE table_schema = current_schema()
      AND table_name = ANY($1::text[])
    """


# =============================================================================
# Metrics Upserts
# =============================================================================

def get_insights_upsert_query() -> str:
    """
    Generate the hourly insights upsert.

    A second write for the same (ad_id, date_start, hour) replaces every
    metric column, so the stored row always holds the latest run's values.
    """
    columns = ', '.join(INSIGHT_COLUMNS)
    placeholders = ', '.join(f'${i}' for i in range(1, len(INSIGHT_COLUMNS) + 1))
    updates = ',\n        '.join(
        f'{column} = EXCLUDED.{column}'
        for column in INSIGHT_COLUMNS
        if column not in _INSIGHT_NATURAL_KEY
    )
    return f"""
    INSERT INTO facebook_ads_insights ({columns}, updated_at)
    VALUES ({placeholders}, NOW())
    ON CONFLICT (ad_id, date_start, hour) DO UPDATE SET
        {updates},
        updated_at = NOW()
    """


def get_campaigns_upsert_query() -> str:
    return """
    INSERT INTO campaigns (
        fb_campaign_id, account_id, name, objective, partner,
        product_code, audience, audience_category, start_date, status, updated_at
    ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, 'ACTIVE', NOW())
    ON CONFLICT (fb_campaign_id) DO UPDATE SET
        account_id = EXCLUDED.account_id,
        name = EXCLUDED.name,
        objective = EXCLUDED.objective,
        partner = EXCLUDED.partner,
        product_code = EXCLUDED.product_code,
        audience = EXCLUDED.audience,
        audience_category = EXCLUDED.audience_category,
        start_date = EXCLUDED.start_date,
        updated_at = NOW()
    """


def get_daily_metrics_upsert_query() -> str:
    return """
    INSERT INTO daily_metrics (
        account_id, campaign_id, date, spend, impressions, clicks,
        leads, cpl, ctr, cpc, updated_at
    ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, NOW())
    ON CONFLICT (account_id, campaign_id, date) DO UPDATE SET
        spend = EXCLUDED.spend,
        impressions = EXCLUDED.impressions,
        clicks = EXCLUDED.clicks,
        leads = EXCLUDED.leads,
        cpl = EXCLUDED.cpl,
        ctr = EXCLUDED.ctr,
        cpc = EXCLUDED.cpc,
        updated_at = NOW()
    """


# =============================================================================
# Account Sync Markers
# =============================================================================

def get_mark_synced_query() -> str:
    return """
    UPDATE accounts
    SET last_synced_at = $2, updated_at = NOW()
    WHERE account_id = $1
    """


def get_acquire_lock_query() -> str:
    """
    Take the per-account advisory lock.

    Returns a row only when the lock was free or stale ($3 is the staleness
    cutoff). Accounts not yet linked get a bare row so the lock still applies.
    """
    return """
    INSERT INTO accounts (account_id, sync_started_at, updated_at)
    VALUES ($1, $2, NOW())
    ON CONFLICT (account_id) DO UPDATE SET
        sync_started_at = EXCLUDED.sync_started_at,
        updated_at = NOW()
    WHERE accounts.sync_started_at IS NULL
       OR accounts.sync_started_at < $3
    RETURNING account_id
    """


def get_release_lock_query() -> str:
    return """
    UPDATE accounts
    SET sync_started_at = NULL
    WHERE account_id = $1
    """


# =============================================================================
# Credentials
# =============================================================================

_CREDENTIAL_COLUMNS = """
    id, user_id, encrypted_access_token, expires_at, is_valid, last_refreshed_at
"""


def get_credential_for_user_query() -> str:
    return f"SELECT {_CREDENTIAL_COLUMNS} FROM facebook_tokens WHERE user_id = $1"


def get_valid_credentials_query() -> str:
    return f"""
    SELECT {_CREDENTIAL_COLUMNS}
    FROM facebook_tokens
    WHERE is_valid = TRUE
    ORDER BY created_at
    """


def get_invalidate_credential_query() -> str:
    return """
    UPDATE facebook_tokens
    SET is_valid = FALSE, updated_at = NOW()
    WHERE id = $1
    """


def get_save_refreshed_token_query() -> str:
    return """
    UPDATE facebook_tokens
    SET encrypted_access_token = $2,
        expires_at = $3,
        last_refreshed_at = $4,
        updated_at = NOW()
    WHERE id = $1
    """


def get_save_credential_query() -> str:
    """Store a freshly authorized token; re-authorization is the only path back to is_valid."""
    return f"""
    INSERT INTO facebook_tokens (
        user_id, encrypted_access_token, expires_at, is_valid, last_refreshed_at, updated_at
    ) VALUES ($1, $2, $3, TRUE, $4, NOW())
    ON CONFLICT (user_id) DO UPDATE SET
        encrypted_access_token = EXCLUDED.encrypted_access_token,
        expires_at = EXCLUDED.expires_at,
        is_valid = TRUE,
        last_refreshed_at = EXCLUDED.last_refreshed_at,
        updated_at = NOW()
    RETURNING {_CREDENTIAL_COLUMNS}
    """


# =============================================================================
# Linked Accounts
# =============================================================================

_ACCOUNT_COLUMNS = """
    account_id, name, token_id, is_active, is_selected, timezone_name, last_synced_at
"""


def get_accounts_for_credential_query(active_only: bool = False) -> str:
    active_clause = "AND is_active = TRUE" if active_only else ""
    return f"""
    SELECT {_ACCOUNT_COLUMNS}
    FROM accounts
    WHERE token_id = $1 {active_clause}
    ORDER BY name NULLS LAST, account_id
    """


def get_selected_account_query() -> str:
    return f"""
    SELECT {_ACCOUNT_COLUMNS}
    FROM accounts
    WHERE token_id = $1 AND is_selected = TRUE
    LIMIT 1
    """


def get_accounts_upsert_query() -> str:
    return """
    INSERT INTO accounts (account_id, name, token_id, is_active, timezone_name, updated_at)
    VALUES ($1, $2, $3, TRUE, $4, NOW())
    ON CONFLICT (account_id) DO UPDATE SET
        name = EXCLUDED.name,
        token_id = EXCLUDED.token_id,
        is_active = TRUE,
        timezone_name = COALESCE(EXCLUDED.timezone_name, accounts.timezone_name),
        updated_at = NOW()
    """


def get_select_account_query() -> str:
    """
    Select $2 and deselect every other account of token $1 in one statement.

    Touches nothing when $2 is not linked to $1, so an unknown account never
    clears the current selection.
    """
    return """
    UPDATE accounts
    SET is_selected = (account_id = $2), updated_at = NOW()
    WHERE token_id = $1
      AND EXISTS (
          SELECT 1 FROM accounts linked
          WHERE linked.token_id = $1 AND linked.account_id = $2
      )
    RETURNING account_id, is_selected
    """
