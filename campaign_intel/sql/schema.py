"""
DDL for the shared campaign store.

Five tables back the pipeline:

    facebook_tokens        one encrypted long-lived token per user
    accounts               ad accounts linked to a token, plus sync markers
    facebook_ads_insights  hourly normalized metrics, unique (ad_id, date_start, hour)
    campaigns              campaign catalogue with metadata parsed from names
    daily_metrics          hourly rows rolled up per (account, campaign, day)

Every write path is an ``INSERT ... ON CONFLICT DO UPDATE`` against one of the
unique constraints declared here, which is what makes re-running a sync over
an overlapping date range idempotent.
"""

from typing import List, Tuple


# Tables the schema check requires before a run may write anything
REQUIRED_TABLES: Tuple[str, ...] = (
    'facebook_tokens',
    'accounts',
    'facebook_ads_insights',
)


FACEBOOK_TOKENS_DDL = """
CREATE TABLE IF NOT EXISTS facebook_tokens (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    user_id TEXT NOT NULL UNIQUE,
    encrypted_access_token TEXT NOT NULL,
    expires_at TIMESTAMPTZ,
    is_valid BOOLEAN NOT NULL DEFAULT TRUE,
    last_refreshed_at TIMESTAMPTZ,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
)
"""

ACCOUNTS_DDL = """
CREATE TABLE IF NOT EXISTS accounts (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    account_id TEXT NOT NULL UNIQUE,
    name TEXT,
    token_id UUID REFERENCES facebook_tokens(id) ON DELETE SET NULL,
    is_active BOOLEAN NOT NULL DEFAULT TRUE,
    is_selected BOOLEAN NOT NULL DEFAULT FALSE,
    timezone_name TEXT,
    last_synced_at TIMESTAMPTZ,
    -- Advisory sync lock: set when a run starts persisting, cleared when it ends
    sync_started_at TIMESTAMPTZ,
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
)
"""

FACEBOOK_ADS_INSIGHTS_DDL = """
CREATE TABLE IF NOT EXISTS facebook_ads_insights (
    id BIGSERIAL PRIMARY KEY,
    ad_account_id TEXT NOT NULL,
    campaign_id TEXT,
    campaign_name TEXT,
    adset_id TEXT,
    adset_name TEXT,
    ad_id TEXT NOT NULL,
    ad_name TEXT,
    date_start DATE NOT NULL,
    hour SMALLINT NOT NULL CHECK (hour BETWEEN 0 AND 23),
    spend DOUBLE PRECISION NOT NULL DEFAULT 0,
    impressions DOUBLE PRECISION NOT NULL DEFAULT 0,
    reach DOUBLE PRECISION NOT NULL DEFAULT 0,
    clicks DOUBLE PRECISION NOT NULL DEFAULT 0,
    leads DOUBLE PRECISION NOT NULL DEFAULT 0,
    cpl DOUBLE PRECISION NOT NULL DEFAULT 0,
    cpm DOUBLE PRECISION NOT NULL DEFAULT 0,
    frequency DOUBLE PRECISION NOT NULL DEFAULT 0,
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    CONSTRAINT facebook_ads_insights_natural_key UNIQUE (ad_id, date_start, hour)
)
"""

CAMPAIGNS_DDL = """
CREATE TABLE IF NOT EXISTS campaigns (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    fb_campaign_id TEXT NOT NULL UNIQUE,
    account_id TEXT NOT NULL,
    name TEXT,
    objective TEXT,
    partner TEXT,
    product_code TEXT,
    audience TEXT,
    audience_category TEXT,
    start_date TEXT,
    status TEXT NOT NULL DEFAULT 'ACTIVE',
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
)
"""

DAILY_METRICS_DDL = """
CREATE TABLE IF NOT EXISTS daily_metrics (
    id BIGSERIAL PRIMARY KEY,
    account_id TEXT NOT NULL,
    campaign_id TEXT NOT NULL,
    date DATE NOT NULL,
    spend DOUBLE PRECISION NOT NULL DEFAULT 0,
    impressions DOUBLE PRECISION NOT NULL DEFAULT 0,
    clicks DOUBLE PRECISION NOT NULL DEFAULT 0,
    leads DOUBLE PRECISION NOT NULL DEFAULT 0,
    cpl DOUBLE PRECISION NOT NULL DEFAULT 0,
    ctr DOUBLE PRECISION NOT NULL DEFAULT 0,
    cpc DOUBLE PRECISION NOT NULL DEFAULT 0,
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    CONSTRAINT daily_metrics_natural_key UNIQUE (account_id, campaign_id, date)
)
"""


def get_schema_statements() -> List[str]:
    """
    Return the CREATE TABLE statements in dependency order.

    ``accounts`` references ``facebook_tokens``, so tokens come first.
    """
    return [
        FACEBOOK_TOKENS_DDL,
        ACCOUNTS_DDL,
        FACEBOOK_ADS_INSIGHTS_DDL,
        CAMPAIGNS_DDL,
        DAILY_METRICS_DDL,
    ]
