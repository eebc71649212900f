"""
Preflight checks run before ingestion.

- check_token: a decrypted token must be present
- check_schema: the store must have every required table
- fetch_account_metadata: best-effort name/timezone lookup for the account
"""

import logging
from typing import Any, Sequence

from campaign_intel.core.exceptions import ConfigurationError, MissingCredentialsError
from campaign_intel.models.schemas import AccountMetadata, PipelineConfig
from campaign_intel.services.graph_api import GraphAPIClient
from campaign_intel.sql import REQUIRED_TABLES


logger = logging.getLogger(__name__)


def check_token(config: PipelineConfig) -> bool:
    """
    Raises:
        MissingCredentialsError: If the run has no decrypted token.
    """
    if not config.access_token:
        raise MissingCredentialsError("Missing access token")
    return True


async def check_schema(store: Any, tables: Sequence[str] = REQUIRED_TABLES) -> bool:
    """
    Raises:
        ConfigurationError: If any required table is missing.
    """
    missing = await store.missing_tables(tables)
    if missing:
        raise ConfigurationError(f"Missing tables: {', '.join(missing)}")
    return True


async def fetch_account_metadata(client: GraphAPIClient, account_id: str) -> AccountMetadata:
    if not account_id:
        raise ConfigurationError("Missing ad account id")
    payload = await client.get_account(account_id)
    return AccountMetadata(
        account_id=account_id,
        name=payload.get('name'),
        timezone_name=payload.get('timezone_name'),
        currency=payload.get('currency'),
    )
