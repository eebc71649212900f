"""
Insights Ingestion Service

Pulls raw hourly ad-level performance rows for one ad account from the Graph API
and validates them at the boundary into ``RawInsightRow`` records.

Key Features:
- Requires a decrypted token and an account identifier (MissingCredentialsError)
- Date presets ('last_30d', 'maximum', legacy 'lifetime') or explicit ISO ranges
- Lenient row parsing: missing identifiers become '', unparsable numbers become 0,
  malformed action entries are dropped
- No retries: an upstream failure is terminal for the current run

Side effects: none beyond the HTTP calls.
"""

import logging
from typing import Any, Callable, Iterable, List, Optional

from campaign_intel.core.exceptions import MissingCredentialsError
from campaign_intel.models.schemas import DateRange, RawInsightRow
from campaign_intel.services.graph_api import GraphAPIClient


logger = logging.getLogger(__name__)

# Builds a client for a decrypted token; the orchestrator injects one bound to Settings
ClientFactory = Callable[[str], GraphAPIClient]


def parse_insight_rows(payloads: Iterable[Any]) -> List[RawInsightRow]:
    """Validate raw ``data`` entries; order and count are preserved."""
    return [RawInsightRow.from_api(payload) for payload in payloads]


async def fetch_insights(
    access_token: Optional[str],
    account_id: Optional[str],
    date_range: Optional[DateRange] = None,
    client_factory: Optional[ClientFactory] = None,
) -> List[RawInsightRow]:
    """
    Fetch raw insight rows for one account.

    Args:
        access_token: Decrypted long-lived token.
        account_id: Ad account id, with or without the ``act_`` prefix.
        date_range: Preset or explicit range; defaults to last_30d.
        client_factory: Builds the GraphAPIClient for the token.

    Returns:
        List of RawInsightRow in API order.

    Raises:
        MissingCredentialsError: If the token or account id is empty.
        AuthError: If the API rejected the token.
        TransientError: On any other upstream or network failure.
    """
    if not access_token or not account_id:
        raise MissingCredentialsError("Missing access token or ad account id")

    date_range = date_range or DateRange()
    client = (client_factory or GraphAPIClient)(access_token)

    logger.info(
        f"Fetching hourly insights for {account_id} "
        f"({date_range.preset or date_range.time_range})"
    )
    payloads = await client.get_hourly_ad_insights(account_id, date_range)
    rows = parse_insight_rows(payloads)
    logger.info(f"Ingested {len(rows)} raw rows for {account_id}")
    return rows
