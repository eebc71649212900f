"""
Async client for the Facebook Marketing (Graph) API.

Only the read paths the pipeline needs are implemented:

- get_hourly_ad_insights: ad-level insights with the hourly breakdown,
  following ``paging.next`` until exhausted
- get_account: name/timezone/currency of one ad account
- get_ad_accounts: ad accounts visible to the token (``/me/adaccounts``)
- exchange_long_lived_token: ``fb_exchange_token`` refresh

Every failure surfaces as an UpstreamFetchError subtype built by
``classify_upstream_error``: AuthError when the token is unusable,
TransientError for everything else. No call is retried here.
"""

import json
import logging
from typing import Any, Dict, List, Optional, Tuple

import httpx

from campaign_intel.core.config import Settings
from campaign_intel.core.exceptions import TransientError, classify_upstream_error
from campaign_intel.models.schemas import DateRange


logger = logging.getLogger(__name__)


HOURLY_BREAKDOWN = 'hourly_stats_aggregated_by_advertiser_time_zone'

INSIGHT_FIELDS = (
    'account_id',
    'campaign_id',
    'campaign_name',
    'adset_id',
    'adset_name',
    'ad_id',
    'ad_name',
    'reach',
    'impressions',
    'clicks',
    'spend',
    'actions',
    'action_values',
)

ACCOUNT_FIELDS = 'id,name,timezone_name,currency'


def normalize_account_id(account_id: str) -> str:
    """Return the ``act_``-prefixed form the insights edge expects."""
    bare = account_id.strip()
    if bare.startswith('act_'):
        bare = bare[len('act_'):]
    return f'act_{bare}'


def date_range_params(date_range: DateRange) -> Dict[str, str]:
    """Translate a DateRange into ``date_preset`` or ``time_range`` query params."""
    if date_range.preset is not None:
        return {'date_preset': date_range.preset}
    return {'time_range': json.dumps(date_range.time_range, separators=(',', ':'))}


class GraphAPIClient:
    """
    Thin async wrapper over the Graph API.

    Args:
        access_token: Decrypted user token. Never logged.
        api_version: Version path segment, e.g. 'v18.0'.
        base_url: API host.
        timeout: Per-request timeout in seconds.
        page_limit: Rows requested per page.
        transport: Optional httpx transport (tests pass ``httpx.MockTransport``).
    """

    def __init__(
        self,
        access_token: str,
        *,
        api_version: str = 'v18.0',
        base_url: str = 'https://graph.facebook.com',
        timeout: float = 45.0,
        page_limit: int = 500,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._access_token = access_token
        self._base = f"{base_url.rstrip('/')}/{api_version}"
        self._timeout = timeout
        self._page_limit = page_limit
        self._transport = transport

    @classmethod
    def from_settings(
        cls,
        access_token: str,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> 'GraphAPIClient':
        return cls(
            access_token,
            api_version=settings.graph_api_version,
            base_url=settings.graph_api_base_url,
            timeout=settings.graph_request_timeout_seconds,
            page_limit=settings.graph_page_limit,
            transport=transport,
        )

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self._timeout, transport=self._transport)

    async def _get(
        self,
        client: httpx.AsyncClient,
        url: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """GET one page and return its JSON body, raising a classified error on failure."""
        try:
            resp = await client.get(url, params=params)
        except httpx.HTTPError as exc:
            raise TransientError(f"Network error calling Graph API: {exc}") from exc

        try:
            payload = resp.json()
        except ValueError:
            payload = None

        if not isinstance(payload, dict):
            raise TransientError(
                f"Graph API returned a non-JSON response ({resp.status_code})",
                http_status=resp.status_code,
            )

        if resp.status_code >= 400 or 'error' in payload:
            error = payload.get('error') or {}
            if not isinstance(error, dict):
                error = {'message': str(error)}
            message = error.get('message') or resp.reason_phrase or 'Unknown Graph API error'
            raise classify_upstream_error(message, http_status=resp.status_code, error=error)

        return payload

    async def _get_all_pages(self, path: str, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        rows: List[Dict[str, Any]] = []
        url: Optional[str] = f"{self._base}/{path.lstrip('/')}"
        page_params: Optional[Dict[str, Any]] = {**params, 'access_token': self._access_token}

        async with self._client() as client:
            while url:
                payload = await self._get(client, url, page_params)
                data = payload.get('data') or []
                if isinstance(data, list):
                    rows.extend(data)
                # paging.next is a full URL that already carries the query string
                url = (payload.get('paging') or {}).get('next')
                page_params = None

        return rows

    async def get_hourly_ad_insights(
        self,
        account_id: str,
        date_range: DateRange,
    ) -> List[Dict[str, Any]]:
        """
        Fetch every ad-level hourly insight row for ``account_id``.

        Returns:
            The concatenated ``data`` arrays of all pages, in API order.
        """
        target = normalize_account_id(account_id)
        params = {
            'level': 'ad',
            'fields': ','.join(INSIGHT_FIELDS),
            'breakdowns': HOURLY_BREAKDOWN,
            'limit': str(self._page_limit),
            **date_range_params(date_range),
        }
        rows = await self._get_all_pages(f'{target}/insights', params)
        logger.info(f"Fetched {len(rows)} insight rows for {target}")
        return rows

    async def get_account(self, account_id: str) -> Dict[str, Any]:
        target = normalize_account_id(account_id)
        async with self._client() as client:
            return await self._get(
                client,
                f'{self._base}/{target}',
                {'fields': ACCOUNT_FIELDS, 'access_token': self._access_token},
            )

    async def get_ad_accounts(self) -> List[Dict[str, Any]]:
        return await self._get_all_pages(
            'me/adaccounts',
            {'fields': ACCOUNT_FIELDS, 'limit': str(self._page_limit)},
        )

    async def exchange_long_lived_token(
        self,
        app_id: str,
        app_secret: str,
    ) -> Tuple[str, Optional[int]]:
        """
        Exchange the current token for a fresh long-lived one.

        Returns:
            Tuple of (new access token, lifetime in seconds or None when the
            API does not report one).
        """
        params = {
            'grant_type': 'fb_exchange_token',
            'client_id': app_id,
            'client_secret': app_secret,
            'fb_exchange_token': self._access_token,
        }
        async with self._client() as client:
            payload = await self._get(client, f'{self._base}/oauth/access_token', params)

        token = payload.get('access_token')
        if not token:
            raise TransientError("Token exchange response did not include an access token")

        expires_in = payload.get('expires_in')
        try:
            expires_in = int(expires_in) if expires_in is not None else None
        except (TypeError, ValueError):
            expires_in = None
        return token, expires_in
