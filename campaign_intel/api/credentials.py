"""
FastAPI router for stored API credentials.

Key Endpoints:
- GET /credentials/status - Credential health for a user
  (not_connected | expired | warning | healthy, plus days until expiry)
- POST /credentials - Store a user's token encrypted and link their ad accounts

Also provides ``load_user_token``, used by the accounts and sync routers to
resolve a user's decrypted token.

The OAuth login dialog itself is handled by the web front end; this router
receives the resulting user token.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Tuple

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel, Field

from campaign_intel.core.dependencies import ClientFactoryDep, SettingsDep, StoreDep, VaultDep
from campaign_intel.core.exceptions import DecryptionError, UpstreamFetchError
from campaign_intel.core.store import PostgresStore
from campaign_intel.models.schemas import Credential, CredentialHealth
from campaign_intel.services.graph_api import normalize_account_id
from campaign_intel.services.token_vault import TokenVault, check_token_health


# =============================================================================
# Module Configuration
# =============================================================================

logger = logging.getLogger(__name__)

router = APIRouter()


# =============================================================================
# Request Models
# =============================================================================

class ConnectRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    access_token: str = Field(..., min_length=1, repr=False)


# =============================================================================
# Shared Helpers
# =============================================================================

async def load_user_token(
    store: PostgresStore,
    vault: TokenVault,
    user_id: str,
) -> Tuple[Credential, str]:
    """
    Resolve a user's valid credential and its decrypted token.

    Raises:
        HTTPException 404: If the user has no valid credential.
        HTTPException 400: If the stored token cannot be decrypted; the
            credential is invalidated so the user is asked to reconnect.
    """
    credential = await store.get_credential_for_user(user_id)
    if credential is None or not credential.is_valid:
        raise HTTPException(status_code=404, detail="No valid credential for user")

    try:
        token = vault.decrypt(credential.encrypted_access_token)
    except DecryptionError:
        logger.error(f"Credential {credential.id} could not be decrypted; invalidating")
        await store.invalidate_credential(credential.id)
        raise HTTPException(status_code=400, detail="Stored token is unreadable; reconnect the account")

    return credential, token


def account_rows(payloads: Any) -> list:
    """Map ``/me/adaccounts`` entries to the store's account dicts."""
    return [
        {
            'account_id': normalize_account_id(str(item.get('id') or item.get('account_id'))),
            'name': item.get('name'),
            'timezone_name': item.get('timezone_name'),
        }
        for item in payloads
        if isinstance(item, dict) and (item.get('id') or item.get('account_id'))
    ]


# =============================================================================
# GET /credentials/status
# =============================================================================

@router.get("/status", response_model=CredentialHealth)
async def credential_status(
    store: StoreDep,
    settings: SettingsDep,
    user_id: str = Query(..., min_length=1),
) -> CredentialHealth:
    credential = await store.get_credential_for_user(user_id)
    return check_token_health(
        credential,
        warning_window_days=settings.token_refresh_window_days,
    )


# =============================================================================
# POST /credentials
# =============================================================================

@router.post("", response_model=dict)
async def connect(
    request: ConnectRequest,
    store: StoreDep,
    settings: SettingsDep,
    vault: VaultDep,
    client_factory: ClientFactoryDep,
) -> Dict[str, Any]:
    """
    Store a user's token and link every ad account it can see.

    When app credentials are configured the token is first exchanged for a
    long-lived one and its expiry recorded; otherwise it is stored as given
    with an unknown expiry.

    Raises:
        HTTPException 400: If the Graph API rejects the token.
    """
    token = request.access_token
    expires_in: Optional[int] = None

    try:
        if settings.facebook_app_id and settings.facebook_app_secret:
            token, expires_in = await client_factory(token).exchange_long_lived_token(
                settings.facebook_app_id,
                settings.facebook_app_secret,
            )
        ad_accounts = await client_factory(token).get_ad_accounts()
    except UpstreamFetchError as exc:
        logger.warning(f"Connecting user {request.user_id} failed: {exc}")
        raise HTTPException(status_code=400, detail=str(exc))

    now = datetime.now(timezone.utc)
    expires_at = now + timedelta(seconds=expires_in) if expires_in else None
    credential = await store.save_credential(request.user_id, vault.encrypt(token), expires_at, now)
    linked = await store.upsert_accounts(credential.id, account_rows(ad_accounts))

    logger.info(f"Connected user {request.user_id}: {linked} ad accounts linked")
    return {
        'success': True,
        'accounts_linked': linked,
        'health': check_token_health(
            credential, now, settings.token_refresh_window_days
        ).model_dump(mode='json'),
    }


__all__ = ['router', 'load_user_token', 'account_rows', 'ConnectRequest']
