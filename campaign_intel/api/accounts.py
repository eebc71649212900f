"""
FastAPI router for linked ad accounts.

Key Endpoints:
- GET /accounts - Ad accounts linked to the user's credential
- POST /accounts/refresh - Re-discover ad accounts from the Graph API and link them
- POST /accounts/select - Make one linked account the user's selected account
"""

import logging
from typing import List

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel, Field

from campaign_intel.api.credentials import account_rows, load_user_token
from campaign_intel.core.dependencies import ClientFactoryDep, StoreDep, VaultDep
from campaign_intel.core.exceptions import AuthError, UpstreamFetchError
from campaign_intel.models.schemas import LinkedAccount
from campaign_intel.services.graph_api import normalize_account_id


logger = logging.getLogger(__name__)

router = APIRouter()


class RefreshAccountsRequest(BaseModel):
    user_id: str = Field(..., min_length=1)


class SelectAccountRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    account_id: str = Field(..., min_length=1)


@router.get("", response_model=List[LinkedAccount])
async def list_accounts(
    store: StoreDep,
    user_id: str = Query(..., min_length=1),
) -> List[LinkedAccount]:
    credential = await store.get_credential_for_user(user_id)
    if credential is None or not credential.is_valid:
        raise HTTPException(status_code=404, detail="No valid credential for user")
    return await store.list_accounts_for_credential(credential.id)


@router.post("/refresh", response_model=List[LinkedAccount])
async def refresh_accounts(
    request: RefreshAccountsRequest,
    store: StoreDep,
    vault: VaultDep,
    client_factory: ClientFactoryDep,
) -> List[LinkedAccount]:
    """
    Fetch ``/me/adaccounts`` with the user's token and upsert every account.

    Raises:
        HTTPException 401: If the token was rejected (the credential is invalidated).
        HTTPException 502: If the Graph API could not be reached.
    """
    credential, token = await load_user_token(store, vault, request.user_id)

    try:
        payloads = await client_factory(token).get_ad_accounts()
    except AuthError as exc:
        await store.invalidate_credential(credential.id)
        raise HTTPException(status_code=401, detail=str(exc))
    except UpstreamFetchError as exc:
        logger.warning(f"Account refresh failed for user {request.user_id}: {exc}")
        raise HTTPException(status_code=502, detail=str(exc))

    linked = await store.upsert_accounts(credential.id, account_rows(payloads))
    logger.info(f"Refreshed {linked} ad accounts for user {request.user_id}")
    return await store.list_accounts_for_credential(credential.id)


@router.post("/select", response_model=dict)
async def select_account(
    request: SelectAccountRequest,
    store: StoreDep,
) -> dict:
    credential = await store.get_credential_for_user(request.user_id)
    if credential is None or not credential.is_valid:
        raise HTTPException(status_code=404, detail="No valid credential for user")

    account_id = normalize_account_id(request.account_id)
    if not await store.select_account(credential.id, account_id):
        raise HTTPException(status_code=404, detail="Account not found or access denied")

    return {'success': True, 'selected': account_id}


__all__ = ['router', 'RefreshAccountsRequest', 'SelectAccountRequest']
