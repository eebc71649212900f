"""
FastAPI router for sync triggers.

Key Endpoints:
- POST /sync/account - Run the pipeline for one of the user's accounts and
  return the caller-facing report (write status, integrity report,
  simulation, optimization plan, executive summary, errors)
- POST /sync/all - Run the batch sync over every valid credential

Both endpoints block until the run finishes; each account run is bounded by
``pipeline_timeout_seconds``.
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from campaign_intel.api.credentials import load_user_token
from campaign_intel.core.config import Settings
from campaign_intel.core.dependencies import ClientFactoryDep, SettingsDep, StoreDep, VaultDep
from campaign_intel.jobs.batch_sync import BatchSyncRunner
from campaign_intel.models.enums import CycleType
from campaign_intel.models.schemas import DateRange, PerCredentialResult, PipelineConfig
from campaign_intel.services.date_ranges import cycle_date_range, preset_for_days
from campaign_intel.services.graph_api import normalize_account_id
from campaign_intel.services.orchestrator import PipelineOrchestrator


logger = logging.getLogger(__name__)

router = APIRouter()


class SyncAccountRequest(BaseModel):
    """
    Which account to sync and over which range.

    Range precedence: ``date_preset``, then ``sync_days`` (``last_Nd``), then
    ``cycle_type`` (current reporting cycle), then the configured default preset.
    """
    user_id: str = Field(..., min_length=1)
    account_id: Optional[str] = None
    date_preset: Optional[str] = None
    sync_days: Optional[int] = None
    cycle_type: Optional[CycleType] = None


def resolve_date_range(request: SyncAccountRequest, settings: Settings) -> DateRange:
    """
    Raises:
        ValueError: If the requested preset or day count is invalid.
    """
    if request.date_preset:
        return DateRange(start=request.date_preset)
    if request.sync_days is not None:
        return preset_for_days(request.sync_days)
    if request.cycle_type is not None and request.cycle_type != CycleType.CUSTOM:
        return cycle_date_range(request.cycle_type)
    return DateRange(start=settings.default_date_preset)


@router.post("/account", response_model=dict)
async def sync_account(
    request: SyncAccountRequest,
    store: StoreDep,
    settings: SettingsDep,
    vault: VaultDep,
    client_factory: ClientFactoryDep,
) -> Dict[str, Any]:
    """
    Run the pipeline for the given account, or the user's selected account.

    Pipeline failures do not raise: they are listed in ``status.errors`` of the
    returned report. An authentication failure invalidates the credential.

    Raises:
        HTTPException 400: If no account is given or selected, or the range is invalid.
        HTTPException 404: If the user has no valid credential, or the given
            account is not linked to it.
    """
    credential, token = await load_user_token(store, vault, request.user_id)

    if request.account_id:
        account_id = normalize_account_id(request.account_id)
        linked = await store.list_accounts_for_credential(credential.id)
        if account_id not in {account.account_id for account in linked}:
            raise HTTPException(status_code=404, detail="Account not found or access denied")
    else:
        selected = await store.get_selected_account(credential.id)
        if selected is None:
            raise HTTPException(status_code=400, detail="No ad account selected")
        account_id = selected.account_id

    try:
        date_range = resolve_date_range(request, settings)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    orchestrator = PipelineOrchestrator(store, settings, client_factory)
    state = await orchestrator.run(PipelineConfig(
        user_id=request.user_id,
        credential_id=credential.id,
        account_id=account_id,
        access_token=token,
        date_range=date_range,
    ))

    if state.status.token_valid is False:
        await store.invalidate_credential(credential.id)

    return state.report()


@router.post("/all", response_model=List[PerCredentialResult])
async def sync_all(
    store: StoreDep,
    settings: SettingsDep,
    vault: VaultDep,
    client_factory: ClientFactoryDep,
) -> List[PerCredentialResult]:
    runner = BatchSyncRunner(store, settings, client_factory=client_factory, vault=vault)
    return await runner.run_all()


__all__ = ['router', 'SyncAccountRequest', 'resolve_date_range']
