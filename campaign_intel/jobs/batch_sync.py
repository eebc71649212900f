"""
Batch Sync Job for the campaign intelligence pipeline.

Runs the per-account pipeline for every linked ad account of every valid
stored credential. Intended to be triggered by a scheduler (cron, a serverless
schedule) or the ``POST /sync/all`` endpoint.

Per credential, in order:
1. Decrypt the stored token. On failure the credential is invalidated and the
   runner moves on to the next credential.
2. Refresh the token when it expires within ``token_refresh_window_days``.
   On failure the credential is invalidated and its accounts are not synced
   this run.
3. Load the credential's active linked accounts.
4. Run the pipeline for each account. An authentication failure invalidates
   the credential and stops its remaining accounts; any other failure is
   recorded on the account and the next account runs.

Isolation Guarantees:
- A failure for one credential never prevents the next credential from running.
- Every outcome is recorded as a PerCredentialResult; nothing is raised to
  the caller of run_all().

Usage:
    from campaign_intel.jobs.batch_sync import BatchSyncRunner, run_batch_sync

    # Inside an application that already owns a store
    results = await BatchSyncRunner(store, settings).run_all()

    # Standalone (opens and closes its own pool)
    results = await run_batch_sync()

See Also:
    - campaign_intel/services/orchestrator.py: per-account pipeline
    - campaign_intel/services/token_vault.py: token encryption and expiry rules
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, List, Optional

from campaign_intel.core.config import Settings, get_settings
from campaign_intel.core.database import close_db, get_db_pool
from campaign_intel.core.exceptions import CredentialError, TokenRefreshError
from campaign_intel.core.store import PostgresStore
from campaign_intel.models.enums import SyncOutcome
from campaign_intel.models.schemas import (
    AccountSyncResult,
    Credential,
    DateRange,
    PerCredentialResult,
    PipelineConfig,
    PipelineState,
)
from campaign_intel.services.graph_api import GraphAPIClient
from campaign_intel.services.ingestion import ClientFactory
from campaign_intel.services.orchestrator import PipelineOrchestrator
from campaign_intel.services.token_vault import TokenVault, needs_refresh


logger = logging.getLogger(__name__)


Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def account_result(account_id: str, state: PipelineState) -> AccountSyncResult:
    """Condense a finished pipeline state into a per-account batch result."""
    errors = list(state.status.errors)
    return AccountSyncResult(
        account_id=account_id,
        success=not errors,
        inserted_count=state.write_status.inserted_count if state.write_status else 0,
        integrity_valid=state.test_report.valid if state.test_report else None,
        errors=errors,
    )


class BatchSyncRunner:
    """
    Sequential runner over all valid credentials.

    Args:
        store: Injected store handle.
        settings: Application settings; defaults to get_settings().
        client_factory: Builds a GraphAPIClient for a token (shared by token
            refresh and the pipeline).
        vault: Token vault; defaults to one keyed by ``token_encryption_secret``.
        clock: Returns the current UTC time.
    """

    def __init__(
        self,
        store: Any,
        settings: Optional[Settings] = None,
        client_factory: Optional[ClientFactory] = None,
        vault: Optional[TokenVault] = None,
        clock: Optional[Clock] = None,
    ):
        self.store = store
        self.settings = settings or get_settings()
        self.client_factory = client_factory or (
            lambda token: GraphAPIClient.from_settings(token, self.settings)
        )
        self.vault = vault or TokenVault(self.settings.token_encryption_secret)
        self.clock = clock or _utcnow
        self.orchestrator = PipelineOrchestrator(store, self.settings, self.client_factory)

    async def run_all(self) -> List[PerCredentialResult]:
        credentials = await self.store.list_valid_credentials()
        logger.info(f"Batch sync starting for {len(credentials)} credentials")

        results = []
        for credential in credentials:
            try:
                result = await self.sync_credential(credential)
            except Exception as exc:
                logger.exception(f"Batch sync failed for credential {credential.id}")
                result = PerCredentialResult(
                    credential_id=credential.id,
                    user_id=credential.user_id,
                    outcome=SyncOutcome.ERROR,
                    error=str(exc),
                )
            results.append(result)

        synced = sum(1 for r in results if r.outcome == SyncOutcome.SYNCED)
        logger.info(f"Batch sync finished: {synced}/{len(results)} credentials fully synced")
        return results

    async def sync_credential(self, credential: Credential) -> PerCredentialResult:
        """Decrypt, refresh if due, and sync every active account of one credential."""
        result = PerCredentialResult(
            credential_id=credential.id,
            user_id=credential.user_id,
            outcome=SyncOutcome.SYNCED,
        )

        try:
            token = self.vault.decrypt(credential.encrypted_access_token)
        except CredentialError as exc:
            logger.error(f"Credential {credential.id} could not be decrypted; invalidating")
            await self.store.invalidate_credential(credential.id)
            result.outcome = SyncOutcome.DECRYPT_FAILED
            result.error = str(exc)
            return result

        now = self.clock()
        if needs_refresh(credential, now, self.settings.token_refresh_window_days):
            try:
                token = await self.refresh_token(credential, token, now)
                result.refreshed = True
            except Exception as exc:
                logger.error(f"Token refresh failed for credential {credential.id}: {exc}")
                await self.store.invalidate_credential(credential.id)
                result.outcome = SyncOutcome.REFRESH_FAILED
                result.error = str(exc)
                return result

        accounts = await self.store.list_active_accounts(credential.id)
        if not accounts:
            logger.info(f"Credential {credential.id} has no active accounts")
            result.outcome = SyncOutcome.NO_ACCOUNTS
            return result

        date_range = DateRange(start=self.settings.default_date_preset)
        for account in accounts:
            state = await self.orchestrator.run(PipelineConfig(
                user_id=credential.user_id,
                credential_id=credential.id,
                account_id=account.account_id,
                access_token=token,
                date_range=date_range,
            ))
            result.accounts.append(account_result(account.account_id, state))

            if state.status.token_valid is False:
                logger.warning(
                    f"Authentication failed for account {account.account_id}; "
                    f"invalidating credential {credential.id}"
                )
                await self.store.invalidate_credential(credential.id)
                result.outcome = SyncOutcome.AUTH_FAILED
                result.error = state.status.errors[-1] if state.status.errors else None
                return result

        if any(not account.success for account in result.accounts):
            result.outcome = SyncOutcome.PARTIAL
        return result

    async def refresh_token(self, credential: Credential, token: str, now: datetime) -> str:
        """
        Exchange ``token`` for a fresh long-lived token and store it encrypted.

        Raises:
            TokenRefreshError: If the app credentials are not configured.
            UpstreamFetchError: If the exchange request fails.
        """
        app_id = self.settings.facebook_app_id
        app_secret = self.settings.facebook_app_secret
        if not app_id or not app_secret:
            raise TokenRefreshError("App credentials are not configured for token refresh")

        client = self.client_factory(token)
        new_token, expires_in = await client.exchange_long_lived_token(app_id, app_secret)
        expires_at = now + timedelta(seconds=expires_in) if expires_in else None

        await self.store.save_refreshed_token(
            credential.id,
            self.vault.encrypt(new_token),
            expires_at,
            now,
        )
        logger.info(f"Refreshed token for credential {credential.id}")
        return new_token


# =============================================================================
# Job Entry Points
# =============================================================================

async def run_batch_sync(settings: Optional[Settings] = None) -> List[PerCredentialResult]:
    """Open the database pool, sync every credential, then close the pool."""
    settings = settings or get_settings()
    try:
        store = PostgresStore(await get_db_pool())
        if settings.auto_create_schema:
            await store.init_schema()
        return await BatchSyncRunner(store, settings).run_all()
    finally:
        await close_db()


def main() -> None:
    """Console entry point for schedulers: ``campaign-intel-sync``."""
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )
    results = asyncio.run(run_batch_sync())
    for result in results:
        logger.info(
            f"credential={result.credential_id} outcome={result.outcome.value} "
            f"accounts={len(result.accounts)} refreshed={result.refreshed}"
        )


__all__ = [
    'BatchSyncRunner',
    'account_result',
    'run_batch_sync',
    'main',
]
