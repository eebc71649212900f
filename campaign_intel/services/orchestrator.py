"""
Pipeline Orchestrator

Runs the campaign intelligence pipeline for one ad account, threading a single
PipelineState through every stage in a fixed order:

    1. Token Check         decrypted token present
    2. Schema Check        required tables exist
    3. Account Metadata    best-effort; failure is recorded and the run continues
    4. Ingestion           raw hourly insights from the Graph API
       (no insights: stop here, leaving simulation and summary absent)
    5. Metrics Compute     raw rows -> NormalizedMetric
    6. Persistence         chunked upserts under the per-account sync lock
    7. Integrity Test      post-write checks -> TestReport
    8. Simulation          baseline + what-if scenarios
    9. Optimization        pause/scale recommendations
   10. Executive Summary   Markdown report

Error Handling:
    Stages raise; the orchestrator catches every exception, logs it, appends
    "<Stage>: <message>" to ``status.errors`` and returns the state accumulated
    so far. An AuthError also sets ``status.token_valid = False``. The whole run
    is bounded by ``pipeline_timeout_seconds``; a timeout is recorded the same
    way. Nothing propagates to the caller.

Usage:
    orchestrator = PipelineOrchestrator(store, settings)
    state = await orchestrator.run(PipelineConfig(
        user_id='user-123',
        account_id='act_123',
        access_token=token,
        date_range=DateRange(start='last_30d'),
    ))
    report = state.report()
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Optional

from campaign_intel.core.config import Settings, get_settings
from campaign_intel.core.exceptions import AuthError
from campaign_intel.models.enums import EntityType
from campaign_intel.models.schemas import PipelineConfig, PipelineState
from campaign_intel.services.executive_summary import summarize
from campaign_intel.services.graph_api import GraphAPIClient
from campaign_intel.services.ingestion import ClientFactory, fetch_insights
from campaign_intel.services.integrity import validate_write
from campaign_intel.services.metrics import compute_metrics
from campaign_intel.services.optimization import optimize
from campaign_intel.services.persistence import sync_lock, write_metrics
from campaign_intel.services.preflight import check_schema, check_token, fetch_account_metadata
from campaign_intel.services.simulation import simulate


logger = logging.getLogger(__name__)


StageFn = Callable[[PipelineState], Awaitable[None]]


class PipelineOrchestrator:
    """
    Single-account pipeline runner.

    Args:
        store: Injected store handle (PostgresStore or a compatible fake).
        settings: Thresholds, limits and Graph API options; defaults to get_settings().
        client_factory: Builds a GraphAPIClient for a decrypted token.
    """

    def __init__(
        self,
        store: Any,
        settings: Optional[Settings] = None,
        client_factory: Optional[ClientFactory] = None,
    ):
        self.store = store
        self.settings = settings or get_settings()
        self.client_factory = client_factory or (
            lambda token: GraphAPIClient.from_settings(token, self.settings)
        )

    async def run(self, config: PipelineConfig) -> PipelineState:
        """Run every stage for ``config.account_id`` and return the final state."""
        state = PipelineState(config=config)
        timeout = self.settings.pipeline_timeout_seconds
        logger.info(f"Pipeline starting for account {config.account_id}")

        try:
            await asyncio.wait_for(self._run_stages(state), timeout=timeout)
        except asyncio.TimeoutError:
            logger.error(f"Pipeline timed out for account {config.account_id}")
            state.status.errors.append(f"Pipeline timed out after {timeout:g}s")

        logger.info(
            f"Pipeline finished for account {config.account_id} "
            f"with {len(state.status.errors)} errors"
        )
        return state

    async def _stage(self, state: PipelineState, label: str, fn: StageFn) -> bool:
        """Run one stage; record any exception and report whether it succeeded."""
        try:
            await fn(state)
            return True
        except Exception as exc:
            logger.exception(f"{label} failed for account {state.config.account_id}")
            state.status.errors.append(f"{label}: {exc}")
            if isinstance(exc, AuthError):
                state.status.token_valid = False
            return False

    async def _run_stages(self, state: PipelineState) -> None:
        # --- Preflight ---
        if not await self._stage(state, 'Token Check', self._check_token):
            return
        if not await self._stage(state, 'Schema Check', self._check_schema):
            return
        await self._stage(state, 'Account Metadata', self._load_account_metadata)
        if state.status.token_valid is False:
            return

        # --- Data ---
        if not await self._stage(state, 'Ingestion', self._ingest):
            return
        if not state.raw_insights:
            logger.info(f"No insights for account {state.config.account_id}; skipping")
            return
        if not await self._stage(state, 'Metrics Compute', self._compute):
            return
        if not await self._stage(state, 'Persistence', self._persist):
            return

        # --- Intelligence ---
        for label, fn in (
            ('Integrity Test', self._validate),
            ('Simulation', self._simulate),
            ('Optimization', self._optimize),
            ('Executive Summary', self._summarize),
        ):
            if not await self._stage(state, label, fn):
                return

    # =========================================================================
    # Stages
    # =========================================================================

    async def _check_token(self, state: PipelineState) -> None:
        try:
            check_token(state.config)
        except Exception:
            state.status.token_valid = False
            raise
        state.status.token_valid = True

    async def _check_schema(self, state: PipelineState) -> None:
        try:
            await check_schema(self.store)
        except Exception:
            state.status.schema_valid = False
            raise
        state.status.schema_valid = True

    async def _load_account_metadata(self, state: PipelineState) -> None:
        client = self.client_factory(state.config.access_token)
        state.account_metadata = await fetch_account_metadata(client, state.config.account_id)

    async def _ingest(self, state: PipelineState) -> None:
        state.raw_insights = await fetch_insights(
            state.config.access_token,
            state.config.account_id,
            state.config.date_range,
            client_factory=self.client_factory,
        )

    async def _compute(self, state: PipelineState) -> None:
        state.normalized_metrics = compute_metrics(state.raw_insights, state.config.account_id)

    async def _persist(self, state: PipelineState) -> None:
        account_id = state.config.account_id
        now = datetime.now(timezone.utc)
        async with sync_lock(self.store, account_id, self.settings.sync_lock_stale_seconds, now):
            state.write_status = await write_metrics(
                self.store,
                state.normalized_metrics,
                account_id,
                chunk_size=self.settings.persistence_chunk_size,
                now=now,
            )

    async def _validate(self, state: PipelineState) -> None:
        state.test_report = validate_write(state.write_status, state.normalized_metrics)

    async def _simulate(self, state: PipelineState) -> None:
        state.simulation = simulate(state.normalized_metrics, ltv=self.settings.ltv_per_lead)

    async def _optimize(self, state: PipelineState) -> None:
        settings = self.settings
        state.optimization_plan = optimize(
            state.normalized_metrics,
            state.simulation,
            entity_type=EntityType(settings.optimization_level),
            pause_min_spend=settings.pause_min_spend,
            pause_cpl_multiple=settings.pause_cpl_multiple,
            scale_min_leads=settings.scale_min_leads,
            scale_cpl_multiple=settings.scale_cpl_multiple,
            monitor_cpl_multiple=settings.monitor_cpl_multiple,
            default_avg_cpl=settings.default_avg_cpl,
        )

    async def _summarize(self, state: PipelineState) -> None:
        state.executive_summary = summarize(state, self.settings.currency_symbol)


async def run_pipeline(
    store: Any,
    config: PipelineConfig,
    settings: Optional[Settings] = None,
    client_factory: Optional[ClientFactory] = None,
) -> PipelineState:
    """Convenience wrapper: build an orchestrator and run one account."""
    return await PipelineOrchestrator(store, settings, client_factory).run(config)
