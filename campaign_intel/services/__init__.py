"""
Campaign Intelligence Services Module

Business logic for the per-account pipeline. Each stage module is stateless:
it takes the previous stage's output (plus an injected store or API client
where it does I/O) and returns the next one.

Services:
- token_vault: AES-256-CBC token encryption and credential health
- graph_api: Graph API client (insights, accounts, token exchange)
- preflight: token, schema and account metadata checks
- ingestion: raw hourly insight rows for one account
- metrics: RawInsightRow -> NormalizedMetric
- persistence: chunked idempotent upserts under a per-account sync lock
- integrity: post-write checks -> TestReport
- simulation: baseline and what-if scenario projections
- optimization: pause/scale/monitor recommendations
- executive_summary: Markdown report
- campaign_parser: campaign naming convention parser
- date_ranges: reporting cycles and preset helpers
- orchestrator: runs the stages in order and accumulates errors

All services are consumed by the orchestrator, the batch sync job
(campaign_intel/jobs/) and the API layer (campaign_intel/api/).
"""

# =============================================================================
# Credential and Upstream Services
# =============================================================================

from campaign_intel.services.token_vault import (
    TokenVault,
    check_token_health,
    days_until_expiry,
    needs_refresh,
)

from campaign_intel.services.graph_api import (
    GraphAPIClient,
    date_range_params,
    normalize_account_id,
)

# =============================================================================
# Pipeline Stages
# =============================================================================

from campaign_intel.services.preflight import (
    check_schema,
    check_token,
    fetch_account_metadata,
)

from campaign_intel.services.ingestion import (
    fetch_insights,
    parse_insight_rows,
)

from campaign_intel.services.metrics import (
    LEAD_ACTION_TYPES,
    compute_metrics,
    normalize_row,
    parse_hour,
    safe_ratio,
)

from campaign_intel.services.persistence import (
    build_campaign_catalogue,
    chunked,
    rollup_daily_metrics,
    sync_lock,
    write_metrics,
)

from campaign_intel.services.integrity import validate_write

from campaign_intel.services.simulation import (
    DEFAULT_SCENARIOS,
    LTV_PER_LEAD,
    project_scenario,
    simulate,
)

from campaign_intel.services.optimization import (
    DEFAULT_AVG_CPL,
    aggregate_entities,
    optimize,
    resolve_avg_cpl,
)

from campaign_intel.services.executive_summary import (
    INSUFFICIENT_DATA_SUMMARY,
    render_summary,
    summarize,
)

# =============================================================================
# Helpers
# =============================================================================

from campaign_intel.services.campaign_parser import (
    categorize_audience,
    normalize_product,
    parse_campaign_name,
)

from campaign_intel.services.date_ranges import (
    cycle_date_range,
    preset_for_days,
    resolve_cycle,
)

# =============================================================================
# Orchestration
# =============================================================================

from campaign_intel.services.orchestrator import (
    PipelineOrchestrator,
    run_pipeline,
)


__all__ = [
    # token_vault
    'TokenVault',
    'check_token_health',
    'days_until_expiry',
    'needs_refresh',

    # graph_api
    'GraphAPIClient',
    'date_range_params',
    'normalize_account_id',

    # preflight
    'check_schema',
    'check_token',
    'fetch_account_metadata',

    # ingestion
    'fetch_insights',
    'parse_insight_rows',

    # metrics
    'LEAD_ACTION_TYPES',
    'compute_metrics',
    'normalize_row',
    'parse_hour',
    'safe_ratio',

    # persistence
    'build_campaign_catalogue',
    'chunked',
    'rollup_daily_metrics',
    'sync_lock',
    'write_metrics',

    # integrity
    'validate_write',

    # simulation
    'DEFAULT_SCENARIOS',
    'LTV_PER_LEAD',
    'project_scenario',
    'simulate',

    # optimization
    'DEFAULT_AVG_CPL',
    'aggregate_entities',
    'optimize',
    'resolve_avg_cpl',

    # executive_summary
    'INSUFFICIENT_DATA_SUMMARY',
    'render_summary',
    'summarize',

    # campaign_parser
    'categorize_audience',
    'normalize_product',
    'parse_campaign_name',

    # date_ranges
    'cycle_date_range',
    'preset_for_days',
    'resolve_cycle',

    # orchestrator
    'PipelineOrchestrator',
    'run_pipeline',
]
