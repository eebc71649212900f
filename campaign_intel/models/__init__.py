"""
Package initialization file for campaign intelligence models.

Re-exports every enumeration and Pydantic schema so other modules can import
them from ``campaign_intel.models`` directly.

Usage:
    from campaign_intel.models import (
        PipelineConfig,
        PipelineState,
        NormalizedMetric,
        RecommendationAction,
        # ... etc
    )
"""

# =============================================================================
# Enums
# =============================================================================

from campaign_intel.models.enums import (
    CredentialStatus,
    CycleType,
    EntityType,
    Priority,
    RecommendationAction,
    RiskLevel,
    ScenarioKind,
    SyncOutcome,
)

# =============================================================================
# Schemas
# =============================================================================

from campaign_intel.models.schemas import (
    # Pipeline configuration and status
    DateRange,
    PipelineConfig,
    PipelineStatus,
    AccountMetadata,
    PipelineState,

    # Ingestion boundary
    RawAction,
    RawInsightRow,

    # Normalized output and persistence
    NormalizedMetric,
    WriteStatus,
    IntegrityCheck,
    TestReport,

    # Intelligence output
    ScenarioDefinition,
    ProjectedOutcome,
    Scenario,
    SimulationOutput,
    Recommendation,

    # Credentials and accounts
    Credential,
    LinkedAccount,
    CredentialHealth,
    ParsedCampaign,

    # Batch results
    AccountSyncResult,
    PerCredentialResult,
)


__all__ = [
    # Enums
    'CredentialStatus',
    'CycleType',
    'EntityType',
    'Priority',
    'RecommendationAction',
    'RiskLevel',
    'ScenarioKind',
    'SyncOutcome',

    # Schemas
    'DateRange',
    'PipelineConfig',
    'PipelineStatus',
    'AccountMetadata',
    'PipelineState',
    'RawAction',
    'RawInsightRow',
    'NormalizedMetric',
    'WriteStatus',
    'IntegrityCheck',
    'TestReport',
    'ScenarioDefinition',
    'ProjectedOutcome',
    'Scenario',
    'SimulationOutput',
    'Recommendation',
    'Credential',
    'LinkedAccount',
    'CredentialHealth',
    'ParsedCampaign',
    'AccountSyncResult',
    'PerCredentialResult',
]
