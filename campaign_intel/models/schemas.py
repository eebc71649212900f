"""
Pydantic models for the campaign intelligence pipeline.

This module provides type-safe data validation and serialization for every record
the pipeline threads between stages, persists, or hands back to callers:

- Pipeline state: PipelineConfig, PipelineStatus, PipelineState
- Ingestion boundary: RawAction, RawInsightRow (lenient coercion of Graph API JSON)
- Normalized output: NormalizedMetric, WriteStatus, TestReport
- Intelligence output: ScenarioDefinition, Scenario, SimulationOutput, Recommendation
- Credential lifecycle: Credential, LinkedAccount, CredentialHealth
- Batch results: AccountSyncResult, PerCredentialResult

All models use Pydantic v2 syntax.
"""

import re
from datetime import date as DateType, datetime
from typing import Annotated, Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator, model_validator

from campaign_intel.core.exceptions import ConfigurationError
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


# Graph API date presets accepted as DateRange.start
DATE_PRESETS = frozenset({
    'today',
    'yesterday',
    'this_month',
    'last_month',
    'this_quarter',
    'last_3d',
    'last_7d',
    'last_14d',
    'last_28d',
    'last_30d',
    'last_90d',
    'last_year',
    'this_year',
    'maximum',
})

# Older sync triggers used 'lifetime'; the insights edge only understands 'maximum'
PRESET_ALIASES = {'lifetime': 'maximum'}

_LAST_N_DAYS = re.compile(r'^last_\d+d$')

# Above this spend increase a scale scenario must carry a CPL penalty
MAX_LINEAR_SCALE_MULTIPLIER: float = 1.30


def _coerce_number(value: Any) -> float:
    """Coerce Graph API numeric strings to float; anything unparsable becomes 0."""
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        if isinstance(value, (int, float)):
            number = float(value)
        else:
            number = float(str(value).replace(',', '').strip())
    except (OverflowError, ValueError):
        # ints beyond float range raise OverflowError
        return 0.0
    # NaN and infinities never make it downstream
    if number != number or number in (float('inf'), float('-inf')):
        return 0.0
    return number


def _coerce_text(value: Any) -> str:
    if value is None:
        return ''
    return str(value).strip()


LenientFloat = Annotated[float, BeforeValidator(_coerce_number)]
LenientStr = Annotated[str, BeforeValidator(_coerce_text)]


# =============================================================================
# Pipeline Configuration and Status
# =============================================================================


class DateRange(BaseModel):
    """
    Date-range descriptor for a sync.

    ``start`` is either a Graph API date preset (``last_30d``, ``maximum``, ...)
    or an ISO date; in the latter case ``end`` must be an ISO date too and the
    pair is sent as ``time_range``.
    """
    model_config = ConfigDict(frozen=True)

    start: str = Field(default='last_30d', description="Date preset or ISO start date")
    end: str = Field(default='today', description="ISO end date, or 'today' with a preset")
    cycle_type: CycleType = Field(default=CycleType.CUSTOM)

    @property
    def preset(self) -> Optional[str]:
        """The normalized Graph API preset, or None for an explicit time range."""
        start = PRESET_ALIASES.get(self.start, self.start)
        if start in DATE_PRESETS or _LAST_N_DAYS.match(start):
            return start
        return None

    @property
    def time_range(self) -> Optional[Dict[str, str]]:
        if self.preset is not None:
            return None
        return {'since': self.start, 'until': self.end}

    @model_validator(mode='after')
    def _check_explicit_range(self) -> 'DateRange':
        if self.preset is None:
            try:
                since = DateType.fromisoformat(self.start)
                until = DateType.fromisoformat(self.end)
            except ValueError as exc:
                raise ValueError(
                    f"Date range start '{self.start}' is neither a known preset "
                    f"nor an ISO date pair"
                ) from exc
            if since > until:
                raise ValueError('Date range start is after its end')
        return self


class PipelineConfig(BaseModel):
    """
    Immutable run configuration.

    The decrypted token never leaves the process: it is excluded from
    serialization and from the model repr.
    """
    model_config = ConfigDict(frozen=True)

    user_id: Optional[str] = None
    credential_id: Optional[str] = None
    account_id: Optional[str] = None
    access_token: Optional[str] = Field(default=None, exclude=True, repr=False)
    date_range: DateRange = Field(default_factory=DateRange)


class PipelineStatus(BaseModel):
    """
    Accumulating run status.

    ``errors`` only ever grows during a run. ``schema_valid`` and ``token_valid``
    stay None until the stage that determines them has run.
    """
    errors: List[str] = Field(default_factory=list)
    schema_valid: Optional[bool] = None
    token_valid: Optional[bool] = None


class AccountMetadata(BaseModel):
    """Name and reporting timezone of the ad account being synced."""
    account_id: str
    name: Optional[str] = None
    timezone_name: Optional[str] = None
    currency: Optional[str] = None


# =============================================================================
# Ingestion Boundary
# =============================================================================


class RawAction(BaseModel):
    """One entry of the insights ``actions`` list, e.g. ``{"action_type": "lead", "value": "3"}``."""
    action_type: LenientStr = ''
    value: LenientFloat = 0.0


class RawInsightRow(BaseModel):
    """
    One (campaign, ad, day, hour) record from the insights edge.

    Construction never fails on a dict payload: identifiers default to '',
    numbers that are missing or unparsable default to 0, and malformed
    entries of ``actions`` are dropped. Unknown keys are kept as extras.
    """
    model_config = ConfigDict(extra='allow')

    account_id: LenientStr = ''
    campaign_id: LenientStr = ''
    campaign_name: LenientStr = ''
    adset_id: LenientStr = ''
    adset_name: LenientStr = ''
    ad_id: LenientStr = ''
    ad_name: LenientStr = ''
    date_start: LenientStr = ''
    date_stop: LenientStr = ''
    hourly_stats_aggregated_by_advertiser_time_zone: LenientStr = ''
    spend: LenientFloat = 0.0
    impressions: LenientFloat = 0.0
    reach: LenientFloat = 0.0
    clicks: LenientFloat = 0.0
    actions: List[RawAction] = Field(default_factory=list)

    @field_validator('actions', mode='before')
    @classmethod
    def _drop_malformed_actions(cls, value: Any) -> List[Dict[str, Any]]:
        if not isinstance(value, list):
            return []
        return [item for item in value if isinstance(item, dict)]

    @classmethod
    def from_api(cls, payload: Any) -> 'RawInsightRow':
        """Parse one element of the insights ``data`` array."""
        if isinstance(payload, RawInsightRow):
            return payload
        if not isinstance(payload, dict):
            payload = {}
        return cls.model_validate(payload)

    def action_count(self, *action_types: str) -> float:
        """
        ``value`` of the first action whose type is one of ``action_types``, else 0.

        The API reports 'lead' as a rollup that already includes
        'offsite_conversion.lead', so only the first match is counted.
        """
        wanted = set(action_types)
        for action in self.actions:
            if action.action_type in wanted:
                return action.value
        return 0.0


# =============================================================================
# Normalized Metrics and Persistence
# =============================================================================


class NormalizedMetric(BaseModel):
    """
    Canonical per-(ad, day, hour) metrics row.

    Natural key for persistence: (ad_id, date_start, hour).
    """
    account_id: str = ''
    campaign_id: str = ''
    campaign_name: str = ''
    adset_id: str = ''
    adset_name: str = ''
    ad_id: str = ''
    ad_name: str = ''
    date_start: str = ''
    hour: int = Field(default=0, ge=0, le=23)
    spend: float = 0.0
    impressions: float = 0.0
    reach: float = 0.0
    clicks: float = 0.0
    leads: float = 0.0
    cpl: float = 0.0
    cpm: float = 0.0
    frequency: float = 0.0

    @property
    def natural_key(self) -> Tuple[str, str, int]:
        return (self.ad_id, self.date_start, self.hour)


class WriteStatus(BaseModel):
    """
    Outcome of the persistence stage.

    ``inserted_count`` counts rows in chunks that committed before a failure;
    it is a partial-success report, not all-or-nothing. ``skipped_count``
    counts rows left out of the write because they had no usable date.
    """
    success: bool
    inserted_count: int = Field(default=0, ge=0)
    skipped_count: int = Field(default=0, ge=0)
    error: Optional[str] = None


class IntegrityCheck(BaseModel):
    name: str
    passed: bool
    details: Optional[str] = None


class TestReport(BaseModel):
    """Result of the post-write integrity checks; every check is always evaluated."""
    __test__ = False

    valid: bool
    checks: List[IntegrityCheck] = Field(default_factory=list)

    @property
    def failed_checks(self) -> List[str]:
        return [check.name for check in self.checks if not check.passed]


# =============================================================================
# Simulation
# =============================================================================


class ScenarioDefinition(BaseModel):
    """
    Parameters of one what-if scenario.

    Scale scenarios multiply spend by ``spend_multiplier`` and CPL by
    ``cpl_multiplier``; efficiency scenarios multiply spend and hold leads.
    A scale scenario above +30% spend must degrade CPL: projecting linear
    returns at that size is rejected with ConfigurationError.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str
    assumptions: str
    risk_level: RiskLevel
    kind: ScenarioKind
    spend_multiplier: float = Field(..., gt=0)
    cpl_multiplier: float = Field(default=1.0, gt=0)

    @model_validator(mode='after')
    def _enforce_diminishing_returns(self) -> 'ScenarioDefinition':
        if (
            self.kind == ScenarioKind.SCALE
            and self.spend_multiplier > MAX_LINEAR_SCALE_MULTIPLIER
            and self.cpl_multiplier <= 1.0
        ):
            raise ConfigurationError(
                f"Scenario '{self.id}' scales spend by {self.spend_multiplier:.2f}x "
                f"without a CPL penalty; scaling beyond +30% must degrade CPL"
            )
        return self


class ProjectedOutcome(BaseModel):
    spend: float
    leads: float
    cpl: float
    revenue: float
    profit: float


class Scenario(BaseModel):
    """A named projection; ``projected.revenue = leads * LTV``, ``profit = revenue - spend``."""
    id: str
    name: str
    description: str
    assumptions: str
    risk_level: RiskLevel
    projected: ProjectedOutcome


class SimulationOutput(BaseModel):
    baseline: Scenario
    scenarios: List[Scenario] = Field(default_factory=list)

    def best_scenario(self) -> Scenario:
        """Highest projected profit among the baseline and every scenario; ties keep the earlier one."""
        best = self.baseline
        for scenario in self.scenarios:
            if scenario.projected.profit > best.projected.profit:
                best = scenario
        return best


# =============================================================================
# Optimization
# =============================================================================


class Recommendation(BaseModel):
    action: RecommendationAction
    entity_id: str
    entity_type: EntityType
    reason: str
    priority: Priority
    entity_name: Optional[str] = None


# =============================================================================
# Pipeline State
# =============================================================================


class PipelineState(BaseModel):
    """
    The single record threaded through every stage of one account run.

    Each result field is written by exactly one stage. Only
    ``normalized_metrics`` (persisted) and the account's ``last_synced_at``
    outlive the run.
    """
    config: PipelineConfig = Field(default_factory=PipelineConfig)
    status: PipelineStatus = Field(default_factory=PipelineStatus)
    account_metadata: Optional[AccountMetadata] = None
    raw_insights: List[RawInsightRow] = Field(default_factory=list)
    normalized_metrics: List[NormalizedMetric] = Field(default_factory=list)
    write_status: Optional[WriteStatus] = None
    test_report: Optional[TestReport] = None
    simulation: Optional[SimulationOutput] = None
    optimization_plan: Optional[List[Recommendation]] = None
    executive_summary: Optional[str] = None

    def report(self) -> Dict[str, Any]:
        """Caller-facing view: everything except the raw and normalized rows."""
        return self.model_dump(
            mode='json',
            exclude={'raw_insights', 'normalized_metrics'},
        ) | {'metrics_count': len(self.normalized_metrics)}


# =============================================================================
# Credentials and Accounts
# =============================================================================


class Credential(BaseModel):
    """A stored, encrypted long-lived API token; one row per user."""
    id: str
    user_id: str
    encrypted_access_token: str
    expires_at: Optional[datetime] = None
    is_valid: bool = True
    last_refreshed_at: Optional[datetime] = None

    @field_validator('id', 'user_id', mode='before')
    @classmethod
    def _stringify_ids(cls, value: Any) -> str:
        return _coerce_text(value)

    @classmethod
    def from_record(cls, record: Any) -> 'Credential':
        return cls.model_validate(dict(record))


class LinkedAccount(BaseModel):
    """An ad account linked to a credential."""
    account_id: str
    name: Optional[str] = None
    token_id: Optional[str] = None
    is_active: bool = True
    is_selected: bool = False
    timezone_name: Optional[str] = None
    last_synced_at: Optional[datetime] = None

    @field_validator('token_id', mode='before')
    @classmethod
    def _stringify_token_id(cls, value: Any) -> Optional[str]:
        return None if value is None else _coerce_text(value)

    @classmethod
    def from_record(cls, record: Any) -> 'LinkedAccount':
        return cls.model_validate(dict(record))


class CredentialHealth(BaseModel):
    status: CredentialStatus
    expires_in_days: Optional[int] = None


class ParsedCampaign(BaseModel):
    """Metadata extracted from a campaign name following the account's naming convention."""
    objective: str = 'Unknown'
    partner: str = 'Unknown'
    product_code: str = 'Unknown'
    product_raw: str = 'Unknown'
    audience: str = 'Unknown'
    audience_category: str = 'Unknown'
    start_date: Optional[str] = None
    page: str = 'Unknown'
    suffix: str = ''


# =============================================================================
# Batch Sync Results
# =============================================================================


class AccountSyncResult(BaseModel):
    account_id: str
    success: bool
    inserted_count: int = 0
    integrity_valid: Optional[bool] = None
    errors: List[str] = Field(default_factory=list)


class PerCredentialResult(BaseModel):
    credential_id: str
    user_id: str
    outcome: SyncOutcome
    refreshed: bool = False
    accounts: List[AccountSyncResult] = Field(default_factory=list)
    error: Optional[str] = None
