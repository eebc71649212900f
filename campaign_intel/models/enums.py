"""
Enumeration definitions for the Campaign Intelligence backend.

All enums inherit from both `str` and `Enum` to ensure JSON serialization compatibility
with Pydantic models, enabling automatic serialization/deserialization in API responses
and in the persisted pipeline report.
"""

from enum import Enum


class CycleType(str, Enum):
    """
    Reporting cycle a date range was derived from.

    - campaign: 27th of the previous month to the 26th of the current month
    - partner: 1st to 26th of the month
    - calendar: first to last day of the month
    - custom: explicit start/end or a Graph API date preset
    """
    CAMPAIGN = "campaign"
    PARTNER = "partner"
    CALENDAR = "calendar"
    CUSTOM = "custom"


class RiskLevel(str, Enum):
    """Risk attached to a simulated scenario."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ScenarioKind(str, Enum):
    """
    Shape of a scenario projection.

    - scale: spend multiplied up, CPL degraded, leads re-derived from spend / CPL
    - efficiency: spend cut while lead volume is held constant
    """
    SCALE = "scale"
    EFFICIENCY = "efficiency"


class RecommendationAction(str, Enum):
    """Actions the optimization rules can emit."""
    PAUSE = "PAUSE"
    SCALE = "SCALE"
    MONITOR = "MONITOR"


class EntityType(str, Enum):
    """Advertising entity a recommendation targets."""
    AD = "ad"
    CAMPAIGN = "campaign"


class Priority(str, Enum):
    """Recommendation priority."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class CredentialStatus(str, Enum):
    """
    Health of a user's stored credential as surfaced to the UI.

    - not_connected: no credential row exists for the user
    - expired: past expiry, or invalidated and awaiting re-authorization
    - warning: expires within the refresh window (7 days)
    - healthy: more than 7 days left, or no known expiry
    """
    NOT_CONNECTED = "not_connected"
    EXPIRED = "expired"
    WARNING = "warning"
    HEALTHY = "healthy"


class SyncOutcome(str, Enum):
    """
    Per-credential outcome of a batch sync run.

    - synced: every linked account ran without recorded errors
    - partial: at least one account recorded errors
    - no_accounts: the credential has no active linked accounts
    - decrypt_failed: the stored token could not be decrypted (credential invalidated)
    - refresh_failed: the expiring token could not be refreshed (credential invalidated)
    - auth_failed: the API rejected the token mid-run (credential invalidated)
    - error: unexpected failure outside the per-account pipeline
    """
    SYNCED = "synced"
    PARTIAL = "partial"
    NO_ACCOUNTS = "no_accounts"
    DECRYPT_FAILED = "decrypt_failed"
    REFRESH_FAILED = "refresh_failed"
    AUTH_FAILED = "auth_failed"
    ERROR = "error"
