"""
Core infrastructure package for the campaign intelligence service.

Provides:
- Configuration management via pydantic-settings
- Async PostgreSQL pool lifecycle via asyncpg
- The exception taxonomy shared by every stage

The store handle (``campaign_intel.core.store``) and the FastAPI dependencies
(``campaign_intel.core.dependencies``) are imported from their modules
directly; they depend on the models and services packages, which in turn
import from here.

Usage Examples:
    from campaign_intel.core import get_settings, init_db, close_db

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await init_db()
        yield
        await close_db()
"""

from campaign_intel.core.config import Settings, get_settings
from campaign_intel.core.database import close_db, get_db_pool, init_db
from campaign_intel.core.exceptions import (
    AuthError,
    CampaignIntelError,
    ConfigurationError,
    CredentialError,
    DecryptionError,
    MissingCredentialsError,
    PersistenceError,
    SyncInProgressError,
    TokenRefreshError,
    TransientError,
    UpstreamFetchError,
)


__all__ = [
    # Configuration
    'Settings',
    'get_settings',

    # Database pool lifecycle
    'init_db',
    'close_db',
    'get_db_pool',

    # Exceptions
    'CampaignIntelError',
    'ConfigurationError',
    'CredentialError',
    'MissingCredentialsError',
    'DecryptionError',
    'TokenRefreshError',
    'UpstreamFetchError',
    'AuthError',
    'TransientError',
    'PersistenceError',
    'SyncInProgressError',
]
