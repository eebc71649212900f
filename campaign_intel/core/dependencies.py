"""
FastAPI dependency injection module for the campaign intelligence service.

Routers never touch the asyncpg pool or the settings singleton directly; they
declare these dependencies instead, so tests can swap both through
``app.dependency_overrides``.

Key Dependencies Provided:
- get_store: PostgresStore wrapping the shared connection pool
- get_settings_dependency: Returns the cached Settings singleton
- get_token_vault: TokenVault keyed by the configured encryption secret
- get_client_factory: Builds Graph API clients for a decrypted token
- StoreDep, SettingsDep, VaultDep and ClientFactoryDep: Annotated aliases for endpoint signatures

Usage Examples:
    @router.get("/accounts")
    async def list_accounts(user_id: str, store: StoreDep) -> List[LinkedAccount]:
        ...

    # In tests
    app.dependency_overrides[get_store] = lambda: fake_store
    app.dependency_overrides[get_settings_dependency] = lambda: test_settings

See Also:
    - campaign_intel/core/store.py: The store handle returned by get_store
    - campaign_intel/api/*.py: Endpoint handlers using these dependencies
"""

from typing import Annotated

from fastapi import Depends

from campaign_intel.core.config import Settings, get_settings
from campaign_intel.core.database import get_db_pool
from campaign_intel.core.store import PostgresStore
from campaign_intel.services.graph_api import GraphAPIClient
from campaign_intel.services.ingestion import ClientFactory
from campaign_intel.services.token_vault import TokenVault


# =============================================================================
# Store Dependency
# =============================================================================

async def get_store() -> PostgresStore:
    """
    Return a store handle over the shared pool.

    The handle is cheap: it holds a pool reference and acquires connections
    per operation, so a new one per request is fine.
    """
    return PostgresStore(await get_db_pool())


# =============================================================================
# Settings Dependency
# =============================================================================

def get_settings_dependency() -> Settings:
    """
    Return the Settings singleton instance.

    Thin wrapper around get_settings() so tests can override it:
        app.dependency_overrides[get_settings_dependency] = lambda: mock_settings
    """
    return get_settings()


def get_token_vault(settings: Annotated[Settings, Depends(get_settings_dependency)]) -> TokenVault:
    return TokenVault(settings.token_encryption_secret)


def get_client_factory(settings: Annotated[Settings, Depends(get_settings_dependency)]) -> ClientFactory:
    """Graph API client factory; tests override it with a MockTransport-backed one."""
    return lambda token: GraphAPIClient.from_settings(token, settings)


# =============================================================================
# Type Aliases for Dependency Injection
# =============================================================================

StoreDep = Annotated[PostgresStore, Depends(get_store)]

SettingsDep = Annotated[Settings, Depends(get_settings_dependency)]

VaultDep = Annotated[TokenVault, Depends(get_token_vault)]

ClientFactoryDep = Annotated[ClientFactory, Depends(get_client_factory)]


__all__ = [
    'get_store',
    'get_settings_dependency',
    'get_token_vault',
    'get_client_factory',
    'StoreDep',
    'SettingsDep',
    'VaultDep',
    'ClientFactoryDep',
]
