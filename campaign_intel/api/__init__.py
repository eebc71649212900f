"""
API package initialization.

FastAPI router modules for the campaign intelligence service:
- credentials: credential health and token connection
- accounts: linked ad accounts (list, refresh, select)
- sync: single-account and batch sync triggers
"""

from fastapi import APIRouter

from campaign_intel.api.credentials import router as credentials_router
from campaign_intel.api.accounts import router as accounts_router
from campaign_intel.api.sync import router as sync_router

# Create main API router
api_router = APIRouter()

api_router.include_router(credentials_router, prefix="/credentials", tags=["credentials"])
api_router.include_router(accounts_router, prefix="/accounts", tags=["accounts"])
api_router.include_router(sync_router, prefix="/sync", tags=["sync"])

__all__ = [
    "api_router",
    "credentials_router",
    "accounts_router",
    "sync_router",
]
