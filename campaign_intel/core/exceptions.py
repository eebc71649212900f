"""
Exception taxonomy for the campaign intelligence pipeline.

Stages raise these; the orchestrator converts them into entries of
``PipelineState.status.errors`` and the batch runner uses the ``AuthError``
subtype to invalidate a credential. Integrity check failures are reported
through ``TestReport`` and are never raised.

Hierarchy:
    CampaignIntelError
    ├── ConfigurationError
    ├── CredentialError
    │   ├── MissingCredentialsError
    │   ├── DecryptionError
    │   └── TokenRefreshError
    ├── UpstreamFetchError
    │   ├── AuthError
    │   └── TransientError
    ├── PersistenceError
    └── SyncInProgressError
"""

from typing import Any, Dict, Optional


# Graph API error codes that mean the token itself is no longer usable
AUTH_ERROR_CODES = frozenset({102, 190, 463, 467})

AUTH_ERROR_MARKERS = (
    'session has expired',
    'error validating access token',
    'session is invalid',
    'has not authorized application',
    'the user has changed the password',
)


class CampaignIntelError(Exception):
    """Base class for every error raised by this package."""


class ConfigurationError(CampaignIntelError):
    """Missing identifiers, invalid scenario definitions or an incomplete schema."""


class CredentialError(CampaignIntelError):
    """A credential is missing, undecryptable or could not be refreshed."""


class MissingCredentialsError(CredentialError):
    """No decrypted token or no account identifier was supplied."""


class DecryptionError(CredentialError):
    """The stored token is malformed or the encryption key has changed."""


class TokenRefreshError(CredentialError):
    """The long-lived token exchange failed."""


class UpstreamFetchError(CampaignIntelError):
    """
    The advertising API returned an error or could not be reached.

    Attributes:
        http_status: HTTP status of the failing response, if any.
        error_code: Graph API ``error.code``, if any.
        error: The raw ``error`` object from the response body.
    """

    def __init__(
        self,
        message: str,
        *,
        http_status: Optional[int] = None,
        error_code: Optional[int] = None,
        error: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.http_status = http_status
        self.error_code = error_code
        self.error = error or {}


class AuthError(UpstreamFetchError):
    """The token was rejected: expired, revoked or otherwise invalid."""


class TransientError(UpstreamFetchError):
    """Network failures, rate limits and every other non-auth upstream error."""


class PersistenceError(CampaignIntelError):
    """A chunk write to the shared store failed."""


class SyncInProgressError(CampaignIntelError):
    """Another run currently holds the per-account sync lock."""


def is_auth_failure(message: str, error_code: Optional[int] = None) -> bool:
    """Return True when an upstream error means the token must be re-authorized."""
    if error_code is not None and error_code in AUTH_ERROR_CODES:
        return True
    lowered = (message or '').lower()
    return any(marker in lowered for marker in AUTH_ERROR_MARKERS)


def classify_upstream_error(
    message: str,
    *,
    http_status: Optional[int] = None,
    error: Optional[Dict[str, Any]] = None,
) -> UpstreamFetchError:
    """
    Build the right ``UpstreamFetchError`` subtype for a Graph API failure.

    Args:
        message: Upstream error message (``error.message`` when available).
        http_status: HTTP status of the response.
        error: The ``error`` object of the response body.

    Returns:
        AuthError when the error identifies an unusable token, TransientError otherwise.
    """
    error = error or {}
    raw_code = error.get('code')
    try:
        error_code = int(raw_code) if raw_code is not None else None
    except (TypeError, ValueError):
        error_code = None

    exc_type = AuthError if is_auth_failure(message, error_code) else TransientError
    return exc_type(
        message,
        http_status=http_status,
        error_code=error_code,
        error=error,
    )


__all__ = [
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
    'is_auth_failure',
    'classify_upstream_error',
]
