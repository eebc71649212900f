"""
Credential Vault: encryption at rest and expiry detection for API tokens.

Tokens are encrypted with AES-256-CBC and PKCS7 padding using a fresh random
16-byte IV per call. The stored form is ``hex(iv):hex(ciphertext)``. The key is
the first 32 UTF-8 bytes of the operator secret; Settings rejects shorter
secrets at load time, and TokenVault re-checks so it can be used standalone.

Expiry states (see CredentialStatus):
    not_connected  no credential row for the user
    expired        invalidated, or expiry in the past
    warning        expires within the refresh window (default 7 days)
    healthy        more than the window left, or no known expiry
"""

import logging
import math
import os
from datetime import datetime, timezone
from typing import Optional

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from campaign_intel.core.config import MIN_ENCRYPTION_SECRET_LENGTH
from campaign_intel.core.exceptions import ConfigurationError, DecryptionError
from campaign_intel.models.enums import CredentialStatus
from campaign_intel.models.schemas import Credential, CredentialHealth


logger = logging.getLogger(__name__)

IV_LENGTH = 16
SECONDS_PER_DAY = 86400


class TokenVault:
    """
    Symmetric encryption of long-lived tokens.

    Args:
        secret: Operator secret; at least 32 bytes once UTF-8 encoded.

    Raises:
        ConfigurationError: If the secret is too short to key AES-256.
    """

    def __init__(self, secret: str):
        key = (secret or '').encode('utf-8')
        if len(key) < MIN_ENCRYPTION_SECRET_LENGTH:
            raise ConfigurationError(
                f"Encryption secret must be at least {MIN_ENCRYPTION_SECRET_LENGTH} bytes"
            )
        self._key = key[:MIN_ENCRYPTION_SECRET_LENGTH]

    def encrypt(self, plaintext: str) -> str:
        iv = os.urandom(IV_LENGTH)
        padder = padding.PKCS7(algorithms.AES.block_size).padder()
        padded = padder.update(plaintext.encode('utf-8')) + padder.finalize()
        encryptor = Cipher(algorithms.AES(self._key), modes.CBC(iv)).encryptor()
        ciphertext = encryptor.update(padded) + encryptor.finalize()
        return f"{iv.hex()}:{ciphertext.hex()}"

    def decrypt(self, ciphertext: str) -> str:
        """
        Decrypt a stored ``iv:ciphertext`` value.

        Raises:
            DecryptionError: If the value is malformed or was encrypted under
                a different key.
        """
        if not ciphertext or ':' not in ciphertext:
            raise DecryptionError("Stored token is not in iv:ciphertext form")

        iv_hex, _, body_hex = ciphertext.partition(':')
        try:
            iv = bytes.fromhex(iv_hex)
            body = bytes.fromhex(body_hex)
        except ValueError as exc:
            raise DecryptionError("Stored token is not valid hex") from exc

        if len(iv) != IV_LENGTH or not body or len(body) % IV_LENGTH:
            raise DecryptionError("Stored token has an invalid IV or ciphertext length")

        try:
            decryptor = Cipher(algorithms.AES(self._key), modes.CBC(iv)).decryptor()
            padded = decryptor.update(body) + decryptor.finalize()
            unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
            plaintext = unpadder.update(padded) + unpadder.finalize()
            return plaintext.decode('utf-8')
        except ValueError as exc:
            # Bad padding or non-UTF-8 output: wrong key or tampered value
            raise DecryptionError("Stored token could not be decrypted") from exc


def days_until_expiry(expires_at: Optional[datetime], now: Optional[datetime] = None) -> Optional[float]:
    """Fractional days from ``now`` to ``expires_at``; negative once expired."""
    if expires_at is None:
        return None
    now = now or datetime.now(timezone.utc)
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return (expires_at - now).total_seconds() / SECONDS_PER_DAY


def check_token_health(
    credential: Optional[Credential],
    now: Optional[datetime] = None,
    warning_window_days: int = 7,
) -> CredentialHealth:
    """
    Classify a user's stored credential for the status endpoint.

    Args:
        credential: The user's credential row, or None if they never connected.
        now: Reference time (defaults to the current UTC time).
        warning_window_days: Days before expiry that count as ``warning``.

    Returns:
        CredentialHealth with ``expires_in_days`` rounded up to whole days,
        0 when expired and None when the expiry is unknown.
    """
    if credential is None:
        return CredentialHealth(status=CredentialStatus.NOT_CONNECTED)

    if not credential.is_valid:
        return CredentialHealth(status=CredentialStatus.EXPIRED)

    remaining = days_until_expiry(credential.expires_at, now)
    if remaining is None:
        return CredentialHealth(status=CredentialStatus.HEALTHY)

    if remaining < 0:
        return CredentialHealth(status=CredentialStatus.EXPIRED, expires_in_days=0)

    expires_in_days = math.ceil(remaining)
    if remaining <= warning_window_days:
        return CredentialHealth(status=CredentialStatus.WARNING, expires_in_days=expires_in_days)

    return CredentialHealth(status=CredentialStatus.HEALTHY, expires_in_days=expires_in_days)


def needs_refresh(
    credential: Credential,
    now: Optional[datetime] = None,
    window_days: int = 7,
) -> bool:
    """True when the credential expires within ``window_days`` (or already has)."""
    remaining = days_until_expiry(credential.expires_at, now)
    return remaining is not None and remaining <= window_days
