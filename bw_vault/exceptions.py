"""
bw_vault exception hierarchy.

All exceptions inherit from VaultError for easy catching.
Messages never carry plaintext or key material.
"""

import json
from typing import Any


class VaultError(Exception):
    """Base exception for all bw_vault errors."""

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self) -> str:
        if self.context:
            ctx = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
            return f"{self.message} ({ctx})"
        return self.message


class KdfError(VaultError):
    """Unsupported or incomplete key derivation parameters."""


class CryptoError(VaultError):
    """Cryptographic operation failed."""


class EnvelopeFormatError(CryptoError):
    """Cipher string is empty or malformed."""


class DecryptionError(CryptoError):
    """Failed to decrypt a cipher string (bad key, padding, MAC or ciphertext)."""


class EncryptionError(CryptoError):
    """Failed to encrypt a value (key too short or no MAC key)."""


class MissingKeyError(CryptoError):
    """A key in the hierarchy was used before it was decoded."""

    def __init__(self, message: str, *, key_type: str | None = None) -> None:
        super().__init__(message, key_type=key_type)
        self.key_type = key_type


class AuthenticationError(VaultError):
    """Authentication failed."""


class InvalidCredentialsError(AuthenticationError):
    """Email or master password rejected."""


class SessionExpiredError(AuthenticationError):
    """Session has expired and cannot be refreshed. A fresh login is required."""


class APIError(VaultError):
    """Server answered with a non-2xx status."""

    def __init__(
        self,
        message: str,
        *,
        status: int,
        body: str = "",
        endpoint: str | None = None,
    ) -> None:
        super().__init__(message, status=status, endpoint=endpoint)
        self.status = status
        self.body = body
        self.endpoint = endpoint

    def json(self) -> Any:
        """
        Parse the response body as JSON.

        Returns:
            Decoded body, or None if the body is not valid JSON.
        """
        try:
            return json.loads(self.body)
        except ValueError:
            return None


class NotFoundError(APIError):
    """Resource not found."""

    def __init__(self, message: str, *, body: str = "", endpoint: str | None = None) -> None:
        super().__init__(message, status=404, body=body, endpoint=endpoint)


class RateLimitError(APIError):
    """Rate limited by the server."""

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        *,
        body: str = "",
        endpoint: str | None = None,
        retry_after: int | None = None,
    ) -> None:
        super().__init__(message, status=429, body=body, endpoint=endpoint)
        self.retry_after = retry_after


class ServerError(APIError):
    """Server-side error (5xx)."""

    def __init__(
        self,
        message: str,
        *,
        status: int = 500,
        body: str = "",
        endpoint: str | None = None,
    ) -> None:
        super().__init__(message, status=status, body=body, endpoint=endpoint)


class NetworkError(VaultError):
    """Network-level error (connection failed, timeout)."""


class NotSyncedError(VaultError):
    """A write was attempted before any successful sync."""


class StateStoreError(VaultError):
    """Persisted session state cannot be read."""


class RecordNotFoundError(VaultError):
    """No record with the given id in the synced vault."""

    def __init__(self, message: str, *, record_id: str) -> None:
        super().__init__(message, record_id=record_id)
        self.record_id = record_id
