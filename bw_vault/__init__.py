"""
bw_vault: async client for Bitwarden-compatible password vaults.

Derives the key hierarchy from the master password, syncs and decrypts the
vault, and writes changed records back re-encrypted.

Example:
    ```python
    from bw_vault import VaultClient

    async with VaultClient() as client:
        await client.login("user@example.com", "master password")
        vault = await client.get_decrypted_sync()
        for record in vault.ciphers:
            print(record.name)
    ```
"""

from bw_vault.client import VaultClient
from bw_vault.config import VaultClientConfig
from bw_vault.exceptions import (
    APIError,
    AuthenticationError,
    CryptoError,
    DecryptionError,
    EncryptionError,
    EnvelopeFormatError,
    InvalidCredentialsError,
    KdfError,
    MissingKeyError,
    NetworkError,
    NotFoundError,
    NotSyncedError,
    RateLimitError,
    RecordNotFoundError,
    ServerError,
    SessionExpiredError,
    StateStoreError,
    VaultError,
)
from bw_vault.models import (
    Cipher,
    CipherType,
    LoginFailed,
    LoginOutcome,
    LoginSuccess,
    MfaParams,
    MfaRequired,
    SessionState,
    SyncSnapshot,
    TwoFactorProvider,
)
from bw_vault.services.state_store import PersistedState, StateStore

__version__ = "0.1.0"

__all__ = [
    # Client
    "VaultClient",
    "VaultClientConfig",
    "PersistedState",
    "StateStore",
    # Models
    "Cipher",
    "CipherType",
    "SyncSnapshot",
    "SessionState",
    "TwoFactorProvider",
    "MfaParams",
    "LoginOutcome",
    "LoginSuccess",
    "MfaRequired",
    "LoginFailed",
    # Exceptions
    "VaultError",
    "KdfError",
    "CryptoError",
    "EnvelopeFormatError",
    "DecryptionError",
    "EncryptionError",
    "MissingKeyError",
    "AuthenticationError",
    "InvalidCredentialsError",
    "SessionExpiredError",
    "APIError",
    "NotFoundError",
    "RateLimitError",
    "ServerError",
    "NetworkError",
    "NotSyncedError",
    "RecordNotFoundError",
    "StateStoreError",
]
