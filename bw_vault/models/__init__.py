"""
Domain models for bw_vault.

Mostly immutable (frozen) dataclasses; KeySet is the mutable key hierarchy
owned by a session.
"""

from bw_vault.models.auth import (
    LoginFailed,
    LoginOutcome,
    LoginSuccess,
    MfaParams,
    MfaRequired,
    Session,
    SessionState,
    TwoFactorProvider,
)
from bw_vault.models.crypto import (
    EncryptionType,
    EncString,
    KdfParams,
    KdfType,
    Key,
    KeySet,
)
from bw_vault.models.vault import (
    CardData,
    Cipher,
    CipherType,
    CustomField,
    FieldType,
    IdentityData,
    LoginData,
    LoginUri,
    Organization,
    Payload,
    SshKeyData,
    SyncSnapshot,
)

__all__ = [
    # Auth
    "Session",
    "SessionState",
    "TwoFactorProvider",
    "MfaParams",
    "LoginOutcome",
    "LoginSuccess",
    "MfaRequired",
    "LoginFailed",
    # Crypto
    "EncryptionType",
    "EncString",
    "KdfType",
    "KdfParams",
    "Key",
    "KeySet",
    # Vault
    "CipherType",
    "FieldType",
    "Cipher",
    "Payload",
    "LoginData",
    "LoginUri",
    "CardData",
    "IdentityData",
    "SshKeyData",
    "CustomField",
    "Organization",
    "SyncSnapshot",
]
