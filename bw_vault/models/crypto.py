"""
Cryptographic domain models.
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any


class EncryptionType(IntEnum):
    """Cipher string variant digits."""

    AES_CBC_256 = 0
    AES_CBC_128_HMAC_SHA256 = 1
    AES_CBC_256_HMAC_SHA256 = 2
    RSA_OAEP_SHA256 = 3
    RSA_OAEP_SHA1 = 4
    RSA_OAEP_SHA256_HMAC_SHA256 = 5
    RSA_OAEP_SHA1_HMAC_SHA256 = 6

    @property
    def is_aes(self) -> bool:
        return self <= EncryptionType.AES_CBC_256_HMAC_SHA256

    @property
    def key_size(self) -> int:
        """AES key size in bytes, 0 for RSA variants."""
        match self:
            case self.AES_CBC_256 | self.AES_CBC_256_HMAC_SHA256:
                return 32
            case self.AES_CBC_128_HMAC_SHA256:
                return 16
            case _:
                return 0

    @property
    def oaep_hash(self) -> str | None:
        """OAEP digest name for RSA variants, None for AES."""
        match self:
            case self.RSA_OAEP_SHA256 | self.RSA_OAEP_SHA256_HMAC_SHA256:
                return "sha256"
            case self.RSA_OAEP_SHA1 | self.RSA_OAEP_SHA1_HMAC_SHA256:
                return "sha1"
            case _:
                return None

    @property
    def part_counts(self) -> tuple[int, ...]:
        """Accepted number of `|`-separated parts in the payload."""
        match self:
            case self.AES_CBC_256:
                return (2, 3)
            case self.AES_CBC_128_HMAC_SHA256 | self.AES_CBC_256_HMAC_SHA256:
                return (3,)
            case self.RSA_OAEP_SHA256 | self.RSA_OAEP_SHA1:
                return (1, 2)
            case _:
                return (2,)


class KdfType(IntEnum):
    """Master key derivation algorithms."""

    PBKDF2_SHA256 = 0
    ARGON2ID = 1


def _pick(payload: dict[str, Any], name: str) -> Any:
    # Prelogin answers in camelCase on current servers, PascalCase on older ones.
    if name in payload:
        return payload[name]
    return payload.get(name[0].upper() + name[1:])


@dataclass(frozen=True, kw_only=True)
class KdfParams:
    """
    KDF parameters returned by the prelogin endpoint.

    Attributes:
        kdf: Algorithm identifier (see KdfType). Kept as a raw int so that
            unknown algorithms are rejected at derivation time.
        iterations: PBKDF2 iterations or Argon2id time cost.
        memory_mib: Argon2id memory in MiB.
        parallelism: Argon2id lanes.
    """

    kdf: int
    iterations: int
    memory_mib: int | None = None
    parallelism: int | None = None

    @classmethod
    def from_prelogin(cls, payload: dict[str, Any]) -> "KdfParams":
        return cls(
            kdf=int(_pick(payload, "kdf") or 0),
            iterations=int(_pick(payload, "kdfIterations") or 0),
            memory_mib=_pick(payload, "kdfMemory"),
            parallelism=_pick(payload, "kdfParallelism"),
        )


@dataclass(frozen=True, kw_only=True)
class EncString:
    """
    A parsed cipher string.

    Attributes:
        enc_type: Variant digit.
        iv: Initialization vector (AES variants only).
        data: Ciphertext.
        mac: HMAC-SHA256 over iv || ciphertext, if present.
    """

    enc_type: EncryptionType
    data: bytes
    iv: bytes | None = None
    mac: bytes | None = None


@dataclass(frozen=True, repr=False)
class Key:
    """
    Symmetric key pair or raw private key.

    Attributes:
        key: Encryption key material (or DER private key bytes).
        mac: MAC key, may be empty.
    """

    key: bytes
    mac: bytes = b""

    @property
    def mac_key(self) -> bytes | None:
        """Explicit MAC key, else the upper half of a 64-byte key, else None."""
        if self.mac:
            return self.mac
        if len(self.key) >= 64:
            return self.key[32:64]
        return None

    def __repr__(self) -> str:
        return f"Key(<{len(self.key)} bytes>, mac=<{len(self.mac)} bytes>)"


@dataclass(kw_only=True)
class KeySet:
    """
    The session's key hierarchy.

    master key → encryption key → user key → private key → organization keys.
    Each level can only be decoded once its parent exists.
    """

    master_key: bytes | None = None
    master_password_hash: str | None = None
    encryption_key: Key | None = None
    user_key: Key | None = None
    private_key: Key | None = None
    org_keys: dict[str, Key] = field(default_factory=dict)

    def clear(self) -> None:
        """Drop every key."""
        self.master_key = None
        self.master_password_hash = None
        self.encryption_key = None
        self.user_key = None
        self.private_key = None
        self.org_keys.clear()

    def __repr__(self) -> str:
        present = [
            name
            for name in ("master_key", "encryption_key", "user_key", "private_key")
            if getattr(self, name) is not None
        ]
        return f"KeySet(present={present}, org_keys={len(self.org_keys)})"
