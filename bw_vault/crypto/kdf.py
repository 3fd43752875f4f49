"""
Master key derivation.

Turns email + master password into the first levels of the key hierarchy:
the master key, the password hash sent to the server, and the
encryption/MAC key pair that unwraps the user key.
"""

import base64
import hashlib
import hmac

from argon2.low_level import Type as Argon2Type
from argon2.low_level import hash_secret_raw

from bw_vault.exceptions import KdfError
from bw_vault.models.crypto import KdfParams, KdfType, Key, KeySet

_KEY_LENGTH = 32


def pbkdf2_sha256(password: bytes, salt: bytes, iterations: int) -> bytes:
    return hashlib.pbkdf2_hmac("sha256", password, salt, iterations, dklen=_KEY_LENGTH)


def argon2id(
    password: bytes,
    salt: bytes,
    *,
    time_cost: int,
    memory_mib: int,
    parallelism: int,
) -> bytes:
    """
    Argon2id with a SHA-256 pre-hashed salt.

    Args:
        password: Master password bytes.
        salt: Raw salt (the account email). Hashed with SHA-256 first.
        time_cost: Number of passes.
        memory_mib: Memory in MiB.
        parallelism: Number of lanes.

    Returns:
        32-byte master key.
    """
    return hash_secret_raw(
        secret=password,
        salt=hashlib.sha256(salt).digest(),
        time_cost=time_cost,
        memory_cost=memory_mib * 1024,
        parallelism=parallelism,
        hash_len=_KEY_LENGTH,
        type=Argon2Type.ID,
    )


def hkdf_expand_sha256(ikm: bytes, info: str) -> bytes:
    """Single-block HKDF-Expand: HMAC-SHA256(ikm, info || 0x01)."""
    return hmac.new(ikm, info.encode("utf-8") + b"\x01", hashlib.sha256).digest()


def derive_master_key(email: str, password: str, params: KdfParams) -> KeySet:
    """
    Derive the master key, its password hash and the encryption key pair.

    The hash, not the password, is what the server sees.

    Args:
        email: Account email, used as salt.
        password: Master password.
        params: KDF parameters from prelogin.

    Returns:
        A KeySet with master_key, master_password_hash and encryption_key set.

    Raises:
        KdfError: If the algorithm is unknown or its parameters are incomplete.
    """
    if params.iterations <= 0:
        msg = "KDF iterations must be positive"
        raise KdfError(msg, iterations=params.iterations)

    password_bytes = password.encode("utf-8")
    salt = email.encode("utf-8")

    match params.kdf:
        case KdfType.PBKDF2_SHA256:
            master_key = pbkdf2_sha256(password_bytes, salt, params.iterations)
        case KdfType.ARGON2ID:
            if not params.memory_mib or not params.parallelism:
                msg = "Argon2id requires memory and parallelism"
                raise KdfError(
                    msg, memory_mib=params.memory_mib, parallelism=params.parallelism
                )
            master_key = argon2id(
                password_bytes,
                salt,
                time_cost=params.iterations,
                memory_mib=params.memory_mib,
                parallelism=params.parallelism,
            )
        case _:
            msg = "Unsupported KDF algorithm"
            raise KdfError(msg, kdf=params.kdf)

    password_hash = pbkdf2_sha256(master_key, password_bytes, 1)

    return KeySet(
        master_key=master_key,
        master_password_hash=base64.b64encode(password_hash).decode("ascii"),
        encryption_key=Key(
            key=hkdf_expand_sha256(master_key, "enc"),
            mac=hkdf_expand_sha256(master_key, "mac"),
        ),
    )
