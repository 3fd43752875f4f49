"""
Cryptographic operations for bw_vault.

This module provides:
- Master key derivation (PBKDF2-SHA256, Argon2id, HKDF-Expand)
- Cipher string parsing and AES-CBC/HMAC and RSA-OAEP (de)cryption
- Key resolution (User → Organization → Per-record)
- Field-level record (de)cryption
"""

from bw_vault.crypto.envelope import (
    decode_user_keys,
    decrypt,
    decrypt_to_str,
    encrypt,
    parse,
    serialize,
)
from bw_vault.crypto.kdf import derive_master_key
from bw_vault.crypto.key_resolver import decrypt_org_keys, resolve_key
from bw_vault.crypto.record_codec import decrypt_record, encrypt_changes, encrypt_record

__all__ = [
    "derive_master_key",
    "parse",
    "serialize",
    "decrypt",
    "decrypt_to_str",
    "encrypt",
    "decode_user_keys",
    "resolve_key",
    "decrypt_org_keys",
    "decrypt_record",
    "encrypt_record",
    "encrypt_changes",
]
