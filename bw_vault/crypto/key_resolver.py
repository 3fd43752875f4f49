"""
Key resolution for vault records.

Picks the key that decrypts a given record:
User Key → Organization Key (org records) → Per-record Key (if wrapped)

Organization keys are RSA-wrapped to the user's private key and cached in
the session's KeySet once decoded.
"""

import structlog

from bw_vault.crypto import envelope
from bw_vault.exceptions import MissingKeyError
from bw_vault.models.crypto import Key, KeySet
from bw_vault.models.vault import Cipher, SyncSnapshot

logger = structlog.get_logger(__name__)


def resolve_key(cipher: Cipher, key_set: KeySet) -> Key:
    """
    Resolve the symmetric key for a record.

    Org records use their organization key when it is cached and fall back to
    the user key otherwise; callers decrypt org keys first. A per-record key
    is unwrapped with whichever key was picked, and carries no MAC key of its
    own (the MAC half is taken from its 64 bytes).

    Args:
        cipher: Record, raw or decrypted. Only organization_id and key are read.
        key_set: Session key hierarchy.

    Returns:
        The key for the record's fields.

    Raises:
        MissingKeyError: If the user key has not been decoded.
        DecryptionError: If the per-record key cannot be unwrapped.
    """
    if key_set.user_key is None:
        raise MissingKeyError("User key not decoded", key_type="user")

    key = key_set.user_key
    if cipher.organization_id:
        org_key = key_set.org_keys.get(cipher.organization_id)
        if org_key is not None:
            key = org_key
        else:
            logger.debug(
                "Organization key not cached, using user key",
                organization_id=cipher.organization_id,
            )

    if cipher.key:
        key = Key(key=envelope.decrypt(cipher.key, key))
    return key


def decrypt_org_keys(snapshot: SyncSnapshot, key_set: KeySet) -> int:
    """
    Decode organization keys listed in a synced profile.

    Already cached organizations are skipped.

    Args:
        snapshot: Raw sync snapshot.
        key_set: Session key hierarchy. Updated in place.

    Returns:
        Number of newly decoded keys. 0 if the private key is not decoded yet.

    Raises:
        DecryptionError: If an organization key cannot be unwrapped.
    """
    if key_set.private_key is None:
        return 0

    decoded = 0
    for org in snapshot.organizations:
        if org.id in key_set.org_keys or not org.key:
            continue
        key_set.org_keys[org.id] = Key(key=envelope.decrypt(org.key, key_set.private_key))
        decoded += 1
        logger.debug("Decoded organization key", organization_id=org.id)
    return decoded
