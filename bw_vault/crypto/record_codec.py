"""
Field-level (de)cryption of vault records.

Which attributes are encrypted is declared on the model classes
(Cipher.ENCRYPTED_FIELDS and each payload's ENCRYPTED_FIELDS); this module
only walks them. Empty values are never passed to the envelope codec.
"""

from dataclasses import replace
from typing import Any

import structlog

from bw_vault.crypto import envelope
from bw_vault.exceptions import CryptoError, MissingKeyError
from bw_vault.models.crypto import Key
from bw_vault.models.vault import (
    PAYLOAD_TYPES,
    Cipher,
    CipherType,
    LoginData,
    Payload,
    wire_name,
)

logger = structlog.get_logger(__name__)


def _decrypt_value(
    value: str | None, key: Key | None, *, record_id: str | None, attr: str
) -> str | None:
    if not value:
        return value
    if key is None:
        return None
    try:
        return envelope.decrypt_to_str(value, key)
    except MissingKeyError:
        raise
    except CryptoError as e:
        logger.warning(
            "Failed to decrypt field",
            record_id=record_id,
            field=attr,
            error_type=type(e).__name__,
        )
        return None


def _encrypt_value(value: Any, key: Key) -> Any:
    if not value or not isinstance(value, str):
        return value
    return envelope.encrypt(value, key)


def _decrypt_payload(payload: Payload, key: Key | None, record_id: str | None) -> Payload:
    changes = {
        name: _decrypt_value(getattr(payload, name), key, record_id=record_id, attr=name)
        for name in payload.ENCRYPTED_FIELDS
    }
    if isinstance(payload, LoginData):
        changes["uris"] = tuple(
            replace(u, uri=_decrypt_value(u.uri, key, record_id=record_id, attr="uris"))
            for u in payload.uris
        )
    return replace(payload, **changes)


def decrypt_record(cipher: Cipher, key: Key | None) -> Cipher:
    """
    Decrypt every encrypted text attribute of a record.

    A field that fails to decrypt becomes None and is logged; the rest of
    the record is still decrypted. With `key=None` (the record key could not
    be resolved) every non-empty text attribute becomes None.

    Args:
        cipher: Raw record.
        key: Key from resolve_key(), or None.

    Returns:
        A new Cipher holding plaintext. `raw` still points at the server JSON.

    Raises:
        MissingKeyError: Propagated unchanged, never turned into a blank field.
    """
    record_id = cipher.id
    changes: dict[str, Any] = {
        name: _decrypt_value(getattr(cipher, name), key, record_id=record_id, attr=name)
        for name in Cipher.ENCRYPTED_FIELDS
    }
    if cipher.payload is not None:
        changes["payload"] = _decrypt_payload(cipher.payload, key, record_id)
    changes["fields"] = tuple(
        replace(
            f,
            name=_decrypt_value(f.name, key, record_id=record_id, attr="fields"),
            value=_decrypt_value(f.value, key, record_id=record_id, attr="fields"),
        )
        for f in cipher.fields
    )
    return replace(cipher, **changes)


def _encrypt_uris(uris: list[dict[str, Any]], key: Key) -> list[dict[str, Any]]:
    # The checksum covers the old plaintext; the server recomputes it.
    result = []
    for item in uris:
        encrypted = {k: v for k, v in item.items() if k != "uriChecksum"}
        encrypted["uri"] = _encrypt_value(item.get("uri"), key)
        result.append(encrypted)
    return result


def _encrypt_payload(
    data: dict[str, Any], payload_cls: type[Payload], key: Key
) -> dict[str, Any]:
    result = dict(data)
    for wire_key, value in data.items():
        attr = payload_cls.attribute_name(wire_key)
        if attr in payload_cls.ENCRYPTED_FIELDS:
            result[wire_key] = _encrypt_value(value, key)
        elif wire_key == "uris" and isinstance(value, list):
            result[wire_key] = _encrypt_uris(value, key)
    return result


def encrypt_changes(
    changes: dict[str, Any], cipher_type: CipherType, key: Key
) -> dict[str, Any]:
    """
    Encrypt the text attributes of a (partial) wire-format record.

    Keys not present in `changes` are not added, so the output of
    diff_record() stays a partial patch.

    Args:
        changes: camelCase record dict, complete or partial.
        cipher_type: Record kind, selects the payload field list.
        key: Key from resolve_key().

    Returns:
        A copy of `changes` with encrypted text attributes.

    Raises:
        EncryptionError: If `key` cannot be used for encryption.
    """
    result = dict(changes)
    for attr in Cipher.ENCRYPTED_FIELDS:
        if (wire_key := wire_name(attr)) in result:
            result[wire_key] = _encrypt_value(result[wire_key], key)

    if (entry := PAYLOAD_TYPES.get(cipher_type)) is not None:
        payload_key, payload_cls = entry
        if isinstance(result.get(payload_key), dict):
            result[payload_key] = _encrypt_payload(result[payload_key], payload_cls, key)

    if isinstance(result.get("fields"), list):
        result["fields"] = [
            {
                **f,
                "name": _encrypt_value(f.get("name"), key),
                "value": _encrypt_value(f.get("value"), key),
            }
            for f in result["fields"]
        ]
    return result


def encrypt_record(cipher: Cipher, key: Key) -> dict[str, Any]:
    """Encrypt a whole plaintext record into a request body."""
    return encrypt_changes(cipher.to_api(), cipher.type, key)

