"""
Structural diff and deep merge for partial record updates.

diff_record() compares two typed records and returns only what changed, in
the server's camelCase shape. merge_patch() lays such a patch over the raw
server JSON so unmodelled fields survive the round trip.

Sequences (login URIs, custom fields) are compared and replaced as a whole,
never element by element.
"""

from collections.abc import Mapping
from dataclasses import fields
from enum import Enum
from typing import Any

from bw_vault.models.vault import PAYLOAD_TYPES, Cipher, Payload, wire_name

# Diffed separately or never sent back.
_SKIPPED = frozenset({"payload", "fields", "raw"})


def _to_wire(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, tuple):
        return [_to_wire(item) for item in value]
    if hasattr(value, "to_api"):
        return value.to_api()
    return value


def diff_payload(base: Payload, patch: Payload) -> dict[str, Any]:
    """Changed attributes of two payloads of the same type, keyed by wire name."""
    changes = {}
    for f in fields(patch):
        new = getattr(patch, f.name)
        if getattr(base, f.name) != new:
            changes[wire_name(f.name)] = _to_wire(new)
    return changes


def diff_record(base: Cipher, patch: Cipher) -> dict[str, Any]:
    """
    Compute what `patch` changes relative to `base`.

    Args:
        base: Record as currently known (decrypted).
        patch: Desired state of the same record (decrypted).

    Returns:
        camelCase dict of changed attributes; empty if nothing changed.
        A payload of the same type is diffed field by field, otherwise the
        patch payload is taken whole.
    """
    changes: dict[str, Any] = {}
    for f in fields(patch):
        if f.name in _SKIPPED:
            continue
        new = getattr(patch, f.name)
        if getattr(base, f.name) != new:
            changes[wire_name(f.name)] = _to_wire(new)

    if base.fields != patch.fields:
        changes["fields"] = _to_wire(patch.fields)

    spec = PAYLOAD_TYPES.get(patch.type)
    if spec is not None:
        payload_key = spec[0]
        if base.payload is not None and type(base.payload) is type(patch.payload):
            sub = diff_payload(base.payload, patch.payload)
            if sub:
                changes[payload_key] = sub
        elif base.payload != patch.payload:
            changes[payload_key] = _to_wire(patch.payload)
    return changes


def merge_patch(original: Mapping[str, Any], patch: Mapping[str, Any]) -> dict[str, Any]:
    """
    Deep-merge `patch` onto `original`.

    Mappings present on both sides are merged recursively; any other value
    (lists and None included) replaces the original one.

    Args:
        original: Base mapping. Not modified.
        patch: Values to lay over it.

    Returns:
        A new dict.
    """
    result = dict(original)
    for key, value in patch.items():
        current = result.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            result[key] = merge_patch(current, value)
        else:
            result[key] = value
    return result
