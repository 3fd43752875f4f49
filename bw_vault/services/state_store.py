"""
Persisted session state.

Stores what is needed to resume a session without the master password: the
decoded key hierarchy and a refresh token. Byte fields are written as lists
of integers inside a JSON document, and the document is base64-encoded.
Organization keys are not stored; they are decoded again on the next sync.
"""

import base64
import binascii
import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import structlog

from bw_vault.exceptions import StateStoreError
from bw_vault.models.crypto import Key, KeySet

logger = structlog.get_logger(__name__)

DEFAULT_STATE_PATH = Path.home() / ".config" / "bitty" / "config.json"

_KEY_FIELDS = (
    ("encryptionKey", "encryption_key"),
    ("userKey", "user_key"),
    ("privateKey", "private_key"),
)


@dataclass(frozen=True, kw_only=True)
class PersistedState:
    """
    Attributes:
        refresh_token: Token for the refresh grant.
        keys: Decoded key hierarchy (org keys are not persisted).
        base_url: Server root the session belongs to, if not the default.
    """

    refresh_token: str
    keys: KeySet
    base_url: str | None = None

    def to_json(self) -> dict[str, Any]:
        keys: dict[str, Any] = {}
        if self.keys.master_key is not None:
            keys["masterKey"] = list(self.keys.master_key)
        if self.keys.master_password_hash is not None:
            keys["masterPasswordHash"] = self.keys.master_password_hash
        for wire_key, attr in _KEY_FIELDS:
            key = getattr(self.keys, attr)
            if key is not None:
                keys[wire_key] = {"key": list(key.key), "mac": list(key.mac)}

        result: dict[str, Any] = {"keys": keys, "refreshToken": self.refresh_token}
        if self.base_url:
            result["baseUrl"] = self.base_url
        return result

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> "PersistedState":
        """
        Rebuild state from its JSON form.

        Raises:
            StateStoreError: If the refresh token or the keys are missing or
                malformed.
        """
        raw_keys = data.get("keys")
        refresh_token = data.get("refreshToken")
        if not isinstance(raw_keys, dict) or not refresh_token:
            msg = "Persisted state has no keys or refresh token"
            raise StateStoreError(msg)

        try:
            keys = KeySet(
                master_key=bytes(raw_keys["masterKey"]) if "masterKey" in raw_keys else None,
                master_password_hash=raw_keys.get("masterPasswordHash"),
            )
            for wire_key, attr in _KEY_FIELDS:
                if (entry := raw_keys.get(wire_key)) is not None:
                    setattr(
                        keys,
                        attr,
                        Key(key=bytes(entry["key"]), mac=bytes(entry.get("mac") or [])),
                    )
        except (KeyError, TypeError, ValueError) as e:
            msg = "Persisted key material is malformed"
            raise StateStoreError(msg) from e

        return cls(refresh_token=refresh_token, keys=keys, base_url=data.get("baseUrl"))


class StateStore:
    """File-backed storage for PersistedState."""

    def __init__(self, path: Path | None = None) -> None:
        """
        Args:
            path: State file. Defaults to ~/.config/bitty/config.json.
        """
        self._path = path or DEFAULT_STATE_PATH

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> PersistedState | None:
        """
        Read the state file.

        Returns:
            The stored state, or None if there is no state file.

        Raises:
            StateStoreError: If the file exists but cannot be decoded.
        """
        if not self._path.exists():
            return None

        content = self._path.read_text(encoding="utf-8")
        try:
            data = json.loads(base64.b64decode(content, validate=True))
        except (binascii.Error, ValueError) as e:
            msg = "State file is not valid base64 JSON"
            raise StateStoreError(msg, path=str(self._path)) from e
        if not isinstance(data, dict):
            msg = "State file does not hold an object"
            raise StateStoreError(msg, path=str(self._path))

        logger.debug("Loaded session state", path=str(self._path))
        return PersistedState.from_json(data)

    def save(self, state: PersistedState) -> None:
        """Write the state file, readable by the owner only."""
        self._path.parent.mkdir(parents=True, exist_ok=True)
        blob = base64.b64encode(json.dumps(state.to_json()).encode("utf-8"))
        fd = os.open(self._path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "wb") as f:
            f.write(blob)
        logger.debug("Saved session state", path=str(self._path))

    def clear(self) -> None:
        """Delete the state file if it exists."""
        self._path.unlink(missing_ok=True)
