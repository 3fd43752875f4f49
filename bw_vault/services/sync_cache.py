"""
Vault sync cache.

Holds the raw (cipher string) and decrypted snapshots of the vault and
implements record creation and partial updates on top of them.
"""

from dataclasses import replace

import structlog

from bw_vault.api.endpoints.vault import create_cipher, get_sync, replace_cipher
from bw_vault.api.http_client import AsyncHttpClient
from bw_vault.core.patch import diff_record, merge_patch
from bw_vault.crypto.key_resolver import decrypt_org_keys, resolve_key
from bw_vault.crypto.record_codec import decrypt_record, encrypt_changes, encrypt_record
from bw_vault.exceptions import (
    CryptoError,
    MissingKeyError,
    NotSyncedError,
    RecordNotFoundError,
)
from bw_vault.models.crypto import Key
from bw_vault.models.vault import Cipher, SyncSnapshot
from bw_vault.services.session_manager import SessionManager

logger = structlog.get_logger(__name__)


class SyncCache:
    """
    Cached view of the vault for one session.

    The decrypted snapshot, when present, mirrors the raw one record for
    record. Both are dropped together: on login or logout, after a write,
    and whenever a new raw snapshot is fetched.
    """

    def __init__(self, http: AsyncHttpClient, session: SessionManager) -> None:
        """
        Args:
            http: Async HTTP client.
            session: Session providing tokens and keys.
        """
        self._http = http
        self._session = session
        self._raw: SyncSnapshot | None = None
        self._decrypted: SyncSnapshot | None = None
        session.add_reset_listener(self.invalidate)

    @property
    def raw_snapshot(self) -> SyncSnapshot | None:
        return self._raw

    @property
    def decrypted_snapshot(self) -> SyncSnapshot | None:
        return self._decrypted

    def invalidate(self) -> None:
        """Drop both snapshots."""
        self._raw = None
        self._decrypted = None

    async def sync_refresh(self) -> SyncSnapshot:
        """
        Fetch the encrypted vault and decode organization keys.

        Replaces the raw snapshot and drops the decrypted one.

        Returns:
            The new raw snapshot.
        """
        token = await self._session.check_token()
        snapshot = SyncSnapshot.from_api(await get_sync(self._http, token))
        decoded = decrypt_org_keys(snapshot, self._session.keys)

        self._raw = snapshot
        self._decrypted = None
        logger.info(
            "Vault synced",
            records=len(snapshot.ciphers),
            organizations=len(snapshot.organizations),
            new_org_keys=decoded,
        )
        return snapshot

    async def get_decrypted_sync(self, *, force_refresh: bool = False) -> SyncSnapshot:
        """
        Return the decrypted vault, fetching and decrypting it if needed.

        Args:
            force_refresh: Fetch from the server even if a snapshot is cached.

        Returns:
            Decrypted snapshot, same records and order as the raw one.

        Raises:
            MissingKeyError: If the session has no user key.
            SessionExpiredError: If the session cannot be refreshed.
        """
        if self._decrypted is not None and not force_refresh:
            return self._decrypted
        if self._raw is None or force_refresh:
            await self.sync_refresh()

        raw = self._raw
        ciphers = tuple(decrypt_record(c, self._record_key(c)) for c in raw.ciphers)
        self._decrypted = replace(raw, ciphers=ciphers, decrypted=True)
        return self._decrypted

    def _record_key(self, cipher: Cipher) -> Key | None:
        try:
            return resolve_key(cipher, self._session.keys)
        except MissingKeyError:
            raise
        except CryptoError as e:
            logger.warning(
                "Failed to resolve record key",
                record_id=cipher.id,
                error_type=type(e).__name__,
            )
            return None

    async def lookup_by_name(self, name: str, *, decrypted: bool = True) -> list[Cipher]:
        """All records named `name`, decrypted or in their raw form."""
        snapshot = await self.get_decrypted_sync()
        return [
            cipher if decrypted else self._raw.ciphers[index]
            for index, cipher in enumerate(snapshot.ciphers)
            if cipher.name == name
        ]

    async def lookup_by_id(self, record_id: str, *, decrypted: bool = True) -> Cipher | None:
        """The record with `record_id`, decrypted or in its raw form, or None."""
        snapshot = await self.get_decrypted_sync()
        index = snapshot.index_of(record_id)
        if index is None:
            return None
        return snapshot.ciphers[index] if decrypted else self._raw.ciphers[index]

    async def create_record(self, draft: Cipher) -> Cipher:
        """
        Encrypt and upload a new record.

        Args:
            draft: Plaintext record. `id` is ignored.

        Returns:
            The created record as returned by the server (raw form).
        """
        token = await self._session.check_token()
        key = resolve_key(draft, self._session.keys)
        body = encrypt_record(draft, key)

        response = await create_cipher(self._http, token, body)
        self.invalidate()
        logger.info("Record created", record_id=response.get("id"))
        return Cipher.from_api(response)

    async def update_record(self, record_id: str, patch: Cipher) -> Cipher | None:
        """
        Apply the changes in `patch` to a synced record.

        Only attributes that differ from the cached decrypted record are
        re-encrypted; they are merged onto the raw server record, which is
        then sent back in full.

        Args:
            record_id: Record id.
            patch: Desired plaintext state of the record.

        Returns:
            The updated record as returned by the server (raw form), or None
            if `patch` changes nothing (no request is sent).

        Raises:
            NotSyncedError: If the vault has not been decrypted yet.
            RecordNotFoundError: If no synced record has this id.
        """
        if self._decrypted is None or self._raw is None:
            msg = "Vault not synced, call get_decrypted_sync() first"
            raise NotSyncedError(msg)

        index = self._decrypted.index_of(record_id)
        if index is None:
            msg = "Record not found in synced vault"
            raise RecordNotFoundError(msg, record_id=record_id)

        changes = diff_record(self._decrypted.ciphers[index], patch)
        if not changes:
            logger.debug("No changes to record", record_id=record_id)
            return None

        token = await self._session.check_token()
        raw = self._raw.ciphers[index]
        key = resolve_key(raw, self._session.keys)
        body = merge_patch(raw.raw or raw.to_api(), encrypt_changes(changes, patch.type, key))
        body.pop("data", None)

        response = await replace_cipher(self._http, token, record_id, body)
        self.invalidate()
        logger.info("Record updated", record_id=record_id, fields=sorted(changes))
        return Cipher.from_api(response)
