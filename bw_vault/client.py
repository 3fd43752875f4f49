"""
Vault client facade.

This is the main entry point for users of the library. It wires the HTTP
client, the session manager and the sync cache together behind one object.
"""

import asyncio
from collections.abc import Callable
from dataclasses import replace
from typing import Self

import httpx
import structlog

from bw_vault.api.http_client import AsyncHttpClient
from bw_vault.config import VaultClientConfig
from bw_vault.models.auth import LoginOutcome, MfaParams, SessionState
from bw_vault.models.vault import Cipher, SyncSnapshot
from bw_vault.services.session_manager import SessionManager
from bw_vault.services.state_store import PersistedState
from bw_vault.services.sync_cache import SyncCache

logger = structlog.get_logger(__name__)


class VaultClient:
    """
    Async client for a Bitwarden-compatible vault.

    Example:
        ```python
        async with VaultClient() as client:
            outcome = await client.login("user@example.com", "master password")
            if isinstance(outcome, MfaRequired):
                code = input("Code: ")
                outcome = await client.login(
                    "user@example.com",
                    "master password",
                    MfaParams(provider=TwoFactorProvider.AUTHENTICATOR, token=code),
                )

            for record in await client.lookup_by_name("github"):
                print(record.login.username)
        ```

    Args:
        config: Client configuration. Uses defaults if not provided.
        transport: Optional httpx transport for testing (mock transport).
        clock: Optional epoch-millisecond clock for testing.
    """

    def __init__(
        self,
        config: VaultClientConfig | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Callable[[], int] | None = None,
    ) -> None:
        self._config = config or VaultClientConfig()
        self._transport = transport
        self._clock = clock

        self._http: AsyncHttpClient | None = None
        self._session: SessionManager | None = None
        self._sync: SyncCache | None = None

        self._initialized = False
        self._init_lock = asyncio.Lock()

    async def __aenter__(self) -> Self:
        """Enter async context."""
        await self._ensure_initialized()
        return self

    async def __aexit__(
        self, exc_type: type | None, exc_val: BaseException | None, exc_tb: object
    ) -> None:
        """Exit async context."""
        await self.close()

    @property
    def config(self) -> VaultClientConfig:
        return self._config

    async def _ensure_initialized(self) -> None:
        async with self._init_lock:
            if self._initialized:
                return

            self._http = AsyncHttpClient(self._config, transport=self._transport)
            await self._http.__aenter__()

            self._session = SessionManager(self._http, clock=self._clock)
            self._sync = SyncCache(self._http, self._session)

            self._initialized = True
            logger.debug("Client initialized")

    async def close(self) -> None:
        """Close the client and release resources. Keys are dropped."""
        async with self._init_lock:
            if self._session:
                await self._session.logout()
                self._session = None

            if self._http:
                await self._http.__aexit__(None, None, None)
                self._http = None

            self._sync = None
            self._initialized = False
            logger.debug("Client closed")

    async def _services(self) -> tuple[SessionManager, SyncCache]:
        await self._ensure_initialized()
        if self._session is None or self._sync is None:
            raise RuntimeError("Client not initialized")
        return self._session, self._sync

    @property
    def state(self) -> SessionState:
        """Current session state."""
        if self._session is None:
            return SessionState.ANONYMOUS
        return self._session.state

    @property
    def is_authenticated(self) -> bool:
        return self._session is not None and self._session.is_authenticated

    async def login(
        self, email: str, password: str, mfa: MfaParams | None = None
    ) -> LoginOutcome:
        """
        Log in with the master password.

        Returns:
            LoginSuccess, MfaRequired (resubmit with `mfa`) or LoginFailed.

        Raises:
            InvalidCredentialsError: If email or password is empty.
            KdfError: If the server's KDF parameters are unusable.
            APIError: For non-credential server errors.
            NetworkError: If the server cannot be reached.
        """
        session, _ = await self._services()
        return await session.login(email, password, mfa)

    async def send_email_mfa_code(self, email: str) -> None:
        """Ask the server to email a second-factor code for the pending login."""
        session, _ = await self._services()
        await session.send_email_mfa_code(email)

    async def check_token(self) -> str:
        """Return a valid access token, refreshing it if needed."""
        session, _ = await self._services()
        return await session.check_token()

    async def logout(self) -> None:
        """Drop tokens, keys and cached vault data."""
        if self._session:
            await self._session.logout()

    def export_state(self) -> PersistedState:
        """Snapshot keys and refresh token for a later restore()."""
        if self._session is None:
            raise RuntimeError("Client not initialized")
        return self._session.export_state(base_url=self._config.base_url)

    async def restore(self, state: PersistedState) -> None:
        """
        Resume a session saved with export_state().

        If the state names another server, the client is reconnected to it
        before the refresh token is used. Any current session is dropped.

        Raises:
            SessionExpiredError: If the stored refresh token is rejected.
        """
        if state.base_url and state.base_url != self._config.base_url:
            logger.info("Switching server for restored session", base_url=state.base_url)
            await self.close()
            self._config = replace(
                self._config, base_url=state.base_url, api_url=None, identity_url=None
            )
        session, _ = await self._services()
        await session.restore(state)

    async def sync_refresh(self) -> SyncSnapshot:
        """Fetch the encrypted vault. See SyncCache.sync_refresh()."""
        _, sync = await self._services()
        return await sync.sync_refresh()

    async def get_decrypted_sync(self, *, force_refresh: bool = False) -> SyncSnapshot:
        """Return the decrypted vault. See SyncCache.get_decrypted_sync()."""
        _, sync = await self._services()
        return await sync.get_decrypted_sync(force_refresh=force_refresh)

    async def lookup_by_name(self, name: str, *, decrypted: bool = True) -> list[Cipher]:
        _, sync = await self._services()
        return await sync.lookup_by_name(name, decrypted=decrypted)

    async def lookup_by_id(self, record_id: str, *, decrypted: bool = True) -> Cipher | None:
        _, sync = await self._services()
        return await sync.lookup_by_id(record_id, decrypted=decrypted)

    async def create_record(self, draft: Cipher) -> Cipher:
        """Encrypt and upload a new record. The cache is invalidated."""
        _, sync = await self._services()
        return await sync.create_record(draft)

    async def update_record(self, record_id: str, patch: Cipher) -> Cipher | None:
        """
        Write the changed fields of a record back to the server.

        Returns:
            The updated record, or None if `patch` changes nothing.

        Raises:
            NotSyncedError: If the vault has not been decrypted yet.
            RecordNotFoundError: If no synced record has this id.
        """
        _, sync = await self._services()
        return await sync.update_record(record_id, patch)
