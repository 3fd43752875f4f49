"""
Session management.

Handles master-password login (including second-factor challenges), token
refresh and logout, and owns the session's key hierarchy.
"""

import asyncio
import time
from collections.abc import Callable
from typing import Any

import structlog

from bw_vault.api.endpoints.identity import (
    password_grant,
    prelogin,
    refresh_grant,
    send_email_login,
)
from bw_vault.api.http_client import AsyncHttpClient
from bw_vault.crypto import envelope
from bw_vault.crypto.kdf import derive_master_key
from bw_vault.exceptions import (
    APIError,
    AuthenticationError,
    InvalidCredentialsError,
    MissingKeyError,
    SessionExpiredError,
)
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
from bw_vault.models.crypto import KdfParams, KeySet
from bw_vault.services.state_store import PersistedState

logger = structlog.get_logger(__name__)

_REJECTED = frozenset({400, 401})


def _now_ms() -> int:
    return int(time.time() * 1000)


def _parse_mfa_challenge(error: APIError) -> MfaRequired | None:
    """Extract the second-factor challenge from a rejected token request."""
    body = error.json()
    if not isinstance(body, dict):
        return None

    challenge = body.get("TwoFactorProviders2")
    listed = body.get("TwoFactorProviders")
    if challenge is None and listed is None:
        return None
    if not isinstance(challenge, dict):
        challenge = {}
    if not isinstance(listed, list):
        listed = list(challenge)

    providers = []
    for value in listed:
        try:
            providers.append(TwoFactorProvider(int(value)))
        except ValueError:
            logger.debug("Ignoring unknown second-factor provider", provider=value)
    return MfaRequired(providers=tuple(providers), challenge=challenge)


class SessionManager:
    """
    Owns tokens and keys for one account.

    Concurrency:
    - login(), logout() and restore() run under an internal lock.
    - check_token() is single-flight: concurrent callers that find the
      access token expired wait for one refresh and reuse its result.
    """

    def __init__(
        self,
        http: AsyncHttpClient,
        *,
        clock: Callable[[], int] | None = None,
    ) -> None:
        """
        Args:
            http: HTTP client for the identity server.
            clock: Epoch-millisecond clock, for tests.
        """
        self._http = http
        self._clock = clock or _now_ms

        self._state = SessionState.ANONYMOUS
        self._session = Session()
        self._keys = KeySet()
        self._email: str | None = None
        # Keys derived for a login still waiting for its second factor.
        self._pending_keys: KeySet | None = None
        self._pending_email: str | None = None

        self._lock = asyncio.Lock()
        self._refresh_lock = asyncio.Lock()
        self._reset_listeners: list[Callable[[], None]] = []

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def session(self) -> Session:
        return self._session

    @property
    def keys(self) -> KeySet:
        return self._keys

    @property
    def email(self) -> str | None:
        return self._email

    @property
    def is_authenticated(self) -> bool:
        return self._state in (SessionState.AUTHENTICATED, SessionState.EXPIRED)

    def add_reset_listener(self, listener: Callable[[], None]) -> None:
        """Register a callback run whenever the identity changes (login, logout)."""
        self._reset_listeners.append(listener)

    def _notify_reset(self) -> None:
        for listener in self._reset_listeners:
            listener()

    async def login(
        self,
        email: str,
        password: str,
        mfa: MfaParams | None = None,
    ) -> LoginOutcome:
        """
        Log in with the master password.

        Without `mfa` the KDF parameters are fetched and the keys derived.
        With `mfa`, the keys derived by the previous attempt for the same
        email are reused.

        Args:
            email: Account email.
            password: Master password.
            mfa: Second-factor answer after an MfaRequired outcome.

        Returns:
            LoginSuccess, MfaRequired or LoginFailed.

        Raises:
            InvalidCredentialsError: If email or password is empty.
            KdfError: If the server's KDF parameters are unusable.
            APIError: For non-credential server errors.
            NetworkError: If the server cannot be reached.
            AuthenticationError: If the token response lacks the user key.
        """
        if not email or not password:
            msg = "Email and password required"
            raise InvalidCredentialsError(msg)

        logger.info("Starting login", with_mfa=mfa is not None)

        async with self._lock:
            previous_state = self._state
            self._state = SessionState.AUTHENTICATING
            try:
                keys = self._pending_keys if email == self._pending_email else None
                if mfa is None or keys is None:
                    params = KdfParams.from_prelogin(await prelogin(self._http, email))
                    keys = await asyncio.to_thread(derive_master_key, email, password, params)
                    self._pending_keys = keys
                    self._pending_email = email

                response = await password_grant(
                    self._http,
                    email=email,
                    password_hash=keys.master_password_hash,
                    mfa=mfa,
                )
            except APIError as e:
                if (challenge := _parse_mfa_challenge(e)) is not None:
                    self._state = SessionState.MFA_REQUIRED
                    logger.info(
                        "Second factor required",
                        providers=[p.name for p in challenge.providers],
                    )
                    return challenge
                self._state = previous_state
                if e.status in _REJECTED:
                    logger.warning("Login rejected", status=e.status)
                    return LoginFailed(reason=e.message, status=e.status)
                raise
            except Exception:
                self._state = previous_state
                raise

            try:
                self._complete_login(email, keys, response)
            except Exception:
                self._state = previous_state
                raise

            logger.info("Login successful")
            return LoginSuccess(session=self._session)

    def _complete_login(self, email: str, keys: KeySet, response: dict[str, Any]) -> None:
        if not response.get("Key"):
            msg = "Token response has no user key"
            raise AuthenticationError(msg)

        envelope.decode_user_keys(response["Key"], response.get("PrivateKey"), keys)

        if self._keys is not keys:
            self._keys.clear()
        self._keys = keys
        self._email = email
        self._pending_keys = None
        self._pending_email = None
        self._session = self._session_from(response)
        self._state = SessionState.AUTHENTICATED
        self._notify_reset()

    def _session_from(
        self, response: dict[str, Any], fallback_refresh: str | None = None
    ) -> Session:
        return Session(
            access_token=response["access_token"],
            refresh_token=response.get("refresh_token") or fallback_refresh,
            expires_at_ms=self._clock() + int(response.get("expires_in", 0)) * 1000,
        )

    async def send_email_mfa_code(self, email: str) -> None:
        """
        Ask the server to email a second-factor code for the pending login.

        Raises:
            MissingKeyError: If no master password hash has been derived.
        """
        keys = self._pending_keys or self._keys
        if keys.master_password_hash is None:
            msg = "Master password hash not derived, call login() first"
            raise MissingKeyError(msg, key_type="master_password_hash")
        await send_email_login(self._http, email=email, password_hash=keys.master_password_hash)

    async def check_token(self) -> str:
        """
        Return a valid access token, refreshing it first if needed.

        Returns:
            Bearer access token.

        Raises:
            SessionExpiredError: If there is no refresh token or the server
                rejects it. A fresh login is required.
            APIError: For other server errors during refresh.
            NetworkError: If the server cannot be reached.
        """
        session = self._session
        if not session.is_expired(self._clock()):
            return session.access_token

        async with self._refresh_lock:
            if not self._session.is_expired(self._clock()):
                logger.debug("Token already refreshed by another coroutine")
                return self._session.access_token

            refresh_token = self._session.refresh_token
            if not refresh_token:
                msg = "No refresh token available, login required"
                raise SessionExpiredError(msg)

            if self._state == SessionState.AUTHENTICATED:
                self._state = SessionState.EXPIRED
            try:
                response = await refresh_grant(self._http, refresh_token)
            except APIError as e:
                if e.status in _REJECTED:
                    msg = f"Token refresh failed: {e.message}"
                    raise SessionExpiredError(msg) from e
                raise

            self._session = self._session_from(response, fallback_refresh=refresh_token)
            self._state = SessionState.AUTHENTICATED
            logger.debug("Token refreshed successfully")
            return self._session.access_token

    async def logout(self) -> None:
        """Drop tokens, keys and cached vault data."""
        logger.info("Logging out")
        async with self._lock:
            self._clear_state()
            self._state = SessionState.LOGGED_OUT

    def _clear_state(self) -> None:
        self._session = Session()
        self._keys.clear()
        if self._pending_keys is not None:
            self._pending_keys.clear()
        self._pending_keys = None
        self._pending_email = None
        self._email = None
        self._notify_reset()

    def export_state(self, base_url: str | None = None) -> PersistedState:
        """
        Snapshot what is needed to resume this session later.

        Raises:
            AuthenticationError: If the session has no refresh token.
        """
        if not self._session.refresh_token:
            msg = "No session to export"
            raise AuthenticationError(msg)
        keys = KeySet(
            master_key=self._keys.master_key,
            master_password_hash=self._keys.master_password_hash,
            encryption_key=self._keys.encryption_key,
            user_key=self._keys.user_key,
            private_key=self._keys.private_key,
        )
        return PersistedState(
            refresh_token=self._session.refresh_token, keys=keys, base_url=base_url
        )

    async def restore(self, state: PersistedState) -> None:
        """
        Resume a session from persisted keys and a refresh token.

        The refresh token is used right away, so a revoked session fails here
        rather than on the first vault request.

        Raises:
            MissingKeyError: If the persisted keys lack the user key.
            SessionExpiredError: If the refresh token is rejected.
        """
        if state.keys.user_key is None:
            msg = "Persisted state has no user key"
            raise MissingKeyError(msg, key_type="user")

        async with self._lock:
            self._clear_state()
            self._keys = KeySet(
                master_key=state.keys.master_key,
                master_password_hash=state.keys.master_password_hash,
                encryption_key=state.keys.encryption_key,
                user_key=state.keys.user_key,
                private_key=state.keys.private_key,
            )
            self._session = Session(refresh_token=state.refresh_token)
            self._state = SessionState.EXPIRED
            try:
                await self.check_token()
            except Exception:
                self._clear_state()
                self._state = SessionState.ANONYMOUS
                raise
        logger.info("Session restored")
