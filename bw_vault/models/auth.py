"""
Authentication-related domain models.
"""

from dataclasses import dataclass, field
from enum import IntEnum, StrEnum
from typing import Any


class SessionState(StrEnum):
    """Session lifecycle states."""

    ANONYMOUS = "anonymous"
    AUTHENTICATING = "authenticating"
    MFA_REQUIRED = "mfa_required"
    AUTHENTICATED = "authenticated"
    EXPIRED = "expired"
    LOGGED_OUT = "logged_out"


class TwoFactorProvider(IntEnum):
    """Second-factor provider identifiers used by the identity server."""

    AUTHENTICATOR = 0
    EMAIL = 1
    DUO = 2
    YUBIKEY = 3
    U2F = 4
    REMEMBER = 5
    ORGANIZATION_DUO = 6
    WEBAUTHN = 7


@dataclass(frozen=True, kw_only=True)
class Session:
    """
    Token state of an authenticated session.

    Replaced as a whole on login and refresh so readers always see a
    consistent access token / expiry pair.

    Attributes:
        access_token: Bearer token for API requests.
        refresh_token: Token for the refresh grant.
        expires_at_ms: Access token expiry, epoch milliseconds.
    """

    access_token: str | None = None
    refresh_token: str | None = None
    expires_at_ms: int | None = None

    def is_expired(self, now_ms: int) -> bool:
        """True if there is no usable access token at `now_ms`."""
        if self.access_token is None or self.expires_at_ms is None:
            return True
        return now_ms >= self.expires_at_ms


@dataclass(frozen=True, kw_only=True)
class MfaParams:
    """
    Second-factor answer submitted with a token request.

    Attributes:
        provider: Chosen provider.
        token: Code or provider response.
        remember: Ask the server for a remember-device token.
    """

    provider: TwoFactorProvider
    token: str
    remember: bool = False

    def to_form(self) -> dict[str, str]:
        return {
            "twoFactorProvider": str(int(self.provider)),
            "twoFactorToken": self.token,
            "twoFactorRemember": "1" if self.remember else "0",
        }


@dataclass(frozen=True, kw_only=True)
class LoginSuccess:
    """Login completed; tokens and keys are in place."""

    session: Session


@dataclass(frozen=True, kw_only=True)
class MfaRequired:
    """
    The server asked for a second factor.

    Attributes:
        providers: Providers the account has enabled.
        challenge: Per-provider data from the server (email hint, WebAuthn
            challenge, Duo host...), keyed by provider id.
    """

    providers: tuple[TwoFactorProvider, ...]
    challenge: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, kw_only=True)
class LoginFailed:
    """The server rejected the credentials or the second factor."""

    reason: str
    status: int | None = None


LoginOutcome = LoginSuccess | MfaRequired | LoginFailed
