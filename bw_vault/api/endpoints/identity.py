"""Identity server endpoints: prelogin, token grants and email second factor."""

from typing import Any

import structlog

from bw_vault.api.http_client import AsyncHttpClient
from bw_vault.models.auth import MfaParams

logger = structlog.get_logger(__name__)

CLIENT_ID = "web"
SCOPE = "api offline_access"


async def prelogin(http: AsyncHttpClient, email: str) -> dict[str, Any]:
    """
    Get the KDF parameters for an account.

    Args:
        http: Configured async HTTP client.
        email: Account email.

    Returns:
        KDF settings (kdf, kdfIterations, kdfMemory, kdfParallelism).
    """
    return await http.request(
        "POST",
        f"{http.identity_url}/accounts/prelogin",
        json={"email": email},
    )


async def password_grant(
    http: AsyncHttpClient,
    *,
    email: str,
    password_hash: str,
    mfa: MfaParams | None = None,
) -> dict[str, Any]:
    """
    Request tokens with the master password hash.

    Args:
        http: Configured async HTTP client.
        email: Account email.
        password_hash: Base64 master password hash (never the password).
        mfa: Second-factor answer, if the server asked for one.

    Returns:
        Token response with access_token, refresh_token, expires_in, Key and
        PrivateKey.

    Raises:
        APIError: 400 with TwoFactorProviders in the body when a second
            factor is required, 400/401 for rejected credentials.
    """
    config = http.config
    form = {
        "username": email,
        "password": password_hash,
        "grant_type": "password",
        "deviceName": config.device_name,
        "deviceType": str(config.device_type),
        "deviceIdentifier": config.device_identifier,
        "client_id": CLIENT_ID,
        "scope": SCOPE,
    }
    if mfa is not None:
        form.update(mfa.to_form())
    return await http.request("POST", f"{http.identity_url}/connect/token", data=form)


async def refresh_grant(http: AsyncHttpClient, refresh_token: str) -> dict[str, Any]:
    """Exchange a refresh token for a new access token."""
    return await http.request(
        "POST",
        f"{http.identity_url}/connect/token",
        data={
            "refresh_token": refresh_token,
            "grant_type": "refresh_token",
            "client_id": CLIENT_ID,
            "scope": SCOPE,
        },
    )


async def send_email_login(http: AsyncHttpClient, *, email: str, password_hash: str) -> None:
    """
    Ask the server to email a second-factor code.

    Args:
        http: Configured async HTTP client.
        email: Account email.
        password_hash: Master password hash of the pending login.
    """
    await http.request(
        "POST",
        f"{http.api_url}/two-factor/send-email-login",
        json={
            "email": email,
            "masterPasswordHash": password_hash,
            "ssoEmail2FaSessionToken": "",
            "deviceIdentifier": http.config.device_identifier,
            "authRequestAccessCode": "",
            "authRequestId": "",
        },
    )
    logger.debug("Email login code requested")
