import pytest

from bw_vault.api.endpoints.identity import (
    password_grant,
    prelogin,
    refresh_grant,
    send_email_login,
)
from bw_vault.api.http_client import AsyncHttpClient
from bw_vault.config import VaultClientConfig
from bw_vault.models.auth import MfaParams, TwoFactorProvider
from bw_vault.tests.utils.mock_transport import MockTransport, request_form, request_json
from bw_vault.tests.utils.vault_data import EMAIL, PRELOGIN_RESPONSE

IDENTITY = "https://vault.example.com/identity"


@pytest.mark.asyncio
async def test_prelogin_posts_email(
    config: VaultClientConfig,
    mock_transport: MockTransport,
) -> None:
    mock_transport.add_response(json_data=PRELOGIN_RESPONSE)

    async with AsyncHttpClient(config, transport=mock_transport) as http:
        result = await prelogin(http, EMAIL)

    request = mock_transport.requests[0]
    assert request.method == "POST"
    assert str(request.url) == f"{IDENTITY}/accounts/prelogin"
    assert request_json(request) == {"email": EMAIL}
    assert result == PRELOGIN_RESPONSE


@pytest.mark.asyncio
async def test_password_grant_sends_device_form(
    config: VaultClientConfig,
    mock_transport: MockTransport,
) -> None:
    mock_transport.add_response(json_data={"access_token": "t"})

    async with AsyncHttpClient(config, transport=mock_transport) as http:
        await password_grant(http, email=EMAIL, password_hash="aGFzaA==")

    request = mock_transport.requests[0]
    assert str(request.url) == f"{IDENTITY}/connect/token"
    assert request_form(request) == {
        "username": EMAIL,
        "password": "aGFzaA==",
        "grant_type": "password",
        "deviceName": config.device_name,
        "deviceType": "9",
        "deviceIdentifier": config.device_identifier,
        "client_id": "web",
        "scope": "api offline_access",
    }
    assert "authorization" not in request.headers


@pytest.mark.asyncio
async def test_password_grant_includes_second_factor(
    config: VaultClientConfig,
    mock_transport: MockTransport,
) -> None:
    mock_transport.add_response(json_data={"access_token": "t"})
    mfa = MfaParams(provider=TwoFactorProvider.EMAIL, token="123456", remember=True)

    async with AsyncHttpClient(config, transport=mock_transport) as http:
        await password_grant(http, email=EMAIL, password_hash="aGFzaA==", mfa=mfa)

    form = request_form(mock_transport.requests[0])
    assert form["twoFactorProvider"] == "1"
    assert form["twoFactorToken"] == "123456"
    assert form["twoFactorRemember"] == "1"


@pytest.mark.asyncio
async def test_refresh_grant_sends_refresh_token(
    config: VaultClientConfig,
    mock_transport: MockTransport,
) -> None:
    mock_transport.add_response(json_data={"access_token": "t2", "expires_in": 3600})

    async with AsyncHttpClient(config, transport=mock_transport) as http:
        result = await refresh_grant(http, "refresh-1")

    form = request_form(mock_transport.requests[0])
    assert form == {
        "refresh_token": "refresh-1",
        "grant_type": "refresh_token",
        "client_id": "web",
        "scope": "api offline_access",
    }
    assert result["access_token"] == "t2"


@pytest.mark.asyncio
async def test_send_email_login_posts_to_api(
    config: VaultClientConfig,
    mock_transport: MockTransport,
) -> None:
    mock_transport.add_response()

    async with AsyncHttpClient(config, transport=mock_transport) as http:
        await send_email_login(http, email=EMAIL, password_hash="aGFzaA==")

    request = mock_transport.requests[0]
    assert str(request.url) == "https://vault.example.com/api/two-factor/send-email-login"
    body = request_json(request)
    assert body["email"] == EMAIL
    assert body["masterPasswordHash"] == "aGFzaA=="
    assert body["deviceIdentifier"] == config.device_identifier
