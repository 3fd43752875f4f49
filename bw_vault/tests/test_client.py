"""End-to-end tests through the VaultClient facade."""

from dataclasses import replace

import pytest

from bw_vault import VaultClient
from bw_vault.config import VaultClientConfig
from bw_vault.crypto import envelope
from bw_vault.models.auth import LoginSuccess, SessionState
from bw_vault.services.state_store import PersistedState
from bw_vault.tests.utils.mock_transport import MockTransport, request_json
from bw_vault.tests.utils.vault_data import (
    EMAIL,
    PASSWORD,
    PRELOGIN_RESPONSE,
    REFRESH_TOKEN,
    Account,
    raw_login_record,
    sync_response,
    token_response,
)


def test_client_not_authenticated_before_login(config: VaultClientConfig) -> None:
    client = VaultClient(config)

    assert client.state == SessionState.ANONYMOUS
    assert not client.is_authenticated
    with pytest.raises(RuntimeError):
        client.export_state()


@pytest.mark.asyncio
async def test_login_lookup_and_update(
    config: VaultClientConfig,
    mock_transport: MockTransport,
    account: Account,
) -> None:
    user_key = account.key_set.user_key
    mock_transport.add_response(json_data=PRELOGIN_RESPONSE)
    mock_transport.add_response(json_data=token_response(account))
    mock_transport.add_response(json_data=sync_response([raw_login_record(user_key)]))
    mock_transport.add_response(json_data=raw_login_record(user_key, username="hubot"))

    async with VaultClient(config, transport=mock_transport) as client:
        outcome = await client.login(EMAIL, PASSWORD)
        assert isinstance(outcome, LoginSuccess)
        assert client.is_authenticated

        [record] = await client.lookup_by_name("github")
        assert record.login.password == "hunter2"

        patch = replace(record, payload=replace(record.login, username="hubot"))
        updated = await client.update_record(record.id, patch)

    assert updated.id == "rec-1"
    body = request_json(mock_transport.requests[3])
    assert envelope.decrypt_to_str(body["login"]["username"], user_key) == "hubot"
    assert client.state == SessionState.ANONYMOUS


@pytest.mark.asyncio
async def test_export_and_restore_across_clients(
    config: VaultClientConfig,
    mock_transport: MockTransport,
    account: Account,
) -> None:
    mock_transport.add_response(json_data=PRELOGIN_RESPONSE)
    mock_transport.add_response(json_data=token_response(account))
    mock_transport.add_response(json_data={"access_token": "access-token-2", "expires_in": 3600})
    mock_transport.add_response(
        json_data=sync_response([raw_login_record(account.key_set.user_key)])
    )

    async with VaultClient(config, transport=mock_transport) as client:
        await client.login(EMAIL, PASSWORD)
        state = client.export_state()

    async with VaultClient(config, transport=mock_transport) as restored:
        await restored.restore(state)
        assert restored.state == SessionState.AUTHENTICATED
        assert await restored.check_token() == "access-token-2"
        record = await restored.lookup_by_id("rec-1")

    assert state.base_url == config.base_url
    assert record.name == "github"
    assert mock_transport.requests[3].headers["authorization"] == "Bearer access-token-2"


@pytest.mark.asyncio
async def test_restore_connects_to_persisted_server(
    mock_transport: MockTransport,
    account: Account,
) -> None:
    mock_transport.add_response(json_data={"access_token": "access-token-2", "expires_in": 3600})
    state = PersistedState(
        refresh_token=REFRESH_TOKEN,
        keys=account.key_set,
        base_url="https://self.example.org",
    )
    client = VaultClient(transport=mock_transport)

    await client.restore(state)

    refresh = mock_transport.requests[0]
    assert refresh.url.host == "self.example.org"
    assert refresh.url.path == "/identity/connect/token"
    assert client.config.base_url == "https://self.example.org"
    assert client.state == SessionState.AUTHENTICATED
    await client.close()


@pytest.mark.asyncio
async def test_restore_reconnects_open_client_to_persisted_server(
    config: VaultClientConfig,
    mock_transport: MockTransport,
    account: Account,
) -> None:
    mock_transport.add_response(json_data={"access_token": "access-token-2", "expires_in": 3600})
    mock_transport.add_response(json_data=sync_response([]))
    state = PersistedState(
        refresh_token=REFRESH_TOKEN,
        keys=account.key_set,
        base_url="https://self.example.org",
    )

    async with VaultClient(config, transport=mock_transport) as client:
        await client.restore(state)
        await client.sync_refresh()

    assert [r.url.host for r in mock_transport.requests] == [
        "self.example.org",
        "self.example.org",
    ]
