import pytest

from bw_vault.config import VaultClientConfig
from bw_vault.tests.utils.mock_transport import MockTransport
from bw_vault.tests.utils.vault_data import Account, make_account


@pytest.fixture
def config() -> VaultClientConfig:
    return VaultClientConfig(base_url="https://vault.example.com")


@pytest.fixture
def mock_transport() -> MockTransport:
    return MockTransport()


@pytest.fixture
def account() -> Account:
    return make_account()
