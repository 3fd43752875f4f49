import os

import pytest

from bw_vault.config import VaultClientConfig


def pytest_collection_modifyitems(config: pytest.Config, items: list) -> None:
    missing = not (os.getenv("BW_TEST_EMAIL") and os.getenv("BW_TEST_PASSWORD"))
    if not missing:
        return
    mark_expr = getattr(config.option, "markexpr", "")
    if "integration" in mark_expr:
        return
    skip = pytest.mark.skip(reason="BW_TEST_EMAIL / BW_TEST_PASSWORD not set")
    for item in items:
        if item.get_closest_marker("integration"):
            item.add_marker(skip)


@pytest.fixture(scope="session")
def vault_credentials() -> tuple[str, str]:
    email = os.getenv("BW_TEST_EMAIL")
    password = os.getenv("BW_TEST_PASSWORD")
    if not email or not password:
        pytest.fail("BW_TEST_EMAIL and BW_TEST_PASSWORD must be set to run integration tests.")
    return email, password


@pytest.fixture(scope="session")
def live_config() -> VaultClientConfig:
    base_url = os.getenv("BW_TEST_BASE_URL")
    return VaultClientConfig(base_url=base_url) if base_url else VaultClientConfig()
