"""
Vault client configuration.
"""

from dataclasses import dataclass


@dataclass(frozen=True, kw_only=True)
class VaultClientConfig:
    """
    Attributes:
        base_url: Server root. API and identity URLs are derived from it.
        api_url: Explicit API URL, overrides the one derived from base_url.
        identity_url: Explicit identity URL, overrides the one derived from base_url.
        timeout: Request timeout in seconds.
        device_name: Device name sent with token requests.
        device_type: Numeric device type sent with token requests.
        device_identifier: Stable device UUID sent with token requests.
        client_version: Value of the bitwarden-client-version header.
        user_agent: User-Agent header value.
    """

    base_url: str | None = "https://vault.bitwarden.eu"
    api_url: str | None = None
    identity_url: str | None = None
    timeout: float = 30.0
    device_name: str = "chrome"
    device_type: int = 9
    device_identifier: str = "928f9664-5559-4a7b-9853-caf5bfa5dd57"
    client_version: str = "2025.9.0"
    user_agent: str = "bw-vault-python/0.1"

    def __post_init__(self) -> None:
        if not self.base_url and not (self.api_url and self.identity_url):
            msg = "base_url or both api_url and identity_url are required"
            raise ValueError(msg)
        if self.timeout <= 0:
            msg = "timeout must be positive"
            raise ValueError(msg)
        if self.device_type < 0:
            msg = "device_type must be non-negative"
            raise ValueError(msg)
        if not self.device_identifier:
            msg = "device_identifier must not be empty"
            raise ValueError(msg)

    @property
    def resolved_api_url(self) -> str:
        """API root, e.g. https://vault.bitwarden.eu/api."""
        if self.api_url:
            return self.api_url.rstrip("/")
        return f"{self.base_url.rstrip('/')}/api"

    @property
    def resolved_identity_url(self) -> str:
        """Identity root, e.g. https://vault.bitwarden.eu/identity."""
        if self.identity_url:
            return self.identity_url.rstrip("/")
        return f"{self.base_url.rstrip('/')}/identity"
