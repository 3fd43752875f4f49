"""
Async HTTP client for the vault server.

Wraps httpx with the client headers the server expects and maps error
responses to the exception hierarchy. Token freshness is not handled here:
callers obtain a token from the SessionManager and pass it per request.
"""

import asyncio
import re
from typing import Any
from urllib.parse import urlsplit

import httpx
import structlog

from bw_vault.config import VaultClientConfig
from bw_vault.exceptions import (
    APIError,
    NetworkError,
    NotFoundError,
    RateLimitError,
    ServerError,
)

logger = structlog.get_logger(__name__)

# Compared lowercased.
SENSITIVE_KEYS = frozenset(
    {
        "access_token",
        "refresh_token",
        "password",
        "masterpasswordhash",
        "key",
        "privatekey",
        "encryptedprivatekey",
        "twofactortoken",
        "token",
        "email",
        "username",
    }
)

_ENVELOPE_RE = re.compile(r"^\d\.[A-Za-z0-9+/=]{16,}(\|[A-Za-z0-9+/=]+)*$")


def _mask(value: Any) -> Any:
    if isinstance(value, str) and _ENVELOPE_RE.match(value):
        return "***"
    return value


def sanitize_for_log(data: dict[str, Any]) -> dict[str, Any]:
    """
    Remove sensitive fields from a dict before logging.

    Recursively sanitizes nested dictionaries and lists. Cipher strings are
    masked wherever they appear.

    Args:
        data: Dictionary that may contain sensitive values.

    Returns:
        Copy with sensitive values replaced by "***".
    """
    result = {}
    for key, value in data.items():
        if key.lower() in SENSITIVE_KEYS:
            result[key] = "***"
        elif isinstance(value, dict):
            result[key] = sanitize_for_log(value)
        elif isinstance(value, list):
            result[key] = [
                sanitize_for_log(item) if isinstance(item, dict) else _mask(item)
                for item in value
            ]
        else:
            result[key] = _mask(value)
    return result


class AsyncHttpClient:
    """Async HTTP client for the vault API and identity server."""

    def __init__(
        self,
        config: VaultClientConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Args:
            config: Client configuration.
            transport: Optional transport for testing (mock transport).
        """
        self._config = config
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._client_lock = asyncio.Lock()

    async def __aenter__(self) -> "AsyncHttpClient":
        await self._ensure_client()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self._close()

    @property
    def config(self) -> VaultClientConfig:
        return self._config

    @property
    def api_url(self) -> str:
        return self._config.resolved_api_url

    @property
    def identity_url(self) -> str:
        return self._config.resolved_identity_url

    async def _ensure_client(self) -> httpx.AsyncClient:
        async with self._client_lock:
            if self._client is None:
                self._client = httpx.AsyncClient(
                    timeout=self._config.timeout,
                    transport=self._transport,
                    headers={
                        "Accept": "application/json",
                        "bitwarden-client-name": "web",
                        "bitwarden-client-version": self._config.client_version,
                        "Device-Type": str(self._config.device_type),
                        "User-Agent": self._config.user_agent,
                    },
                )
        return self._client

    async def _close(self) -> None:
        async with self._client_lock:
            if self._client is None:
                logger.debug("Client not open.")
                return
            await self._client.aclose()
            self._client = None

    async def request(
        self,
        method: str,
        url: str,
        *,
        json: dict[str, Any] | None = None,
        data: dict[str, str] | None = None,
        params: dict[str, Any] | None = None,
        token: str | None = None,
    ) -> Any:
        """
        Make a request.

        Args:
            method: HTTP method (GET, POST, etc.).
            url: Absolute URL under the API or identity root.
            json: JSON body.
            data: Form-encoded body.
            params: Query parameters.
            token: Bearer access token, None for anonymous requests.

        Returns:
            Decoded JSON body, or None for an empty body.

        Raises:
            APIError: If the server answers with a non-2xx status.
            NetworkError: If the request could not be completed.
            RuntimeError: If the client is used outside of `async with`.
        """
        if self._client is None:
            msg = "HTTP client not initialized. Use 'async with' first."
            raise RuntimeError(msg)

        headers = {}
        if token is not None:
            headers["Authorization"] = f"Bearer {token}"

        endpoint = urlsplit(url).path
        logger.debug("API request", method=method, endpoint=endpoint)
        try:
            response = await self._client.request(
                method=method,
                url=url,
                json=json,
                data=data,
                params=params,
                headers=headers,
            )
        except httpx.TransportError as e:
            msg = f"Request to {endpoint} failed"
            raise NetworkError(msg, error_type=type(e).__name__) from e

        if not response.is_success:
            self._raise_api_error(response, endpoint)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise APIError(
                "Invalid JSON response from API",
                status=response.status_code,
                endpoint=endpoint,
            ) from e

    @staticmethod
    def _raise_api_error(response: httpx.Response, endpoint: str) -> None:
        status = response.status_code
        body = response.text
        try:
            payload = response.json()
        except ValueError:
            payload = None

        error_msg = f"HTTP {status}"
        if isinstance(payload, dict):
            for field in ("error_description", "message", "Message", "error"):
                if isinstance(payload.get(field), str) and payload[field]:
                    error_msg = payload[field]
                    break
            logger.debug(
                "API error response",
                status=status,
                endpoint=endpoint,
                body=sanitize_for_log(payload),
            )

        if status == httpx.codes.NOT_FOUND:
            raise NotFoundError(error_msg, body=body, endpoint=endpoint)
        if status == httpx.codes.TOO_MANY_REQUESTS:
            retry_after = response.headers.get("Retry-After")
            raise RateLimitError(
                error_msg,
                body=body,
                endpoint=endpoint,
                retry_after=int(retry_after) if retry_after and retry_after.isdigit() else None,
            )
        if status >= httpx.codes.INTERNAL_SERVER_ERROR:
            raise ServerError(error_msg, status=status, body=body, endpoint=endpoint)
        raise APIError(error_msg, status=status, body=body, endpoint=endpoint)
