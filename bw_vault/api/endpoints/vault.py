"""Vault endpoints: sync and record writes."""

from typing import Any

from bw_vault.api.http_client import AsyncHttpClient


async def get_sync(http: AsyncHttpClient, token: str) -> dict[str, Any]:
    """Fetch the full encrypted vault (profile, folders, ciphers)."""
    return await http.request(
        "GET",
        f"{http.api_url}/sync",
        params={"excludeDomains": "true"},
        token=token,
    )


async def create_cipher(http: AsyncHttpClient, token: str, body: dict[str, Any]) -> dict[str, Any]:
    """
    Create a record.

    Args:
        http: Configured async HTTP client.
        token: Bearer access token.
        body: Encrypted record in wire format.

    Returns:
        The created record as stored by the server.
    """
    return await http.request("POST", f"{http.api_url}/ciphers", json=body, token=token)


async def replace_cipher(
    http: AsyncHttpClient, token: str, cipher_id: str, body: dict[str, Any]
) -> dict[str, Any]:
    """
    Replace a record with a full encrypted body.

    Args:
        http: Configured async HTTP client.
        token: Bearer access token.
        cipher_id: Record id.
        body: Complete encrypted record in wire format.

    Returns:
        The updated record as stored by the server.
    """
    return await http.request(
        "PUT", f"{http.api_url}/ciphers/{cipher_id}", json=body, token=token
    )
