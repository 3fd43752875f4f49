"""
Vault server API layer.

Provides async HTTP communication with the API and identity servers.
"""

from bw_vault.api.http_client import AsyncHttpClient, sanitize_for_log

__all__ = ["AsyncHttpClient", "sanitize_for_log"]
