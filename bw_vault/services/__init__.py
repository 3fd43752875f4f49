"""
Business logic services for bw_vault.
"""

from bw_vault.services.session_manager import SessionManager
from bw_vault.services.state_store import PersistedState, StateStore
from bw_vault.services.sync_cache import SyncCache

__all__ = [
    "PersistedState",
    "SessionManager",
    "StateStore",
    "SyncCache",
]
