"""Authentication layer: interfaces and token storage."""

from kilonova.auth.interfaces import Credential, TokenStore
from kilonova.auth.token_store import FileTokenStore, MemoryTokenStore

__all__ = ["Credential", "FileTokenStore", "MemoryTokenStore", "TokenStore"]
