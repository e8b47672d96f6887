"""HTTP client and token storage for SmartPantry sessions."""

from .session_client import SessionClient, SessionError
from .token_storage import TokenStorage, FileTokenStorage

__all__ = [
    "SessionClient",
    "SessionError",
    "TokenStorage",
    "FileTokenStorage",
]
