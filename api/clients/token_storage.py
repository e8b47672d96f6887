"""Local persistence of session tokens for SessionClient."""

from typing import Any, Callable, Dict, Optional
import json
import logging
import os
import threading
import time

logger = logging.getLogger(__name__)

ACCESS_TOKEN_KEY = "access_token"
REFRESH_TOKEN_KEY = "refresh_token"
USER_KEY = "user"
TOKEN_EXPIRY_KEY = "token_expiry"  # epoch seconds
REMEMBER_ME_KEY = "remember_me"

SESSION_KEYS = (ACCESS_TOKEN_KEY, REFRESH_TOKEN_KEY, USER_KEY, TOKEN_EXPIRY_KEY)


class TokenStorage:
    """
    In-memory token storage.

    `clock` returns the current time in epoch seconds; tests pass a fake one.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self.clock = clock
        self._lock = threading.Lock()
        self._data: Dict[str, Any] = {}

    # Backend hooks (FileTokenStorage persists after each change)

    def _get(self, key: str) -> Any:
        with self._lock:
            return self._data.get(key)

    def _set(self, key: str, value: Any) -> None:
        with self._lock:
            self._data[key] = value
            self._persist()

    def _remove(self, *keys: str) -> None:
        with self._lock:
            for key in keys:
                self._data.pop(key, None)
            self._persist()

    def _persist(self) -> None:
        pass

    # Access token

    def set_token(self, token: str) -> None:
        self._set(ACCESS_TOKEN_KEY, token)

    def get_token(self) -> Optional[str]:
        return self._get(ACCESS_TOKEN_KEY)

    def remove_token(self) -> None:
        self._remove(ACCESS_TOKEN_KEY)

    def has_token(self) -> bool:
        return self.get_token() is not None

    # Refresh token

    def set_refresh_token(self, token: str) -> None:
        self._set(REFRESH_TOKEN_KEY, token)

    def get_refresh_token(self) -> Optional[str]:
        return self._get(REFRESH_TOKEN_KEY)

    def remove_refresh_token(self) -> None:
        self._remove(REFRESH_TOKEN_KEY)

    def has_refresh_token(self) -> bool:
        return self.get_refresh_token() is not None

    # Cached user

    def set_user(self, user: Dict[str, Any]) -> None:
        self._set(USER_KEY, user)

    def get_user(self) -> Optional[Dict[str, Any]]:
        return self._get(USER_KEY)

    def clear_user(self) -> None:
        self._remove(USER_KEY)

    # Expiry

    def set_token_expiry(self, expires_at: float) -> None:
        self._set(TOKEN_EXPIRY_KEY, expires_at)

    def get_token_expiry(self) -> Optional[float]:
        return self._get(TOKEN_EXPIRY_KEY)

    def is_token_expired(self) -> bool:
        """False when no expiry is known"""
        expires_at = self.get_token_expiry()
        if not expires_at:
            return False
        return self.clock() > expires_at

    def time_until_expiry(self) -> float:
        """Seconds until the access token expires (0 when unknown or past)"""
        expires_at = self.get_token_expiry()
        if not expires_at:
            return 0
        return max(0, expires_at - self.clock())

    # Remember me

    def set_remember_me(self, remember: bool) -> None:
        self._set(REMEMBER_ME_KEY, bool(remember))

    def get_remember_me(self) -> bool:
        return bool(self._get(REMEMBER_ME_KEY))

    # Whole session

    def set_auth_data(
        self,
        access_token: str,
        refresh_token: Optional[str] = None,
        expires_at: Optional[float] = None,
    ) -> None:
        self.set_token(access_token)
        if refresh_token:
            self.set_refresh_token(refresh_token)
        if expires_at:
            self.set_token_expiry(expires_at)

    def clear_all(self) -> None:
        """Forget tokens, user and expiry; the remember-me preference is kept"""
        self._remove(*SESSION_KEYS)

    def has_active_session(self) -> bool:
        return self.has_token() and self.has_refresh_token() and not self.is_token_expired()

    def is_session_expiring_soon(self, threshold_minutes: int = 5) -> bool:
        remaining = self.time_until_expiry()
        return 0 < remaining <= threshold_minutes * 60


class FileTokenStorage(TokenStorage):
    """Token storage kept in a JSON file (readable by the owner only)"""

    def __init__(self, path: str, clock: Callable[[], float] = time.time):
        super().__init__(clock)
        self.path = path
        if os.path.exists(path):
            with open(path, "r", encoding="utf-8") as f:
                try:
                    self._data = json.load(f)
                except json.JSONDecodeError:
                    logger.warning(f"Ignoring corrupt token file: {path}")
                    self._data = {}

    def _persist(self) -> None:
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(self._data, f)
