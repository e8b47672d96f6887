"""HTTP client that keeps a SmartPantry session alive (login, refresh, logout)."""

from datetime import datetime, timezone
from typing import Any, Dict, Optional
import logging

import jwt
import requests

from .token_storage import TokenStorage

logger = logging.getLogger(__name__)

AUTH_PREFIX = "/v1/auth"


class SessionError(Exception):
    """Raised when the API rejects a session call."""

    def __init__(self, message: str, status_code: Optional[int] = None, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code

    @property
    def is_unauthorized(self) -> bool:
        return self.status_code == 401


def read_claims(token: Optional[str]) -> Dict[str, Any]:
    """Unverified claims of a token; the client never holds the signing key."""
    if not token:
        return {}
    try:
        return jwt.decode(token, options={"verify_signature": False})
    except jwt.InvalidTokenError:
        return {}


class SessionClient:
    """
    Client-side half of session management.

    `http` is anything with a requests-style request() method; it defaults to
    a requests.Session. Tests pass a FastAPI TestClient with base_url="".
    """

    def __init__(
        self,
        base_url: str = "",
        storage: Optional[TokenStorage] = None,
        http: Any = None,
        timeout: float = 10.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.storage = storage or TokenStorage()
        self.http = http or requests.Session()
        self.timeout = timeout

    # ---- Transport -----------------------------------------------------------

    def _request(
        self,
        method: str,
        path: str,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
        token: Optional[str] = None,
    ) -> Optional[Dict[str, Any]]:
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        try:
            response = self.http.request(
                method,
                f"{self.base_url}{path}",
                json=json,
                params=params,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise SessionError(f"Network error: {e}")

        if response.status_code >= 400:
            try:
                body = response.json()
            except ValueError:
                body = {}
            message = body.get("message") or body.get("detail") or f"HTTP {response.status_code}"
            raise SessionError(str(message), response.status_code, body.get("code"))

        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    def _store_tokens(self, data: Dict[str, Any]) -> None:
        access_token = data["access_token"]
        expires_at = read_claims(access_token).get("exp")
        self.storage.set_auth_data(access_token, data.get("refresh_token"), expires_at)
        if data.get("user"):
            self.storage.set_user(data["user"])

    # ---- Login / signup / logout ---------------------------------------------

    def login(self, email: str, password: str, remember_me: bool = False) -> Dict[str, Any]:
        """Log in and persist the session; returns the user"""
        data = self._request("POST", f"{AUTH_PREFIX}/login", json={"email": email, "password": password})
        self._store_tokens(data)
        self.storage.set_remember_me(remember_me)
        logger.info(f"Logged in as {data['user']['id']}")
        return data["user"]

    def signup(self, name: str, email: str, password: str, birth_date: str) -> Dict[str, Any]:
        data = self._request(
            "POST",
            f"{AUTH_PREFIX}/signup",
            json={"name": name, "email": email, "password": password, "birth_date": birth_date},
        )
        self._store_tokens(data)
        return data["user"]

    def logout(self, all_sessions: bool = False) -> None:
        """Revoke the session on the server; local storage is cleared even if that fails"""
        access_token = self.storage.get_token()
        refresh_token = self.storage.get_refresh_token()
        try:
            if access_token or refresh_token:
                self._request(
                    "POST",
                    f"{AUTH_PREFIX}/logout",
                    json={"refresh_token": refresh_token, "all_sessions": all_sessions},
                    token=access_token,
                )
        except SessionError as e:
            logger.warning(f"Server logout failed, clearing local session anyway: {e.message}")
        finally:
            self.storage.clear_all()

    # ---- Refresh -------------------------------------------------------------

    def refresh_access_token(self) -> Optional[str]:
        """
        Get a new access token with the stored refresh token (no rotation).

        Returns None when there is no refresh token or the server refuses it;
        a refused refresh token ends the local session.
        """
        refresh_token = self.storage.get_refresh_token()
        if not refresh_token:
            return None
        try:
            data = self._request("POST", f"{AUTH_PREFIX}/refresh", json={"refresh_token": refresh_token})
        except SessionError as e:
            logger.warning(f"Token refresh failed: {e.message}")
            if e.is_unauthorized:
                self.storage.clear_all()
            return None

        self._store_tokens(data)
        return data["access_token"]

    def refresh_tokens(self) -> Dict[str, Any]:
        """
        Refresh with rotation: both tokens are replaced.

        Raises:
            SessionError: no refresh token stored, or the server refused it
        """
        refresh_token = self.storage.get_refresh_token()
        if not refresh_token:
            raise SessionError("No refresh token available", 401)
        data = self._request(
            "POST", f"{AUTH_PREFIX}/refresh", json={"refresh_token": refresh_token, "rotate": True}
        )
        self._store_tokens(data)
        return data

    # ---- Session state -------------------------------------------------------

    def is_authenticated(self) -> bool:
        """Local check only: a token is stored and not past its expiry"""
        return self.storage.has_token() and not self.storage.is_token_expired()

    def has_active_session(self) -> bool:
        return self.storage.has_active_session()

    def get_current_user(self) -> Optional[Dict[str, Any]]:
        """Fetch the user from the server; a rejected token clears the session"""
        token = self.storage.get_token()
        if not token:
            return None
        try:
            user = self._request("GET", f"{AUTH_PREFIX}/me", token=token)
        except SessionError as e:
            if e.is_unauthorized:
                self.storage.clear_all()
                return None
            raise
        self.storage.set_user(user)
        return user

    def verify_session(self) -> bool:
        """Ask the server whether the stored session is still valid; clears it if not"""
        token = self.storage.get_token()
        if not token:
            return False
        if not self.validate_token(token):
            self.storage.clear_all()
            return False
        return True

    def current_user_id(self) -> Optional[str]:
        user = self.storage.get_user()
        if user and user.get("id"):
            return user["id"]
        return read_claims(self.storage.get_token()).get("sub")

    def token_info(self) -> Optional[Dict[str, Any]]:
        claims = read_claims(self.storage.get_token())
        if not claims:
            return None
        exp = claims.get("exp")
        return {
            "user_id": claims.get("sub"),
            "email": claims.get("email"),
            "name": claims.get("name"),
            "type": claims.get("type"),
            "expires_at": datetime.fromtimestamp(exp, tz=timezone.utc) if exp else None,
        }

    def session_time_remaining(self) -> int:
        """Whole minutes left on the stored access token"""
        return int(self.storage.time_until_expiry() // 60)

    def is_session_expiring_soon(self, threshold_minutes: int = 5) -> bool:
        return self.storage.is_session_expiring_soon(threshold_minutes)

    # ---- Server-side checks --------------------------------------------------

    def validate_token(self, token: Optional[str] = None) -> bool:
        token = token or self.storage.get_token()
        if not token:
            return False
        data = self._request("POST", f"{AUTH_PREFIX}/validate", json={"token": token})
        return bool(data["valid"])

    def is_email_available(self, email: str) -> bool:
        data = self._request("GET", f"{AUTH_PREFIX}/email-available", params={"email": email})
        return bool(data["available"])

    def validate_password_strength(self, password: str) -> Dict[str, Any]:
        return self._request("POST", f"{AUTH_PREFIX}/password/strength", json={"password": password})

    def change_password(self, current_password: str, new_password: str, confirm_password: str) -> None:
        """Change the password; the fresh token pair replaces the stored one"""
        data = self._request(
            "POST",
            f"{AUTH_PREFIX}/password/change",
            json={
                "current_password": current_password,
                "new_password": new_password,
                "confirm_password": confirm_password,
            },
            token=self.storage.get_token(),
        )
        self._store_tokens(data)

    # ---- Authorized calls ----------------------------------------------------

    def request(
        self,
        method: str,
        path: str,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Optional[Dict[str, Any]]:
        """
        Call a protected endpoint with the stored access token.

        An expired token is refreshed first; a 401 triggers one refresh and retry.
        """
        if self.storage.is_token_expired():
            self.refresh_access_token()

        token = self.storage.get_token()
        if not token:
            raise SessionError("Not authenticated", 401)

        try:
            return self._request(method, path, json=json, params=params, token=token)
        except SessionError as e:
            if not e.is_unauthorized:
                raise
            new_token = self.refresh_access_token()
            if not new_token:
                raise
            return self._request(method, path, json=json, params=params, token=new_token)
