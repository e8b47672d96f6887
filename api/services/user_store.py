"""
In-memory user store
"""
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timezone
from typing import Dict, Optional
import threading
import uuid

from services.credentials import hash_password, verify_password


@dataclass
class User:
    id: str
    name: str
    email: str
    password_hash: str
    birth_date: date
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    token_version: int = 0
    is_active: bool = True


class UserStore:
    """Thread-safe user records; email lookups are case-insensitive"""

    def __init__(self, bcrypt_rounds: int = 12):
        self.bcrypt_rounds = bcrypt_rounds
        self._lock = threading.Lock()
        self._users: Dict[str, User] = {}
        self._ids_by_email: Dict[str, str] = {}

    def create(self, name: str, email: str, password: str, birth_date: date) -> User:
        user = User(
            id=f"usr_{uuid.uuid4().hex[:14]}",
            name=name,
            email=email.lower(),
            password_hash=hash_password(password, self.bcrypt_rounds),
            birth_date=birth_date,
        )
        with self._lock:
            if user.email in self._ids_by_email:
                raise ValueError(f"Email already registered: {user.email}")
            self._users[user.id] = user
            self._ids_by_email[user.email] = user.id
        return replace(user)

    def get(self, user_id: str) -> Optional[User]:
        with self._lock:
            user = self._users.get(user_id)
            return replace(user) if user else None

    def get_by_email(self, email: str) -> Optional[User]:
        with self._lock:
            user_id = self._ids_by_email.get(email.lower())
            return replace(self._users[user_id]) if user_id else None

    def exists_by_email(self, email: str) -> bool:
        with self._lock:
            return email.lower() in self._ids_by_email

    def authenticate(self, email: str, password: str) -> Optional[User]:
        """Return the active user for these credentials, or None"""
        user = self.get_by_email(email)
        if user is None or not user.is_active:
            return None
        if not verify_password(password, user.password_hash):
            return None
        return user

    def update_password(self, user_id: str, new_password: str) -> None:
        password_hash = hash_password(new_password, self.bcrypt_rounds)
        with self._lock:
            self._users[user_id].password_hash = password_hash

    def bump_token_version(self, user_id: str) -> int:
        """Invalidate every token issued to the user so far"""
        with self._lock:
            user = self._users[user_id]
            user.token_version += 1
            return user.token_version

    def deactivate(self, user_id: str) -> None:
        with self._lock:
            self._users[user_id].is_active = False
