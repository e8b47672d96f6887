"""
@file        auth_service.py
@brief       Session orchestration: login, signup, refresh, validation, logout, passwords
@copyright   (c) 2025 FtsCoDe GmbH. All rights reserved.
@author      Heinstein F.
@date        2026-10-17

@details
Façade used by the routers. Tokens are issued and verified by TokenService;
AuthService adds the checks that need the user store:
- The user behind a token must still exist and be active
- The token's version (tv) must match the user's current token version

Bumping a user's token version (password change, password reset, logout of
all sessions) therefore revokes every token issued to that user before.
"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional, Tuple, Union
import logging

from config import Settings
from services.credentials import (
    PasswordStrength,
    check_password_length,
    evaluate_password,
    is_valid_email,
    mask_email,
    normalize_email,
    require_new_password,
)
from services.errors import AppError
from services.token_blacklist import TokenBlacklist
from services.token_service import (
    DecodedToken,
    TokenPair,
    TokenService,
    TokenStatus,
    TokenType,
    unauthorized_for,
)
from services.user_store import User, UserStore

logger = logging.getLogger(__name__)

NAME_MIN_LENGTH = 3
NAME_MAX_LENGTH = 100
MIN_AGE = 13
MAX_AGE = 120
PASSWORD_RESET_PURPOSE = "password-reset"


@dataclass
class AuthResult:
    user: User
    tokens: TokenPair


@dataclass
class SessionInfo:
    is_valid: bool
    is_expired: bool
    expires_at: Optional[datetime]
    time_remaining: int  # minutes
    expiring_soon: bool
    user_id: Optional[str]


def calculate_age(birth_date: date, today: Optional[date] = None) -> int:
    today = today or date.today()
    age = today.year - birth_date.year
    if (today.month, today.day) < (birth_date.month, birth_date.day):
        age -= 1
    return age


def validate_full_name(name: Optional[str]) -> str:
    """Return the trimmed name; raises AppError(400) unless it has 3..100 chars and two words"""
    if not name or not name.strip():
        raise AppError.bad_request("Name is required")
    trimmed = name.strip()
    if len(trimmed) < NAME_MIN_LENGTH:
        raise AppError.bad_request(f"Name must be at least {NAME_MIN_LENGTH} characters")
    if len(trimmed) > NAME_MAX_LENGTH:
        raise AppError.bad_request(f"Name too long (max {NAME_MAX_LENGTH} characters)")
    if len(trimmed.split()) < 2:
        raise AppError.bad_request("Please provide your full name (first and last name)")
    return trimmed


def validate_birth_date(birth_date: Union[date, str, None], today: Optional[date] = None) -> date:
    if not birth_date:
        raise AppError.bad_request("Birth date is required")
    if isinstance(birth_date, str):
        try:
            birth_date = date.fromisoformat(birth_date)
        except ValueError:
            raise AppError.bad_request("Invalid birth date")

    today = today or date.today()
    if birth_date > today:
        raise AppError.bad_request("Birth date cannot be in the future")

    age = calculate_age(birth_date, today)
    if age < MIN_AGE:
        raise AppError.bad_request(f"You must be at least {MIN_AGE} years old to sign up")
    if age > MAX_AGE:
        raise AppError.bad_request("Invalid birth date")
    return birth_date


class AuthService:
    """Server-side session management on top of UserStore and TokenService"""

    def __init__(
        self,
        users: UserStore,
        tokens: TokenService,
        blacklist: TokenBlacklist,
        settings: Settings,
    ):
        self.users = users
        self.tokens = tokens
        self.blacklist = blacklist
        self.settings = settings

    @classmethod
    def from_settings(cls, settings: Settings) -> "AuthService":
        blacklist = TokenBlacklist.from_settings(settings)
        return cls(
            users=UserStore(bcrypt_rounds=settings.bcrypt_rounds),
            tokens=TokenService(settings, blacklist),
            blacklist=blacklist,
            settings=settings,
        )

    # ---- Login / signup ------------------------------------------------------

    def login(self, email: str, password: str) -> AuthResult:
        """
        Authenticate with email and password and issue a token pair.

        Raises:
            AppError: 400 for missing/malformed input, 401 for bad credentials
        """
        normalized = normalize_email(email)
        if not password:
            raise AppError.bad_request("Password is required")

        user = self.users.authenticate(normalized, password)
        if user is None:
            logger.info(f"Failed login for {mask_email(normalized)}")
            raise AppError.unauthorized("Invalid email or password")

        logger.info(f"User logged in: {user.id}")
        return AuthResult(user=user, tokens=self.tokens.issue_token_pair(user))

    def signup(
        self,
        name: str,
        email: str,
        password: str,
        birth_date: Union[date, str, None],
    ) -> AuthResult:
        """
        Create an account and log it in.

        Raises:
            AppError: 400 for invalid data, 409 when the email is already registered
        """
        full_name = validate_full_name(name)
        normalized = normalize_email(email)
        if not password:
            raise AppError.bad_request("Password is required")
        require_new_password(password)
        born = validate_birth_date(birth_date)

        if self.users.exists_by_email(normalized):
            raise AppError.conflict("Email already registered. Try logging in or use another email.")

        try:
            user = self.users.create(full_name, normalized, password, born)
        except ValueError:
            # Registered concurrently between the check and the insert
            raise AppError.conflict("Email already registered. Try logging in or use another email.")

        logger.info(f"User signed up: {user.id} ({mask_email(user.email)})")
        return AuthResult(user=user, tokens=self.tokens.issue_token_pair(user))

    def is_email_available(self, email: str) -> bool:
        """False for malformed emails as well as registered ones"""
        trimmed = (email or "").strip()
        if not trimmed or not is_valid_email(trimmed):
            return False
        return not self.users.exists_by_email(trimmed.lower())

    def password_strength(self, password: str) -> PasswordStrength:
        return evaluate_password(password)

    # ---- Validation ----------------------------------------------------------

    def inspect(
        self,
        token: Optional[str],
        expected_type: Optional[TokenType] = TokenType.ACCESS,
        check_user_exists: bool = True,
    ) -> DecodedToken:
        """Decode a token and apply the user checks; never raises for bad tokens"""
        decoded = self.tokens.decode(token, expected_type)
        if not decoded.is_valid or not check_user_exists:
            return decoded

        user = self.users.get(decoded.user_id)
        if user is None or not user.is_active:
            return DecodedToken(TokenStatus.INVALID, payload=decoded.payload, reason="User not found")
        if decoded.payload.get("tv", 0) != user.token_version:
            return DecodedToken(TokenStatus.INVALID, payload=decoded.payload, reason="Token has been revoked")
        return decoded

    def validate(
        self,
        token: Optional[str],
        check_user_exists: bool = True,
        expected_type: Optional[TokenType] = TokenType.ACCESS,
    ) -> DecodedToken:
        """
        Full validation of a token.

        Raises:
            AppError: 401 when the token is not valid
        """
        decoded = self.inspect(token, expected_type, check_user_exists)
        if not decoded.is_valid:
            raise unauthorized_for(decoded)
        return decoded

    def quick_validate(self, token: Optional[str]) -> bool:
        """Signature/expiry check only, without touching the user store"""
        return self.inspect(token, check_user_exists=False).is_valid

    def authenticate(self, token: Optional[str]) -> User:
        """Return the user behind a valid access token (401 otherwise)"""
        decoded = self.validate(token)
        user = self.users.get(decoded.user_id)
        if user is None:
            raise AppError.unauthorized("User not found")
        return user

    def session_info(self, token: Optional[str]) -> SessionInfo:
        decoded = self.inspect(token)
        return SessionInfo(
            is_valid=decoded.is_valid,
            is_expired=decoded.is_expired,
            expires_at=decoded.expires_at,
            time_remaining=self.tokens.time_remaining(token) if decoded.is_valid else 0,
            expiring_soon=decoded.is_valid and self.tokens.is_expiring_soon(token),
            user_id=decoded.user_id,
        )

    # ---- Refresh / logout ----------------------------------------------------

    def refresh(self, refresh_token: Optional[str], rotate: bool = False) -> TokenPair:
        """
        Mint a new access token from a refresh token.

        With rotate=True a new refresh token is issued and the presented one is
        revoked; otherwise the presented refresh token is handed back unchanged.

        Raises:
            AppError: 401 when the token is missing or not a usable refresh token
        """
        if not refresh_token or not refresh_token.strip():
            raise AppError.unauthorized("Refresh token not provided")

        decoded = self.inspect(refresh_token, TokenType.REFRESH)
        if not decoded.is_valid:
            raise unauthorized_for(decoded, "Refresh token")

        user = self.users.get(decoded.user_id)
        if user is None:
            raise AppError.unauthorized("User not found")

        access_token = self.tokens.create_access_token(user)
        if rotate:
            new_refresh_token = self.tokens.create_refresh_token(user)
            self.tokens.revoke(refresh_token)
            logger.info(f"Refresh token rotated for user {user.id}")
        else:
            new_refresh_token = refresh_token

        return TokenPair(
            access_token=access_token,
            refresh_token=new_refresh_token,
            expires_in=self.tokens.access_token_lifetime,
        )

    def logout(
        self,
        access_token: Optional[str],
        refresh_token: Optional[str] = None,
        all_sessions: bool = False,
    ) -> None:
        """Revoke the presented tokens; tokens that are already unusable are ignored"""
        if all_sessions:
            decoded = self.inspect(access_token)
            if decoded.is_valid:
                self.users.bump_token_version(decoded.user_id)
                logger.info(f"All sessions revoked for user {decoded.user_id}")

        revoked = 0
        for token in (access_token, refresh_token):
            if token and self.tokens.revoke(token):
                revoked += 1
        logger.info(f"Logout completed, {revoked} token(s) revoked")

    # ---- Passwords -----------------------------------------------------------

    def change_password(
        self,
        user_id: str,
        current_password: str,
        new_password: str,
        confirmation: str,
    ) -> TokenPair:
        """
        Change the password of a logged-in user.

        Every earlier token of the user is revoked; the returned pair keeps the
        calling client logged in.

        Raises:
            AppError: 400 for invalid input or a wrong current password
        """
        check_password_length(current_password, "Current password")
        if new_password != confirmation:
            raise AppError.bad_request("Passwords do not match")
        if new_password == current_password:
            raise AppError.bad_request("New password must be different from the current one")
        require_new_password(new_password, "New password")

        user = self.users.get(user_id)
        if user is None:
            raise AppError.not_found("User not found")
        if not self.users.authenticate(user.email, current_password):
            raise AppError.bad_request("Current password is incorrect")

        self.users.update_password(user_id, new_password)
        self.users.bump_token_version(user_id)
        logger.info(f"Password changed for user {user_id}")

        return self.tokens.issue_token_pair(self.users.get(user_id))

    def request_password_reset(self, email: str) -> Optional[Tuple[str, datetime]]:
        """
        Create a one-hour reset token.

        Returns:
            (token, expires_at), or None when no active account uses the email
        """
        normalized = normalize_email(email)
        user = self.users.get_by_email(normalized)
        if user is None or not user.is_active:
            logger.info(f"Password reset requested for unknown email {mask_email(normalized)}")
            return None

        expires_in = self.settings.temporary_token_expiration
        token = self.tokens.create_temporary_token(
            user.id, PASSWORD_RESET_PURPOSE, expires_in, token_version=user.token_version
        )
        logger.info(f"Password reset token issued for user {user.id}")
        return token, self.tokens.expiration_date(expires_in)

    def reset_password(self, token: str, new_password: str, confirmation: str) -> None:
        """
        Set a new password using a reset token. The token works once.

        Raises:
            AppError: 400 for invalid passwords, 401 for unusable reset tokens
        """
        if not token or not token.strip():
            raise AppError.bad_request("Reset token is required")

        decoded = self.inspect(token, TokenType.TEMPORARY)
        if not decoded.is_valid:
            raise unauthorized_for(decoded, "Reset token")
        if decoded.payload.get("purpose") != PASSWORD_RESET_PURPOSE:
            raise AppError.unauthorized("Invalid reset token")

        if new_password != confirmation:
            raise AppError.bad_request("Passwords do not match")
        require_new_password(new_password, "New password")

        user_id = decoded.user_id
        self.users.update_password(user_id, new_password)
        self.users.bump_token_version(user_id)
        self.tokens.revoke(token)
        logger.info(f"Password reset completed for user {user_id}")
