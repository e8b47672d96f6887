"""
@file        token_service.py
@brief       JWT issuance, validation and introspection
@copyright   (c) 2025 FtsCoDe GmbH. All rights reserved.
@author      Heinstein F.
@date        2026-10-17

@details
Single place where tokens are signed and verified. Every token carries
sub, type, iat, exp, iss, aud and jti; user tokens also carry email, name
and tv (the user's token version, compared by AuthService).

Validation follows RFC 8725:
- The configured algorithm is the only one accepted
- Signature, issuer, audience and expiration are always verified
- Revoked token IDs (TokenBlacklist) are rejected
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, List, Optional
import logging
import re
import uuid

import jwt

from config import ALLOWED_JWT_ALGORITHMS, Settings
from services.errors import AppError
from services.token_blacklist import TokenBlacklist
from services.user_store import User

logger = logging.getLogger(__name__)

DEFAULT_EXPIRATION_SECONDS = 24 * 60 * 60
REFRESH_EXPIRING_WINDOW_SECONDS = 24 * 60 * 60

_DURATION_RE = re.compile(r"^(\d+)([smhd])$")
_UNIT_SECONDS = {"s": 1, "m": 60, "h": 60 * 60, "d": 24 * 60 * 60}


class TokenType(str, Enum):
    ACCESS = "access"
    REFRESH = "refresh"
    TEMPORARY = "temporary"
    API = "api"


class TokenStatus(str, Enum):
    VALID = "valid"
    EXPIRED = "expired"
    MALFORMED = "malformed"
    INVALID = "invalid"


def parse_expiration(value: str) -> int:
    """Convert '15m', '24h', '7d' ... to seconds (unknown formats mean 24 hours)"""
    match = _DURATION_RE.match(value.strip()) if value else None
    if not match:
        return DEFAULT_EXPIRATION_SECONDS
    return int(match.group(1)) * _UNIT_SECONDS[match.group(2)]


def _timestamp_to_datetime(value: Any) -> Optional[datetime]:
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    return None


@dataclass
class TokenPair:
    access_token: str
    refresh_token: str
    expires_in: int  # access token lifetime in seconds


@dataclass
class DecodedToken:
    status: TokenStatus
    payload: Dict[str, Any] = field(default_factory=dict)
    reason: Optional[str] = None

    @property
    def is_valid(self) -> bool:
        return self.status == TokenStatus.VALID

    @property
    def is_expired(self) -> bool:
        return self.status == TokenStatus.EXPIRED

    @property
    def user_id(self) -> Optional[str]:
        return self.payload.get("sub")

    @property
    def token_type(self) -> Optional[str]:
        return self.payload.get("type")

    @property
    def expires_at(self) -> Optional[datetime]:
        return _timestamp_to_datetime(self.payload.get("exp"))

    @property
    def issued_at(self) -> Optional[datetime]:
        return _timestamp_to_datetime(self.payload.get("iat"))


@dataclass
class TokenInfo:
    """Unverified view of a token's claims"""
    user_id: Optional[str] = None
    email: Optional[str] = None
    name: Optional[str] = None
    type: Optional[str] = None
    expires_at: Optional[datetime] = None
    issued_at: Optional[datetime] = None


def unauthorized_for(decoded: DecodedToken, label: str = "Token") -> AppError:
    """401 error describing why a token was not accepted"""
    if decoded.status == TokenStatus.EXPIRED:
        return AppError.unauthorized(f"{label} expired")
    if decoded.status == TokenStatus.MALFORMED:
        if decoded.reason == "Token not provided":
            return AppError.unauthorized(f"{label} not provided")
        return AppError.unauthorized(f"Malformed {label.lower()}")
    return AppError.unauthorized(decoded.reason or f"Invalid {label.lower()}")


def read_unverified_claims(token: str) -> Optional[Dict[str, Any]]:
    """Claims of a token without checking its signature; None if it is not a JWT"""
    if not token:
        return None
    try:
        return jwt.decode(token, options={"verify_signature": False})
    except jwt.InvalidTokenError:
        return None


class TokenService:
    """Signs and verifies access, refresh, temporary and API tokens"""

    def __init__(self, settings: Settings, blacklist: Optional[TokenBlacklist] = None):
        if settings.jwt_algorithm not in ALLOWED_JWT_ALGORITHMS:
            raise RuntimeError(f"Unsafe JWT algorithm configured: {settings.jwt_algorithm}")

        if settings.jwt_algorithm == "RS256":
            if not settings.jwt_private_key or not settings.jwt_public_key:
                raise RuntimeError("JWT_PRIVATE_KEY and JWT_PUBLIC_KEY must be set for RS256")
            self._signing_key = settings.jwt_private_key
            self._verification_key = settings.jwt_public_key
        else:
            if not settings.jwt_secret_key:
                raise RuntimeError("JWT_SECRET_KEY must be set for HS256")
            self._signing_key = settings.jwt_secret_key
            self._verification_key = settings.jwt_secret_key

        self.settings = settings
        self.algorithm = settings.jwt_algorithm
        self.blacklist = blacklist or TokenBlacklist()

    @property
    def access_token_lifetime(self) -> int:
        return parse_expiration(self.settings.access_token_expiration)

    @property
    def refresh_token_lifetime(self) -> int:
        return parse_expiration(self.settings.refresh_token_expiration)

    # ---- Issuance ------------------------------------------------------------

    def _encode(self, claims: Dict[str, Any], lifetime_seconds: int) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            **claims,
            "iat": now,
            "exp": now + timedelta(seconds=lifetime_seconds),
            "iss": self.settings.jwt_issuer,
            "aud": self.settings.jwt_audience,
            "jti": uuid.uuid4().hex,
        }
        return jwt.encode(payload, self._signing_key, algorithm=self.algorithm)

    def _user_claims(self, user: User, token_type: TokenType) -> Dict[str, Any]:
        return {
            "sub": user.id,
            "email": user.email,
            "name": user.name,
            "type": token_type.value,
            "tv": user.token_version,
        }

    def create_access_token(self, user: User) -> str:
        return self._encode(self._user_claims(user, TokenType.ACCESS), self.access_token_lifetime)

    def create_refresh_token(self, user: User) -> str:
        return self._encode(self._user_claims(user, TokenType.REFRESH), self.refresh_token_lifetime)

    def issue_token_pair(self, user: User) -> TokenPair:
        return TokenPair(
            access_token=self.create_access_token(user),
            refresh_token=self.create_refresh_token(user),
            expires_in=self.access_token_lifetime,
        )

    def create_temporary_token(
        self,
        user_id: str,
        purpose: str,
        expires_in: Optional[str] = None,
        token_version: int = 0,
    ) -> str:
        """Short-lived token for email verification, password reset, account activation"""
        lifetime = parse_expiration(expires_in or self.settings.temporary_token_expiration)
        claims = {"sub": user_id, "type": TokenType.TEMPORARY.value, "purpose": purpose, "tv": token_version}
        return self._encode(claims, lifetime)

    def create_api_token(self, user_id: str, scopes: List[str], expires_in: str = "30d") -> str:
        claims = {"sub": user_id, "type": TokenType.API.value, "scopes": list(scopes)}
        return self._encode(claims, parse_expiration(expires_in))

    def expiration_date(self, expires_in: str) -> datetime:
        return datetime.now(timezone.utc) + timedelta(seconds=parse_expiration(expires_in))

    # ---- Validation ----------------------------------------------------------

    def decode(self, token: Optional[str], expected_type: Optional[TokenType] = None) -> DecodedToken:
        """
        Verify a token and classify the outcome.

        Expired tokens keep their (unverified) payload so callers can still
        read sub and exp. Bad tokens never raise; they come back with a
        non-valid status and a reason.

        Raises:
            AppError: 503 when the blacklist cannot be consulted and fails closed
        """
        decoded = self._check_signature(token)
        if not decoded.is_valid:
            return decoded
        payload = decoded.payload

        if expected_type is not None and payload.get("type") != expected_type.value:
            return DecodedToken(
                TokenStatus.INVALID,
                payload=payload,
                reason=f"Token is not {'an' if expected_type == TokenType.ACCESS else 'a'} {expected_type.value} token",
            )

        jti = payload.get("jti")
        if self.blacklist.is_revoked(jti):
            logger.warning(f"Blacklisted token used: jti={jti}")
            return DecodedToken(TokenStatus.INVALID, payload=payload, reason="Token has been revoked")

        return decoded

    def _check_signature(self, token: Optional[str]) -> DecodedToken:
        """Signature, issuer, audience and expiry checks only; no type or blacklist lookup"""
        if not token or not token.strip():
            return DecodedToken(TokenStatus.MALFORMED, reason="Token not provided")

        try:
            payload = jwt.decode(
                token,
                self._verification_key,
                algorithms=[self.algorithm],
                issuer=self.settings.jwt_issuer,
                audience=self.settings.jwt_audience,
                options={"require": ["exp", "iat", "sub", "type"]},
            )
        except jwt.ExpiredSignatureError:
            return DecodedToken(
                TokenStatus.EXPIRED,
                payload=read_unverified_claims(token) or {},
                reason="Token expired",
            )
        except jwt.InvalidSignatureError:
            logger.warning("Invalid JWT signature detected")
            return DecodedToken(TokenStatus.INVALID, reason="Invalid token signature")
        except jwt.DecodeError as e:
            logger.debug(f"JWT decode error: {e}")
            return DecodedToken(TokenStatus.MALFORMED, reason="Malformed token")
        except jwt.InvalidIssuerError:
            return DecodedToken(TokenStatus.INVALID, reason="Invalid token issuer")
        except jwt.InvalidAudienceError:
            return DecodedToken(TokenStatus.INVALID, reason="Invalid token audience")
        except jwt.InvalidAlgorithmError:
            logger.warning(f"Invalid JWT algorithm detected (expected {self.algorithm})")
            return DecodedToken(TokenStatus.INVALID, reason="Invalid token algorithm")
        except jwt.InvalidTokenError as e:
            return DecodedToken(TokenStatus.INVALID, reason=f"Invalid token: {e}")

        return DecodedToken(TokenStatus.VALID, payload=payload)

    def verify(
        self,
        token: Optional[str],
        expected_type: Optional[TokenType] = None,
        label: str = "Token",
    ) -> DecodedToken:
        """
        Like decode(), but only returns valid tokens.

        Raises:
            AppError: 401 for expired, malformed, invalid or revoked tokens
        """
        decoded = self.decode(token, expected_type)
        if not decoded.is_valid:
            raise unauthorized_for(decoded, label)
        return decoded

    def quick_validate(self, token: Optional[str]) -> bool:
        return self.decode(token).is_valid

    def revoke(self, token: Optional[str]) -> bool:
        """
        Blacklist a token for the rest of its lifetime.

        Only tokens carrying our own signature are recorded. Entries never
        outlive a refresh token, except for long-lived API tokens. Returns
        False for anything else.
        """
        decoded = self._check_signature(token)
        if not decoded.is_valid:
            return False
        claims = decoded.payload
        if not claims.get("jti"):
            return False
        remaining = int(claims["exp"] - datetime.now(timezone.utc).timestamp())
        if remaining <= 0:
            return False
        if claims.get("type") != TokenType.API.value:
            remaining = min(remaining, self.refresh_token_lifetime)
        self.blacklist.revoke(claims["jti"], remaining)
        return True

    # ---- Introspection (no verification) -------------------------------------

    def token_info(self, token: Optional[str]) -> TokenInfo:
        claims = read_unverified_claims(token) if token else None
        if not claims:
            return TokenInfo()
        return TokenInfo(
            user_id=claims.get("sub"),
            email=claims.get("email"),
            name=claims.get("name"),
            type=claims.get("type"),
            expires_at=_timestamp_to_datetime(claims.get("exp")),
            issued_at=_timestamp_to_datetime(claims.get("iat")),
        )

    def seconds_remaining(self, token: Optional[str]) -> int:
        expires_at = self.token_info(token).expires_at
        if expires_at is None:
            return 0
        return max(0, int((expires_at - datetime.now(timezone.utc)).total_seconds()))

    def time_remaining(self, token: Optional[str]) -> int:
        """Whole minutes until the token expires (0 when expired or unreadable)"""
        return self.seconds_remaining(token) // 60

    def is_expiring_soon(self, token: Optional[str], minutes_threshold: Optional[int] = None) -> bool:
        threshold = (
            self.settings.session_expiring_threshold_minutes
            if minutes_threshold is None
            else minutes_threshold
        )
        remaining = self.time_remaining(token)
        return 0 < remaining <= threshold

    def is_refresh_expiring_soon(self, token: Optional[str]) -> bool:
        """True when a refresh token has less than one day left"""
        remaining = self.seconds_remaining(token)
        return 0 < remaining <= REFRESH_EXPIRING_WINDOW_SECONDS

    def is_token_from_user(self, token: Optional[str], user_id: str) -> bool:
        return self.token_info(token).user_id == user_id
