"""
@file        auth.py
@brief       Authentication dependencies for FastAPI
@copyright   (c) 2025 FtsCoDe GmbH. All rights reserved.
@author      Heinstein F.
@date        2026-10-17

@details
Single source of truth for bearer authentication across all routers.
Token verification itself lives in TokenService / AuthService; this module
extracts the bearer token and turns it into a UserContext.
"""

from fastapi import Depends, Header
from typing import Optional
from pydantic import BaseModel
import logging

from config import get_settings
from services.auth_service import AuthService
from services.errors import AppError

logger = logging.getLogger(__name__)

# Initialize auth service (lazy initialization)
_auth_service: Optional[AuthService] = None


def get_auth_service() -> AuthService:
    """
    Get the process-wide AuthService, created from settings on first use.

    Returns:
        AuthService: Shared service instance
    """
    global _auth_service
    if _auth_service is None:
        _auth_service = AuthService.from_settings(get_settings())
        logger.info(f"Auth service initialized ({_auth_service.tokens.algorithm})")
    return _auth_service


def reset_auth_service() -> None:
    """Drop the shared AuthService (tests, settings reload)"""
    global _auth_service
    _auth_service = None


class UserContext(BaseModel):
    """
    User context extracted from a validated access token.

    Attributes:
        user_id: Unique user identifier (from 'sub' claim)
        email: User email address
        name: Display name
        jti: JWT ID for token revocation tracking
        token: The raw bearer token (needed for logout)
    """
    user_id: str
    email: Optional[str] = None
    name: Optional[str] = None
    jti: Optional[str] = None
    token: str


def extract_token_from_header(authorization: Optional[str] = Header(None)) -> str:
    """
    Extract JWT token from Authorization header.

    Args:
        authorization: Authorization header value (Bearer <token>)

    Returns:
        str: JWT token string

    Raises:
        AppError: 401 if header is missing or malformed
    """
    if not authorization:
        raise AppError.unauthorized("Missing authorization header")

    if not authorization.startswith("Bearer ") or not authorization[7:].strip():
        raise AppError.unauthorized("Invalid authorization header format. Expected: Bearer <token>")

    return authorization[7:].strip()


def get_current_user(
    token: str = Depends(extract_token_from_header),
    auth_service: AuthService = Depends(get_auth_service),
) -> UserContext:
    """
    FastAPI dependency to extract and validate current user from the access token.

    Usage:
        @router.get("/protected")
        async def protected_endpoint(user: UserContext = Depends(get_current_user)):
            print(f"User {user.user_id}")

    Raises:
        AppError: 401 if authentication fails
    """
    decoded = auth_service.validate(token)
    payload = decoded.payload

    return UserContext(
        user_id=payload["sub"],
        email=payload.get("email"),
        name=payload.get("name"),
        jti=payload.get("jti"),
        token=token,
    )
