"""
@file        auth.py
@brief       Authentication router: signup, login, refresh, logout, session, passwords
@copyright   (c) 2025 FtsCoDe GmbH. All rights reserved.
@author      Heinstein F.
@date        2026-10-17
"""

from fastapi import APIRouter, Depends, status, Header, Query
from typing import Optional
import logging

from models.auth import (
    UserResponse,
    LoginRequest, SignupRequest, AuthResponse,
    RefreshTokenRequest, RefreshTokenResponse,
    LogoutRequest,
    TokenValidationRequest, TokenValidationResponse,
    SessionResponse, EmailAvailabilityResponse,
    PasswordStrengthRequest, PasswordStrengthResponse,
    PasswordChangeRequest,
    PasswordResetRequest, PasswordResetRequestResponse, PasswordResetConfirmRequest,
    MessageResponse,
)
from dependencies.auth import (
    UserContext,
    extract_token_from_header,
    get_auth_service,
    get_current_user,
)
from services.auth_service import AuthService
from services.errors import AppError
from services.token_service import TokenPair
from services.user_store import User

logger = logging.getLogger(__name__)
router = APIRouter()

RESET_REQUEST_MESSAGE = "If the email is registered, password reset instructions have been sent"


def to_user_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        name=user.name,
        email=user.email,
        birth_date=user.birth_date,
        created_at=user.created_at,
    )


def to_auth_response(user: User, tokens: TokenPair) -> AuthResponse:
    return AuthResponse(
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
        expires_in=tokens.expires_in,
        user=to_user_response(user),
    )


@router.post("/signup", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def signup(request: SignupRequest, auth_service: AuthService = Depends(get_auth_service)):
    """
    Register a new user account

    Validates name, email, password strength and birth date, then logs the
    new user in.
    """
    result = auth_service.signup(
        name=request.name,
        email=request.email,
        password=request.password,
        birth_date=request.birth_date,
    )
    return to_auth_response(result.user, result.tokens)


@router.post("/login", response_model=AuthResponse)
async def login(request: LoginRequest, auth_service: AuthService = Depends(get_auth_service)):
    """
    User login with email/password

    Returns JWT access token + refresh token.
    """
    result = auth_service.login(request.email, request.password)
    return to_auth_response(result.user, result.tokens)


@router.post("/refresh", response_model=RefreshTokenResponse)
async def refresh_token(request: RefreshTokenRequest, auth_service: AuthService = Depends(get_auth_service)):
    """
    Refresh access token using refresh token

    With rotate=true the old refresh token is revoked and a new one returned.
    """
    tokens = auth_service.refresh(request.refresh_token, rotate=request.rotate)

    return RefreshTokenResponse(
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
        expires_in=tokens.expires_in,
        refresh_expiring_soon=auth_service.tokens.is_refresh_expiring_soon(tokens.refresh_token),
    )


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    request: Optional[LogoutRequest] = None,
    authorization: Optional[str] = Header(None),
    auth_service: AuthService = Depends(get_auth_service),
):
    """
    Logout user and blacklist tokens

    Revokes the access token (from header) and the refresh token (from body).
    Succeeds even when the tokens are already invalid.
    """
    request = request or LogoutRequest()
    access_token = None
    if authorization and authorization.startswith("Bearer "):
        access_token = authorization[7:].strip() or None

    auth_service.logout(
        access_token,
        refresh_token=request.refresh_token,
        all_sessions=request.all_sessions,
    )
    return None  # 204 No Content


@router.post("/validate", response_model=TokenValidationResponse)
async def validate_token(request: TokenValidationRequest, auth_service: AuthService = Depends(get_auth_service)):
    """Report whether an access token is currently valid (never 401)"""
    decoded = auth_service.inspect(request.token)

    return TokenValidationResponse(
        valid=decoded.is_valid,
        status=decoded.status.value,
        reason=decoded.reason,
        user_id=decoded.user_id,
        expires_at=decoded.expires_at,
    )


@router.get("/session", response_model=SessionResponse)
async def get_session(
    token: str = Depends(extract_token_from_header),
    auth_service: AuthService = Depends(get_auth_service),
):
    """Expiry state of the presented access token"""
    info = auth_service.session_info(token)

    return SessionResponse(
        is_valid=info.is_valid,
        is_expired=info.is_expired,
        expires_at=info.expires_at,
        time_remaining=info.time_remaining,
        expiring_soon=info.expiring_soon,
        user_id=info.user_id,
    )


@router.get("/me", response_model=UserResponse)
async def get_me(
    user: UserContext = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service),
):
    """Get the profile of the current user"""
    account = auth_service.users.get(user.user_id)
    if account is None:
        raise AppError.unauthorized("User not found")
    return to_user_response(account)


@router.get("/email-available", response_model=EmailAvailabilityResponse)
async def email_available(
    email: str = Query(..., min_length=1),
    auth_service: AuthService = Depends(get_auth_service),
):
    """Check whether an email can be used for signup"""
    return EmailAvailabilityResponse(email=email, available=auth_service.is_email_available(email))


@router.post("/password/strength", response_model=PasswordStrengthResponse)
async def password_strength(
    request: PasswordStrengthRequest,
    auth_service: AuthService = Depends(get_auth_service),
):
    """Score a password and suggest improvements"""
    result = auth_service.password_strength(request.password)

    return PasswordStrengthResponse(
        strength=result.strength,
        label=result.label,
        is_strong=result.is_strong,
        suggestions=result.suggestions,
    )


@router.post("/password/change", response_model=AuthResponse)
async def change_password(
    request: PasswordChangeRequest,
    user: UserContext = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service),
):
    """
    Change password (requires authentication)

    All earlier sessions are revoked; the response carries a fresh token pair.
    """
    tokens = auth_service.change_password(
        user.user_id,
        request.current_password,
        request.new_password,
        request.confirm_password,
    )
    return to_auth_response(auth_service.users.get(user.user_id), tokens)


@router.post(
    "/password/reset/request",
    response_model=PasswordResetRequestResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def request_password_reset(
    request: PasswordResetRequest,
    auth_service: AuthService = Depends(get_auth_service),
):
    """
    Request password reset

    Always answers with the same message so registered emails are not revealed.
    Outside production the reset token is included in the response.
    """
    result = auth_service.request_password_reset(request.email)

    response = PasswordResetRequestResponse(message=RESET_REQUEST_MESSAGE)
    if result is not None and not auth_service.settings.is_production:
        response.reset_token, response.expires_at = result
    return response


@router.post("/password/reset/confirm", response_model=MessageResponse)
async def confirm_password_reset(
    request: PasswordResetConfirmRequest,
    auth_service: AuthService = Depends(get_auth_service),
):
    """Set a new password with a reset token"""
    auth_service.reset_password(request.token, request.new_password, request.confirm_password)
    return MessageResponse(message="Password has been reset. Please log in with your new password.")
