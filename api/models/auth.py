"""
Authentication models
"""
from pydantic import BaseModel, EmailStr, Field
from typing import Optional, List
from datetime import date, datetime


class UserResponse(BaseModel):
    id: str
    name: str
    email: str
    birth_date: date
    created_at: datetime


class LoginRequest(BaseModel):
    # Plain str: the email rules are enforced by AuthService (400 on failure)
    email: str
    password: str


class SignupRequest(BaseModel):
    name: str
    email: str
    password: str
    birth_date: Optional[str] = None  # ISO date, parsed by AuthService


class AuthResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "Bearer"
    expires_in: int  # seconds
    user: UserResponse


class RefreshTokenRequest(BaseModel):
    refresh_token: str
    rotate: bool = False


class RefreshTokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "Bearer"
    expires_in: int
    refresh_expiring_soon: bool = False


class LogoutRequest(BaseModel):
    refresh_token: Optional[str] = None
    all_sessions: bool = False


class TokenValidationRequest(BaseModel):
    token: str


class TokenValidationResponse(BaseModel):
    valid: bool
    status: str  # valid | expired | malformed | invalid
    reason: Optional[str] = None
    user_id: Optional[str] = None
    expires_at: Optional[datetime] = None


class SessionResponse(BaseModel):
    is_valid: bool
    is_expired: bool
    expires_at: Optional[datetime] = None
    time_remaining: int  # minutes
    expiring_soon: bool
    user_id: Optional[str] = None


class EmailAvailabilityResponse(BaseModel):
    email: str
    available: bool


class PasswordStrengthRequest(BaseModel):
    password: str


class PasswordStrengthResponse(BaseModel):
    strength: int = Field(..., ge=0, le=5)
    label: str
    is_strong: bool
    suggestions: List[str]


class PasswordChangeRequest(BaseModel):
    current_password: str
    new_password: str
    confirm_password: str


class PasswordResetRequest(BaseModel):
    email: EmailStr


class PasswordResetRequestResponse(BaseModel):
    message: str
    # Only exposed outside production, where no email delivery exists
    reset_token: Optional[str] = None
    expires_at: Optional[datetime] = None


class PasswordResetConfirmRequest(BaseModel):
    token: str
    new_password: str
    confirm_password: str


class MessageResponse(BaseModel):
    message: str
