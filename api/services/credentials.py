"""
@file        credentials.py
@brief       Email and password rules, strength scoring and bcrypt hashing
@copyright   (c) 2025 FtsCoDe GmbH. All rights reserved.
@author      Heinstein F.
@date        2026-10-17
"""

from dataclasses import dataclass, field
from typing import List
import re

import bcrypt

from services.errors import AppError

EMAIL_MAX_LENGTH = 254
PASSWORD_MIN_LENGTH = 6
PASSWORD_MAX_LENGTH = 128
STRONG_PASSWORD_THRESHOLD = 3
BCRYPT_MAX_BYTES = 72

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_SPECIAL_RE = re.compile(r"[!@#$%^&*()_+\-=\[\]{};':\"\\|,.<>/?]")
_SEQUENCE_RE = re.compile(
    r"^(012|123|234|345|456|567|678|789|890|abc|bcd|cde|def|efg|fgh|ghi|hij|ijk|jkl|klm|"
    r"lmn|mno|nop|opq|pqr|qrs|rst|stu|tuv|uvw|vwx|wxy|xyz)",
    re.IGNORECASE,
)

STRENGTH_LABELS = ["Very Weak", "Weak", "Fair", "Good", "Strong", "Very Strong"]

COMMON_PASSWORDS = frozenset({
    "123456", "password", "12345678", "qwerty", "123456789",
    "12345", "1234", "111111", "1234567", "dragon",
    "123123", "baseball", "iloveyou", "trustno1", "1234567890",
    "letmein", "password123", "admin", "root", "toor",
})


# ---- Email -------------------------------------------------------------------

def is_valid_email(email: str) -> bool:
    if not _EMAIL_RE.match(email):
        return False
    local, domain = email.split("@", 1)
    if local.startswith(".") or local.endswith(".") or ".." in local:
        return False
    return "." in domain


def normalize_email(email: str) -> str:
    """
    Validate an email address and return its canonical (trimmed, lower-case) form.

    Raises:
        AppError: 400 when empty, malformed or too long
    """
    if not email or not email.strip():
        raise AppError.bad_request("Email is required")

    trimmed = email.strip()
    if not is_valid_email(trimmed):
        raise AppError.bad_request("Invalid email format")
    if len(trimmed) > EMAIL_MAX_LENGTH:
        raise AppError.bad_request(f"Email too long (max {EMAIL_MAX_LENGTH} characters)")

    return trimmed.lower()


def mask_email(email: str) -> str:
    """Mask an email for log output: jo***@example.com"""
    if "@" not in email:
        return "***"
    local, domain = email.split("@", 1)
    if len(local) <= 2:
        return f"**@{domain}"
    visible = min(2, len(local) // 3)
    return f"{local[:visible]}***@{domain}"


# ---- Password ----------------------------------------------------------------

def calculate_strength(password: str) -> int:
    """Score a password from 0 (very weak) to 5 (very strong)"""
    strength = 0

    if len(password) >= 8:
        strength += 1
    if len(password) >= 12:
        strength += 1

    if re.search(r"[a-z]", password):
        strength += 1
    if re.search(r"[A-Z]", password):
        strength += 1
    if re.search(r"\d", password):
        strength += 1
    if _SPECIAL_RE.search(password):
        strength += 1

    # Penalties
    if re.fullmatch(r"(.)\1+", password):
        strength = 0
    if _SEQUENCE_RE.match(password):
        strength = max(0, strength - 1)

    return min(5, strength)


def is_common_password(password: str) -> bool:
    return password.lower() in COMMON_PASSWORDS


@dataclass
class PasswordStrength:
    strength: int
    label: str
    is_strong: bool
    suggestions: List[str] = field(default_factory=list)


def _suggestions(password: str) -> List[str]:
    suggestions = []
    if len(password) < 12:
        suggestions.append("Use at least 12 characters for better security")
    if not re.search(r"[a-z]", password) or not re.search(r"[A-Z]", password):
        suggestions.append("Mix upper and lower case letters")
    if not re.search(r"\d", password):
        suggestions.append("Add numbers")
    if not _SPECIAL_RE.search(password):
        suggestions.append("Add special characters (!@#$%^&*)")
    if re.search(r"(.)\1{2,}", password):
        suggestions.append("Avoid repeating the same character several times")
    if is_common_password(password):
        suggestions.append("Avoid commonly used passwords")
    if not suggestions:
        suggestions.append("Your password is strong!")
    return suggestions


def check_password_length(password: str, field_name: str = "Password") -> None:
    if not password:
        raise AppError.bad_request(f"{field_name} is required")
    if len(password) < PASSWORD_MIN_LENGTH:
        raise AppError.bad_request(f"{field_name} must be at least {PASSWORD_MIN_LENGTH} characters")
    if len(password) > PASSWORD_MAX_LENGTH:
        raise AppError.bad_request(f"{field_name} too long (max {PASSWORD_MAX_LENGTH} characters)")


def evaluate_password(password: str) -> PasswordStrength:
    """Strength report for UI feedback; never raises"""
    try:
        check_password_length(password)
    except AppError as e:
        return PasswordStrength(strength=0, label="Invalid", is_strong=False, suggestions=[e.message])

    strength = calculate_strength(password)
    return PasswordStrength(
        strength=strength,
        label=STRENGTH_LABELS[strength],
        is_strong=strength >= STRONG_PASSWORD_THRESHOLD,
        suggestions=_suggestions(password),
    )


def require_new_password(password: str, field_name: str = "Password") -> None:
    """
    Enforce the rules for a password that is about to be stored.

    Raises:
        AppError: 400 when too short/long, weak or common
    """
    check_password_length(password, field_name)
    if calculate_strength(password) < STRONG_PASSWORD_THRESHOLD:
        raise AppError.bad_request(
            "Weak password. Use upper and lower case letters, numbers and special characters"
        )
    if is_common_password(password):
        raise AppError.bad_request("Password is too common. Choose a more secure password.")


def _bcrypt_input(password: str) -> bytes:
    # bcrypt only reads the first 72 bytes; newer releases reject longer input
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def hash_password(password: str, rounds: int = 12) -> str:
    return bcrypt.hashpw(_bcrypt_input(password), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(_bcrypt_input(password), password_hash.encode("utf-8"))
    except ValueError:
        # Stored hash is not a bcrypt hash
        return False
