"""
Tests for email/password rules and hashing
"""
import pytest

from services.credentials import (
    calculate_strength,
    evaluate_password,
    hash_password,
    is_common_password,
    is_valid_email,
    mask_email,
    normalize_email,
    require_new_password,
    verify_password,
)
from services.errors import AppError


@pytest.mark.parametrize("email,valid", [
    ("user@example.com", True),
    ("first.last@sub.example.org", True),
    ("user@localhost", False),
    (".user@example.com", False),
    ("user.@example.com", False),
    ("us..er@example.com", False),
    ("user example@example.com", False),
    ("userexample.com", False),
])
def test_is_valid_email(email, valid):
    assert is_valid_email(email) is valid


def test_normalize_email_trims_and_lowercases():
    assert normalize_email("  John.Doe@Example.COM ") == "john.doe@example.com"


def test_normalize_email_errors():
    with pytest.raises(AppError) as exc:
        normalize_email("   ")
    assert exc.value.message == "Email is required"
    assert exc.value.status_code == 400

    with pytest.raises(AppError) as exc:
        normalize_email("a" * 250 + "@example.com")
    assert "too long" in exc.value.message


def test_mask_email():
    assert mask_email("johndoe@example.com") == "jo***@example.com"
    assert mask_email("ab@example.com") == "**@example.com"
    assert mask_email("garbage") == "***"


@pytest.mark.parametrize("password,expected", [
    ("aaaaaaaa", 0),            # all the same character
    ("abcdef", 0),              # lower only, leading sequence
    ("password", 2),            # length >= 8, lower
    ("Password1", 4),           # length >= 8, lower, upper, digit
    ("Str0ng!Passw0rd", 5),     # capped at 5
    ("123Abc!x", 4),            # 5 points minus the leading sequence
])
def test_calculate_strength(password, expected):
    assert calculate_strength(password) == expected


def test_evaluate_password_reports_invalid_length():
    result = evaluate_password("abc")
    assert result.strength == 0
    assert result.label == "Invalid"
    assert result.is_strong is False
    assert result.suggestions == ["Password must be at least 6 characters"]


def test_evaluate_password_suggestions():
    result = evaluate_password("password")
    assert result.label == "Fair"
    assert result.is_strong is False
    assert "Avoid commonly used passwords" in result.suggestions
    assert "Add numbers" in result.suggestions

    strong = evaluate_password("Very$ecure2024Pass")
    assert strong.is_strong is True
    assert strong.suggestions == ["Your password is strong!"]


def test_require_new_password_rejects_common_passwords():
    assert is_common_password("Password123")
    with pytest.raises(AppError) as exc:
        require_new_password("Password123")
    assert exc.value.message == "Password is too common. Choose a more secure password."


def test_require_new_password_rejects_long_passwords():
    with pytest.raises(AppError) as exc:
        require_new_password("Aa1!" * 40, "New password")
    assert exc.value.message == "New password too long (max 128 characters)"


def test_hash_and_verify_password():
    password_hash = hash_password("TestPassword123!", rounds=4)
    assert password_hash.startswith("$2")
    assert verify_password("TestPassword123!", password_hash)
    assert not verify_password("TestPassword123?", password_hash)


def test_verify_password_with_non_bcrypt_hash():
    assert verify_password("whatever", "plain-text") is False


def test_hash_accepts_passwords_over_72_bytes():
    long_password = "Aa1!" * 30
    password_hash = hash_password(long_password, rounds=4)
    assert verify_password(long_password, password_hash)
