"""
@file        conftest.py
@brief       Pytest configuration and shared fixtures with RS256 JWT support
@copyright   (c) 2025 FtsCoDe GmbH. All rights reserved.
@author      Heinstein F.
@date        2026-10-17

@details
Tests sign tokens with RS256 like production. The token blacklist runs in
memory and bcrypt uses the minimum cost so the suite needs no Redis and
stays fast.
"""

import pytest
import os
import uuid
from fastapi.testclient import TestClient
from datetime import datetime, timedelta, timezone
import jwt
from unittest.mock import Mock
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives import serialization

# Generate test RSA keypair for RS256 JWT signing
# This is done once when tests start to avoid performance overhead
_test_private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
_test_public_key = _test_private_key.public_key()

# Serialize keys to PEM format
TEST_PRIVATE_KEY_PEM = _test_private_key.private_bytes(
    encoding=serialization.Encoding.PEM,
    format=serialization.PrivateFormat.PKCS8,
    encryption_algorithm=serialization.NoEncryption()
).decode('utf-8')

TEST_PUBLIC_KEY_PEM = _test_public_key.public_bytes(
    encoding=serialization.Encoding.PEM,
    format=serialization.PublicFormat.SubjectPublicKeyInfo
).decode('utf-8')

# Set test environment variables (before main is imported)
os.environ["ENVIRONMENT"] = "test"
os.environ["JWT_ALGORITHM"] = "RS256"
os.environ["JWT_PUBLIC_KEY"] = TEST_PUBLIC_KEY_PEM
os.environ["JWT_PRIVATE_KEY"] = TEST_PRIVATE_KEY_PEM
os.environ["JWT_ISSUER"] = "smartpantry-test"
os.environ["JWT_AUDIENCE"] = "smartpantry-frontend-test"
os.environ["JWT_ACCESS_TOKEN_EXPIRATION"] = "15m"
os.environ["JWT_REFRESH_TOKEN_EXPIRATION"] = "7d"
os.environ["TOKEN_BLACKLIST_BACKEND"] = "memory"
os.environ["BCRYPT_ROUNDS"] = "4"


@pytest.fixture(autouse=True)
def reset_singletons():
    """Fresh settings, users, blacklist and pantry for every test"""
    from config import get_settings
    from dependencies.auth import reset_auth_service
    from services.pantry import reset_pantry_store

    get_settings.cache_clear()
    reset_auth_service()
    reset_pantry_store()
    yield
    get_settings.cache_clear()
    reset_auth_service()
    reset_pantry_store()


@pytest.fixture
def client():
    """FastAPI test client"""
    from main import app
    return TestClient(app)


@pytest.fixture
def auth_service():
    """The AuthService instance the app uses"""
    from dependencies.auth import get_auth_service
    return get_auth_service()


@pytest.fixture
def test_user_data():
    """Test user data"""
    return {
        "name": "Test User",
        "email": "test@example.com",
        "password": "TestPassword123!",
        "birth_date": "1990-05-15",
    }


@pytest.fixture
def signed_up_user(client, test_user_data):
    """Sign up the test user through the API; returns the signup response body"""
    response = client.post("/v1/auth/signup", json=test_user_data)
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture
def auth_headers(signed_up_user):
    """Bearer headers carrying the signed-up user's access token"""
    return {"Authorization": f"Bearer {signed_up_user['access_token']}"}


@pytest.fixture
def make_token():
    """
    Sign an arbitrary token with the test private key.

    Defaults produce a valid access token for user_test123; keyword arguments
    override claims, `expires_in` is a timedelta relative to now (negative for
    expired tokens) and `key`/`algorithm` allow forging.
    """
    def _make_token(expires_in=timedelta(minutes=15), key=None, algorithm="RS256", **claims):
        now = datetime.now(timezone.utc)
        payload = {
            "sub": "user_test123",
            "email": "test@example.com",
            "name": "Test User",
            "type": "access",
            "tv": 0,
            "iss": os.getenv("JWT_ISSUER"),
            "aud": os.getenv("JWT_AUDIENCE"),
            "iat": now - timedelta(hours=2) if expires_in < timedelta(0) else now,
            "exp": now + expires_in,
            "jti": uuid.uuid4().hex,
        }
        payload.update(claims)
        return jwt.encode(payload, key or TEST_PRIVATE_KEY_PEM, algorithm=algorithm)

    return _make_token


@pytest.fixture
def mock_redis():
    """
    Mock Redis client for blacklist tests.

    Keys live in a dict; TTLs are recorded but not enforced.
    """
    redis_mock = Mock()
    _redis_store = {}
    _redis_ttls = {}

    def mock_setex(key, ttl, value):
        _redis_store[key] = value
        _redis_ttls[key] = ttl
        return True

    def mock_exists(key):
        return 1 if key in _redis_store else 0

    redis_mock.setex = Mock(side_effect=mock_setex)
    redis_mock.exists = Mock(side_effect=mock_exists)
    redis_mock.ttls = _redis_ttls

    yield redis_mock
    _redis_store.clear()
