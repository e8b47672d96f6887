"""
@file        test_auth_flow.py
@brief       Integration tests for authentication flows
@copyright   (c) 2025 FtsCoDe GmbH. All rights reserved.
@author      Heinstein F.
@date        2026-10-17

Tests:
1. Complete signup flow
2. Login with email/password
3. Refresh with and without rotation
4. Logout and token blacklist
5. Password change and reset
"""

import pytest
from fastapi import status
import jwt


class TestAuthenticationFlow:
    """Test authentication flows"""

    def test_complete_signup_flow(self, client):
        """
        Test 1: Complete user signup flow

        Steps:
        1. Sign up new user
        2. Verify tokens and user are returned
        3. Use the access token on a protected endpoint
        """
        signup_data = {
            "name": "New User",
            "email": "newuser@example.com",
            "password": "SecurePassword123!",
            "birth_date": "2000-01-31",
        }

        response = client.post("/v1/auth/signup", json=signup_data)

        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()
        assert data["user"]["email"] == signup_data["email"]
        assert "password" not in data["user"]

        response = client.get(
            "/v1/auth/me",
            headers={"Authorization": f"Bearer {data['access_token']}"}
        )
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["id"] == data["user"]["id"]

    def test_login_with_email_password(self, client, signed_up_user, test_user_data):
        """
        Test 2: Login with email and password

        Steps:
        1. Login with credentials of a signed-up user
        2. Verify JWT tokens are returned
        3. Verify token payload
        """
        response = client.post("/v1/auth/login", json={
            "email": test_user_data["email"],
            "password": test_user_data["password"],
        })

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["user"]["id"] == signed_up_user["user"]["id"]

        payload = jwt.decode(data["access_token"], options={"verify_signature": False})
        assert payload["sub"] == signed_up_user["user"]["id"]
        assert payload["type"] == "access"
        assert payload["iss"] == "smartpantry-test"
        assert payload["aud"] == "smartpantry-frontend-test"
        assert jwt.get_unverified_header(data["access_token"])["alg"] == "RS256"

    def test_login_with_invalid_credentials(self, client, signed_up_user, test_user_data):
        response = client.post("/v1/auth/login", json={
            "email": test_user_data["email"],
            "password": "WrongPassword123!",
        })

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()["code"] == "UNAUTHORIZED"

    def test_refresh_without_rotation(self, client, signed_up_user):
        """
        Test 3a: Refresh returns a new access token and the same refresh token
        """
        response = client.post("/v1/auth/refresh", json={
            "refresh_token": signed_up_user["refresh_token"],
        })

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["refresh_token"] == signed_up_user["refresh_token"]
        assert data["access_token"] != signed_up_user["access_token"]
        assert data["refresh_expiring_soon"] is False

    def test_refresh_with_rotation(self, client, signed_up_user):
        """
        Test 3b: Rotation replaces the refresh token and revokes the old one
        """
        response = client.post("/v1/auth/refresh", json={
            "refresh_token": signed_up_user["refresh_token"],
            "rotate": True,
        })
        assert response.status_code == status.HTTP_200_OK
        new_refresh = response.json()["refresh_token"]
        assert new_refresh != signed_up_user["refresh_token"]

        # Reusing the old refresh token fails
        response = client.post("/v1/auth/refresh", json={
            "refresh_token": signed_up_user["refresh_token"],
        })
        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()["message"] == "Token has been revoked"

    def test_refresh_rejects_access_token(self, client, signed_up_user):
        response = client.post("/v1/auth/refresh", json={
            "refresh_token": signed_up_user["access_token"],
        })
        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()["message"] == "Token is not a refresh token"

    def test_logout_blacklists_tokens(self, client, signed_up_user, auth_headers):
        """
        Test 4: Logout revokes access and refresh token
        """
        response = client.post(
            "/v1/auth/logout",
            json={"refresh_token": signed_up_user["refresh_token"]},
            headers=auth_headers,
        )
        assert response.status_code == status.HTTP_204_NO_CONTENT

        response = client.get("/v1/auth/me", headers=auth_headers)
        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()["message"] == "Token has been revoked"

        response = client.post("/v1/auth/refresh", json={
            "refresh_token": signed_up_user["refresh_token"],
        })
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_logout_never_fails(self, client):
        response = client.post("/v1/auth/logout")
        assert response.status_code == status.HTTP_204_NO_CONTENT

        response = client.post(
            "/v1/auth/logout",
            json={"refresh_token": "garbage"},
            headers={"Authorization": "Bearer garbage"},
        )
        assert response.status_code == status.HTTP_204_NO_CONTENT

    def test_logout_all_sessions(self, client, signed_up_user, test_user_data, auth_headers):
        second = client.post("/v1/auth/login", json={
            "email": test_user_data["email"],
            "password": test_user_data["password"],
        }).json()

        response = client.post("/v1/auth/logout", json={"all_sessions": True}, headers=auth_headers)
        assert response.status_code == status.HTTP_204_NO_CONTENT

        response = client.get(
            "/v1/auth/me",
            headers={"Authorization": f"Bearer {second['access_token']}"}
        )
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_validate_and_session_endpoints(self, client, signed_up_user, auth_headers):
        response = client.post("/v1/auth/validate", json={"token": signed_up_user["access_token"]})
        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["valid"] is True
        assert data["status"] == "valid"
        assert data["user_id"] == signed_up_user["user"]["id"]

        response = client.post("/v1/auth/validate", json={"token": "garbage"})
        assert response.json() == {
            "valid": False,
            "status": "malformed",
            "reason": "Malformed token",
            "user_id": None,
            "expires_at": None,
        }

        response = client.get("/v1/auth/session", headers=auth_headers)
        assert response.status_code == status.HTTP_200_OK
        session = response.json()
        assert session["is_valid"] is True
        assert session["time_remaining"] in (14, 15)
        assert session["expiring_soon"] is False

    def test_password_change(self, client, signed_up_user, test_user_data, auth_headers):
        """
        Test 5a: Change password revokes earlier tokens and returns new ones
        """
        new_password = "Changed#Pass2026"
        response = client.post(
            "/v1/auth/password/change",
            json={
                "current_password": test_user_data["password"],
                "new_password": new_password,
                "confirm_password": new_password,
            },
            headers=auth_headers,
        )
        assert response.status_code == status.HTTP_200_OK
        new_headers = {"Authorization": f"Bearer {response.json()['access_token']}"}

        assert client.get("/v1/auth/me", headers=auth_headers).status_code == status.HTTP_401_UNAUTHORIZED
        assert client.get("/v1/auth/me", headers=new_headers).status_code == status.HTTP_200_OK

        response = client.post("/v1/auth/login", json={
            "email": test_user_data["email"],
            "password": new_password,
        })
        assert response.status_code == status.HTTP_200_OK

    def test_password_reset(self, client, signed_up_user, test_user_data):
        """
        Test 5b: Request a reset token and use it once
        """
        response = client.post("/v1/auth/password/reset/request", json={"email": test_user_data["email"]})
        assert response.status_code == status.HTTP_202_ACCEPTED
        reset_token = response.json()["reset_token"]
        assert reset_token

        new_password = "Reset#Pass2026"
        confirm = {"token": reset_token, "new_password": new_password, "confirm_password": new_password}
        response = client.post("/v1/auth/password/reset/confirm", json=confirm)
        assert response.status_code == status.HTTP_200_OK

        response = client.post("/v1/auth/password/reset/confirm", json=confirm)
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

        response = client.post("/v1/auth/login", json={
            "email": test_user_data["email"],
            "password": new_password,
        })
        assert response.status_code == status.HTTP_200_OK

    def test_password_reset_does_not_reveal_unknown_emails(self, client, signed_up_user, test_user_data):
        known = client.post("/v1/auth/password/reset/request", json={"email": test_user_data["email"]})
        unknown = client.post("/v1/auth/password/reset/request", json={"email": "ghost@example.com"})

        assert unknown.status_code == status.HTTP_202_ACCEPTED
        assert unknown.json()["message"] == known.json()["message"]
        assert unknown.json()["reset_token"] is None

    def test_password_reset_token_hidden_in_production(self, client, signed_up_user, test_user_data, monkeypatch):
        monkeypatch.setenv("ENVIRONMENT", "production")
        from config import get_settings
        from dependencies.auth import reset_auth_service
        get_settings.cache_clear()
        reset_auth_service()
        # Production uses Redis; the blacklist backend stays in memory for the test
        client.post("/v1/auth/signup", json=test_user_data)

        response = client.post("/v1/auth/password/reset/request", json={"email": test_user_data["email"]})
        assert response.status_code == status.HTTP_202_ACCEPTED
        assert response.json()["reset_token"] is None

    def test_logout_ignores_foreign_tokens(self, client, auth_service, make_token):
        """Tokens not signed by the server never reach the blacklist"""
        from datetime import timedelta

        long_lived = timedelta(days=365 * 50)
        for _ in range(5):
            forged = make_token(
                expires_in=long_lived,
                key="not-the-server-key-but-long-enough-for-hs256",
                algorithm="HS256",
            )
            response = client.post(
                "/v1/auth/logout",
                json={"refresh_token": forged},
                headers={"Authorization": f"Bearer {forged}"},
            )
            assert response.status_code == status.HTTP_204_NO_CONTENT

        assert auth_service.blacklist._revoked == {}

    def test_logout_caps_blacklist_lifetime(self, client, auth_service, make_token):
        import time
        from datetime import timedelta

        token = make_token(expires_in=timedelta(days=365 * 50))
        response = client.post("/v1/auth/logout", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == status.HTTP_204_NO_CONTENT

        (expires_at,) = auth_service.blacklist._revoked.values()
        assert expires_at <= time.time() + auth_service.tokens.refresh_token_lifetime + 1

    def test_signup_with_unparseable_birth_date(self, client):
        response = client.post("/v1/auth/signup", json={
            "name": "Date Person",
            "email": "dates@example.com",
            "password": "SecurePassword123!",
            "birth_date": "15/03/1990",
        })

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["code"] == "INVALID_INPUT"
        assert response.json()["message"] == "Invalid birth date"

    def test_refresh_without_token(self, client):
        response = client.post("/v1/auth/refresh", json={"refresh_token": ""})
        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()["message"] == "Refresh token not provided"
