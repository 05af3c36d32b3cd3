"""Tests for JWT token creation, validation and password hashing."""
import pytest
import time
from datetime import timedelta
from jose import jwt, JWTError

from app.api.deps import create_access_token, get_password_hash, verify_password
from app.config import settings


def _claims(token: str) -> dict:
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])


class TestJWTTokens:
    def test_claims_round_trip(self):
        payload = _claims(create_access_token(data={"sub": "42", "email": "picker@warehouse.test"}))
        assert payload["sub"] == "42"
        assert payload["email"] == "picker@warehouse.test"

    @pytest.mark.parametrize(
        "expires_delta, low, high",
        [
            (None, 86000, 86500),  # ACCESS_TOKEN_EXPIRE_MINUTES: one shift day
            (timedelta(minutes=30), 1700, 1900),
        ],
    )
    def test_expiry(self, expires_delta, low, high):
        token = create_access_token(data={"sub": "1"}, expires_delta=expires_delta)
        assert low < _claims(token)["exp"] - time.time() < high

    def test_signed_with_configured_secret_only(self):
        token = create_access_token(data={"sub": "1"})
        assert jwt.get_unverified_header(token)["alg"] == "HS256"
        with pytest.raises(JWTError):
            jwt.decode(token, "another-secret", algorithms=["HS256"])


class TestPasswordHashing:
    def test_hash_and_verify(self):
        hashed = get_password_hash("s3cret-pass")
        assert hashed != "s3cret-pass"
        assert verify_password("s3cret-pass", hashed) is True
        assert verify_password("other-pass", hashed) is False


class TestTokenValidation:
    @pytest.mark.asyncio
    async def test_expired_token_rejected(self, client, operator_user):
        token = create_access_token(
            data={"sub": str(operator_user.id), "email": operator_user.email},
            expires_delta=timedelta(minutes=-1),
        )
        response = await client.get("/api/v2/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_token_for_unknown_user_rejected(self, client):
        token = create_access_token(data={"sub": "9999", "email": "ghost@example.com"})
        response = await client.get("/api/v2/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_disabled_user_forbidden(self, client, operator_user, test_db, make_auth_headers):
        operator_user.is_active = False
        test_db.add(operator_user)
        await test_db.commit()

        response = await client.get("/api/v2/auth/me", headers=make_auth_headers(operator_user))
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_session_cookie_accepted(self, client, operator_user):
        login = await client.post(
            "/api/v2/auth/login",
            json={"email": operator_user.email, "password": "testpassword123"},
        )
        assert login.headers["set-cookie"].startswith("session=")

        client.cookies.set("session", login.json()["access_token"])
        response = await client.get("/api/v2/auth/me")
        assert response.status_code == 200
