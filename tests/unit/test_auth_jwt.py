"""Unit tests for JWT token generation and validation"""

import time
from uuid import uuid4

import jwt
import pytest

from imiiza.auth.jwt import create_access_token, decode_token
from imiiza.config import get_settings


@pytest.fixture
def reload_settings():
    """Clear the settings cache around a test that changes the environment."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestCreateAccessToken:

    def test_token_contains_claims(self):
        user_id = uuid4()
        token = create_access_token(user_id=user_id, role="agent", email="agent@example.com")

        payload = decode_token(token)

        assert payload["sub"] == str(user_id)
        assert payload["role"] == "agent"
        assert payload["email"] == "agent@example.com"
        assert payload["exp"] > payload["iat"]

    def test_expiry_follows_settings(self, monkeypatch, reload_settings):
        monkeypatch.setenv("JWT_EXPIRY_MINUTES", "5")
        get_settings.cache_clear()

        payload = decode_token(create_access_token(uuid4(), "user", "u@example.com"))

        assert payload["exp"] - payload["iat"] == 300


class TestDecodeToken:

    def test_tampered_token_rejected(self):
        token = create_access_token(uuid4(), "user", "u@example.com")
        header, payload, signature = token.split(".")
        tampered = f"{header}.{payload}.{signature[::-1]}"

        with pytest.raises(jwt.InvalidTokenError):
            decode_token(tampered)

    def test_token_signed_with_other_secret_rejected(self):
        token = jwt.encode({"sub": str(uuid4())}, "another-secret-of-sufficient-length-123456", algorithm="HS256")

        with pytest.raises(jwt.InvalidSignatureError):
            decode_token(token)

    def test_expired_token_rejected(self):
        now = int(time.time())
        token = jwt.encode(
            {"sub": str(uuid4()), "iat": now - 120, "exp": now - 60},
            get_settings().JWT_SECRET,
            algorithm="HS256",
        )

        with pytest.raises(jwt.ExpiredSignatureError):
            decode_token(token)
