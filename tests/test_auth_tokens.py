"""Tests for JWT token creation and password hashing."""
import pytest
import time
from datetime import timedelta
from jose import jwt, JWTError


class TestJWTTokens:
    """Test JWT access token behavior."""

    def test_create_access_token(self):
        """Access token should be a compact JWT string."""
        from app.api.deps import create_access_token
        token = create_access_token(data={"sub": "1", "email": "test@example.com"})
        assert token is not None
        assert isinstance(token, str)
        assert token.count(".") == 2

    def test_access_token_decode(self):
        """Access token should carry sub, email and role claims."""
        from app.api.deps import create_access_token
        from app.config import settings
        token = create_access_token(data={"sub": "42", "email": "user@test.com", "role": "supervisor"})
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        assert payload["sub"] == "42"
        assert payload["email"] == "user@test.com"
        assert payload["role"] == "supervisor"
        assert "exp" in payload

    def test_access_token_expiry(self):
        """Access token should have correct expiration time."""
        from app.api.deps import create_access_token
        from app.config import settings
        token = create_access_token(data={"sub": "1", "email": "test@test.com"})
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        expected = settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60
        assert expected - 100 < (payload["exp"] - time.time()) < expected + 100

    def test_access_token_custom_expiry(self):
        """Should support custom expiration delta."""
        from app.api.deps import create_access_token
        from app.config import settings
        token = create_access_token(
            data={"sub": "1", "email": "test@test.com"},
            expires_delta=timedelta(minutes=30),
        )
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        assert 1700 < (payload["exp"] - time.time()) < 1900

    def test_wrong_secret_fails(self):
        """Token decoded with wrong secret should fail."""
        from app.api.deps import create_access_token
        token = create_access_token(data={"sub": "1", "email": "test@test.com"})
        with pytest.raises(JWTError):
            jwt.decode(token, "wrong-secret-key", algorithms=["HS256"])

    def test_token_algorithm_is_hs256(self):
        from app.config import settings
        assert settings.ALGORITHM == "HS256"


class TestPasswordHelpers:
    """Test password hashing and verification utilities."""

    def test_verify_correct_password(self):
        from app.api.deps import get_password_hash, verify_password
        hashed = get_password_hash("my-secret-pass")
        assert verify_password("my-secret-pass", hashed) is True

    def test_verify_wrong_password(self):
        from app.api.deps import get_password_hash, verify_password
        hashed = get_password_hash("my-secret-pass")
        assert verify_password("wrong-pass", hashed) is False

    def test_hash_is_bcrypt(self):
        from app.api.deps import get_password_hash
        assert get_password_hash("some-password").startswith("$2b$")

    def test_different_hashes_for_same_password(self):
        """Two hashes of the same password should differ (different salts)."""
        from app.api.deps import get_password_hash
        assert get_password_hash("same") != get_password_hash("same")
