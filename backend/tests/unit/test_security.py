"""Unit tests for security utilities.

Tests password hashing, registration password rules and JWT tokens.
"""

from datetime import timedelta

import pytest

from hess.core.security import (
    RECOVERY_TOKEN_TYPE,
    PasswordValidationError,
    create_access_token,
    create_recovery_token,
    decode_token,
    generate_temporary_password,
    hash_password,
    validate_password,
    verify_password,
)


class TestPasswordHashing:
    """Unit tests for password hashing functions."""

    def test_hash_password_creates_hash(self):
        """Test password hashing creates a hash string."""
        password = "TestPassword123"
        hashed = hash_password(password)

        assert isinstance(hashed, str)
        assert hashed != password

    def test_hash_password_creates_different_hashes(self):
        """Test same password creates different hashes (salt)."""
        assert hash_password("TestPassword123") != hash_password("TestPassword123")

    def test_verify_password(self):
        hashed = hash_password("TestPassword123")

        assert verify_password("TestPassword123", hashed) is True
        assert verify_password("testpassword123", hashed) is False

    def test_verify_password_without_hash_never_matches(self):
        """Identities created without a usable password cannot log in."""
        assert verify_password("anything", None) is False
        assert verify_password("anything", "") is False

    def test_verify_password_with_malformed_hash(self):
        assert verify_password("TestPassword123", "not-a-bcrypt-hash") is False


class TestPasswordValidation:
    def test_valid_password(self):
        validate_password("Member2024")

    @pytest.mark.parametrize(
        "password,message",
        [
            ("Ab1", "at least 8 characters"),
            ("12345678", "at least one letter"),
            ("abcdefgh", "at least one digit"),
        ],
    )
    def test_invalid_passwords(self, password, message):
        with pytest.raises(PasswordValidationError, match=message):
            validate_password(password)

    def test_temporary_password_passes_validation(self):
        password = generate_temporary_password()

        validate_password(password)
        assert len(password) > 20
        assert password != generate_temporary_password()


class TestTokens:
    def test_access_token_round_trip(self):
        token = create_access_token({"sub": "user-1", "roles": ["admin"]})
        payload = decode_token(token)

        assert payload["sub"] == "user-1"
        assert payload["roles"] == ["admin"]
        assert "exp" in payload

    def test_expired_token_is_rejected(self):
        token = create_access_token({"sub": "user-1"}, expires_delta=timedelta(seconds=-1))

        assert decode_token(token) is None

    def test_tampered_token_is_rejected(self):
        token = create_access_token({"sub": "user-1"})

        assert decode_token(token[:-2] + "xx") is None

    def test_recovery_token_is_typed(self):
        payload = decode_token(create_recovery_token("user-1", "jane@acme.edu"))

        assert payload["type"] == RECOVERY_TOKEN_TYPE
        assert payload["email"] == "jane@acme.edu"
        assert payload["jti"]
