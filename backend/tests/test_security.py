"""
Excalidraw Organizer Backend — Security Helper Unit Tests
==========================================================

What we test:
    ✅ bcrypt hashing and verification (including malformed hashes)
    ✅ JWT issue/decode, expiry (401) vs. invalid/wrong-type tokens (403)
    ✅ Password strength scoring, errors and suggestions
"""

from datetime import timedelta
from uuid import uuid4

import pytest
from jose import jwt

from organizer.config import settings
from organizer.exceptions import AuthenticationError, AuthorizationError
from organizer.utils.password_validation import (
    get_password_strength_label,
    validate_password_strength,
)
from organizer.utils.security import (
    ACCESS_TOKEN,
    RESET_TOKEN,
    create_access_token,
    create_reset_token,
    decode_token,
    hash_password,
    verify_password,
)


class TestPasswordHashing:

    def test_hash_is_not_plaintext_and_verifies(self):
        hashed = hash_password("Sketch-Pad42!")
        assert hashed != "Sketch-Pad42!"
        assert hashed.startswith("$2")
        assert verify_password("Sketch-Pad42!", hashed) is True

    def test_wrong_password_does_not_verify(self):
        hashed = hash_password("Sketch-Pad42!")
        assert verify_password("sketch-pad42!", hashed) is False

    def test_malformed_hash_counts_as_mismatch(self):
        assert verify_password("anything", "not-a-bcrypt-hash") is False


class TestTokens:

    def test_access_token_round_trip(self):
        user_id = str(uuid4())
        payload = decode_token(create_access_token(user_id, "ada@example.com"))
        assert payload["sub"] == user_id
        assert payload["email"] == "ada@example.com"
        assert payload["type"] == ACCESS_TOKEN
        assert payload["exp"] > payload["iat"]

    def test_expired_token_raises_authentication_error(self):
        token = create_access_token(str(uuid4()), "a@b.co", expires_delta=timedelta(seconds=-10))
        with pytest.raises(AuthenticationError) as exc_info:
            decode_token(token)
        assert exc_info.value.status_code == 401
        assert "expired" in exc_info.value.message

    def test_forged_signature_raises_authorization_error(self):
        forged = jwt.encode(
            {"sub": str(uuid4()), "type": ACCESS_TOKEN},
            "some-other-secret",
            algorithm=settings.jwt_algorithm,
        )
        with pytest.raises(AuthorizationError) as exc_info:
            decode_token(forged)
        assert exc_info.value.status_code == 403

    def test_garbage_token_raises_authorization_error(self):
        with pytest.raises(AuthorizationError):
            decode_token("definitely.not.a-jwt")

    def test_reset_token_is_not_an_access_token(self):
        token = create_reset_token(str(uuid4()), "a@b.co")
        with pytest.raises(AuthorizationError):
            decode_token(token)
        assert decode_token(token, expected_type=RESET_TOKEN)["type"] == RESET_TOKEN

    def test_token_without_subject_is_rejected(self):
        token = jwt.encode(
            {"type": ACCESS_TOKEN, "email": "a@b.co"},
            settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
        )
        with pytest.raises(AuthorizationError):
            decode_token(token)


class TestPasswordStrength:

    def test_strong_password_is_valid(self):
        result = validate_password_strength("Sketch-Pad42!")
        assert result.is_valid is True
        assert result.score == 4
        assert result.errors == []
        assert result.suggestions == []

    def test_short_password_reports_every_missing_class(self):
        result = validate_password_strength("abc")
        assert result.is_valid is False
        assert "Password must be at least 8 characters long" in result.errors
        assert "Password must contain at least one uppercase letter" in result.errors
        assert "Password must contain at least one number" in result.errors
        assert "Avoid sequential characters for better security" in result.suggestions
        assert "Consider adding special characters for stronger security" in result.suggestions

    def test_common_prefix_is_rejected_even_if_complex(self):
        result = validate_password_strength("Password123!")
        assert result.is_valid is False
        assert "Password contains common patterns that are easy to guess" in result.errors

    def test_repeated_characters_suggestion(self):
        result = validate_password_strength("Zooomed-in7")
        assert "Avoid repeating the same character multiple times" in result.suggestions

    @pytest.mark.parametrize("score,label", [(0, "Very Weak"), (2, "Fair"), (4, "Very Strong")])
    def test_strength_labels(self, score, label):
        assert get_password_strength_label(score) == label
