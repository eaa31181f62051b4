"""
Tests for access tokens and password hashing.
"""

import time

import jwt
import pytest

from auth import security
from auth.security import AuthContext, AuthSecurityError

from conftest import TEST_JWT_SECRET


class TestAccessTokens:
    def test_round_trip_returns_identity_and_role(self):
        token = security.build_access_token(identity="hod", role="admin")

        auth = security.decode_access_token(token)

        assert auth == AuthContext(identity="hod", role="admin")
        assert auth.is_admin

    def test_payload_carries_expiry_one_hour_out(self):
        token = security.build_access_token(identity="CS-1", role="student")

        payload = jwt.decode(token, options={"verify_signature": False})

        assert payload["type"] == "access"
        assert payload["exp"] - payload["iat"] == 3600

    def test_expired_token_is_rejected(self):
        token = security.build_access_token(identity="hod", role="admin", expires_in_s=-5)

        with pytest.raises(AuthSecurityError, match="expired"):
            security.decode_access_token(token)

    def test_expired_token_is_rejected_even_though_signature_is_valid(self, monkeypatch):
        two_hours_ago = int(time.time()) - 7200
        monkeypatch.setattr(security, "now_epoch_s", lambda: two_hours_ago)
        token = security.build_access_token(identity="hod", role="admin")

        payload = jwt.decode(token, TEST_JWT_SECRET, algorithms=["HS256"], options={"verify_exp": False})
        assert payload["sub"] == "hod"

        with pytest.raises(AuthSecurityError):
            security.decode_access_token(token)

    def test_tampered_payload_is_rejected(self):
        token = security.build_access_token(identity="CS-1", role="student")
        header, _, signature = token.split(".")
        forged_body = jwt.encode(
            {"sub": "CS-1", "role": "admin", "type": "access", "exp": int(time.time()) + 600},
            "attacker-secret-long-enough-for-hmac-sha256",
            algorithm="HS256",
        ).split(".")[1]

        with pytest.raises(AuthSecurityError):
            security.decode_access_token(f"{header}.{forged_body}.{signature}")

    def test_token_signed_with_another_secret_is_rejected(self):
        token = jwt.encode(
            {"sub": "hod", "role": "admin", "type": "access", "exp": int(time.time()) + 600},
            "some-other-secret-that-is-long-enough-to-use",
            algorithm="HS256",
        )

        with pytest.raises(AuthSecurityError, match="Invalid"):
            security.decode_access_token(token)

    @pytest.mark.parametrize("raw", ["", "   ", "not-a-jwt", "a.b.c"])
    def test_garbage_is_rejected(self, raw):
        with pytest.raises(AuthSecurityError):
            security.decode_access_token(raw)

    def test_unknown_role_is_rejected(self):
        token = jwt.encode(
            {"sub": "hod", "role": "superuser", "type": "access", "exp": int(time.time()) + 600},
            TEST_JWT_SECRET,
            algorithm="HS256",
        )

        with pytest.raises(AuthSecurityError, match="malformed"):
            security.decode_access_token(token)

    def test_token_without_expiry_is_rejected(self):
        token = jwt.encode({"sub": "hod", "role": "admin", "type": "access"}, TEST_JWT_SECRET, algorithm="HS256")

        with pytest.raises(AuthSecurityError):
            security.decode_access_token(token)

    def test_non_access_token_is_rejected(self):
        token = jwt.encode(
            {"sub": "hod", "role": "admin", "type": "reset", "exp": int(time.time()) + 600},
            TEST_JWT_SECRET,
            algorithm="HS256",
        )

        with pytest.raises(AuthSecurityError, match="not an access token"):
            security.decode_access_token(token)

    def test_cannot_issue_token_for_unknown_role(self):
        with pytest.raises(AuthSecurityError):
            security.build_access_token(identity="x", role="root")


class TestPasswordHashing:
    def test_hash_is_salted_and_verifies(self):
        first = security.hash_password("correct horse")
        second = security.hash_password("correct horse")

        assert first != second
        assert "correct horse" not in first
        assert security.verify_password("correct horse", first)

    def test_wrong_password_does_not_verify(self):
        hashed = security.hash_password("correct horse")

        assert security.verify_password("battery staple", hashed) is False

    def test_empty_inputs_do_not_verify(self):
        hashed = security.hash_password("correct horse")

        assert security.verify_password("", hashed) is False
        assert security.verify_password("correct horse", "") is False

    def test_corrupted_hash_does_not_verify(self):
        assert security.verify_password("correct horse", "$2b$12$corrupted") is False

    def test_empty_password_cannot_be_hashed(self):
        with pytest.raises(AuthSecurityError):
            security.hash_password("")
