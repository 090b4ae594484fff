"""Tests for identity token verification."""
from datetime import timedelta

import jwt
import pytest
from fastapi import HTTPException

from auth import identity_from_token, verify_token
from config import JWT_ALGORITHM, JWT_SECRET_KEY


class TestVerifyToken:

    def test_valid_token(self, make_token):
        identity = verify_token(make_token("alice"))

        assert identity.user_id == "alice"
        assert identity.expires_at is not None

    def test_expired_token(self, make_token):
        with pytest.raises(HTTPException) as exc_info:
            verify_token(make_token("alice", expires_in=timedelta(seconds=-5)))

        assert exc_info.value.status_code == 401
        assert exc_info.value.detail == "Token has expired"

    def test_wrong_signature(self, make_token):
        with pytest.raises(HTTPException) as exc_info:
            verify_token(make_token("alice", secret="a-different-signing-key-of-enough-length"))

        assert exc_info.value.status_code == 401

    def test_missing_subject(self):
        token = jwt.encode({"name": "alice"}, JWT_SECRET_KEY, algorithm=JWT_ALGORITHM)

        with pytest.raises(HTTPException) as exc_info:
            verify_token(token)

        assert exc_info.value.detail == "Token has no subject"

    def test_numeric_subject_becomes_string(self):
        token = jwt.encode({"sub": "42"}, JWT_SECRET_KEY, algorithm=JWT_ALGORITHM)

        assert verify_token(token).user_id == "42"


class TestIdentityFromToken:

    def test_valid(self, make_token):
        assert identity_from_token(make_token("bob")) == "bob"

    @pytest.mark.parametrize("token", [None, "", "not-a-jwt"])
    def test_missing_or_garbage(self, token):
        assert identity_from_token(token) is None
