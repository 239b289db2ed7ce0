"""Tests for bearer token issue and verification."""

from datetime import datetime, timedelta, timezone

import jwt
import pytest
from conftest import TEST_SECRET

from src.api.security import TokenVerifier
from src.errors import Unauthorized
from src.utils.config import AuthConfig


@pytest.fixture
def verifier() -> TokenVerifier:
    return TokenVerifier(AuthConfig(jwt_secret=TEST_SECRET))


class TestTokenVerifier:
    """Tests for TokenVerifier."""

    def test_issue_then_verify(self, verifier: TokenVerifier) -> None:
        token = verifier.issue("owner-1")
        assert verifier.verify(token) == "owner-1"

    def test_sub_fallback(self, verifier: TokenVerifier) -> None:
        token = jwt.encode({"sub": "owner-9"}, TEST_SECRET, algorithm="HS256")
        assert verifier.verify(token) == "owner-9"

    def test_custom_owner_claim(self) -> None:
        verifier = TokenVerifier(AuthConfig(jwt_secret=TEST_SECRET, owner_claim="user_id"))
        token = jwt.encode({"user_id": "owner-3"}, TEST_SECRET, algorithm="HS256")
        assert verifier.verify(token) == "owner-3"

    def test_expired_token(self, verifier: TokenVerifier) -> None:
        token = verifier.issue("owner-1", expires_in=timedelta(seconds=-10))
        with pytest.raises(Unauthorized) as exc_info:
            verifier.verify(token)
        assert exc_info.value.detail == "Token has expired"
        assert exc_info.value.status_code == 401

    def test_wrong_secret(self, verifier: TokenVerifier) -> None:
        other = TokenVerifier(AuthConfig(jwt_secret="another-secret-of-sufficient-length!"))
        with pytest.raises(Unauthorized):
            verifier.verify(other.issue("owner-1"))

    def test_garbage_token(self, verifier: TokenVerifier) -> None:
        with pytest.raises(Unauthorized):
            verifier.verify("not.a.jwt")

    def test_token_without_owner(self, verifier: TokenVerifier) -> None:
        exp = datetime.now(timezone.utc) + timedelta(minutes=5)
        token = jwt.encode({"exp": exp}, TEST_SECRET, algorithm="HS256")
        with pytest.raises(Unauthorized) as exc_info:
            verifier.verify(token)
        assert exc_info.value.detail == "Token carries no owner id"
