"""
Unit tests for core.security module.
Tests password hashing and the session-bound access/refresh token pair.
"""
import datetime as dt
import types
import uuid

import jwt
import pytest

from usersvc.core.errors import ConfigurationError, InvalidToken
from usersvc.core.security import (
    ACCESS_TOKEN_TTL,
    REFRESH_TOKEN_TTL,
    TokenIssuer,
    hash_password,
    verify_password,
)

SECRET = "unit-test-secret-key-for-hs256-signing"


def make_user(role: str = "user"):
    return types.SimpleNamespace(id=uuid.uuid4(), email="a@x.com", role=role)


def raw_claims(token: str) -> dict:
    return jwt.decode(token, SECRET, algorithms=["HS256"])


class TestPasswordHashing:
    """Tests for password hashing and verification."""

    def test_hash_password_returns_different_hash_each_time(self):
        """Password hashing should produce different hashes (salt included)."""
        password = "TestPassword123"
        assert hash_password(password) != hash_password(password)

    def test_hash_password_produces_valid_hash(self):
        password = "TestPassword123"
        hashed = hash_password(password)
        assert isinstance(hashed, str)
        assert hashed.startswith("$argon2")
        assert hashed != password  # Should not be plain text

    def test_verify_password_correct_password(self):
        hashed = hash_password("TestPassword123")
        assert verify_password("TestPassword123", hashed) is True

    def test_verify_password_incorrect_password(self):
        hashed = hash_password("TestPassword123")
        assert verify_password("WrongPassword456", hashed) is False


class TestTokenIssuer:
    """Tests for issuing and parsing the token pair."""

    def test_access_token_carries_session_and_user_claims(self):
        issuer = TokenIssuer(SECRET)
        user = make_user(role="admin")
        pair = issuer.issue_pair(user, "sess-1")

        claims = issuer.parse_access(pair.access_token)
        assert claims.session_id == "sess-1"
        assert claims.user_id == str(user.id)
        assert claims.email == "a@x.com"
        assert claims.role == "admin"

    def test_refresh_token_only_carries_session_binding(self):
        issuer = TokenIssuer(SECRET)
        pair = issuer.issue_pair(make_user(), "sess-2")

        assert set(raw_claims(pair.refresh_token)) == {"session_id", "exp"}
        assert issuer.parse_refresh(pair.refresh_token).session_id == "sess-2"

    def test_both_tokens_bound_to_same_session(self):
        issuer = TokenIssuer(SECRET)
        pair = issuer.issue_pair(make_user(), "sess-3")
        access = issuer.parse_access(pair.access_token)
        refresh = issuer.parse_refresh(pair.refresh_token)
        assert access.session_id == refresh.session_id == "sess-3"

    def test_expiry_times(self):
        now = dt.datetime(2030, 1, 1, tzinfo=dt.timezone.utc)
        issuer = TokenIssuer(SECRET, clock=lambda: now)
        pair = issuer.issue_pair(make_user(), "sess-4")
        access_exp = jwt.decode(pair.access_token, SECRET, algorithms=["HS256"], options={"verify_exp": False})["exp"]
        refresh_exp = jwt.decode(pair.refresh_token, SECRET, algorithms=["HS256"], options={"verify_exp": False})["exp"]
        assert access_exp == int((now + ACCESS_TOKEN_TTL).timestamp())
        assert refresh_exp == int((now + REFRESH_TOKEN_TTL).timestamp())
        assert ACCESS_TOKEN_TTL == dt.timedelta(minutes=15)
        assert REFRESH_TOKEN_TTL == dt.timedelta(hours=24)

    def test_expired_tokens_rejected(self):
        past = dt.datetime.now(dt.timezone.utc) - dt.timedelta(days=2)
        issuer = TokenIssuer(SECRET, clock=lambda: past)
        pair = issuer.issue_pair(make_user(), "sess-5")
        with pytest.raises(InvalidToken):
            issuer.parse_access(pair.access_token)
        with pytest.raises(InvalidToken):
            issuer.parse_refresh(pair.refresh_token)

    def test_wrong_secret_rejected(self):
        pair = TokenIssuer("another-secret-key-for-hs256-signing").issue_pair(make_user(), "sess-6")
        with pytest.raises(InvalidToken):
            TokenIssuer(SECRET).parse_access(pair.access_token)

    def test_none_algorithm_rejected(self):
        exp = dt.datetime.now(dt.timezone.utc) + dt.timedelta(minutes=5)
        forged = jwt.encode({"session_id": "sess-7", "exp": exp}, "", algorithm="none")
        with pytest.raises(InvalidToken):
            TokenIssuer(SECRET).parse_refresh(forged)

    def test_other_hmac_algorithm_rejected(self):
        """Only the configured algorithm is accepted, even with the right secret."""
        exp = dt.datetime.now(dt.timezone.utc) + dt.timedelta(minutes=5)
        token = jwt.encode({"session_id": "sess-8", "exp": exp}, SECRET, algorithm="HS512")
        with pytest.raises(InvalidToken):
            TokenIssuer(SECRET).parse_refresh(token)

    def test_missing_session_id_rejected(self):
        exp = dt.datetime.now(dt.timezone.utc) + dt.timedelta(minutes=5)
        token = jwt.encode({"exp": exp}, SECRET, algorithm="HS256")
        with pytest.raises(InvalidToken):
            TokenIssuer(SECRET).parse_refresh(token)

    def test_blank_session_id_rejected(self):
        exp = dt.datetime.now(dt.timezone.utc) + dt.timedelta(minutes=5)
        token = jwt.encode({"session_id": "", "exp": exp}, SECRET, algorithm="HS256")
        with pytest.raises(InvalidToken):
            TokenIssuer(SECRET).parse_refresh(token)

    def test_access_token_with_unknown_role_rejected(self):
        exp = dt.datetime.now(dt.timezone.utc) + dt.timedelta(minutes=5)
        token = jwt.encode(
            {"session_id": "s", "user_id": "u", "email": "a@x.com", "role": "root", "exp": exp},
            SECRET,
            algorithm="HS256",
        )
        with pytest.raises(InvalidToken):
            TokenIssuer(SECRET).parse_access(token)

    def test_access_token_refused_as_refresh_token(self):
        issuer = TokenIssuer(SECRET)
        pair = issuer.issue_pair(make_user(), "sess-9")
        with pytest.raises(InvalidToken):
            issuer.parse_refresh(pair.access_token)

    def test_refresh_token_refused_as_access_token(self):
        issuer = TokenIssuer(SECRET)
        pair = issuer.issue_pair(make_user(), "sess-10")
        with pytest.raises(InvalidToken):
            issuer.parse_access(pair.refresh_token)

    @pytest.mark.parametrize("token", ["", "invalid.token.here", "not-a-jwt"])
    def test_malformed_tokens_rejected(self, token):
        with pytest.raises(InvalidToken):
            TokenIssuer(SECRET).parse_access(token)

    def test_empty_secret_is_configuration_error(self):
        with pytest.raises(ConfigurationError):
            TokenIssuer("").issue_pair(make_user(), "sess-11")

    @pytest.mark.parametrize("algorithm", ["none", "RS256", "ES256"])
    def test_non_hmac_algorithm_is_configuration_error(self, algorithm):
        with pytest.raises(ConfigurationError):
            TokenIssuer(SECRET, algorithm=algorithm)
