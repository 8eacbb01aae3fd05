from datetime import timedelta

import pytest

from vidtube.config import Settings
from vidtube.core.exceptions import TokenExpiredError, TokenInvalidError, TokenMalformedError
from vidtube.core.tokens import TokenIssuer, TokenKind, token_issuer


def test_access_token_round_trip():
    token = token_issuer.issue_access(
        "user-7", {"username": "alice", "email": "alice@x.com", "fullName": "Alice A"}
    )
    payload = token_issuer.verify(token, TokenKind.ACCESS)
    assert payload["id"] == "user-7"
    assert payload["username"] == "alice"
    assert payload["email"] == "alice@x.com"
    assert payload["fullName"] == "Alice A"
    assert "exp" in payload


def test_refresh_token_carries_only_the_id():
    payload = token_issuer.verify(token_issuer.issue_refresh("user-9"), TokenKind.REFRESH)
    assert payload["id"] == "user-9"
    assert set(payload) <= {"id", "exp", "iat", "jti"}


def test_refresh_token_is_not_an_access_token():
    refresh = token_issuer.issue_refresh("user-1")
    with pytest.raises(TokenInvalidError):
        token_issuer.verify(refresh, TokenKind.ACCESS)


def test_access_token_is_not_a_refresh_token():
    access = token_issuer.issue_access("user-1")
    with pytest.raises(TokenInvalidError):
        token_issuer.verify(access, TokenKind.REFRESH)


def test_expired_access_token_is_rejected():
    token = token_issuer.issue_access("user-1", expires_delta=timedelta(seconds=-5))
    with pytest.raises(TokenExpiredError):
        token_issuer.verify(token, TokenKind.ACCESS)


def test_configured_lifetime_is_used():
    issuer = TokenIssuer(Settings(ACCESS_TOKEN_EXPIRE_MINUTES=-1))
    with pytest.raises(TokenExpiredError):
        issuer.verify(issuer.issue_access("user-1"), TokenKind.ACCESS)


def test_token_signed_with_another_key_is_rejected():
    foreign = TokenIssuer(Settings(ACCESS_TOKEN_SECRET="some-other-secret-that-is-long-enough-000"))
    with pytest.raises(TokenInvalidError):
        token_issuer.verify(foreign.issue_access("user-1"), TokenKind.ACCESS)


@pytest.mark.parametrize("token", ["", "not-a-token", "a.b.c", None])
def test_malformed_tokens(token):
    with pytest.raises(TokenMalformedError):
        token_issuer.verify(token, TokenKind.ACCESS)


def test_tokens_issued_back_to_back_differ():
    assert token_issuer.issue_refresh("user-1") != token_issuer.issue_refresh("user-1")
