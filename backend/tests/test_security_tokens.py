from datetime import timedelta
from types import SimpleNamespace

from jose import jwt

from accounts.core.result import ErrorKind
from accounts.services.token_service import TokenService


def _user(**overrides):
    fields = {"id": 7, "username": "alice", "email": "alice@example.com", "full_name": "Alice Liddell"}
    fields.update(overrides)
    return SimpleNamespace(**fields)


def test_access_token_round_trip(settings):
    tokens = TokenService(settings)
    result = tokens.decode_access_token(tokens.mint_access_token(_user()))
    assert result.ok
    assert result.value["sub"] == "7"
    assert result.value["typ"] == "access"
    assert result.value["username"] == "alice"
    assert result.value["email"] == "alice@example.com"
    assert result.value["full_name"] == "Alice Liddell"


def test_refresh_token_carries_only_identity(settings):
    tokens = TokenService(settings)
    result = tokens.decode_refresh_token(tokens.mint_refresh_token(_user()))
    assert result.ok
    assert set(result.value) == {"sub", "typ", "iat", "exp", "jti"}
    assert result.value["typ"] == "refresh"


def test_tokens_minted_back_to_back_are_distinct(settings):
    tokens = TokenService(settings)
    user = _user()
    assert tokens.mint_refresh_token(user) != tokens.mint_refresh_token(user)


def test_expired_token_is_invalid(settings):
    tokens = TokenService(settings)
    expired = tokens.mint_access_token(_user(), expires_delta=timedelta(seconds=-5))
    result = tokens.decode_access_token(expired)
    assert result.kind == ErrorKind.INVALID_TOKEN


def test_wrong_secret_is_invalid(settings):
    tokens = TokenService(settings)
    access = tokens.mint_access_token(_user())
    assert tokens.verify_and_decode(access, settings.REFRESH_TOKEN_SECRET).kind == ErrorKind.INVALID_TOKEN
    assert tokens.decode_refresh_token(access).kind == ErrorKind.INVALID_TOKEN


def test_token_type_is_enforced(settings):
    tokens = TokenService(settings)
    # Signed with the refresh secret but labelled as an access token
    forged = jwt.encode(
        {"sub": "7", "typ": "access"}, settings.REFRESH_TOKEN_SECRET, algorithm=settings.ALGORITHM
    )
    assert tokens.decode_refresh_token(forged).kind == ErrorKind.INVALID_TOKEN


def test_garbage_is_malformed(settings):
    tokens = TokenService(settings)
    assert tokens.decode_access_token("not-a-token").kind == ErrorKind.MALFORMED_TOKEN
    assert tokens.decode_access_token("a.b.c").kind == ErrorKind.MALFORMED_TOKEN


def test_missing_subject_is_malformed(settings):
    tokens = TokenService(settings)
    no_sub = jwt.encode({"typ": "access"}, settings.ACCESS_TOKEN_SECRET, algorithm=settings.ALGORITHM)
    assert tokens.decode_access_token(no_sub).kind == ErrorKind.MALFORMED_TOKEN
