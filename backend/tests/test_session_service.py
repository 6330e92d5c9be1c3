from dataclasses import replace
from types import SimpleNamespace

from accounts.core.result import ErrorKind
from accounts.services.session_service import SessionService


def _login(sessions, **kwargs):
    kwargs.setdefault("username", "alice")
    kwargs.setdefault("password", "correct-horse")
    result = sessions.login(**kwargs)
    assert result.ok, result.failure
    return result.value


def test_login_issues_pair_bound_to_user(context, user):
    sessions = SessionService(context)
    result = _login(sessions)

    decoded = context.tokens.decode_access_token(result.access_token)
    assert decoded.ok
    assert decoded.value["sub"] == str(user.id)
    assert context.store.find_by_id(user.id).refresh_token == result.refresh_token
    assert result.expires_in == context.settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60


def test_login_by_email_returns_public_projection(context, user):
    sessions = SessionService(context)
    result = _login(sessions, username=None, email="ALICE@example.com")

    projection = result.user.model_dump()
    assert projection["id"] == user.id
    assert projection["username"] == "alice"
    assert "password" not in projection
    assert "password_hash" not in projection
    assert "refresh_token" not in projection
    assert result.access_token and result.refresh_token


def test_login_requires_identifier_and_password(context, user):
    sessions = SessionService(context)
    assert sessions.login(password="correct-horse").kind == ErrorKind.MISSING_CREDENTIALS
    assert sessions.login(username="  ", email="", password="x").kind == ErrorKind.MISSING_CREDENTIALS
    assert sessions.login(username="alice", password="").kind == ErrorKind.MISSING_CREDENTIALS


def test_login_unknown_user_and_wrong_password(context, user):
    sessions = SessionService(context)
    assert sessions.login(username="bob", password="whatever").kind == ErrorKind.USER_NOT_FOUND
    assert sessions.login(username="alice", password="wrong").kind == ErrorKind.INVALID_CREDENTIALS
    assert context.store.find_by_id(user.id).refresh_token is None


def test_refresh_rotation_scenario(context, user):
    sessions = SessionService(context)
    r1 = _login(sessions).refresh_token

    rotated = sessions.refresh(r1)
    assert rotated.ok
    r2 = rotated.value.refresh_token
    assert r2 != r1
    assert context.store.find_by_id(user.id).refresh_token == r2

    assert sessions.refresh(r1).kind == ErrorKind.UNAUTHENTICATED

    again = sessions.refresh(r2)
    assert again.ok
    assert context.tokens.decode_access_token(again.value.access_token).value["sub"] == str(user.id)


def test_relogin_revokes_previous_refresh_token(context, user):
    sessions = SessionService(context)
    first = _login(sessions).refresh_token
    _login(sessions)
    assert sessions.refresh(first).kind == ErrorKind.UNAUTHENTICATED


def test_refresh_rejects_missing_and_bad_tokens(context, user):
    sessions = SessionService(context)
    _login(sessions)
    access = _login(sessions).access_token

    assert sessions.refresh(None).kind == ErrorKind.UNAUTHENTICATED
    assert sessions.refresh("").kind == ErrorKind.UNAUTHENTICATED
    assert sessions.refresh("garbage").kind == ErrorKind.UNAUTHENTICATED
    assert sessions.refresh(access).kind == ErrorKind.UNAUTHENTICATED


def test_refresh_for_unknown_user_is_unauthenticated(context):
    sessions = SessionService(context)
    ghost = SimpleNamespace(id=999)
    token = context.tokens.mint_refresh_token(ghost)
    assert sessions.refresh(token).kind == ErrorKind.UNAUTHENTICATED


def test_logout_clears_token_and_is_idempotent(context, user):
    sessions = SessionService(context)
    r1 = _login(sessions).refresh_token

    assert sessions.logout(user.id).ok
    assert context.store.find_by_id(user.id).refresh_token is None
    assert sessions.refresh(r1).kind == ErrorKind.UNAUTHENTICATED

    assert sessions.logout(user.id).ok


def test_change_password(context, user):
    sessions = SessionService(context)
    r1 = _login(sessions).refresh_token

    assert sessions.change_password(user.id, "correct-horse", "battery-staple").ok

    assert sessions.login(username="alice", password="correct-horse").kind == ErrorKind.INVALID_CREDENTIALS
    assert sessions.refresh(r1).kind == ErrorKind.UNAUTHENTICATED
    _login(sessions, password="battery-staple")


def test_change_password_can_keep_sessions(context, user):
    settings = context.settings.model_copy(update={"REVOKE_SESSIONS_ON_PASSWORD_CHANGE": False})
    sessions = SessionService(replace(context, settings=settings))
    r1 = _login(sessions).refresh_token

    assert sessions.change_password(user.id, "correct-horse", "battery-staple").ok
    assert context.store.find_by_id(user.id).refresh_token == r1


def test_change_password_failures(context, user):
    sessions = SessionService(context)
    assert sessions.change_password(user.id, "", "new").kind == ErrorKind.MISSING_FIELDS
    assert sessions.change_password(user.id, "correct-horse", None).kind == ErrorKind.MISSING_FIELDS
    assert sessions.change_password(user.id, "wrong", "new-pass").kind == ErrorKind.INVALID_CREDENTIALS
    assert sessions.change_password(999, "correct-horse", "new-pass").kind == ErrorKind.USER_NOT_FOUND


def test_change_password_for_user_deleted_mid_request(context, user, monkeypatch):
    # The row vanishes between the password check and the write
    monkeypatch.setattr(context.store, "update_fields", lambda *args, **kwargs: None)
    result = SessionService(context).change_password(user.id, "correct-horse", "battery-staple")
    assert result.kind == ErrorKind.USER_NOT_FOUND


def test_issue_pair_for_missing_user_fails(context):
    result = SessionService(context).issue_pair(12345)
    assert result.kind == ErrorKind.SESSION_ISSUANCE_FAILED
