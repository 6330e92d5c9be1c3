import os

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from accounts.core.result import ErrorKind
from accounts.services.account_service import AccountService


def _register(accounts, avatar_path, cover_path=None, **overrides):
    fields = {
        "full_name": "Bob Builder",
        "username": "BobB",
        "email": "bob@example.com",
        "password": "can-we-fix-it",
    }
    fields.update(overrides)
    return accounts.register(
        fields["full_name"], fields["username"], fields["email"], fields["password"],
        avatar_path, cover_path,
    )


def test_register_uploads_images_and_creates_user(context, media, image_file):
    accounts = AccountService(context)
    avatar, cover = image_file("a.png"), image_file("c.png")

    result = _register(accounts, avatar, cover)
    assert result.ok, result.failure
    created = result.value
    assert created.username == "bobb"
    assert created.avatar == media.uploaded[0]
    assert created.cover_image == media.uploaded[1]
    assert not os.path.exists(avatar)
    assert "password_hash" not in created.model_dump()


def test_register_without_cover_image(context, image_file):
    result = _register(AccountService(context), image_file())
    assert result.ok
    assert result.value.cover_image == ""


def test_register_requires_fields_and_avatar(context, image_file):
    accounts = AccountService(context)
    assert _register(accounts, image_file(), full_name=" ").kind == ErrorKind.MISSING_FIELDS
    assert _register(accounts, image_file(), password=None).kind == ErrorKind.MISSING_FIELDS
    assert _register(accounts, None).kind == ErrorKind.MISSING_FIELDS


def test_register_rejects_duplicates(context, user, media, image_file):
    accounts = AccountService(context)
    assert _register(accounts, image_file(), username="ALICE").kind == ErrorKind.DUPLICATE_USER
    assert _register(accounts, image_file(), email="alice@example.com").kind == ErrorKind.DUPLICATE_USER
    assert media.uploaded == []


def test_register_avatar_upload_failure(context, media, image_file):
    media.fail_uploads = True
    result = _register(AccountService(context), image_file())
    assert result.kind == ErrorKind.UPLOAD_FAILED
    assert context.store.find_by_username_or_email(username="bobb") is None


@pytest.mark.parametrize("overrides", [
    {"email": "not-an-email"},
    {"username": "b b"},
    {"username": "bo"},
])
def test_register_rejects_malformed_fields_before_uploading(context, media, image_file, overrides):
    result = _register(AccountService(context), image_file(), image_file("c.png"), **overrides)

    assert result.kind == ErrorKind.INVALID_FIELDS
    assert result.failure.status_code == 422
    assert media.uploaded == []
    assert context.store.find_by_username_or_email(username="bobb") is None


@pytest.mark.parametrize("error, kind", [
    (IntegrityError("INSERT", {}, Exception("unique")), ErrorKind.DUPLICATE_USER),
    (OperationalError("INSERT", {}, Exception("db down")), ErrorKind.REGISTRATION_FAILED),
])
def test_register_deletes_uploads_when_insert_fails(context, media, image_file, monkeypatch, error, kind):
    def failing_create(fields):
        raise error

    monkeypatch.setattr(context.store, "create", failing_create)
    result = _register(AccountService(context), image_file(), image_file("c.png"))

    assert result.kind == kind
    assert len(media.uploaded) == 2
    assert media.deleted == media.uploaded


def test_get_current_user(context, user):
    accounts = AccountService(context)
    assert accounts.get_current_user(user.id).value.email == "alice@example.com"
    assert accounts.get_current_user(999).kind == ErrorKind.USER_NOT_FOUND


def test_update_account_details(context, user, image_file):
    accounts = AccountService(context)
    result = accounts.update_account_details(user.id, "Alice L.", "Alice@New.org")
    assert result.ok
    assert result.value.full_name == "Alice L."
    assert result.value.email == "alice@new.org"

    assert accounts.update_account_details(user.id, "", "a@b.co").kind == ErrorKind.MISSING_FIELDS
    assert accounts.update_account_details(user.id, "Alice", "nope").kind == ErrorKind.INVALID_FIELDS

    _register(accounts, image_file())
    assert accounts.update_account_details(user.id, "Alice", "bob@example.com").kind == ErrorKind.DUPLICATE_USER


def test_update_avatar_replaces_and_deletes_previous(context, user, media, image_file):
    accounts = AccountService(context)
    previous = user.avatar

    result = accounts.update_avatar(user.id, image_file())
    assert result.ok
    assert result.value.avatar == media.uploaded[-1]
    assert media.deleted == [previous]


def test_update_cover_image(context, user, media, image_file):
    accounts = AccountService(context)
    result = accounts.update_cover_image(user.id, image_file())
    assert result.ok
    assert result.value.cover_image == media.uploaded[-1]
    # No previous cover to delete
    assert media.deleted == []


def test_update_image_failures(context, user, media, image_file):
    accounts = AccountService(context)
    assert accounts.update_avatar(user.id, None).kind == ErrorKind.MISSING_FIELDS
    assert accounts.update_avatar(999, image_file()).kind == ErrorKind.USER_NOT_FOUND

    media.fail_uploads = True
    assert accounts.update_cover_image(user.id, image_file()).kind == ErrorKind.UPLOAD_FAILED
    assert context.store.find_by_id(user.id).cover_image == ""
