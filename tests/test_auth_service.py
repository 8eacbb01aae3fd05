from pathlib import Path

import pytest

from vidtube.core.exceptions import (
    AuthenticationError,
    ConflictError,
    DatabaseError,
    InternalServerError,
    InvalidCredentialsError,
    UploadError,
    ValidationError,
)
from vidtube.core import security as security_module
from vidtube.core.security import verify_password
from vidtube.core.tokens import token_issuer
from vidtube.repositories.user_repository import user_repository
from vidtube.services import auth_service as auth_module
from vidtube.services.asset_storage import LocalAssetStorage
from vidtube.services.auth_service import REFRESH_REUSED_MESSAGE, AuthService


class FailingStorage(LocalAssetStorage):
    """Refuses every upload but still consumes the temp file"""

    def store(self, local_path):
        Path(local_path).unlink(missing_ok=True)
        return None, "upstream unavailable"


class RecordingStorage(LocalAssetStorage):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.removed = []

    def remove(self, url):
        self.removed.append(url)
        return super().remove(url)


# Registration

def test_register_hashes_password_and_normalizes_identity(db, service, make_upload, storage):
    avatar = make_upload()
    user = service.register(
        db,
        username="  Alice ",
        email="Alice@X.com",
        fullname="Alice A",
        password="secret123",
        avatar_path=avatar,
    )

    assert user.username == "alice"
    assert user.email == "alice@x.com"
    assert user.password_hash != "secret123"
    assert verify_password("secret123", user.password_hash)
    assert user.refresh_token is None
    assert user.avatar.startswith("/media/")
    assert user.cover_image == ""
    assert not Path(avatar).exists()
    assert (storage.media_dir / user.avatar.rsplit("/", 1)[1]).exists()


def test_register_stores_optional_cover(db, service, make_upload):
    user = service.register(
        db,
        username="alice",
        email="alice@x.com",
        fullname="Alice A",
        password="secret123",
        avatar_path=make_upload(),
        cover_path=make_upload(".jpg"),
    )
    assert user.cover_image.endswith(".jpg")


@pytest.mark.parametrize(
    "overrides",
    [
        {"username": "   "},
        {"email": ""},
        {"fullname": None},
        {"password": " "},
        {"email": "alice.x.com"},
        {"username": "a" * 51},
        {"fullname": "A" * 101},
        {"email": "a" * 250 + "@x.com"},
    ],
)
def test_register_rejects_bad_input_and_cleans_temp_files(db, service, make_upload, overrides):
    avatar, cover = make_upload(), make_upload()
    fields = dict(username="alice", email="alice@x.com", fullname="Alice A", password="secret123")
    fields.update(overrides)

    with pytest.raises(ValidationError):
        service.register(db, avatar_path=avatar, cover_path=cover, **fields)

    assert not Path(avatar).exists()
    assert not Path(cover).exists()
    assert user_repository.find_by_username_or_email(db, username="alice") is None


def test_register_requires_avatar(db, service, make_upload):
    cover = make_upload()
    with pytest.raises(ValidationError, match="Avatar file is required"):
        service.register(
            db,
            username="alice",
            email="alice@x.com",
            fullname="Alice A",
            password="secret123",
            avatar_path=None,
            cover_path=cover,
        )
    assert not Path(cover).exists()


def test_duplicate_email_is_a_conflict_without_orphans(db, service, register_alice, make_upload, storage):
    register_alice()
    stored_before = set(storage.media_dir.iterdir())
    avatar, cover = make_upload(), make_upload()

    with pytest.raises(ConflictError):
        service.register(
            db,
            username="alice2",
            email="alice@x.com",
            fullname="Other Alice",
            password="secret123",
            avatar_path=avatar,
            cover_path=cover,
        )

    assert not Path(avatar).exists()
    assert not Path(cover).exists()
    assert set(storage.media_dir.iterdir()) == stored_before


def test_duplicate_username_differs_only_in_case(db, service, register_alice, make_upload):
    register_alice()
    with pytest.raises(ConflictError):
        service.register(
            db,
            username="ALICE",
            email="other@x.com",
            fullname="Other",
            password="secret123",
            avatar_path=make_upload(),
        )


def test_avatar_upload_failure_aborts_registration(db, tmp_path, make_upload):
    service = AuthService(token_issuer, FailingStorage(media_dir=str(tmp_path / "media")))
    cover = make_upload()

    with pytest.raises(UploadError):
        service.register(
            db,
            username="alice",
            email="alice@x.com",
            fullname="Alice A",
            password="secret123",
            avatar_path=make_upload(),
            cover_path=cover,
        )

    assert not Path(cover).exists()
    assert user_repository.find_by_username_or_email(db, username="alice") is None


def test_cover_upload_failure_is_tolerated(db, service, make_upload):
    # .txt is refused by the storage, but only the cover is affected
    user = service.register(
        db,
        username="alice",
        email="alice@x.com",
        fullname="Alice A",
        password="secret123",
        avatar_path=make_upload(),
        cover_path=make_upload(".txt"),
    )
    assert user.avatar
    assert user.cover_image == ""


def test_persistence_failure_removes_uploaded_assets(db, tmp_path, make_upload, monkeypatch):
    storage = RecordingStorage(media_dir=str(tmp_path / "media"))
    service = AuthService(token_issuer, storage)

    def broken_create(db, **fields):
        raise DatabaseError()

    monkeypatch.setattr(auth_module.user_repository, "create", broken_create)

    with pytest.raises(DatabaseError):
        service.register(
            db,
            username="alice",
            email="alice@x.com",
            fullname="Alice A",
            password="secret123",
            avatar_path=make_upload(),
        )

    assert storage.removed and storage.removed[0].startswith("/media/")
    assert list(storage.media_dir.iterdir()) == []


@pytest.mark.parametrize(
    "failure, expected",
    [
        (ValueError("bad salt"), InternalServerError),
        (RuntimeError("backend crashed"), RuntimeError),
    ],
)
def test_hashing_failure_leaves_no_account_or_assets(db, service, storage, make_upload, monkeypatch, failure, expected):
    def broken_hashpw(password, salt):
        raise failure

    monkeypatch.setattr(security_module.bcrypt, "hashpw", broken_hashpw)

    with pytest.raises(expected):
        service.register(
            db,
            username="alice",
            email="alice@x.com",
            fullname="Alice A",
            password="secret123",
            avatar_path=make_upload(),
            cover_path=make_upload(".jpg"),
        )

    assert user_repository.find_by_username_or_email(db, username="alice") is None
    assert list(storage.media_dir.iterdir()) == []


# Login

def test_login_issues_pair_and_stores_refresh_token(db, service, register_alice):
    register_alice()
    user, pair = service.login(db, username="alice", password="secret123")

    assert pair.access_token != pair.refresh_token
    assert user_repository.find_by_id(db, user.id).refresh_token == pair.refresh_token


def test_login_by_email(db, service, register_alice):
    register_alice()
    user, _ = service.login(db, email="ALICE@x.com", password="secret123")
    assert user.username == "alice"


def test_login_failures_are_indistinguishable(db, service, register_alice):
    register_alice()
    with pytest.raises(InvalidCredentialsError) as wrong_password:
        service.login(db, username="alice", password="nope")
    with pytest.raises(InvalidCredentialsError) as unknown_user:
        service.login(db, username="mallory", password="secret123")

    assert wrong_password.value.message == unknown_user.value.message
    assert wrong_password.value.status_code == unknown_user.value.status_code == 401


def test_login_requires_an_identifier(db, service):
    with pytest.raises(ValidationError):
        service.login(db, username=" ", email=None, password="secret123")


def test_new_login_revokes_previous_refresh_token(db, service, register_alice):
    register_alice()
    _, first = service.login(db, username="alice", password="secret123")
    service.login(db, username="alice", password="secret123")

    with pytest.raises(AuthenticationError, match=REFRESH_REUSED_MESSAGE):
        service.refresh_session(db, first.refresh_token)


# Refresh

def test_refresh_rotates_and_rejects_reuse(db, service, register_alice):
    register_alice()
    _, original = service.login(db, username="alice", password="secret123")

    _, rotated = service.refresh_session(db, original.refresh_token)
    assert rotated.refresh_token != original.refresh_token
    assert rotated.access_token != original.access_token

    with pytest.raises(AuthenticationError) as exc_info:
        service.refresh_session(db, original.refresh_token)
    assert exc_info.value.message == REFRESH_REUSED_MESSAGE

    # The rotated token is still good
    service.refresh_session(db, rotated.refresh_token)


@pytest.mark.parametrize("token", [None, "", "garbage"])
def test_refresh_rejects_missing_or_broken_tokens(db, service, token):
    with pytest.raises(AuthenticationError):
        service.refresh_session(db, token)


def test_refresh_rejects_access_token(db, service, register_alice):
    register_alice()
    _, pair = service.login(db, username="alice", password="secret123")
    with pytest.raises(AuthenticationError, match="Invalid Refresh Token"):
        service.refresh_session(db, pair.access_token)


def test_refresh_for_deleted_account(db, service, register_alice):
    user = register_alice()
    _, pair = service.login(db, username="alice", password="secret123")
    db.delete(user_repository.find_by_id(db, user.id))
    db.commit()

    with pytest.raises(AuthenticationError, match="Invalid Refresh Token"):
        service.refresh_session(db, pair.refresh_token)


def test_concurrent_refresh_only_one_wins(db, service, register_alice, monkeypatch):
    user = register_alice()
    _, pair = service.login(db, username="alice", password="secret123")
    real_issue_pair = service.issuer.issue_pair

    def racing_issue_pair(account):
        # A competing request rotates the token after we read it
        user_repository.update_fields(
            db, user.id, {"refresh_token": "rotated-elsewhere"}, expected={"refresh_token": pair.refresh_token}
        )
        return real_issue_pair(account)

    monkeypatch.setattr(service.issuer, "issue_pair", racing_issue_pair)

    with pytest.raises(AuthenticationError, match=REFRESH_REUSED_MESSAGE):
        service.refresh_session(db, pair.refresh_token)
    assert user_repository.find_by_id(db, user.id).refresh_token == "rotated-elsewhere"


# Logout

def test_logout_revokes_refresh_and_is_idempotent(db, service, register_alice):
    user = register_alice()
    _, pair = service.login(db, username="alice", password="secret123")

    service.logout(db, user)
    service.logout(db, user)

    assert user_repository.find_by_id(db, user.id).refresh_token is None
    with pytest.raises(AuthenticationError):
        service.refresh_session(db, pair.refresh_token)


# Password change

def test_change_password_requires_old_password(db, service, register_alice):
    user = register_alice()
    with pytest.raises(AuthenticationError, match="Invalid old password"):
        service.change_password(db, user, "wrong", "new-secret")


def test_change_password_revokes_session(db, service, register_alice):
    user = register_alice()
    _, pair = service.login(db, username="alice", password="secret123")

    service.change_password(db, user, "secret123", "new-secret")

    with pytest.raises(AuthenticationError):
        service.refresh_session(db, pair.refresh_token)
    with pytest.raises(InvalidCredentialsError):
        service.login(db, username="alice", password="secret123")
    service.login(db, username="alice", password="new-secret")
