import pytest

from vidtube.core.exceptions import ConflictError
from vidtube.repositories.user_repository import user_repository


def _create(db, username="bob", email="bob@x.com"):
    return user_repository.create(
        db,
        username=username,
        email=email,
        fullname="Bob B",
        avatar="/media/bob.png",
        cover_image="",
        watch_history=[],
        password_hash="hash",
    )


def test_lookup_by_username_or_email_is_case_insensitive(db):
    user = _create(db)
    assert user_repository.find_by_username_or_email(db, username="BOB").id == user.id
    assert user_repository.find_by_username_or_email(db, email="Bob@X.com").id == user.id
    assert user_repository.find_by_username_or_email(db, username="nobody", email="bob@x.com").id == user.id
    assert user_repository.find_by_username_or_email(db) is None


def test_ids_are_opaque_strings(db):
    first = _create(db)
    second = _create(db, username="carol", email="carol@x.com")
    assert isinstance(first.id, str)
    assert first.id != second.id
    assert user_repository.find_by_id(db, first.id).username == "bob"


def test_duplicate_insert_is_a_conflict(db):
    _create(db)
    with pytest.raises(ConflictError):
        _create(db, username="bob", email="other@x.com")


def test_conditional_update_admits_one_winner(db):
    user = _create(db)
    user_repository.update_fields(db, user.id, {"refresh_token": "old"})

    assert user_repository.update_fields(db, user.id, {"refresh_token": "new-1"}, expected={"refresh_token": "old"})
    assert not user_repository.update_fields(db, user.id, {"refresh_token": "new-2"}, expected={"refresh_token": "old"})
    assert user_repository.find_by_id(db, user.id).refresh_token == "new-1"


def test_update_can_clear_a_field(db):
    user = _create(db)
    user_repository.update_fields(db, user.id, {"refresh_token": "token"})
    assert user_repository.update_fields(db, user.id, {"refresh_token": None})
    assert user_repository.find_by_id(db, user.id).refresh_token is None


def test_update_of_missing_user_reports_false(db):
    assert user_repository.update_fields(db, "missing", {"fullname": "X"}) is False
