import pytest

from vidtube.core.exceptions import ValidationError
from vidtube.core.security import get_password_hash, verify_password


def test_hash_is_salted_and_verifiable():
    first = get_password_hash("secret123")
    second = get_password_hash("secret123")
    assert first != "secret123"
    assert first != second
    assert verify_password("secret123", first)
    assert verify_password("secret123", second)


def test_wrong_password_does_not_verify():
    hashed = get_password_hash("secret123")
    assert verify_password("secret124", hashed) is False
    assert verify_password("", hashed) is False


def test_cost_factor_comes_from_settings():
    assert get_password_hash("secret123").startswith("$2b$04$")
    assert get_password_hash("secret123", rounds=5).startswith("$2b$05$")


def test_garbage_hash_never_verifies():
    assert verify_password("secret123", "not-a-bcrypt-hash") is False
    assert verify_password("secret123", None) is False


def test_overlong_password_is_rejected():
    with pytest.raises(ValidationError):
        get_password_hash("x" * 73)
