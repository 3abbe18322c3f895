"""Password hashing tests."""

import pytest

from vidtube.auth.password import (
    BCRYPT_MAX_BYTES,
    hash_password,
    password_policy_violation,
    verify_password,
)
from vidtube.config import settings
from vidtube.errors import ValidationError


def test_hash_then_verify():
    hashed = hash_password("correct horse battery")
    assert verify_password("correct horse battery", hashed)


def test_wrong_password_rejected():
    hashed = hash_password("correct horse battery")
    assert not verify_password("correct horse staple", hashed)


def test_hash_is_salted():
    """Same plaintext, different stored hashes — both still verify."""
    h1 = hash_password("same-password")
    h2 = hash_password("same-password")
    assert h1 != h2
    assert verify_password("same-password", h1)
    assert verify_password("same-password", h2)


def test_hash_never_contains_plaintext():
    hashed = hash_password("plaintext-secret")
    assert "plaintext-secret" not in hashed
    assert hashed.startswith("$2")


def test_malformed_hash_returns_false():
    """verify_password never raises on garbage hashes."""
    assert not verify_password("anything", "not-a-bcrypt-hash")
    assert not verify_password("anything", "")


def test_unicode_password():
    hashed = hash_password("pässwörd-密码")
    assert verify_password("pässwörd-密码", hashed)
    assert not verify_password("passwort-密码", hashed)


def test_password_at_byte_limit_accepted():
    password = "x" * BCRYPT_MAX_BYTES
    assert verify_password(password, hash_password(password))


def test_over_long_password_refused_not_truncated():
    with pytest.raises(ValidationError):
        hash_password("x" * BCRYPT_MAX_BYTES + "first-secret")


def test_shared_72_byte_prefix_does_not_verify():
    hashed = hash_password("x" * BCRYPT_MAX_BYTES)
    assert not verify_password("x" * BCRYPT_MAX_BYTES + "other-secret", hashed)


def test_limit_counts_bytes_not_characters():
    # 25 three-byte characters: short in characters, too long in bytes
    assert password_policy_violation("密" * 25) is not None
    assert password_policy_violation("密" * 24) is None


def test_policy_follows_min_length_setting(monkeypatch):
    monkeypatch.setattr(settings, "min_password_length", 12)
    assert password_policy_violation("eleven-char") is not None
    assert password_policy_violation("twelve-chars") is None
