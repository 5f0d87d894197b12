# tests/test_security.py
from school_portal.security import hash_password, verify_password
from school_portal.storage import MemoryStorage


def test_hash_is_hex_digest_and_never_plaintext():
    digest = hash_password("Password123")

    assert digest != "Password123"
    assert len(digest) == 64
    assert all(c in "0123456789abcdef" for c in digest)
    assert digest == hash_password("Password123")


def test_verify_password():
    digest = hash_password("Password123")

    assert verify_password("Password123", digest)
    assert not verify_password("password123", digest)
    assert not verify_password("", digest)


def test_empty_hash_never_verifies():
    assert not verify_password("", "")
    assert not verify_password("Password123", "")


def test_storage_exposes_verify_password():
    storage = MemoryStorage()

    assert storage.verify_password("abc", hash_password("abc"))
    assert not storage.verify_password("abd", hash_password("abc"))
