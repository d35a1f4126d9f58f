from __future__ import annotations

from marketplace.core.security import hash_password, verify_password


def test_hash_roundtrip_and_prefix():
    hashed = hash_password("secret1")
    assert hashed.startswith("argon2$")
    assert hashed != "secret1"
    assert verify_password("secret1", hashed) is True
    assert verify_password("secret2", hashed) is False


def test_verify_rejects_missing_or_foreign_hashes():
    assert verify_password("secret1", None) is False
    assert verify_password("secret1", "") is False
    assert verify_password("secret1", "plain-text") is False
    assert verify_password("", hash_password("secret1")) is False
    assert verify_password("secret1", "argon2$not-a-hash") is False
