import pytest
from cryptography.exceptions import InvalidTag

from gallerysync import crypto


def test_encrypt_decrypt_with_hex_key(encryption_key):
    token = crypto.encrypt("access-token-123")

    iv, tag, ciphertext = token.split(":")
    assert len(iv) == 32 and len(tag) == 32
    assert crypto.is_encrypted(token)
    assert crypto.decrypt(token) == "access-token-123"


def test_each_encryption_uses_a_fresh_iv(encryption_key):
    assert crypto.encrypt("same") != crypto.encrypt("same")


@pytest.mark.parametrize("key", ["k" * 32, "short passphrase"])
def test_other_key_forms(monkeypatch, key):
    monkeypatch.setenv("ENCRYPTION_KEY", key)
    assert crypto.decrypt(crypto.encrypt("hello")) == "hello"


def test_fallback_to_admin_password(monkeypatch):
    monkeypatch.delenv("ENCRYPTION_KEY", raising=False)
    monkeypatch.setenv("ADMIN_PASSWORD", "hunter2")
    token = crypto.encrypt("hello")

    assert crypto.decrypt(token) == "hello"
    monkeypatch.setenv("ADMIN_PASSWORD", "something else")
    with pytest.raises(InvalidTag):
        crypto.decrypt(token)


def test_wrong_key_fails(monkeypatch, encryption_key):
    token = crypto.encrypt("secret")
    monkeypatch.setenv("ENCRYPTION_KEY", "cd" * 32)
    with pytest.raises(InvalidTag):
        crypto.decrypt(token)


@pytest.mark.parametrize(
    "value, expected",
    [
        ("plain-token", False),
        ("a:b:c", False),
        ("0" * 32 + ":" + "f" * 32 + ":", True),
        ("0" * 32 + ":" + "f" * 32 + ":zz", False),
    ],
)
def test_is_encrypted(value, expected):
    assert crypto.is_encrypted(value) is expected


def test_decrypt_rejects_malformed(encryption_key):
    with pytest.raises(ValueError):
        crypto.decrypt("only:two")
