"""AES-256-GCM helpers for tokens stored at rest as ``iv:tag:ciphertext`` hex."""

import os
import re

from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt
from loguru import logger


_KEY_ENV = "ENCRYPTION_KEY"
_FALLBACK_ENV = "ADMIN_PASSWORD"

IV_LENGTH = 16
TAG_LENGTH = 16

_HEX = re.compile(r"^[a-f0-9]+$", re.IGNORECASE)


def _derive(secret: str) -> bytes:
    kdf = Scrypt(salt=b"salt", length=32, n=2**14, r=8, p=1)
    return kdf.derive(secret.encode("utf-8"))


def _load_key() -> bytes:
    """Return the 32-byte key: 64 hex chars, 32 raw chars, or scrypt-derived from anything else."""
    key = os.environ.get(_KEY_ENV)
    if not key:
        logger.warning(
            f"{_KEY_ENV} not set. Using a key derived from {_FALLBACK_ENV}; "
            f"set {_KEY_ENV} in production."
        )
        return _derive(os.environ.get(_FALLBACK_ENV) or "default-key-change-me")

    if len(key) == 64 and _HEX.match(key):
        return bytes.fromhex(key)
    if len(key) == 32:
        return key.encode("utf-8")
    return _derive(key)


def encrypt(plaintext: str) -> str:
    """Encrypt text, returning ``iv:tag:ciphertext`` (all hex)."""
    aesgcm = AESGCM(_load_key())
    iv = os.urandom(IV_LENGTH)
    sealed = aesgcm.encrypt(iv, plaintext.encode("utf-8"), None)
    ciphertext, tag = sealed[:-TAG_LENGTH], sealed[-TAG_LENGTH:]
    return f"{iv.hex()}:{tag.hex()}:{ciphertext.hex()}"


def decrypt(token: str) -> str:
    """Decrypt an ``iv:tag:ciphertext`` value produced by :func:`encrypt`."""
    parts = token.split(":")
    if len(parts) != 3:
        raise ValueError("Invalid encrypted format")
    iv_hex, tag_hex, ct_hex = parts
    aesgcm = AESGCM(_load_key())
    plain = aesgcm.decrypt(bytes.fromhex(iv_hex), bytes.fromhex(ct_hex) + bytes.fromhex(tag_hex), None)
    return plain.decode("utf-8")


def is_encrypted(value: str) -> bool:
    """True if `value` has the shape of an encrypted token."""
    parts = value.split(":")
    if len(parts) != 3:
        return False
    iv, tag, data = parts
    return (
        len(iv) == IV_LENGTH * 2
        and len(tag) == TAG_LENGTH * 2
        and bool(_HEX.match(iv))
        and bool(_HEX.match(tag))
        and (data == "" or bool(_HEX.match(data)))
    )
