"""Authenticated encryption for secure action item responses."""

from __future__ import annotations

import base64
import binascii
import secrets
import threading
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from config.settings import SECURE_FIELD_SECRET_ENV, get_settings

IV_LENGTH = 12
TAG_LENGTH = 16
KEY_LENGTH = 32

_DECRYPT_FAILED = "Secure payload could not be decrypted."


class EncryptionError(Exception):
    """Base error for secure field encryption."""


class ConfigurationError(EncryptionError):
    """Raised when the secure field secret is missing or malformed."""


class AuthenticationFailure(EncryptionError):
    """Raised when a payload is malformed, tampered with, or sealed under another key."""


def load_secret(value: Optional[str]) -> bytes:
    """Turn the configured secret into 32 raw key bytes.

    A 32-character value is used as-is (UTF-8); anything else must be base64.
    """
    if not value:
        raise ConfigurationError(
            f"{SECURE_FIELD_SECRET_ENV} is not configured. Set it to a 32-byte base64 string."
        )
    if len(value) == KEY_LENGTH:
        key = value.encode("utf-8")
    else:
        try:
            key = base64.b64decode(value, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ConfigurationError(f"Failed to decode {SECURE_FIELD_SECRET_ENV}: {exc}") from exc
    if len(key) != KEY_LENGTH:
        raise ConfigurationError(f"{SECURE_FIELD_SECRET_ENV} must decode to {KEY_LENGTH} bytes.")
    return key


def _check_key(secret: bytes) -> bytes:
    if not isinstance(secret, (bytes, bytearray)) or len(secret) != KEY_LENGTH:
        raise ConfigurationError(f"Encryption key must be {KEY_LENGTH} bytes (256-bit).")
    return bytes(secret)


def encrypt(plaintext: str, secret: bytes) -> str:
    """Seal ``plaintext`` and return base64(iv || tag || ciphertext)."""
    key = _check_key(secret)
    iv = secrets.token_bytes(IV_LENGTH)
    sealed = AESGCM(key).encrypt(iv, plaintext.encode("utf-8"), None)
    # AESGCM appends the tag; the stored layout puts it right after the IV.
    ciphertext, tag = sealed[:-TAG_LENGTH], sealed[-TAG_LENGTH:]
    return base64.b64encode(iv + tag + ciphertext).decode("ascii")


def decrypt(payload: str, secret: bytes) -> str:
    """Open a payload produced by :func:`encrypt`.

    Every failure mode raises the same ``AuthenticationFailure`` so callers
    cannot tell a wrong key from tampered data.
    """
    key = _check_key(secret)
    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError, TypeError) as exc:
        raise AuthenticationFailure(_DECRYPT_FAILED) from exc

    if len(data) < IV_LENGTH + TAG_LENGTH:
        raise AuthenticationFailure(_DECRYPT_FAILED)

    iv = data[:IV_LENGTH]
    tag = data[IV_LENGTH:IV_LENGTH + TAG_LENGTH]
    ciphertext = data[IV_LENGTH + TAG_LENGTH:]
    try:
        plaintext = AESGCM(key).decrypt(iv, ciphertext + tag, None)
        return plaintext.decode("utf-8")
    except (InvalidTag, UnicodeDecodeError) as exc:
        raise AuthenticationFailure(_DECRYPT_FAILED) from exc


class SecureFieldCodec:
    """
    AES-256-GCM codec bound to one key for the life of the process.

    - Key comes from SECURE_FIELD_SECRET unless one is injected
    - Payloads are single base64 strings, safe to store in a text column
    """

    def __init__(self, *, key: Optional[bytes] = None) -> None:
        if key is None:
            key = load_secret(get_settings().secure_field_secret)
        self._key = _check_key(key)

    def encrypt(self, plaintext: str) -> str:
        return encrypt(plaintext, self._key)

    def decrypt(self, payload: str) -> str:
        return decrypt(payload, self._key)


_codec: Optional[SecureFieldCodec] = None
_codec_lock = threading.Lock()


def get_codec() -> SecureFieldCodec:
    """Get or create the process-wide codec (thread-safe)."""
    global _codec
    if _codec is None:
        with _codec_lock:
            if _codec is None:
                _codec = SecureFieldCodec()
    return _codec


def reset_codec() -> None:
    """Drop the cached codec so the next call re-reads configuration."""
    global _codec
    with _codec_lock:
        _codec = None
