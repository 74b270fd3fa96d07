"""
Symmetric encryption of provider API keys.

Blobs are `base64(nonce || ciphertext || tag)` with a 12-byte random nonce
and a 16-byte AES-GCM tag. The AES-256 key is derived from a passphrase
with PBKDF2-HMAC-SHA256 over a fixed, deployment-wide salt, so any
component holding the passphrase can read any blob. That is only sound
for a single-tenant deployment where the passphrase is the secret
boundary; per-record salts would need a new blob format.
"""

from __future__ import annotations

import base64
import binascii
import secrets

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from promptvault.settings import settings

NONCE_SIZE = 12
TAG_SIZE = 16
KEY_SIZE = 32


class DecryptionFailure(Exception):
    """
    Raised when a blob cannot be opened: wrong passphrase, tampered or
    truncated data, or invalid base64.
    """


def derive_key(
    secret: str,
    *,
    salt: str | bytes | None = None,
    iterations: int | None = None,
) -> bytes:
    """
    Derive a 256-bit AES-GCM key from a passphrase.

    Args:
        secret: Passphrase.
        salt: Overrides the configured fixed salt.
        iterations: Overrides the configured PBKDF2 iteration count.

    Returns:
        32 raw key bytes.
    """
    salt_value = settings.vault_salt if salt is None else salt
    if isinstance(salt_value, str):
        salt_value = salt_value.encode("utf-8")
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_SIZE,
        salt=salt_value,
        iterations=iterations or settings.vault_iterations,
    )
    return kdf.derive(secret.encode("utf-8"))


def encrypt(plaintext: str, secret: str, **kdf_options) -> str:
    """
    Encrypt `plaintext` under a key derived from `secret`.

    A fresh random nonce is drawn on every call, so encrypting the same
    value twice never yields the same blob.
    """
    key = derive_key(secret, **kdf_options)
    nonce = secrets.token_bytes(NONCE_SIZE)
    sealed = AESGCM(key).encrypt(nonce, plaintext.encode("utf-8"), None)
    return base64.b64encode(nonce + sealed).decode("ascii")


def split_blob(blob: str) -> tuple[bytes, bytes, bytes]:
    """
    Decode a blob into (nonce, ciphertext, tag).

    Raises:
        DecryptionFailure: If the blob is not valid base64 or too short.
    """
    try:
        raw = base64.b64decode(blob, validate=True)
    except (binascii.Error, ValueError, TypeError) as exc:
        raise DecryptionFailure("malformed ciphertext") from exc
    if len(raw) < NONCE_SIZE + TAG_SIZE:
        raise DecryptionFailure("malformed ciphertext")
    return raw[:NONCE_SIZE], raw[NONCE_SIZE:-TAG_SIZE], raw[-TAG_SIZE:]


def decrypt(blob: str, secret: str, **kdf_options) -> str:
    """
    Open a blob produced by `encrypt`.

    Raises:
        DecryptionFailure: On tag mismatch or malformed input.
    """
    nonce, ciphertext, tag = split_blob(blob)
    key = derive_key(secret, **kdf_options)
    try:
        opened = AESGCM(key).decrypt(nonce, ciphertext + tag, None)
    except InvalidTag as exc:
        raise DecryptionFailure("authentication tag mismatch") from exc
    try:
        return opened.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise DecryptionFailure("plaintext is not valid UTF-8") from exc


def mask_key(api_key: str) -> str:
    """Short display hint for a stored key, e.g. `sk-a...wxyz`."""
    if len(api_key) <= 8:
        return "****"
    return f"{api_key[:4]}...{api_key[-4:]}"


class CredentialVault:
    """
    Passphrase-bound wrapper around `encrypt` / `decrypt`.

    The key is re-derived on every call; the vault holds no key material.
    """

    def __init__(
        self,
        secret: str,
        *,
        salt: str | bytes | None = None,
        iterations: int | None = None,
    ) -> None:
        self._secret = secret
        self._kdf_options = {"salt": salt, "iterations": iterations}

    def encrypt(self, plaintext: str) -> str:
        return encrypt(plaintext, self._secret, **self._kdf_options)

    def decrypt(self, blob: str) -> str:
        return decrypt(blob, self._secret, **self._kdf_options)


__all__ = [
    "CredentialVault",
    "DecryptionFailure",
    "decrypt",
    "derive_key",
    "encrypt",
    "mask_key",
    "split_blob",
]
