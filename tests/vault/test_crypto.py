import base64

import pytest
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from promptvault.vault import (
    CredentialVault,
    DecryptionFailure,
    decrypt,
    derive_key,
    encrypt,
    mask_key,
    split_blob,
)
from promptvault.vault.crypto import NONCE_SIZE, TAG_SIZE

FAST = {"iterations": 1000}


def test_round_trip_with_default_kdf():
    blob = encrypt("sk-test-1234567890", "passphrase")
    assert decrypt(blob, "passphrase") == "sk-test-1234567890"


def test_same_plaintext_encrypts_differently():
    first = encrypt("sk-same", "passphrase", **FAST)
    second = encrypt("sk-same", "passphrase", **FAST)
    assert first != second
    assert split_blob(first)[0] != split_blob(second)[0]


def test_blob_framing_is_nonce_ciphertext_tag():
    plaintext = "hello-world"
    blob = encrypt(plaintext, "pw", **FAST)
    raw = base64.b64decode(blob)
    assert len(raw) == NONCE_SIZE + len(plaintext.encode()) + TAG_SIZE

    nonce, ciphertext, tag = split_blob(blob)
    key = derive_key("pw", **FAST)
    assert AESGCM(key).decrypt(nonce, ciphertext + tag, None) == plaintext.encode()


def test_interoperates_with_fixed_salt_and_iterations():
    # A blob produced by any component using the same passphrase, salt
    # "nightcafe-companion-v1" and 100k iterations must open here.
    key = derive_key("shared", salt="nightcafe-companion-v1", iterations=100_000)
    nonce = b"\x01" * NONCE_SIZE
    blob = base64.b64encode(nonce + AESGCM(key).encrypt(nonce, b"sk-interop", None)).decode()
    assert decrypt(blob, "shared") == "sk-interop"


def test_wrong_secret_fails():
    blob = encrypt("sk-secret", "right", **FAST)
    with pytest.raises(DecryptionFailure):
        decrypt(blob, "wrong", **FAST)


def test_flipping_any_byte_fails():
    blob = encrypt("sk-abc", "pw", **FAST)
    raw = bytearray(base64.b64decode(blob))
    for index in range(len(raw)):
        tampered = bytearray(raw)
        tampered[index] ^= 0x01
        with pytest.raises(DecryptionFailure):
            decrypt(base64.b64encode(bytes(tampered)).decode(), "pw", **FAST)


@pytest.mark.parametrize(
    "blob",
    [
        "not base64 !!",
        base64.b64encode(b"short").decode(),
        "",
    ],
)
def test_malformed_blob_fails(blob):
    with pytest.raises(DecryptionFailure):
        decrypt(blob, "pw", **FAST)


def test_truncated_blob_fails():
    blob = encrypt("sk-abcdef", "pw", **FAST)
    raw = base64.b64decode(blob)
    with pytest.raises(DecryptionFailure):
        decrypt(base64.b64encode(raw[:-1]).decode(), "pw", **FAST)


def test_credential_vault_binds_secret():
    vault = CredentialVault("pw", iterations=1000)
    blob = vault.encrypt("sk-vault")
    assert vault.decrypt(blob) == "sk-vault"
    with pytest.raises(DecryptionFailure):
        CredentialVault("other", iterations=1000).decrypt(blob)


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("sk-1234567890abcd", "sk-1...abcd"),
        ("12345678", "****"),
        ("short", "****"),
    ],
)
def test_mask_key(raw, expected):
    assert mask_key(raw) == expected
