from .crypto import (
    CredentialVault,
    DecryptionFailure,
    decrypt,
    derive_key,
    encrypt,
    mask_key,
    split_blob,
)

__all__ = [
    "CredentialVault",
    "DecryptionFailure",
    "decrypt",
    "derive_key",
    "encrypt",
    "mask_key",
    "split_blob",
]
