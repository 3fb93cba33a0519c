"""
Secret payload crypto.

Public API:
    crypto.encrypt(value, salt)   → "encrypted:v3:<base64>"
    crypto.decrypt(value, salt)   → plaintext, whatever format the value is in
    crypto.detect_version(value)  → "v1" / "v2" / "v3" / unknown tag
    crypto.encrypt_fields(data, salt) / decrypt_fields(data, salt)
                                  → same, over the "pass" and "token" fields
"""

from __future__ import annotations

from vaultpass.crypto.dispatcher import (
    SENSITIVE_FIELDS,
    VaultCrypto,
    decrypt,
    decrypt_fields,
    detect_version,
    encrypt,
    encrypt_fields,
)
from vaultpass.crypto.providers import replicate_string

__all__ = [
    "SENSITIVE_FIELDS",
    "VaultCrypto",
    "decrypt",
    "decrypt_fields",
    "detect_version",
    "encrypt",
    "encrypt_fields",
    "replicate_string",
]
