"""
Picks the provider for a stored value and hides cipher failures.

The version is read from the value's prefix only; it is never stored
anywhere else. Callers get one of three outcomes: plaintext, a specific
CryptoNullValue / CryptoUnsupportedVersion, or a generic DecryptionFailed
with the underlying cause suppressed.
"""

from __future__ import annotations

import logging
import re

from vaultpass.crypto.providers import CURRENT, ENCRYPT_TAG, PROVIDERS, V1, V2, V3
from vaultpass.errors import (
    CryptoError,
    CryptoNullValue,
    CryptoUnsupportedVersion,
    DecryptionFailed,
    EncryptionFailed,
)

logger = logging.getLogger(__name__)

_VERSION_TAG = re.compile(rf"^{ENCRYPT_TAG}:v(\d+):")


def detect_version(value: str | None) -> str:
    """Return "v1", "v2", "v3", or the raw tag (e.g. "v7") of an unknown version.

    Raises:
        CryptoNullValue: for None or "".
    """
    if not value:
        raise CryptoNullValue()
    if value.startswith(V3.prefix):
        return V3.version
    m = _VERSION_TAG.match(value)
    if m:
        return f"v{m.group(1)}"
    if value.startswith(V2.prefix):
        return V2.version
    return V1.version


class VaultCrypto:
    """Encrypt with the current format, decrypt any known one."""

    def encrypt(self, value: str, salt: str) -> str:
        try:
            return CURRENT.encrypt(value, salt)
        except Exception:
            raise EncryptionFailed() from None

    def decrypt(self, value: str | None, salt: str) -> str:
        version = detect_version(value)
        provider = PROVIDERS.get(version)
        try:
            if provider is not None:
                return provider.decrypt(value, salt)
            # "encrypted:vN:" can also be the start of a v2 binary payload.
            return V2.decrypt(value, salt)
        except CryptoError:
            raise
        except Exception:
            if provider is None:
                logger.warning("Value tagged with unsupported encryption version %s", version)
                raise CryptoUnsupportedVersion(version) from None
            raise DecryptionFailed() from None


_default = VaultCrypto()

# Fields of a secret's key/value map stored encrypted, salted with the
# secret's full name.
SENSITIVE_FIELDS = ("pass", "token")


def encrypt(value: str, salt: str) -> str:
    return _default.encrypt(value, salt)


def decrypt(value: str | None, salt: str) -> str:
    return _default.decrypt(value, salt)


def encrypt_fields(data: dict, salt: str, fields: tuple[str, ...] = SENSITIVE_FIELDS) -> dict:
    """Copy of ``data`` with the non-empty sensitive fields encrypted."""
    return {k: encrypt(v, salt) if k in fields and v else v for k, v in data.items()}


def decrypt_fields(data: dict, salt: str, fields: tuple[str, ...] = SENSITIVE_FIELDS) -> dict:
    return {k: decrypt(v, salt) if k in fields and v else v for k, v in data.items()}
