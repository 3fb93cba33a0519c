"""
Versioned AES-GCM providers for secret payloads.

Three wire formats coexist in stored data:

    v1  plaintext, no tag (written before encryption existed)
    v2  "encrypted:" + one char per ciphertext byte, fixed keyword key
    v3  "encrypted:v3:" + base64(ciphertext || tag), salt-derived key and IV

Keys and IVs are not derived with a KDF: the salt (or keyword) is repeated
until it reaches the wanted length, then UTF-8 encoded. The expansion must
stay byte-for-byte identical or previously stored values become unreadable.
"""

from __future__ import annotations

import base64
from itertools import cycle, islice
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from cryptography.hazmat.primitives.ciphers.aead import AESGCM


ENCRYPT_TAG = "encrypted"

V3_KEY_LENGTH = 32
V2_KEY_LENGTH = 16  # legacy: half of what AES-256 wants, kept for stored data
IV_LENGTH = 12


def replicate_string(value: str, length: int) -> str:
    """Repeat ``value`` cyclically until it is ``length`` UTF-16 code units long.

    Characters outside the BMP count as two units, so a cut may land between
    the halves of a surrogate pair; the lone half is replaced on decode.
    """
    if not value or length <= 0:
        return ""
    raw = value.encode("utf-16-le", "surrogatepass")
    units = [raw[i : i + 2] for i in range(0, len(raw), 2)]
    return b"".join(islice(cycle(units), length)).decode("utf-16-le", "replace")


def _expand(value: str, length: int) -> bytes:
    return replicate_string(value, length).encode("utf-8")


class PlaintextProvider:
    """v1: values stored before encryption was introduced."""

    version = "v1"

    def encrypt(self, value: str, salt: str | None = None) -> str:
        return value

    def decrypt(self, value: str, salt: str | None = None) -> str:
        return value


class LegacyBinaryProvider:
    """v2: decrypt-only in production; encrypt is kept to build fixtures."""

    version = "v2"
    keyword = "QwErTy"
    prefix = f"{ENCRYPT_TAG}:"

    def _cipher(self) -> tuple[AESGCM, bytes]:
        from cryptography.hazmat.primitives.ciphers.aead import AESGCM

        return AESGCM(_expand(self.keyword, V2_KEY_LENGTH)), _expand(self.keyword, IV_LENGTH)

    def encrypt(self, value: str, salt: str | None = None) -> str:
        aesgcm, iv = self._cipher()
        sealed = aesgcm.encrypt(iv, value.encode("utf-8"), None)
        return self.prefix + "".join(chr(b) for b in sealed)

    def decrypt(self, value: str, salt: str | None = None) -> str:
        aesgcm, iv = self._cipher()
        payload = value.replace(self.prefix, "", 1)
        # Each char carries one byte; anything wider is truncated to its low byte.
        sealed = bytes(ord(c) & 0xFF for c in payload)
        return aesgcm.decrypt(iv, sealed, None).decode("utf-8")


class SaltedProvider:
    """v3: the current format, used for every new write."""

    version = "v3"
    prefix = f"{ENCRYPT_TAG}:v3:"

    def _cipher(self, salt: str) -> tuple[AESGCM, bytes]:
        from cryptography.hazmat.primitives.ciphers.aead import AESGCM

        return AESGCM(_expand(salt, V3_KEY_LENGTH)), _expand(salt, IV_LENGTH)

    def encrypt(self, value: str, salt: str | None = None) -> str:
        aesgcm, iv = self._cipher(salt or "")
        sealed = aesgcm.encrypt(iv, value.encode("utf-8"), None)
        return self.prefix + base64.b64encode(sealed).decode("ascii")

    def decrypt(self, value: str, salt: str | None = None) -> str:
        aesgcm, iv = self._cipher(salt or "")
        payload = value.replace(self.prefix, "", 1)
        sealed = base64.b64decode(payload, validate=True)
        return aesgcm.decrypt(iv, sealed, None).decode("utf-8")


V1 = PlaintextProvider()
V2 = LegacyBinaryProvider()
V3 = SaltedProvider()

PROVIDERS = {p.version: p for p in (V1, V2, V3)}
CURRENT = V3
