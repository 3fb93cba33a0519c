"""
Error taxonomy for vaultpass.

Session-level failures (login, renew, logout, engine listing) are raised to
the caller. Discovery failures are converted to data: the explorer and the
search coordinator wrap them in PathExplorationError / EngineSearchError and
report them inside a SearchReport instead of raising.

Crypto errors carry fixed, generic messages so callers never see cipher
internals.
"""

from __future__ import annotations


class VaultPassError(Exception):
    """Base class for every error raised by vaultpass."""


class InvalidArgument(VaultPassError, ValueError):
    """A caller passed an argument the operation cannot work with."""


# ── Vault transport / HTTP ────────────────────────────────────────────


class VaultError(VaultPassError):
    """Any failed interaction with the Vault server."""


class NetworkError(VaultError):
    """The request never produced an HTTP response (DNS, refused, timeout)."""

    def __init__(self, url: str) -> None:
        super().__init__(f"Request to {url} failed")
        self.url = url


class HttpStatusError(VaultError):
    """Vault answered with a non-2xx status."""

    default_message = "Vault request failed"

    def __init__(self, status_code: int, message: str = "", url: str = "") -> None:
        super().__init__(message or self.default_message)
        self.status_code = status_code
        self.url = url


class Forbidden(HttpStatusError):
    default_message = "Permission denied"


class NotFound(HttpStatusError):
    default_message = "Not found"


class RateLimited(HttpStatusError):
    default_message = "Too many requests, try again later"


class ServerError(HttpStatusError):
    default_message = "Vault server error"


class AuthInvalid(VaultError):
    """No usable token: missing, expired, or rejected by Vault."""


class InvalidTokenDetails(AuthInvalid):
    """A stored token carries an expiration date that cannot be parsed."""


# ── Discovery (non-fatal, reported as data) ───────────────────────────


class PathExplorationError(VaultPassError):
    """Listing one folder of one engine failed."""

    def __init__(self, engine: str, path: str, reason: str) -> None:
        super().__init__(reason)
        self.engine = engine
        self.path = path
        self.reason = reason


class EngineSearchError(VaultPassError):
    """The whole exploration of one engine failed."""

    def __init__(self, engine: str, reason: str) -> None:
        super().__init__(reason)
        self.engine = engine
        self.reason = reason


# ── Crypto ────────────────────────────────────────────────────────────


class CryptoError(VaultPassError):
    """Base class for encrypt/decrypt failures."""


class EncryptionFailed(CryptoError):
    def __init__(self) -> None:
        super().__init__("Encryption failed")


class DecryptionFailed(CryptoError):
    def __init__(self, message: str = "Decryption failed") -> None:
        super().__init__(message)


class CryptoNullValue(DecryptionFailed):
    def __init__(self) -> None:
        super().__init__("Cannot decrypt an empty value")


class CryptoUnsupportedVersion(DecryptionFailed):
    def __init__(self, version: str) -> None:
        super().__init__(f"Unsupported encryption version: {version}")
        self.version = version
