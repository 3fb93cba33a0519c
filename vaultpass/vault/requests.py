"""URL, header and body construction for the Vault HTTP API."""

from __future__ import annotations

import json
from collections.abc import Sequence
from typing import Any
from urllib.parse import quote

from vaultpass.vault.models import SecretEngine, Token
from vaultpass.vault.paths import PATH_SEPARATOR, is_folder, remove_double_slash

API_VERSION = "v1"
DEFAULT_WRAP_TTL = "30m"

# quote() already keeps letters, digits and "_.-~"; these marks stay literal too.
_UNRESERVED_EXTRA = "!*'()"


def encode_segment(segment: str) -> str:
    if is_folder(segment):
        return segment
    return quote(segment, safe=_UNRESERVED_EXTRA)


class RequestBuilder:
    """Builds absolute Vault URLs under ``<endpoint>/v1``."""

    def __init__(self, endpoint: str) -> None:
        self.endpoint = endpoint.rstrip("/")

    # ── Headers ──

    @staticmethod
    def json_header() -> dict[str, str]:
        return {"Content-Type": "application/json"}

    @staticmethod
    def token_header(token: Token | str | None) -> dict[str, str]:
        value = token.client_token if isinstance(token, Token) else token
        if not value:
            return {}
        return {"X-Vault-Token": value}

    @staticmethod
    def wrap_ttl_header(ttl: str = DEFAULT_WRAP_TTL) -> dict[str, str]:
        return {"X-Vault-Wrap-TTL": ttl}

    # ── Endpoints ──

    @property
    def base(self) -> str:
        return f"{self.endpoint}/{API_VERSION}"

    def _url(self, *parts: str) -> str:
        return remove_double_slash(PATH_SEPARATOR.join([self.base, *parts]))

    def login(self, username: str, method: str = "ldap") -> str:
        return self._url("auth", method, "login", username)

    def lookup_self(self) -> str:
        return self._url("auth/token/lookup-self")

    def renew_self(self) -> str:
        return self._url("auth/token/renew-self")

    def revoke_self(self) -> str:
        return self._url("auth/token/revoke-self")

    def wrap(self) -> str:
        return self._url("sys/wrapping/wrap")

    def unwrap(self) -> str:
        return self._url("sys/wrapping/unwrap")

    def engines(self, engine_name: str = "") -> str:
        if engine_name:
            return self._url("sys/internal/ui/mounts", engine_name)
        return self._url("sys/internal/ui/mounts")

    def _secret_url(self, engine: SecretEngine, segments: Sequence[str], v2_prefix: str) -> str:
        parts = [engine.name]
        if engine.is_v2:
            parts.append(v2_prefix)
        if segments:
            parts.append(PATH_SEPARATOR.join(encode_segment(s) for s in segments))
        return self._url(*parts)

    def list_secrets(self, engine: SecretEngine, segments: Sequence[str] = ()) -> str:
        return self._secret_url(engine, segments, "metadata")

    def secret_data(self, engine: SecretEngine, segments: Sequence[str]) -> str:
        return self._secret_url(engine, segments, "data")

    def secret_metadata(self, engine: SecretEngine, segments: Sequence[str]) -> str:
        return self._secret_url(engine, segments, "metadata")

    # ── Bodies ──

    @staticmethod
    def secret_body(engine: SecretEngine, data: dict[str, Any]) -> str:
        if engine.is_v2:
            return json.dumps({"data": data})
        return json.dumps(data)
