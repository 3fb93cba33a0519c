"""
Async HTTP binding for the Vault API.

Wraps httpx.AsyncClient. Every non-2xx response is turned into an
HttpStatusError subclass; transport failures become NetworkError. The only
statuses swallowed are the ones a caller cannot act on: 403/404 on LIST
(a missing personal root or a forbidden sub-tree) and 404 on read.

Usage:
    async with VaultClient("https://vault.example.com") as client:
        token = await client.login("alice", "hunter2")
        engines = await client.list_engines()
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Iterable, Sequence
from typing import Any

import httpx

from vaultpass.errors import (
    Forbidden,
    HttpStatusError,
    InvalidArgument,
    NetworkError,
    NotFound,
    RateLimited,
    ServerError,
)
from vaultpass.vault.matching import sort_engines
from vaultpass.vault.models import SecretEngine, Token
from vaultpass.vault.paths import is_personal_engine
from vaultpass.vault.requests import DEFAULT_WRAP_TTL, RequestBuilder

logger = logging.getLogger(__name__)

ENGINE_TYPE_KV = "kv"
DEFAULT_PERSONAL_ENGINES = ("personal/",)

_STATUS_ERRORS: dict[int, type[HttpStatusError]] = {
    403: Forbidden,
    404: NotFound,
    429: RateLimited,
}


class RequestStats:
    """Per-kind request counters for discovery traffic."""

    KINDS = ("list_engines", "list_secrets", "read_secret")

    def __init__(self) -> None:
        self._counts: Counter[str] = Counter()

    def record(self, kind: str, url: str = "") -> None:
        if kind not in self.KINDS:
            logger.warning("Unknown request kind: %s", kind)
            return
        self._counts[kind] += 1
        logger.debug("API request #%d - %s: [%s]", self._counts[kind], kind, url)

    def reset(self) -> None:
        self._counts.clear()

    def get(self, kind: str) -> int:
        return self._counts[kind]

    @property
    def total(self) -> int:
        return sum(self._counts.values())

    def log_summary(self) -> None:
        logger.info(
            "API request summary: list_engines=%d list_secrets=%d read_secret=%d total=%d",
            self._counts["list_engines"],
            self._counts["list_secrets"],
            self._counts["read_secret"],
            self.total,
        )


class VaultClient:
    """Async client for one Vault server, optionally holding a token."""

    def __init__(
        self,
        endpoint: str,
        token: Token | None = None,
        *,
        timeout: float = 30.0,
        verify: bool = True,
        personal_engines: Iterable[str] = DEFAULT_PERSONAL_ENGINES,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not isinstance(endpoint, str) or not endpoint.strip():
            raise InvalidArgument("Vault endpoint is required")
        self.endpoint = endpoint.strip().rstrip("/")
        self.token = token
        self.personal_engines = tuple(personal_engines)
        self.requests = RequestBuilder(self.endpoint)
        self.stats = RequestStats()
        self._client = httpx.AsyncClient(timeout=timeout, verify=verify, transport=transport)

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> VaultClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    # ── Plumbing ──

    def _headers(self, *, authenticated: bool = True) -> dict[str, str]:
        headers = self.requests.json_header()
        if authenticated:
            headers.update(self.requests.token_header(self.token))
        return headers

    async def _send(
        self,
        method: str,
        url: str,
        *,
        headers: dict[str, str] | None = None,
        content: str | None = None,
        json: Any = None,
    ) -> httpx.Response:
        try:
            return await self._client.request(
                method,
                url,
                headers=headers if headers is not None else self._headers(),
                content=content,
                json=json,
            )
        except httpx.TransportError as e:
            logger.error("Request %s %s failed: %s", method, url, e.__class__.__name__)
            raise NetworkError(url) from e

    @staticmethod
    def _raise_for_status(resp: httpx.Response, fallback: str) -> None:
        """Map a non-2xx response to the error taxonomy."""
        if resp.is_success:
            return
        status = resp.status_code
        error_cls = _STATUS_ERRORS.get(status)
        if error_cls is None and status >= 500:
            error_cls = ServerError
        url = str(resp.request.url) if resp.request is not None else ""
        if error_cls is None:
            raise HttpStatusError(status, resp.reason_phrase or fallback, url)
        message = resp.reason_phrase or error_cls.default_message
        logger.error("Error [%d]: on url [%s] with message [%s]", status, url, message)
        raise error_cls(status, message, url)

    @staticmethod
    def _json(resp: httpx.Response, fallback: str) -> dict[str, Any]:
        try:
            body = resp.json()
        except ValueError:
            raise HttpStatusError(resp.status_code, fallback) from None
        if not isinstance(body, dict):
            raise HttpStatusError(resp.status_code, fallback)
        return body

    def _auth_token(self, resp: httpx.Response, fallback: str) -> Token:
        self._raise_for_status(resp, fallback)
        auth = self._json(resp, fallback).get("auth")
        if not isinstance(auth, dict) or not auth.get("client_token"):
            raise HttpStatusError(resp.status_code, fallback)
        self.token = Token.from_lease(auth["client_token"], auth.get("lease_duration") or 0)
        return self.token

    # ── Auth ──

    async def login(self, username: str, password: str, method: str = "ldap") -> Token:
        """POST auth/<method>/login/<username>. Stores and returns the new token."""
        resp = await self._send(
            "POST",
            self.requests.login(username, method),
            headers=self._headers(authenticated=False),
            json={"password": password},
        )
        token = self._auth_token(resp, "Login failed")
        logger.info("Logged in to %s as %s via %s", self.endpoint, username, method)
        return token

    async def get_current_token(self) -> dict[str, Any]:
        """GET auth/token/lookup-self. Returns the full JSON (``data.ttl`` in seconds)."""
        resp = await self._send("GET", self.requests.lookup_self())
        self._raise_for_status(resp, "Token lookup failed")
        return self._json(resp, "Token lookup failed")

    async def renew_token(self) -> Token:
        resp = await self._send("POST", self.requests.renew_self())
        return self._auth_token(resp, "Token renewal failed")

    async def logout(self) -> None:
        """Revoke the held token. The local token is dropped before the call."""
        headers = self._headers()
        self.token = None
        resp = await self._send("POST", self.requests.revoke_self(), headers=headers)
        self._raise_for_status(resp, "Logout failed")

    # ── Engines and secrets ──

    async def list_engines(self) -> list[SecretEngine]:
        url = self.requests.engines()
        self.stats.record("list_engines", url)
        resp = await self._send("GET", url)
        self._raise_for_status(resp, "Listing secret engines failed")
        body = self._json(resp, "Listing secret engines failed")
        mounts = (body.get("data") or {}).get("secret")
        if not isinstance(mounts, dict):
            raise HttpStatusError(resp.status_code, "Listing secret engines failed")

        engines = []
        for name, mount in mounts.items():
            if not isinstance(mount, dict) or mount.get("type") != ENGINE_TYPE_KV:
                continue
            options = mount.get("options") or {}
            engines.append(
                SecretEngine(
                    name=name,
                    uuid=mount.get("uuid", ""),
                    type=mount["type"],
                    is_personal=is_personal_engine(name, self.personal_engines),
                    version=str(options.get("version") or "1"),
                    description=mount.get("description", ""),
                    options=options,
                )
            )
        return sort_engines(engines)

    async def list_secrets(self, engine: SecretEngine, segments: Sequence[str] = ()) -> list[str] | None:
        """LIST one folder. None when the folder is missing or forbidden."""
        url = self.requests.list_secrets(engine, segments)
        self.stats.record("list_secrets", url)
        resp = await self._send("LIST", url)
        if resp.status_code in (403, 404):
            return None
        self._raise_for_status(resp, f"Listing secrets failed: {url}")
        keys = (self._json(resp, "Listing secrets failed").get("data") or {}).get("keys")
        if not isinstance(keys, list) or not keys:
            return None
        return [k for k in keys if isinstance(k, str)]

    async def read_secret(self, engine: SecretEngine, segments: Sequence[str]) -> dict[str, Any] | None:
        """Key/value map of one secret, same shape for KV v1 and v2. None on 404."""
        url = self.requests.secret_data(engine, segments)
        self.stats.record("read_secret", url)
        resp = await self._send("GET", url)
        if resp.status_code == 404:
            return None
        self._raise_for_status(resp, "Reading secret failed")
        data = self._json(resp, "Reading secret failed").get("data")
        if engine.is_v2:
            data = data.get("data") if isinstance(data, dict) else None
        return data if isinstance(data, dict) else None

    async def write_secret(self, engine: SecretEngine, segments: Sequence[str], data: dict[str, Any]) -> None:
        resp = await self._send(
            "POST",
            self.requests.secret_data(engine, segments),
            content=self.requests.secret_body(engine, data),
        )
        self._raise_for_status(resp, "Saving secret failed")

    async def delete_secret(self, engine: SecretEngine, segments: Sequence[str]) -> None:
        resp = await self._send("DELETE", self.requests.secret_metadata(engine, segments))
        self._raise_for_status(resp, "Deleting secret failed")

    # ── Response wrapping ──

    async def wrap(self, data: dict[str, Any], ttl: str = DEFAULT_WRAP_TTL) -> str:
        """Store ``data`` behind a single-use wrapping token."""
        headers = self._headers()
        headers.update(self.requests.wrap_ttl_header(ttl))
        resp = await self._send("POST", self.requests.wrap(), headers=headers, json=data)
        self._raise_for_status(resp, "Wrapping data failed")
        token = (self._json(resp, "Wrapping data failed").get("wrap_info") or {}).get("token")
        if not isinstance(token, str) or not token:
            raise HttpStatusError(resp.status_code, "Wrapping data failed")
        return token

    async def unwrap(self, wrapping_token: str) -> dict[str, Any]:
        resp = await self._send("POST", self.requests.unwrap(), json={"token": wrapping_token})
        self._raise_for_status(resp, "Unwrapping data failed")
        data = self._json(resp, "Unwrapping data failed").get("data")
        if not isinstance(data, dict):
            raise HttpStatusError(resp.status_code, "Unwrapping data failed")
        return data
