"""
Data models for Vault discovery and sessions.

Plain dataclasses; Vault JSON is parsed into them at the client boundary.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from email.utils import format_datetime, parsedate_to_datetime
from enum import StrEnum
from typing import Any

from vaultpass.errors import InvalidTokenDetails


class ErrorKind(StrEnum):
    ENGINE_FAILURE = "engine-failure"
    PATH_FAILURE = "path-failure"


@dataclass(frozen=True)
class SecretEngine:
    """A KV mount as reported by sys/internal/ui/mounts."""

    name: str  # always ends with "/", e.g. "personal/"
    uuid: str = ""
    type: str = "kv"
    is_personal: bool = False
    version: str = "1"
    description: str = ""
    options: dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    @property
    def is_v2(self) -> bool:
        return self.version == "2"


@dataclass(frozen=True)
class Secret:
    engine: SecretEngine
    path: str
    name: str
    full_name: str
    is_personal: bool = False
    data: dict[str, Any] | None = field(default=None, compare=False, hash=False)

    @property
    def segments(self) -> tuple[str, ...]:
        """Path segments below the engine, leaf included."""
        parts = self.path.split("/") if self.path else []
        return tuple(parts) + (self.name,)


@dataclass(frozen=True)
class PathError:
    kind: ErrorKind
    engine: str
    path: str
    reason: str


@dataclass
class SearchReport:
    secrets: list[Secret] = field(default_factory=list)
    errors: list[PathError] = field(default_factory=list)


@dataclass(frozen=True)
class Token:
    """A Vault client token and the moment its lease runs out."""

    client_token: str
    expire_date: datetime

    @classmethod
    def from_lease(cls, client_token: str, lease_duration: int, now: datetime | None = None) -> Token:
        # Whole seconds: the stored form (an HTTP date) has no finer resolution.
        now = (now or datetime.now(UTC)).replace(microsecond=0)
        return cls(client_token=client_token, expire_date=now + timedelta(seconds=int(lease_duration)))

    def to_dict(self) -> dict[str, str]:
        return {
            "client_token": self.client_token,
            "expire_date": format_datetime(self.expire_date.astimezone(UTC), usegmt=True),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Token:
        raw = data.get("expire_date")
        try:
            expire_date = parsedate_to_datetime(raw)
        except (TypeError, ValueError):
            raise InvalidTokenDetails(f"Invalid token expiration date: {raw!r}") from None
        if expire_date.tzinfo is None:
            expire_date = expire_date.replace(tzinfo=UTC)
        return cls(client_token=data.get("client_token", ""), expire_date=expire_date)
