"""Pure helpers for Vault secret paths and tokens."""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from datetime import UTC, datetime

from vaultpass.vault.models import Token

PATH_SEPARATOR = "/"
IGNORED_SECRET_NAMES = frozenset({"_data", "_do-not-delete"})

_DOUBLE_SLASH = re.compile(r"([^:])(//+)")
_SECRET_PATH = re.compile(r"^/?([^/]+)(?:/([^/]+(?:/[^/]+)*))?/([^/]+)/?$")


def remove_double_slash(value: str) -> str:
    """Collapse runs of slashes, leaving a scheme's "://" alone."""
    return _DOUBLE_SLASH.sub(r"\1/", value)


def is_folder(key: str | None) -> bool:
    return bool(key) and key.endswith(PATH_SEPARATOR)


def child_segment(key: str) -> str:
    """Segment for a listed key: folder markers lose their first "/"."""
    return key.replace(PATH_SEPARATOR, "", 1)


def extract_path(segments: Sequence[str]) -> str:
    if not segments or len(segments) <= 1:
        return ""
    return PATH_SEPARATOR.join(segments[:-1])


def extract_name(segments: Sequence[str]) -> str:
    if not segments:
        return ""
    return segments[-1]


def secret_full_path(engine_name: str, segments: Iterable[str] | None) -> str:
    parts = [engine_name, *(segments or ())]
    clean = [p for p in parts if isinstance(p, str) and p.strip()]
    return remove_double_slash(PATH_SEPARATOR.join(clean))


def split_secret_path(path: str, name: str) -> list[str]:
    """Inverse of (extract_path, extract_name)."""
    return [*path.split(PATH_SEPARATOR), name] if path else [name]


def parse_secret_path(value: str) -> tuple[str, str, str] | None:
    """Split "engine/a/b/name" into ("engine/", "a/b", "name").

    Returns None when the value has no engine or no secret name.
    """
    m = _SECRET_PATH.match(re.sub(r"/{2,}", "/", value.strip()))
    if not m:
        return None
    engine, path, name = m.groups()
    return f"{engine}/", path or "", name


def is_personal_engine(engine_name: str | None, personal_engines: Iterable[str]) -> bool:
    if not engine_name:
        return False
    wanted = {e.strip().lower() for e in personal_engines if e and e.strip()}
    return engine_name.lower() in wanted


def is_token_valid(token: Token | None, now: datetime | None = None) -> bool:
    if token is None or token.expire_date is None:
        return False
    return token.expire_date >= (now or datetime.now(UTC))
