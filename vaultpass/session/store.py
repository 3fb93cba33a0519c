"""
Session state: Vault URL, username and token.

Kept in memory, or in a JSON file readable only by its owner (chmod 600)
when a path is given. Several processes may share the file (a long-running
``vaultpass watch`` next to one-shot commands), so every read goes back to
disk and every write is read-modify-write against the current file content.
"""

from __future__ import annotations

import json
import logging
import stat
from pathlib import Path
from typing import Any

from vaultpass.vault.models import Token

logger = logging.getLogger(__name__)


class SessionStore:
    def __init__(self, path: Path | str | None = None) -> None:
        self.path = Path(path) if path is not None else None
        self._data: dict[str, Any] = {}
        self._reload()

    def _reload(self) -> None:
        if self.path is None:
            return
        self._data = self._read() if self.path.exists() else {}

    def _read(self) -> dict[str, Any]:
        try:
            data = json.loads(self.path.read_text())
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable session file %s: %s", self.path, e)
            return {}
        return data if isinstance(data, dict) else {}

    def _save(self) -> None:
        if self.path is None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.touch(exist_ok=True)
        self.path.chmod(stat.S_IRUSR | stat.S_IWUSR)  # 600
        self.path.write_text(json.dumps(self._data, indent=2))

    def _get(self, key: str) -> Any:
        self._reload()
        return self._data.get(key)

    def _set(self, key: str, value: Any) -> None:
        self._reload()
        if value is None:
            self._data.pop(key, None)
        else:
            self._data[key] = value
        self._save()

    @property
    def url(self) -> str | None:
        return self._get("url")

    @url.setter
    def url(self, value: str | None) -> None:
        self._set("url", value)

    @property
    def username(self) -> str | None:
        return self._get("username")

    @username.setter
    def username(self, value: str | None) -> None:
        self._set("username", value)

    @property
    def raw_token(self) -> dict[str, Any] | None:
        """The token as stored, before any date parsing."""
        return self._get("token")

    @property
    def token(self) -> Token | None:
        """Raises InvalidTokenDetails when the stored date is unparsable."""
        raw = self.raw_token
        if not raw:
            return None
        return Token.from_dict(raw)

    @token.setter
    def token(self, value: Token | None) -> None:
        self._set("token", value.to_dict() if value is not None else None)

    def replace_token(self, expected: Token | None, value: Token | None) -> bool:
        """Store ``value`` only if the file still holds ``expected``.

        Returns False, leaving the file alone, when another process has
        logged in or out since ``expected`` was read.
        """
        self._reload()
        current = self._data.get("token") or {}
        if expected is not None and current.get("client_token") != expected.client_token:
            logger.info("Session token changed on disk; leaving it in place")
            return False
        self.token = value
        return True

    def clear_token(self, expected: Token | None = None) -> bool:
        return self.replace_token(expected, None)

    def clear(self) -> None:
        self._data = {}
        self._save()
