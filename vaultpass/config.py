"""
Centralized configuration for vaultpass.

All configuration is loaded from environment variables with sensible defaults.

Usage:
    from vaultpass.config import get_config
    cfg = get_config()
    print(cfg.vault.url)                      # "https://vault.example.com"
    print(cfg.search.engine_concurrency)      # 4
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

# Token checks never run more often than this, whatever the env says.
MIN_CHECK_INTERVAL_MINUTES = 5


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_list(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return tuple(part.strip() for part in raw.split(",") if part.strip())


@dataclass(frozen=True)
class VaultConfig:
    """Vault server connection parameters."""

    url: str = ""
    auth_method: str = "ldap"
    timeout: float = 30.0
    verify_tls: bool = True


@dataclass(frozen=True)
class SearchConfig:
    """Secret discovery parameters."""

    # Engines explored in parallel. Each engine runs up to 6 LIST calls at
    # once, so the in-flight ceiling is engine_concurrency * 6.
    engine_concurrency: int = 4
    personal_engines: tuple[str, ...] = ("personal/",)
    case_sensitive: bool = False


@dataclass(frozen=True)
class SessionConfig:
    """Token lifecycle parameters (minutes)."""

    check_interval_minutes: int = 45
    min_interval_minutes: int = MIN_CHECK_INTERVAL_MINUTES
    renew_threshold_minutes: int = 60
    store_path: Path | None = None

    def __post_init__(self) -> None:
        if self.check_interval_minutes < self.min_interval_minutes:
            object.__setattr__(self, "check_interval_minutes", self.min_interval_minutes)


@dataclass(frozen=True)
class Config:
    """Top-level vaultpass configuration."""

    workspace: Path = field(default_factory=lambda: Path.home() / ".vaultpass")
    vault: VaultConfig = field(default_factory=VaultConfig)
    search: SearchConfig = field(default_factory=SearchConfig)
    session: SessionConfig = field(default_factory=SessionConfig)
    log_level: str = "WARNING"


# Singleton
_config: Config | None = None


def get_config() -> Config:
    """Get or create the singleton config from environment variables."""
    global _config
    if _config is not None:
        return _config
    _config = _load_from_env()
    return _config


def _load_from_env() -> Config:
    """Load configuration from environment variables."""
    workspace = Path(os.environ.get("VAULTPASS_WORKSPACE", Path.home() / ".vaultpass"))
    store_path = Path(os.environ.get("VAULTPASS_SESSION_FILE", workspace / "session.json"))

    vault = VaultConfig(
        url=os.environ.get("VAULTPASS_URL", "").rstrip("/"),
        auth_method=os.environ.get("VAULTPASS_AUTH_METHOD", "ldap"),
        timeout=float(os.environ.get("VAULTPASS_TIMEOUT", "30")),
        verify_tls=_env_bool("VAULTPASS_VERIFY_TLS", True),
    )

    search = SearchConfig(
        engine_concurrency=int(os.environ.get("VAULTPASS_ENGINE_CONCURRENCY", "4")),
        personal_engines=_env_list("VAULTPASS_PERSONAL_ENGINES", ("personal/",)),
        case_sensitive=_env_bool("VAULTPASS_CASE_SENSITIVE", False),
    )

    session = SessionConfig(
        check_interval_minutes=int(os.environ.get("VAULTPASS_CHECK_INTERVAL", "45")),
        renew_threshold_minutes=int(os.environ.get("VAULTPASS_RENEW_THRESHOLD", "60")),
        store_path=store_path,
    )

    return Config(
        workspace=workspace,
        vault=vault,
        search=search,
        session=session,
        log_level=os.environ.get("VAULTPASS_LOG_LEVEL", "WARNING").upper(),
    )


def reset_config() -> None:
    """Reset the singleton config (for testing)."""
    global _config
    _config = None
