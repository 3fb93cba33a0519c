"""
Root-level shared test fixtures.

Inherited by the vault, crypto and session suites under vaultpass/ as well
as tests/ at the repo root.
"""

from __future__ import annotations

import os

import pytest

from vaultpass.config import reset_config


@pytest.fixture(autouse=True)
def _reset_config():
    """Config is a process-wide singleton; never let one test's env leak into the next."""
    reset_config()
    yield
    reset_config()


@pytest.fixture
def clean_env(monkeypatch):
    """Remove VAULTPASS_* env vars set by the developer shell."""
    for key in list(os.environ):
        if key.startswith("VAULTPASS_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def session_file(tmp_path, monkeypatch, clean_env):
    """Isolated session file for CLI runs."""
    path = tmp_path / "session.json"
    monkeypatch.setenv("VAULTPASS_SESSION_FILE", str(path))
    return path
