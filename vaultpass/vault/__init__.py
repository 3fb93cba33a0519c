"""
Vault discovery: HTTP client, per-engine traversal, multi-engine search.

Public API:
    VaultClient(url, token)                → async HTTP binding
    SearchCoordinator(client).search(...)  → SearchReport across engines
"""

from __future__ import annotations

from vaultpass.vault.client import VaultClient
from vaultpass.vault.models import ErrorKind, PathError, SearchReport, Secret, SecretEngine, Token
from vaultpass.vault.search import SearchCoordinator

__all__ = [
    "ErrorKind",
    "PathError",
    "SearchCoordinator",
    "SearchReport",
    "Secret",
    "SecretEngine",
    "Token",
    "VaultClient",
]
