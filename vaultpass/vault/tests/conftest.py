"""Shared fixtures for vault discovery tests: an in-memory Vault tree."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from vaultpass.vault.client import RequestStats
from vaultpass.vault.models import SecretEngine


class FakeVault:
    """Stands in for VaultClient in discovery tests.

    ``trees`` maps an engine name to nested dicts: a dict value is a folder,
    a string is a leaf, read back as {"pass": value}.
    ``failures`` maps (engine name, "a/b") to the exception LIST raises there.
    """

    def __init__(
        self,
        engines: list[SecretEngine],
        trees: dict[str, dict[str, Any]],
        failures: dict[tuple[str, str], Exception] | None = None,
        delay: float = 0.0,
    ) -> None:
        self.engines = engines
        self.trees = trees
        self.failures = failures or {}
        self.delay = delay
        self.stats = RequestStats()
        self.calls: list[tuple[str, tuple[str, ...]]] = []
        self.in_flight = 0
        self.peak = 0

    async def list_engines(self) -> list[SecretEngine]:
        return list(self.engines)

    def _node(self, engine: SecretEngine, segments) -> Any:
        node: Any = self.trees.get(engine.name, {})
        for seg in segments:
            if not isinstance(node, dict) or seg not in node:
                return None
            node = node[seg]
        return node

    async def list_secrets(self, engine: SecretEngine, segments=()) -> list[str] | None:
        self.calls.append((engine.name, tuple(segments)))
        self.in_flight += 1
        self.peak = max(self.peak, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            failure = self.failures.get((engine.name, "/".join(segments)))
            if failure is not None:
                raise failure
            node = self._node(engine, segments)
            if not isinstance(node, dict) or not node:
                return None
            return [f"{k}/" if isinstance(v, dict) else k for k, v in node.items()]
        finally:
            self.in_flight -= 1

    async def read_secret(self, engine: SecretEngine, segments) -> dict[str, Any] | None:
        failure = self.failures.get((engine.name, "/".join(segments)))
        if failure is not None:
            raise failure
        node = self._node(engine, segments)
        return {"pass": node} if isinstance(node, str) else None


@pytest.fixture
def personal_engine():
    return SecretEngine(name="personal/", uuid="p-1", is_personal=True, version="2")


@pytest.fixture
def shared_engine():
    return SecretEngine(name="shared/", uuid="s-1", version="1")


@pytest.fixture
def alice_tree():
    """alice/{netflix, work/{vpn, email}}"""
    return {
        "alice": {
            "netflix": "n-pass",
            "work": {
                "vpn": "v-pass",
                "email": "e-pass",
            },
        },
        "bob": {"secret": "not-yours"},
    }


@pytest.fixture
def make_vault():
    """Factory for FakeVault instances."""
    return FakeVault
