"""
Concurrent traversal of one KV engine's folder tree.

The tree's shape is only known once a folder is listed, so the frontier is an
asyncio.Queue that grows while it is being drained. A fixed set of workers
pulls folders from it; a listing that reveals sub-folders puts them on the
queue before its own entry is marked done. The traversal therefore ends
exactly when the queue's unfinished-task count drops to zero: nothing left
to explore and nothing still being listed.

A failing folder is recorded and skipped; its siblings and anything already
queued are still explored.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from vaultpass.errors import PathExplorationError
from vaultpass.vault.matching import text_match
from vaultpass.vault.models import Secret, SecretEngine
from vaultpass.vault.paths import (
    IGNORED_SECRET_NAMES,
    PATH_SEPARATOR,
    child_segment,
    extract_name,
    extract_path,
    is_folder,
    secret_full_path,
)

logger = logging.getLogger(__name__)

FOLDER_CONCURRENCY_LIMIT = 6

# (segments of the leaf, segments of the exploration root) -> keep?
Predicate = Callable[[Sequence[str], Sequence[str]], bool]


@dataclass
class EngineReport:
    """Secrets and per-folder failures of one engine."""

    secrets: list[Secret] = field(default_factory=list)
    errors: list[PathExplorationError] = field(default_factory=list)


def term_predicate(terms: str | Sequence[str] | None, case_sensitive: bool = False) -> Predicate:
    """Keep a leaf whose name, or any folder below the root, contains a term."""

    def predicate(segments: Sequence[str], root: Sequence[str]) -> bool:
        relative = segments[len(root) :]
        return any(text_match(terms, seg, case_sensitive) for seg in relative)

    return predicate


class FolderExplorer:
    """Walks one engine, starting at the caller's folder for personal engines."""

    def __init__(self, client, engine: SecretEngine, concurrency: int = FOLDER_CONCURRENCY_LIMIT) -> None:
        self.client = client
        self.engine = engine
        self.concurrency = concurrency

    def root_for(self, identity: str) -> tuple[str, ...]:
        return (identity,) if self.engine.is_personal else ()

    async def explore(self, identity: str, predicate: Predicate) -> EngineReport:
        report = EngineReport()
        root = self.root_for(identity)
        frontier: asyncio.Queue[tuple[str, ...]] = asyncio.Queue()
        frontier.put_nowait(root)

        async def worker() -> None:
            while True:
                segments = await frontier.get()
                try:
                    await self._explore_path(segments, root, predicate, frontier, report)
                except Exception as e:
                    path = PATH_SEPARATOR.join(segments)
                    logger.warning("Exploring %s%s failed: %s", self.engine.name, path, e)
                    report.errors.append(PathExplorationError(self.engine.name, path, str(e)))
                finally:
                    frontier.task_done()

        workers = [asyncio.create_task(worker()) for _ in range(self.concurrency)]
        try:
            await frontier.join()
        finally:
            for task in workers:
                task.cancel()
            await asyncio.gather(*workers, return_exceptions=True)

        logger.debug(
            "Engine %s explored: %d secrets, %d errors",
            self.engine.name,
            len(report.secrets),
            len(report.errors),
        )
        return report

    async def _explore_path(
        self,
        segments: tuple[str, ...],
        root: tuple[str, ...],
        predicate: Predicate,
        frontier: asyncio.Queue[tuple[str, ...]],
        report: EngineReport,
    ) -> None:
        keys = await self.client.list_secrets(self.engine, segments)
        if not keys:
            return

        for key in keys:
            if key in IGNORED_SECRET_NAMES:
                continue
            child = (*segments, child_segment(key))
            if is_folder(key):
                frontier.put_nowait(child)
            elif predicate(child, root):
                report.secrets.append(self._make_secret(child))

    def _make_secret(self, segments: tuple[str, ...]) -> Secret:
        return Secret(
            engine=self.engine,
            path=extract_path(segments),
            name=extract_name(segments),
            full_name=secret_full_path(self.engine.name, segments),
            is_personal=self.engine.is_personal,
        )
