"""
Search across every KV engine the token can see.

Two bounded layers compose: at most ``engine_concurrency`` engines are
explored at once (WorkerPool), and each engine runs at most
FOLDER_CONCURRENCY_LIMIT listings at once (FolderExplorer). Their product is
the ceiling on in-flight LIST requests.

Only the engine listing itself can make search() raise. Everything below it
is reported in SearchReport.errors:

    path-failure    one folder of one engine could not be listed
    engine-failure  the exploration of a whole engine blew up
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Sequence

from vaultpass.core.pool import is_rejected, process
from vaultpass.errors import EngineSearchError
from vaultpass.vault.explorer import FOLDER_CONCURRENCY_LIMIT, EngineReport, FolderExplorer, term_predicate
from vaultpass.vault.matching import expand_domain, normalize_terms, sort_secrets
from vaultpass.vault.models import ErrorKind, PathError, SearchReport, Secret, SecretEngine

logger = logging.getLogger(__name__)

DEFAULT_ENGINE_CONCURRENCY = 4


class SearchCoordinator:
    """Runs one FolderExplorer per engine and merges the results."""

    def __init__(
        self,
        client,
        engine_concurrency: int = DEFAULT_ENGINE_CONCURRENCY,
        folder_concurrency: int = FOLDER_CONCURRENCY_LIMIT,
        case_sensitive: bool = False,
    ) -> None:
        self.client = client
        self.engine_concurrency = engine_concurrency
        self.folder_concurrency = folder_concurrency
        self.case_sensitive = case_sensitive

    async def search(self, identity: str, terms: str | Sequence[str] | None) -> SearchReport:
        """Find every secret whose name (or folder) contains one of ``terms``.

        Args:
            identity: Username; the root folder inside personal engines.
            terms: One term or several; empty matches everything.

        Returns:
            SearchReport with secrets sorted by relevance and all
            non-fatal errors.

        Raises:
            VaultError: if the engine listing itself fails.
        """
        usable = normalize_terms(terms)
        self.client.stats.reset()
        engines = await self.client.list_engines()
        predicate = term_predicate(usable, self.case_sensitive)

        async def explore_engine(engine: SecretEngine, index: int) -> EngineReport:
            explorer = FolderExplorer(self.client, engine, self.folder_concurrency)
            try:
                return await explorer.explore(identity, predicate)
            except Exception as e:
                raise EngineSearchError(engine.name, str(e)) from e

        results = await process(engines, explore_engine, concurrency=self.engine_concurrency)

        secrets: list[Secret] = []
        errors: list[PathError] = []
        for engine, result in zip(engines, results, strict=True):
            if is_rejected(result):
                logger.warning("Search on engine %s failed: %s", engine.name, result.reason)
                errors.append(
                    PathError(
                        kind=ErrorKind.ENGINE_FAILURE,
                        engine=engine.name,
                        path="",
                        reason=getattr(result.reason, "reason", str(result.reason)),
                    )
                )
                continue
            secrets.extend(result.secrets)
            errors.extend(
                PathError(kind=ErrorKind.PATH_FAILURE, engine=engine.name, path=e.path, reason=e.reason)
                for e in result.errors
            )

        self.client.stats.log_summary()
        logger.info(
            "Search over %d engines: %d secrets, %d errors",
            len(engines),
            len(secrets),
            len(errors),
        )
        return SearchReport(secrets=sort_secrets(secrets, usable), errors=errors)

    async def search_domain(self, identity: str, host: str) -> SearchReport:
        """Search for a hostname and every parent domain of it."""
        return await self.search(identity, expand_domain(host.strip().lower()))

    async def load_secret_data(self, secrets: Sequence[Secret]) -> tuple[list[Secret], list[PathError]]:
        """Fetch the key/value map of each secret.

        Returns new Secret instances with ``data`` set, in input order;
        secrets with no data are dropped and failures become path-failure
        errors.
        """

        async def read(secret: Secret, index: int) -> dict | None:
            return await self.client.read_secret(secret.engine, secret.segments)

        results = await process(list(secrets), read, concurrency=self.engine_concurrency * self.folder_concurrency)

        loaded: list[Secret] = []
        errors: list[PathError] = []
        for secret, result in zip(secrets, results, strict=True):
            if is_rejected(result):
                errors.append(
                    PathError(
                        kind=ErrorKind.PATH_FAILURE,
                        engine=secret.engine.name,
                        path="/".join(secret.segments),
                        reason=str(result.reason),
                    )
                )
            elif result:
                loaded.append(dataclasses.replace(secret, data=result))
        return loaded, errors
