"""
Token lifecycle: keeps a Vault session alive by renewing before expiry.

A single APScheduler interval job ("token-check") runs check(). Each check
asks Vault for the token's remaining TTL and renews it once the TTL drops
below the renewal threshold. The next check is scheduled at half the
remaining TTL, clamped between the minimum and the default interval.

    NO_TOKEN --login--> VALID --ttl < threshold--> RENEWING --renewed--> VALID
    VALID / RENEWING --any Vault failure--> INVALID (token cleared)

Failures are not retried: a cleared token means the user has to log in
again. The timer itself keeps running once started; a tick that finds
NO_TOKEN does nothing, so a login from another shell is picked up.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from enum import StrEnum

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from vaultpass.config import SessionConfig
from vaultpass.errors import InvalidArgument, InvalidTokenDetails, VaultError
from vaultpass.session.store import SessionStore
from vaultpass.vault.client import VaultClient
from vaultpass.vault.models import Token
from vaultpass.vault.paths import is_token_valid

logger = logging.getLogger(__name__)

JOB_ID = "token-check"

ClientFactory = Callable[[str, Token | None], VaultClient]


class SessionState(StrEnum):
    NO_TOKEN = "no-token"
    VALID = "valid"
    RENEWING = "renewing"
    INVALID = "invalid"


def ttl_minutes_from(lookup: dict) -> int | None:
    """Whole minutes left from a lookup-self response, None if it has no TTL."""
    ttl = (lookup.get("data") or {}).get("ttl")
    if isinstance(ttl, bool) or not isinstance(ttl, int):
        return None
    return ttl // 60


class TokenLifecycleManager:
    """Timer-driven renewal of the stored Vault token."""

    def __init__(
        self,
        store: SessionStore,
        client_factory: ClientFactory,
        config: SessionConfig | None = None,
        scheduler: AsyncIOScheduler | None = None,
    ) -> None:
        self.store = store
        self.client_factory = client_factory
        self.config = config or SessionConfig()
        self.scheduler = scheduler or AsyncIOScheduler()
        self.state = SessionState.NO_TOKEN

    # ── Scheduling ──

    def next_interval(self, ttl_minutes: int | None) -> int:
        """Minutes until the next check."""
        cfg = self.config
        if ttl_minutes is None:
            return max(cfg.min_interval_minutes, cfg.check_interval_minutes)
        return max(cfg.min_interval_minutes, min(cfg.check_interval_minutes, ttl_minutes // 2))

    def schedule(self, ttl_minutes: int | None = None) -> int:
        interval = self.next_interval(ttl_minutes)
        trigger = IntervalTrigger(minutes=interval)
        if self.scheduler.get_job(JOB_ID) is None:
            self.scheduler.add_job(
                self.check,
                trigger=trigger,
                id=JOB_ID,
                name="Vault token check",
                max_instances=1,
                coalesce=True,
                misfire_grace_time=60,
            )
        else:
            self.scheduler.reschedule_job(JOB_ID, trigger=trigger)
        logger.info("Next token check in %d minutes", interval)
        return interval

    def unschedule(self) -> None:
        if self.scheduler.get_job(JOB_ID) is not None:
            self.scheduler.remove_job(JOB_ID)

    def start(self) -> None:
        if not self.scheduler.running:
            self.scheduler.start()
            logger.info("Token lifecycle scheduler started")

    def shutdown(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Token lifecycle scheduler stopped")

    # ── Transitions ──

    def _invalidate(self, token: Token | None = None) -> SessionState:
        """Clear ``token``; a token stored meanwhile by another login survives."""
        self.store.clear_token(token)
        self.state = SessionState.INVALID
        return self.state

    async def login(self, url: str, username: str, password: str, method: str = "ldap") -> Token:
        client = self.client_factory(url, None)
        try:
            token = await client.login(username, password, method)
        finally:
            await client.close()
        self.store.url = url
        self.store.username = username
        self.store.token = token
        self.state = SessionState.VALID
        self.schedule()
        return token

    async def logout(self) -> None:
        """Revoke the token server-side. The local token is cleared either way."""
        try:
            token = self.store.token
        except InvalidTokenDetails:
            token = None
        try:
            if token is not None and self.store.url:
                client = self.client_factory(self.store.url, token)
                try:
                    await client.logout()
                finally:
                    await client.close()
        finally:
            self.store.clear_token()
            self.unschedule()
            self.state = SessionState.NO_TOKEN
            logger.info("Logged out")

    def ensure_scheduled(self) -> None:
        """Create the check job at the default interval if there is none yet."""
        if self.scheduler.get_job(JOB_ID) is None:
            self.schedule(None)

    async def on_startup(self) -> SessionState:
        """First check of a long-running session. The timer runs whatever the outcome."""
        self.ensure_scheduled()
        return await self.check()

    async def check(self) -> SessionState:
        """One tick of the state machine. Never raises for Vault failures."""
        try:
            token = self.store.token
        except InvalidTokenDetails as e:
            logger.warning("Stored token is unusable: %s", e)
            return self._invalidate()

        if token is None:
            self.state = SessionState.NO_TOKEN
            return self.state
        if not is_token_valid(token):
            logger.info("Stored token has expired")
            return self._invalidate(token)

        url = self.store.url
        if not url:
            logger.warning("Stored session has a token but no Vault URL")
            return self._invalidate(token)
        try:
            client = self.client_factory(url, token)
        except InvalidArgument as e:
            logger.warning("Stored session is unusable: %s", e)
            return self._invalidate(token)

        try:
            ttl = ttl_minutes_from(await client.get_current_token())
            if ttl is None:
                logger.warning("Token lookup returned no TTL; keeping current schedule")
                return self.state

            if ttl < self.config.renew_threshold_minutes:
                self.state = SessionState.RENEWING
                logger.info("Token TTL %d minutes is below %d, renewing", ttl, self.config.renew_threshold_minutes)
                self.store.replace_token(token, await client.renew_token())
                ttl = ttl_minutes_from(await client.get_current_token())
                logger.info("Token renewed, TTL now %s minutes", ttl)

            self.state = SessionState.VALID
            self.schedule(ttl)
            return self.state
        except VaultError as e:
            logger.error("Token check failed, clearing session: %s", e)
            return self._invalidate(token)
        finally:
            await client.close()
