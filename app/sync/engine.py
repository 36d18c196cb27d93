"""Periodic loop shared by the daily and weekly sync engines."""

import asyncio
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any

from app.core.clock import Clock, SystemClock
from app.core.logging import get_logger, start_sync_run
from app.core.store import StatsStore
from app.shared.exceptions import SyncError
from app.shared.models import UserRecord
from app.sync.snapshot import SnapshotCache
from app.wakatime.client import WakaTimeClient

logger = get_logger(__name__)


class SyncEngine(ABC):
    """Runs ``tick()`` every ``interval_seconds`` until stopped.

    Stopping never cancels a tick in progress: ``stop()`` wakes the loop and
    waits for the current tick to finish, since every write it makes is an
    idempotent upsert.

    Subclasses implement ``sync_user`` and set ``name`` (used in log events
    and run IDs).
    """

    name = "sync"

    def __init__(
        self,
        store: StatsStore,
        client: WakaTimeClient,
        clock: Clock | None = None,
        interval_seconds: float = 300,
        ttl_seconds: float = 300,
    ) -> None:
        """Initialize sync engine.

        Args:
            store: Persistence port
            client: Provider client
            clock: Time source (defaults to wall clock)
            interval_seconds: Delay between ticks
            ttl_seconds: Cached results younger than this are not re-fetched
        """
        self.store = store
        self.client = client
        self.clock: Clock = clock or SystemClock()
        self.interval_seconds = interval_seconds
        self.ttl_seconds = ttl_seconds
        self._task: asyncio.Task[None] | None = None
        self._stop_event = asyncio.Event()
        self._cache: SnapshotCache[Any, Any] = SnapshotCache()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Start the background loop; the first tick runs immediately.

        Raises:
            SyncError: If the loop is already running
        """
        if self.running:
            raise SyncError(f"{self.name} sync already running")
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._run_loop())
        logger.info(f"sync.{self.name}.started", interval=self.interval_seconds, ttl=self.ttl_seconds)

    async def stop(self) -> None:
        """Stop the loop after the in-flight tick (if any) completes."""
        self._stop_event.set()
        if self._task:
            await self._task
            self._task = None
        logger.info(f"sync.{self.name}.stopped")

    async def _run_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                await self.tick()
            except Exception as e:
                logger.error(f"sync.{self.name}.tick.failed", error=str(e), exc_info=True)
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval_seconds)
            except asyncio.TimeoutError:
                pass

    async def tick(self) -> int:
        """Sync every user that has an API key and a stale (or missing) cache entry.

        Users are fetched concurrently; a failure for one user is logged and
        never affects the others.

        Returns:
            Number of users processed without an exception
        """
        run_id = start_sync_run(self.name)
        started = self.clock.now()
        users = [user for user in await self.store.list_sync_users() if user.has_api_key]

        results = await asyncio.gather(*(self._sync_safely(user) for user in users))
        succeeded = sum(1 for ok in results if ok)

        logger.info(
            f"sync.{self.name}.tick.completed",
            run_id=run_id,
            users=len(users),
            succeeded=succeeded,
            failed=len(users) - succeeded,
            duration_ms=int((self.clock.now() - started).total_seconds() * 1000),
        )
        return succeeded

    async def _sync_safely(self, user: UserRecord) -> bool:
        try:
            await self.sync_user(user)
            return True
        except Exception as e:
            logger.error(
                f"sync.{self.name}.user.failed",
                user_id=user.id,
                username=user.username,
                error=str(e),
                exc_info=True,
            )
            return False

    def _is_fresh(self, fetched_at: datetime | None) -> bool:
        if fetched_at is None or self.ttl_seconds <= 0:
            return False
        return (self.clock.now() - fetched_at).total_seconds() < self.ttl_seconds

    @abstractmethod
    async def sync_user(self, user: UserRecord, bypass_cache: bool = False) -> Any:
        """Fetch, persist and evaluate one user's period.

        Args:
            user: User to sync
            bypass_cache: Re-fetch even when the cached result is still fresh

        Returns:
            The engine's cached stat for the user
        """
        pass
