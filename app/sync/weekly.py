"""Weekly rolling-range cache: the provider's last-N-days stats per user."""

from collections.abc import Sequence

from app.achievements.engine import award_weekly_achievements
from app.core.clock import Clock
from app.core.logging import get_logger
from app.core.store import StatsStore
from app.shared.models import StoredWeeklyStat, UserRecord
from app.sync.engine import SyncEngine
from app.sync.snapshot import SnapshotCache
from app.wakatime.client import WakaTimeClient

logger = get_logger(__name__)


class WeeklyStatsCache(SyncEngine):
    """Serves weekly leaderboard reads from memory and refreshes them in the background.

    Reads (``get_stats``) never call the provider; only the sync loop and
    ``sync_user`` write to the snapshot.
    """

    name = "weekly"

    _cache: SnapshotCache[tuple[int, str], StoredWeeklyStat]

    def __init__(
        self,
        store: StatsStore,
        client: WakaTimeClient,
        clock: Clock | None = None,
        interval_seconds: float = 1800,
        ttl_seconds: float = 1800,
        range_key: str = "last_7_days",
    ) -> None:
        super().__init__(
            store,
            client,
            clock=clock,
            interval_seconds=interval_seconds,
            ttl_seconds=ttl_seconds,
        )
        self.range_key = range_key

    async def start(self) -> None:
        """Load persisted rows into the snapshot, then start the loop."""
        await self.hydrate()
        await super().start()

    async def hydrate(self) -> int:
        """Seed the snapshot from the store so reads work before the first tick.

        Returns:
            Number of rows loaded
        """
        users = await self.store.list_sync_users()
        rows = await self.store.get_weekly_stats([user.id for user in users], self.range_key)
        self._cache.put_many(
            ((row.user_id, row.range_key), row.model_copy(update={"payload": None})) for row in rows
        )
        logger.info("sync.weekly.hydrated", rows=len(rows), range_key=self.range_key)
        return len(rows)

    def get_stats(
        self, user_ids: Sequence[int], range_key: str | None = None
    ) -> list[StoredWeeklyStat]:
        """Read cached weekly stats; never triggers a fetch.

        Args:
            user_ids: Users to read
            range_key: Range to read (defaults to the engine's range)

        Returns:
            Cached rows for the users that have one, in user_ids order
        """
        key = range_key or self.range_key
        snapshot = self._cache.snapshot()
        return [
            snapshot[(user_id, key)] for user_id in user_ids if (user_id, key) in snapshot
        ]

    async def sync_user(
        self, user: UserRecord, bypass_cache: bool = False
    ) -> StoredWeeklyStat | None:
        """Fetch, persist and evaluate the rolling range for one user.

        Args:
            user: User to sync
            bypass_cache: Ignore the TTL (manual refresh, new user)

        Returns:
            The stored row, the cached row if still fresh, or None when the
            user has no API key

        Raises:
            StoreError: If persisting the result fails
        """
        if not user.has_api_key:
            logger.debug("sync.weekly.user.skipped", user_id=user.id, reason="no_api_key")
            return None

        cached = self._cache.get((user.id, self.range_key))
        if not bypass_cache and cached and self._is_fresh(cached.fetched_at):
            return cached

        result = await self.client.fetch_range(user.api_key or "", self.range_key)
        fetched_at = self.clock.now()

        await self.store.upsert_weekly_stat(
            user_id=user.id,
            range_key=self.range_key,
            total_seconds=result.total_seconds,
            daily_average_seconds=result.daily_average_seconds,
            status=result.status,
            error=result.error,
            fetched_at=fetched_at,
            payload=result.payload,
        )

        await award_weekly_achievements(
            self.store,
            user.id,
            self.range_key,
            result.status,
            result.total_seconds,
            daily_average_seconds=result.daily_average_seconds,
            payload=result.payload,
            fetched_at=fetched_at,
            clock=self.clock,
        )

        row = StoredWeeklyStat(
            user_id=user.id,
            username=user.username,
            range_key=self.range_key,
            total_seconds=result.total_seconds,
            daily_average_seconds=result.daily_average_seconds,
            status=result.status,
            error=result.error,
            fetched_at=fetched_at,
        )
        self._cache.put((user.id, self.range_key), row)

        logger.info(
            "sync.weekly.user.synced",
            user_id=user.id,
            range_key=self.range_key,
            status=result.status,
            total_seconds=result.total_seconds,
        )
        return row
