"""Daily status sync: today's coding time per user, in the user's own time zone."""

from app.achievements.engine import award_daily_achievements
from app.core.dates import to_date_key_in_time_zone
from app.core.logging import get_logger
from app.shared.models import StoredDailyStat, UserRecord
from app.sync.engine import SyncEngine
from app.sync.snapshot import SnapshotCache

logger = get_logger(__name__)


class DailyStatusSync(SyncEngine):
    """Keeps ww_daily_stat current for every user with an API key.

    The in-memory cache only records when each (user, date) was last fetched
    so the TTL can be honoured; leaderboard reads go to the store.
    """

    name = "daily"

    _cache: SnapshotCache[tuple[int, str], StoredDailyStat]

    def local_date_key(self, user: UserRecord) -> str:
        """Today's date key in the user's stored time zone (UTC if unknown)."""
        return to_date_key_in_time_zone(self.clock.now(), user.time_zone)

    def get_cached(self, user_id: int, date_key: str) -> StoredDailyStat | None:
        return self._cache.get((user_id, date_key))

    async def sync_user(self, user: UserRecord, bypass_cache: bool = False) -> StoredDailyStat | None:
        """Fetch, persist and evaluate today's stats for one user.

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
            logger.debug("sync.daily.user.skipped", user_id=user.id, reason="no_api_key")
            return None

        requested_key = self.local_date_key(user)
        date_key = requested_key
        cached = self._cache.get((user.id, requested_key))
        if not bypass_cache and cached and self._is_fresh(cached.fetched_at):
            return cached

        result = await self.client.fetch_today(user.api_key or "")
        fetched_at = self.clock.now()

        # WakaTime reports the day and zone it actually used; trust it over ours
        if result.date_key:
            date_key = result.date_key
        if result.time_zone and result.time_zone != user.time_zone:
            await self.store.set_user_time_zone(user.id, result.time_zone)

        await self.store.upsert_daily_stat(
            user_id=user.id,
            date_key=date_key,
            total_seconds=result.total_seconds,
            status=result.status,
            error=result.error,
            fetched_at=fetched_at,
            payload=result.payload,
        )

        await award_daily_achievements(
            self.store,
            user.id,
            date_key,
            result.status,
            result.total_seconds,
            payload=result.payload,
            fetched_at=fetched_at,
            clock=self.clock,
        )

        row = StoredDailyStat(
            user_id=user.id,
            username=user.username,
            date_key=date_key,
            total_seconds=result.total_seconds,
            status=result.status,
            error=result.error,
            fetched_at=fetched_at,
        )
        # Also cached under the key we looked up, so the TTL holds before the new zone is reloaded
        self._cache.put_many({(user.id, date_key): row, (user.id, requested_key): row}.items())

        logger.info(
            "sync.daily.user.synced",
            user_id=user.id,
            date_key=date_key,
            status=result.status,
            total_seconds=result.total_seconds,
        )
        return row
