"""Persistence port used by the sync, achievement and backfill code.

Every write is an idempotent upsert keyed by the tuples documented on each
method. ``app.core.database.DatabaseClient`` implements this against
PostgreSQL; tests use an in-memory double.
"""

from collections.abc import Sequence
from datetime import datetime
from typing import Any, Protocol

from app.shared.models import (
    AchievementGrant,
    AchievementGrantSummary,
    AchievementUnlock,
    ContextKind,
    StatStatus,
    StoredDailyStat,
    StoredWeeklyStat,
    UserRecord,
)


class StatsStore(Protocol):
    """Read/write contract for stats, grants and the user fields sync needs."""

    async def list_sync_users(self) -> list[UserRecord]:
        """All users, including those without an API key."""
        ...

    async def get_users_by_ids(self, user_ids: Sequence[int]) -> list[UserRecord]: ...

    async def set_user_time_zone(self, user_id: int, time_zone: str) -> None: ...

    async def upsert_daily_stat(
        self,
        *,
        user_id: int,
        date_key: str,
        total_seconds: int,
        status: StatStatus,
        error: str | None,
        fetched_at: datetime,
        payload: dict[str, Any] | None = None,
    ) -> None:
        """Insert or replace the row for (user_id, date_key)."""
        ...

    async def get_daily_stats(
        self, user_ids: Sequence[int], date_key: str
    ) -> list[StoredDailyStat]: ...

    async def upsert_weekly_stat(
        self,
        *,
        user_id: int,
        range_key: str,
        total_seconds: int,
        daily_average_seconds: int,
        status: StatStatus,
        error: str | None,
        fetched_at: datetime,
        payload: dict[str, Any] | None = None,
    ) -> None:
        """Insert or replace the row for (user_id, range_key)."""
        ...

    async def get_weekly_stats(
        self, user_ids: Sequence[int], range_key: str
    ) -> list[StoredWeeklyStat]: ...

    async def grant_achievement(self, grant: AchievementGrant) -> None:
        """Insert, or refresh awarded_at/metadata of, the grant's unique tuple."""
        ...

    async def list_achievement_unlocks(self, user_id: int) -> list[AchievementUnlock]:
        """Per-achievement counts for a user, most recently awarded first."""
        ...

    async def list_achievement_grants(
        self,
        user_ids: Sequence[int],
        achievement_ids: Sequence[str] | None = None,
        context_kind: ContextKind | None = None,
    ) -> list[AchievementGrantSummary]: ...

    async def load_daily_history(self) -> list[StoredDailyStat]:
        """Every daily row ordered by user then date key."""
        ...

    async def load_weekly_history(self) -> list[StoredWeeklyStat]:
        """Every weekly row ordered by user then fetch time."""
        ...

    async def count_achievements(self) -> int: ...

    async def count_users(self) -> int: ...
