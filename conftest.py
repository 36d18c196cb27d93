"""Shared pytest fixtures for WakaWars tests."""

from collections.abc import Iterator, Sequence
from datetime import UTC, datetime
from typing import Any

import pytest

from app.core.clock import FixedClock
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


class MemoryStore:
    """In-memory implementation of the StatsStore port.

    Upserts are keyed exactly like the database unique constraints. Tests can
    queue exceptions per method name in ``failures`` to simulate outages.
    """

    def __init__(self) -> None:
        self.users: dict[int, UserRecord] = {}
        self.daily: dict[tuple[int, str], StoredDailyStat] = {}
        self.weekly: dict[tuple[int, str], StoredWeeklyStat] = {}
        self.grants: dict[tuple[int, str, str, str], AchievementGrant] = {}
        self.failures: dict[str, list[BaseException]] = {}
        self.calls: list[str] = []

    def _record(self, operation: str) -> None:
        self.calls.append(operation)
        queued = self.failures.get(operation)
        if queued:
            raise queued.pop(0)

    def add_user(self, user_id: int, username: str, **fields: Any) -> UserRecord:
        user = UserRecord(id=user_id, username=username, **fields)
        self.users[user_id] = user
        return user

    async def list_sync_users(self) -> list[UserRecord]:
        self._record("list_sync_users")
        return [self.users[user_id] for user_id in sorted(self.users)]

    async def get_users_by_ids(self, user_ids: Sequence[int]) -> list[UserRecord]:
        self._record("get_users_by_ids")
        return [self.users[user_id] for user_id in sorted(set(user_ids)) if user_id in self.users]

    async def set_user_time_zone(self, user_id: int, time_zone: str) -> None:
        self._record("set_user_time_zone")
        self.users[user_id] = self.users[user_id].model_copy(update={"time_zone": time_zone})

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
        self._record("upsert_daily_stat")
        user = self.users.get(user_id)
        self.daily[(user_id, date_key)] = StoredDailyStat(
            user_id=user_id,
            username=user.username if user else "",
            date_key=date_key,
            total_seconds=total_seconds,
            status=status,
            error=error,
            fetched_at=fetched_at,
            payload=payload,
        )

    async def get_daily_stats(self, user_ids: Sequence[int], date_key: str) -> list[StoredDailyStat]:
        self._record("get_daily_stats")
        return [
            self.daily[(user_id, date_key)]
            for user_id in user_ids
            if (user_id, date_key) in self.daily
        ]

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
        self._record("upsert_weekly_stat")
        user = self.users.get(user_id)
        self.weekly[(user_id, range_key)] = StoredWeeklyStat(
            user_id=user_id,
            username=user.username if user else "",
            range_key=range_key,
            total_seconds=total_seconds,
            daily_average_seconds=daily_average_seconds,
            status=status,
            error=error,
            fetched_at=fetched_at,
            payload=payload,
        )

    async def get_weekly_stats(
        self, user_ids: Sequence[int], range_key: str
    ) -> list[StoredWeeklyStat]:
        self._record("get_weekly_stats")
        return [
            self.weekly[(user_id, range_key)]
            for user_id in user_ids
            if (user_id, range_key) in self.weekly
        ]

    async def grant_achievement(self, grant: AchievementGrant) -> None:
        self._record("grant_achievement")
        key = (grant.user_id, grant.achievement_id, grant.context_kind, grant.context_key)
        self.grants[key] = grant

    async def list_achievement_unlocks(self, user_id: int) -> list[AchievementUnlock]:
        self._record("list_achievement_unlocks")
        by_id: dict[str, list[AchievementGrant]] = {}
        for grant in self.grants.values():
            if grant.user_id == user_id:
                by_id.setdefault(grant.achievement_id, []).append(grant)
        unlocks = [
            AchievementUnlock(
                achievement_id=achievement_id,
                count=len(grants),
                first_awarded_at=min(grant.awarded_at for grant in grants),
                last_awarded_at=max(grant.awarded_at for grant in grants),
            )
            for achievement_id, grants in by_id.items()
        ]
        return sorted(unlocks, key=lambda unlock: unlock.last_awarded_at, reverse=True)

    async def list_achievement_grants(
        self,
        user_ids: Sequence[int],
        achievement_ids: Sequence[str] | None = None,
        context_kind: ContextKind | None = None,
    ) -> list[AchievementGrantSummary]:
        self._record("list_achievement_grants")
        wanted = set(user_ids)
        return [
            AchievementGrantSummary(
                user_id=grant.user_id,
                achievement_id=grant.achievement_id,
                context_kind=grant.context_kind,
                context_key=grant.context_key,
            )
            for grant in self.grants.values()
            if grant.user_id in wanted
            and (achievement_ids is None or grant.achievement_id in achievement_ids)
            and (context_kind is None or grant.context_kind == context_kind)
        ]

    async def load_daily_history(self) -> list[StoredDailyStat]:
        self._record("load_daily_history")
        return sorted(self.daily.values(), key=lambda row: (row.user_id, row.date_key))

    async def load_weekly_history(self) -> list[StoredWeeklyStat]:
        self._record("load_weekly_history")
        return sorted(self.weekly.values(), key=lambda row: (row.user_id, row.fetched_at))

    async def count_achievements(self) -> int:
        self._record("count_achievements")
        return len(self.grants)

    async def count_users(self) -> int:
        self._record("count_users")
        return len(self.users)


@pytest.fixture
def memory_store() -> MemoryStore:
    """Empty in-memory stats store."""
    return MemoryStore()


@pytest.fixture
def fixed_clock() -> FixedClock:
    """Clock frozen at Wednesday 2026-02-11 12:00 UTC."""
    return FixedClock(datetime(2026, 2, 11, 12, 0, tzinfo=UTC))


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Iterator[None]:
    """Reset the global settings cache before and after each test.

    This ensures tests don't interfere with each other via cached settings.
    """
    import app.core.config

    app.core.config._settings = None

    yield

    app.core.config._settings = None
