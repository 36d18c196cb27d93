"""PostgreSQL stats store with connection pooling."""

import asyncio
import json
from collections.abc import Sequence
from datetime import UTC, datetime
from types import TracebackType
from typing import Any, ClassVar

import asyncpg

from app.core import queries
from app.core.config import get_settings
from app.core.logging import get_logger
from app.shared.exceptions import PermanentStoreError, StoreError, TransientStoreError
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

logger = get_logger(__name__)

# Connectivity failures: the statement may succeed on a fresh connection
TRANSIENT_ERRORS: tuple[type[BaseException], ...] = (
    asyncpg.exceptions.PostgresConnectionError,
    asyncpg.exceptions.CannotConnectNowError,
    asyncpg.exceptions.TooManyConnectionsError,
    asyncpg.exceptions.ConnectionDoesNotExistError,
    asyncpg.exceptions.InterfaceError,
    OSError,
    asyncio.TimeoutError,
)


def _to_naive_utc(dt: datetime) -> datetime:
    """Convert timezone-aware datetime to naive UTC datetime.

    PostgreSQL TIMESTAMP columns (without timezone) expect naive datetimes.

    Args:
        dt: Datetime object (timezone-aware or naive)

    Returns:
        Naive datetime in UTC
    """
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(UTC).replace(tzinfo=None)


def _to_json(value: dict[str, Any] | None) -> str | None:
    return json.dumps(value) if value is not None else None


def to_store_error(operation: str, error: BaseException) -> StoreError:
    """Classify a driver exception as transient or permanent.

    Args:
        operation: Short operation name used in the message
        error: Exception raised by asyncpg or the network stack

    Returns:
        TransientStoreError for connectivity failures, PermanentStoreError otherwise
    """
    if isinstance(error, TRANSIENT_ERRORS):
        return TransientStoreError(f"Failed to {operation}: {error}")
    return PermanentStoreError(f"Failed to {operation}: {error}")


class DatabaseClient:
    """Async PostgreSQL implementation of the StatsStore port."""

    MAX_RETRIES: ClassVar[int] = 3
    RETRY_DELAYS: ClassVar[list[int]] = [2, 4, 8]
    HANDLED_ERRORS: ClassVar[tuple[type[BaseException], ...]] = (
        asyncpg.PostgresError,
        *TRANSIENT_ERRORS,
    )

    def __init__(self) -> None:
        self.pool: asyncpg.Pool | None = None

    async def __aenter__(self) -> "DatabaseClient":
        """Create connection pool with retry logic."""
        settings = get_settings()

        for attempt in range(self.MAX_RETRIES):
            try:
                self.pool = await asyncpg.create_pool(
                    host=settings.db_host,
                    port=settings.db_port,
                    database=settings.db_name,
                    user=settings.db_user,
                    password=settings.db_password,
                    min_size=settings.db_pool_min_size,
                    max_size=settings.db_pool_max_size,
                    timeout=60.0,
                )
                logger.info(
                    "database.pool.created",
                    target=settings.db_dsn_display,
                    min_size=settings.db_pool_min_size,
                    max_size=settings.db_pool_max_size,
                )
                return self
            except (asyncpg.PostgresError, OSError) as e:
                if attempt < self.MAX_RETRIES - 1:
                    logger.warning("database.pool.retry", attempt=attempt + 1, error=str(e))
                    await asyncio.sleep(self.RETRY_DELAYS[attempt])
                else:
                    logger.error("database.pool.failed", error=str(e), exc_info=True)
                    raise TransientStoreError(f"Failed to create pool: {e}") from e
        raise StoreError("Unreachable")

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Close connection pool."""
        if self.pool:
            await self.pool.close()
            logger.info("database.pool.closed")

    def _require_pool(self) -> asyncpg.Pool:
        if not self.pool:
            raise PermanentStoreError("Connection pool not initialized")
        return self.pool

    def _fail(self, operation: str, error: BaseException) -> StoreError:
        logger.error(
            f"database.{operation}.failed",
            error=str(error),
            error_type=type(error).__name__,
            exc_info=True,
        )
        return to_store_error(operation.replace("_", " "), error)

    async def ensure_schema(self) -> None:
        """Create tables and indexes if they do not exist.

        Raises:
            StoreError: If the DDL fails
        """
        pool = self._require_pool()
        try:
            async with pool.acquire() as conn:
                await conn.execute(queries.CREATE_SCHEMA)
                logger.info("database.schema.ready")
        except self.HANDLED_ERRORS as e:
            raise self._fail("ensure_schema", e) from e

    async def list_sync_users(self) -> list[UserRecord]:
        """Fetch every user.

        Returns:
            Users ordered by ID

        Raises:
            StoreError: If connection pool is not initialized or query fails
        """
        pool = self._require_pool()
        try:
            async with pool.acquire() as conn:
                rows = await conn.fetch(queries.LIST_USERS)
                return [UserRecord(**dict(row)) for row in rows]
        except self.HANDLED_ERRORS as e:
            raise self._fail("list_users", e) from e

    async def get_users_by_ids(self, user_ids: Sequence[int]) -> list[UserRecord]:
        """Fetch users by ID.

        Args:
            user_ids: IDs to fetch (unknown IDs are ignored)

        Returns:
            Matching users ordered by ID

        Raises:
            StoreError: If connection pool is not initialized or query fails
        """
        pool = self._require_pool()
        if not user_ids:
            return []
        try:
            async with pool.acquire() as conn:
                rows = await conn.fetch(queries.GET_USERS_BY_IDS, list(user_ids))
                return [UserRecord(**dict(row)) for row in rows]
        except self.HANDLED_ERRORS as e:
            raise self._fail("get_users", e) from e

    async def set_user_time_zone(self, user_id: int, time_zone: str) -> None:
        """Store the time zone WakaTime reports for a user.

        Raises:
            StoreError: If connection pool is not initialized or query fails
        """
        pool = self._require_pool()
        try:
            async with pool.acquire() as conn:
                await conn.execute(queries.SET_USER_TIMEZONE, user_id, time_zone)
                logger.info("database.user.timezone_updated", user_id=user_id, timezone=time_zone)
        except self.HANDLED_ERRORS as e:
            raise self._fail("set_user_time_zone", e) from e

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
        """Insert or replace the daily stat for (user_id, date_key).

        Raises:
            StoreError: If connection pool is not initialized or query fails
        """
        pool = self._require_pool()
        try:
            async with pool.acquire() as conn:
                await conn.execute(
                    queries.UPSERT_DAILY_STAT,
                    user_id,
                    date_key,
                    total_seconds,
                    status,
                    error,
                    _to_naive_utc(fetched_at),
                    _to_json(payload),
                )
        except self.HANDLED_ERRORS as e:
            raise self._fail("upsert_daily_stat", e) from e

    async def get_daily_stats(
        self, user_ids: Sequence[int], date_key: str
    ) -> list[StoredDailyStat]:
        """Fetch daily stats for a set of users on one date key.

        Raises:
            StoreError: If connection pool is not initialized or query fails
        """
        pool = self._require_pool()
        if not user_ids:
            return []
        try:
            async with pool.acquire() as conn:
                rows = await conn.fetch(queries.GET_DAILY_STATS, list(user_ids), date_key)
                return [StoredDailyStat.from_row(row) for row in rows]
        except self.HANDLED_ERRORS as e:
            raise self._fail("get_daily_stats", e) from e

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
        """Insert or replace the weekly stat for (user_id, range_key).

        Raises:
            StoreError: If connection pool is not initialized or query fails
        """
        pool = self._require_pool()
        try:
            async with pool.acquire() as conn:
                await conn.execute(
                    queries.UPSERT_WEEKLY_STAT,
                    user_id,
                    range_key,
                    total_seconds,
                    daily_average_seconds,
                    status,
                    error,
                    _to_naive_utc(fetched_at),
                    _to_json(payload),
                )
        except self.HANDLED_ERRORS as e:
            raise self._fail("upsert_weekly_stat", e) from e

    async def get_weekly_stats(
        self, user_ids: Sequence[int], range_key: str
    ) -> list[StoredWeeklyStat]:
        """Fetch weekly stats for a set of users on one range key.

        Raises:
            StoreError: If connection pool is not initialized or query fails
        """
        pool = self._require_pool()
        if not user_ids:
            return []
        try:
            async with pool.acquire() as conn:
                rows = await conn.fetch(queries.GET_WEEKLY_STATS, list(user_ids), range_key)
                return [StoredWeeklyStat.from_row(row) for row in rows]
        except self.HANDLED_ERRORS as e:
            raise self._fail("get_weekly_stats", e) from e

    async def grant_achievement(self, grant: AchievementGrant) -> None:
        """Upsert a grant on (user_id, achievement_id, context_kind, context_key).

        Raises:
            StoreError: If connection pool is not initialized or query fails
        """
        pool = self._require_pool()
        try:
            async with pool.acquire() as conn:
                await conn.execute(
                    queries.UPSERT_ACHIEVEMENT,
                    grant.user_id,
                    grant.achievement_id,
                    grant.context_kind,
                    grant.context_key,
                    _to_naive_utc(grant.awarded_at),
                    _to_json(grant.metadata),
                )
        except self.HANDLED_ERRORS as e:
            raise self._fail("grant_achievement", e) from e

    async def list_achievement_unlocks(self, user_id: int) -> list[AchievementUnlock]:
        """Aggregate a user's grants per achievement.

        Returns:
            Unlocks ordered by most recent award first

        Raises:
            StoreError: If connection pool is not initialized or query fails
        """
        pool = self._require_pool()
        try:
            async with pool.acquire() as conn:
                rows = await conn.fetch(queries.LIST_ACHIEVEMENT_UNLOCKS, user_id)
                return [
                    AchievementUnlock(
                        achievement_id=row["achievement_id"],
                        count=row["unlock_count"],
                        first_awarded_at=row["first_awarded_at"],
                        last_awarded_at=row["last_awarded_at"],
                    )
                    for row in rows
                ]
        except self.HANDLED_ERRORS as e:
            raise self._fail("list_achievement_unlocks", e) from e

    async def list_achievement_grants(
        self,
        user_ids: Sequence[int],
        achievement_ids: Sequence[str] | None = None,
        context_kind: ContextKind | None = None,
    ) -> list[AchievementGrantSummary]:
        """List grant identities for a batch of users.

        Args:
            user_ids: Users to include
            achievement_ids: Optional achievement filter
            context_kind: Optional daily/weekly filter

        Raises:
            StoreError: If connection pool is not initialized or query fails
        """
        pool = self._require_pool()
        if not user_ids:
            return []
        try:
            async with pool.acquire() as conn:
                rows = await conn.fetch(
                    queries.LIST_ACHIEVEMENT_GRANTS,
                    list(user_ids),
                    list(achievement_ids) if achievement_ids is not None else None,
                    context_kind,
                )
                return [AchievementGrantSummary(**dict(row)) for row in rows]
        except self.HANDLED_ERRORS as e:
            raise self._fail("list_achievement_grants", e) from e

    async def load_daily_history(self) -> list[StoredDailyStat]:
        """Load every daily row for backfill.

        Raises:
            StoreError: If connection pool is not initialized or query fails
        """
        pool = self._require_pool()
        try:
            async with pool.acquire() as conn:
                rows = await conn.fetch(queries.LOAD_DAILY_HISTORY)
                return [StoredDailyStat.from_row(row) for row in rows]
        except self.HANDLED_ERRORS as e:
            raise self._fail("load_daily_history", e) from e

    async def load_weekly_history(self) -> list[StoredWeeklyStat]:
        """Load every weekly row for backfill.

        Raises:
            StoreError: If connection pool is not initialized or query fails
        """
        pool = self._require_pool()
        try:
            async with pool.acquire() as conn:
                rows = await conn.fetch(queries.LOAD_WEEKLY_HISTORY)
                return [StoredWeeklyStat.from_row(row) for row in rows]
        except self.HANDLED_ERRORS as e:
            raise self._fail("load_weekly_history", e) from e

    async def count_achievements(self) -> int:
        """Count grant rows.

        Raises:
            StoreError: If connection pool is not initialized or query fails
        """
        pool = self._require_pool()
        try:
            async with pool.acquire() as conn:
                count = await conn.fetchval(queries.COUNT_ACHIEVEMENTS)
                return int(count or 0)
        except self.HANDLED_ERRORS as e:
            raise self._fail("count_achievements", e) from e

    async def count_users(self) -> int:
        """Count users.

        Raises:
            StoreError: If connection pool is not initialized or query fails
        """
        pool = self._require_pool()
        try:
            async with pool.acquire() as conn:
                count = await conn.fetchval(queries.COUNT_USERS)
                return int(count or 0)
        except self.HANDLED_ERRORS as e:
            raise self._fail("count_users", e) from e
