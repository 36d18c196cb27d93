"""Achievements backfill: replay stored history through the live award code.

Correctness on repeated runs rests entirely on grant upserts, so the job can
be re-run at any time (typically after adding rules to the catalog).
"""

import asyncio
from collections.abc import Awaitable, Callable, Iterable
from datetime import UTC, date, datetime, timedelta
from typing import Any, TypeVar

from pydantic import BaseModel, Field

from app.achievements.engine import award_daily_achievements, award_weekly_achievements
from app.core.dates import iso_week_start, parse_date_key, to_iso_week_key
from app.core.logging import get_logger, start_sync_run
from app.core.store import StatsStore
from app.shared.exceptions import TransientStoreError
from app.shared.models import BackfillSummary, StoredDailyStat
from app.wakatime.payload import (
    BREAKDOWN_KEYS,
    extract_named_entries,
    merge_named_seconds,
    to_named_entries,
)

logger = get_logger(__name__)

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[None]]

HOUR = 60 * 60


class RetryPolicy(BaseModel):
    """Bounded exponential backoff for store operations.

    Attributes:
        attempts: Total tries, including the first
        base_delay_ms: Delay before the second try
        max_delay_ms: Upper bound for any delay
    """

    attempts: int = Field(6, ge=1)
    base_delay_ms: int = Field(500, ge=0)
    max_delay_ms: int = Field(5000, ge=0)

    def delay_seconds(self, attempt: int) -> float:
        """Delay after the given failed attempt (1-based)."""
        delay_ms = min(self.max_delay_ms, self.base_delay_ms * 2 ** (attempt - 1))
        return delay_ms / 1000


class WeeklyBucket(BaseModel):
    """Daily rows of one user grouped into one ISO week."""

    user_id: int
    iso_week_key: str
    range_key: str
    fetched_at: datetime
    days: list[StoredDailyStat] = Field(default_factory=list)

    @property
    def total_seconds(self) -> int:
        return sum(day.total_seconds for day in self.days)


async def with_store_retry(
    label: str,
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    sleep: Sleep = asyncio.sleep,
    retryable: tuple[type[BaseException], ...] = (TransientStoreError,),
) -> T:
    """Run a store operation, retrying only whitelisted transient failures.

    Args:
        label: Description used in log events
        operation: Zero-argument coroutine factory, called once per attempt
        policy: Attempt count and backoff bounds
        sleep: Awaitable sleep (injected in tests)
        retryable: Exception classes worth retrying

    Returns:
        The operation's result

    Raises:
        Exception: The last error once attempts are exhausted, or any
            non-retryable error immediately
    """
    attempt = 1
    while True:
        try:
            return await operation()
        except retryable as e:
            if attempt >= policy.attempts:
                logger.error(
                    "backfill.retry.exhausted",
                    label=label,
                    attempts=attempt,
                    error=str(e),
                )
                raise
            delay = policy.delay_seconds(attempt)
            logger.warning(
                "backfill.retry",
                label=label,
                attempt=attempt,
                max_attempts=policy.attempts,
                delay_seconds=delay,
                error=str(e),
            )
            await sleep(delay)
            attempt += 1


def should_log_progress(processed: int, total: int, every: int) -> bool:
    """Log on the first item, every N-th item and the last item."""
    return processed == 1 or processed == total or processed % every == 0


def build_weekly_buckets(
    daily_rows: Iterable[StoredDailyStat], range_key: str
) -> list[WeeklyBucket]:
    """Group ok daily rows by (user, ISO week).

    A bucket's fetched_at is the latest fetched_at among its days. Rows with
    malformed date keys are skipped.
    """
    buckets: dict[tuple[int, str], WeeklyBucket] = {}
    for row in daily_rows:
        if row.status != "ok":
            continue
        day = parse_date_key(row.date_key)
        if day is None:
            continue

        iso_week_key = to_iso_week_key(day)
        bucket = buckets.get((row.user_id, iso_week_key))
        if bucket is None:
            buckets[(row.user_id, iso_week_key)] = WeeklyBucket(
                user_id=row.user_id,
                iso_week_key=iso_week_key,
                range_key=range_key,
                fetched_at=row.fetched_at,
                days=[row],
            )
            continue

        bucket.days.append(row)
        if row.fetched_at > bucket.fetched_at:
            bucket.fetched_at = row.fetched_at
    return list(buckets.values())


def build_weekly_payload(week_start: date, days_by_key: dict[str, StoredDailyStat]) -> dict[str, Any]:
    """Synthesize a stats-style payload for one ISO week from its daily rows.

    Breakdowns are summed across the week's daily payloads; ``days`` always
    lists the 7 days Monday to Sunday, with 0 for days without a row.
    """
    merged: dict[str, dict[str, float]] = {key: {} for key in BREAKDOWN_KEYS}
    days = []
    for offset in range(7):
        date_key = (week_start + timedelta(days=offset)).isoformat()
        row = days_by_key.get(date_key)
        if row is not None and row.payload:
            for key in BREAKDOWN_KEYS:
                merge_named_seconds(merged[key], extract_named_entries(row.payload, key))
        days.append(
            {
                "date": date_key,
                "grand_total": {"total_seconds": row.total_seconds if row else 0},
            }
        )

    return {
        "data": {
            "range": {
                "start": week_start.isoformat(),
                "end": (week_start + timedelta(days=6)).isoformat(),
            },
            **{key: to_named_entries(values) for key, values in merged.items()},
            "days": days,
        }
    }


def _fallback_context(user_id: int, range_key: str, fetched_at: datetime) -> str:
    if fetched_at.tzinfo is not None:
        fetched_at = fetched_at.astimezone(UTC)
    return f"{user_id}:{range_key}:{to_iso_week_key(fetched_at.date())}"


async def run_achievements_backfill(
    store: StatsStore,
    weekly_range_key: str = "last_7_days",
    progress_every: int = 500,
    policy: RetryPolicy | None = None,
    sleep: Sleep = asyncio.sleep,
    retryable: tuple[type[BaseException], ...] = (TransientStoreError,),
) -> BackfillSummary:
    """Replay every stored daily and weekly stat through the award entry points.

    Runs sequentially: daily rows, then weekly buckets rebuilt from daily
    history, then stored weekly rows whose week no bucket covered.

    Args:
        store: Persistence port
        weekly_range_key: Range key recorded on bucket grants
        progress_every: Progress log cadence
        policy: Retry policy for every store call
        sleep: Awaitable sleep used between retries
        retryable: Exception classes worth retrying

    Returns:
        Counters for the run

    Raises:
        StoreError: If a store call fails permanently or retries run out
    """
    policy = policy or RetryPolicy()
    run_id = start_sync_run("backfill")
    logger.info("backfill.started", run_id=run_id, weekly_range_key=weekly_range_key)

    async def retry(label: str, operation: Callable[[], Awaitable[T]]) -> T:
        return await with_store_retry(label, operation, policy, sleep=sleep, retryable=retryable)

    achievements_before = await retry("count achievements before", store.count_achievements)
    daily_rows = await retry("load daily history", store.load_daily_history)
    weekly_rows = await retry("load weekly history", store.load_weekly_history)

    summary = BackfillSummary(
        achievements_before=achievements_before,
        daily_rows=len(daily_rows),
        daily_rows_ok=sum(1 for row in daily_rows if row.status == "ok"),
        daily_rows_above_4h=sum(
            1 for row in daily_rows if row.status == "ok" and row.total_seconds >= 4 * HOUR
        ),
        daily_rows_with_payload=sum(1 for row in daily_rows if row.payload),
        weekly_rows=len(weekly_rows),
        weekly_rows_ok=sum(1 for row in weekly_rows if row.status == "ok"),
        weekly_rows_above_40h=sum(
            1 for row in weekly_rows if row.status == "ok" and row.total_seconds >= 40 * HOUR
        ),
        weekly_range_key=weekly_range_key,
    )
    logger.info(
        "backfill.history.loaded",
        daily_rows=summary.daily_rows,
        weekly_rows=summary.weekly_rows,
        daily_rows_ok=summary.daily_rows_ok,
        weekly_rows_ok=summary.weekly_rows_ok,
    )

    for index, row in enumerate(daily_rows, start=1):
        await retry(
            f"award daily user={row.user_id} date={row.date_key}",
            lambda row=row: award_daily_achievements(
                store,
                row.user_id,
                row.date_key,
                row.status,
                row.total_seconds,
                payload=row.payload,
                fetched_at=row.fetched_at,
            ),
        )
        summary.daily_awards_processed += 1
        if should_log_progress(index, len(daily_rows), progress_every):
            logger.info("backfill.daily.progress", processed=index, total=len(daily_rows))

    buckets = build_weekly_buckets(daily_rows, weekly_range_key)
    summary.weekly_buckets = len(buckets)
    logger.info("backfill.weekly_buckets.built", buckets=len(buckets), range_key=weekly_range_key)

    covered: set[str] = set()
    for index, bucket in enumerate(buckets, start=1):
        first_day = parse_date_key(bucket.days[0].date_key)
        if first_day is None:
            continue
        payload = build_weekly_payload(
            iso_week_start(first_day), {day.date_key: day for day in bucket.days}
        )
        total_seconds = bucket.total_seconds
        await retry(
            f"award weekly bucket user={bucket.user_id} week={bucket.iso_week_key}",
            lambda bucket=bucket, payload=payload, total_seconds=total_seconds: (
                award_weekly_achievements(
                    store,
                    bucket.user_id,
                    bucket.range_key,
                    "ok",
                    total_seconds,
                    daily_average_seconds=total_seconds / 7,
                    payload=payload,
                    fetched_at=bucket.fetched_at,
                )
            ),
        )
        covered.add(f"{bucket.user_id}:{bucket.range_key}:{bucket.iso_week_key}")
        summary.weekly_awards_processed += 1
        if should_log_progress(index, len(buckets), progress_every):
            logger.info("backfill.weekly_bucket.progress", processed=index, total=len(buckets))

    for index, weekly_row in enumerate(weekly_rows, start=1):
        if _fallback_context(weekly_row.user_id, weekly_row.range_key, weekly_row.fetched_at) in covered:
            continue
        await retry(
            f"award weekly fallback user={weekly_row.user_id} range={weekly_row.range_key}",
            lambda weekly_row=weekly_row: award_weekly_achievements(
                store,
                weekly_row.user_id,
                weekly_row.range_key,
                weekly_row.status,
                weekly_row.total_seconds,
                daily_average_seconds=weekly_row.daily_average_seconds,
                fetched_at=weekly_row.fetched_at,
            ),
        )
        summary.weekly_awards_processed += 1
        if should_log_progress(index, len(weekly_rows), progress_every):
            logger.info("backfill.weekly_fallback.progress", processed=index, total=len(weekly_rows))

    summary.achievements_after = await retry("count achievements after", store.count_achievements)
    summary.achievements_created = summary.achievements_after - summary.achievements_before
    summary.users_count = await retry("count users", store.count_users)

    logger.info("backfill.completed", **summary.model_dump())
    return summary
