"""Achievement award entry points and catalog projections."""

from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Any

from app.achievements.catalog import ACHIEVEMENT_RULES, DAILY_RULES, WEEKLY_RULES
from app.achievements.rules import evaluate_rules
from app.core.clock import Clock, SystemClock
from app.core.dates import parse_date_key, to_iso_week_key
from app.core.logging import get_logger
from app.core.store import StatsStore
from app.leaderboard.builder import can_view_stats
from app.shared.models import (
    AchievementBoardItem,
    AchievementDisplayItem,
    AchievementGrant,
    AchievementUnlock,
    SocialGraph,
    StatStatus,
    UserRecord,
)
from app.wakatime.payload import get_path

logger = get_logger(__name__)


def weekly_context_key(payload: Any, fetched_at: datetime) -> str:
    """Identify the ISO week a weekly fetch belongs to.

    Uses the end of the payload's range (``data.range.end``), falling back to
    the UTC date of the fetch when the payload has no readable range.

    Returns:
        ISO week key like '2026-W07'
    """
    for raw in (get_path(payload, "data", "range", "end"), get_path(payload, "data", "end")):
        if isinstance(raw, str) and len(raw) >= 10:
            day = parse_date_key(raw[:10])
            if day is not None:
                return to_iso_week_key(day)
    if fetched_at.tzinfo is None:
        fetched_at = fetched_at.replace(tzinfo=UTC)
    return to_iso_week_key(fetched_at.astimezone(UTC).date())


async def award_daily_achievements(
    store: StatsStore,
    user_id: int,
    date_key: str,
    status: StatStatus,
    total_seconds: float,
    payload: Any = None,
    fetched_at: datetime | None = None,
    clock: Clock | None = None,
) -> list[str]:
    """Grant every daily achievement satisfied by one daily fetch.

    Safe to call repeatedly for the same fetch: grants are upserts on
    (user_id, achievement_id, "daily", date_key).

    Args:
        store: Persistence port
        user_id: User the fetch belongs to
        date_key: User-local date of the fetch
        status: Fetch status (non-ok fetches never grant)
        total_seconds: Coding seconds for the day
        payload: Stored provider body (breakdowns)
        fetched_at: Fetch time, stored as awarded_at
        clock: Time source used when fetched_at is missing

    Returns:
        IDs of the achievements granted (or re-confirmed)

    Raises:
        StoreError: If a grant upsert fails
    """
    if status != "ok":
        return []

    awarded_at = fetched_at or (clock or SystemClock()).now()
    matches = evaluate_rules(
        DAILY_RULES,
        status=status,
        total_seconds=total_seconds,
        payload=payload,
        date_key=date_key,
    )
    for rule, metadata in matches:
        await store.grant_achievement(
            AchievementGrant(
                user_id=user_id,
                achievement_id=rule.id,
                context_kind="daily",
                context_key=date_key,
                awarded_at=awarded_at,
                metadata=metadata,
            )
        )

    granted = [rule.id for rule, _ in matches]
    if granted:
        logger.debug(
            "achievements.daily.granted",
            user_id=user_id,
            date_key=date_key,
            achievements=granted,
        )
    return granted


async def award_weekly_achievements(
    store: StatsStore,
    user_id: int,
    range_key: str,
    status: StatStatus,
    total_seconds: float,
    daily_average_seconds: float = 0,
    payload: Any = None,
    fetched_at: datetime | None = None,
    clock: Clock | None = None,
) -> list[str]:
    """Grant every weekly achievement satisfied by one weekly fetch.

    Grants are upserts on (user_id, achievement_id, "weekly", iso_week), so a
    rolling range re-fetched many times within one week yields one grant.

    Args:
        store: Persistence port
        user_id: User the fetch belongs to
        range_key: Provider rolling-range key (kept in grant metadata)
        status: Fetch status (non-ok fetches never grant)
        total_seconds: Coding seconds over the range
        daily_average_seconds: Provider daily average
        payload: Stored provider body (breakdowns, day list)
        fetched_at: Fetch time, stored as awarded_at
        clock: Time source used when fetched_at is missing

    Returns:
        IDs of the achievements granted (or re-confirmed)

    Raises:
        StoreError: If a grant upsert fails
    """
    if status != "ok":
        return []

    awarded_at = fetched_at or (clock or SystemClock()).now()
    context_key = weekly_context_key(payload, awarded_at)
    matches = evaluate_rules(
        WEEKLY_RULES,
        status=status,
        total_seconds=total_seconds,
        daily_average_seconds=daily_average_seconds,
        payload=payload,
    )
    for rule, metadata in matches:
        await store.grant_achievement(
            AchievementGrant(
                user_id=user_id,
                achievement_id=rule.id,
                context_kind="weekly",
                context_key=context_key,
                awarded_at=awarded_at,
                metadata={**metadata, "range_key": range_key},
            )
        )

    granted = [rule.id for rule, _ in matches]
    if granted:
        logger.debug(
            "achievements.weekly.granted",
            user_id=user_id,
            range_key=range_key,
            context_key=context_key,
            achievements=granted,
        )
    return granted


def to_achievement_board(unlocks: Iterable[AchievementUnlock]) -> list[AchievementBoardItem]:
    """Full catalog for its owner, locked entries included, in catalog order."""
    by_id = {unlock.achievement_id: unlock for unlock in unlocks}
    board = []
    for rule in ACHIEVEMENT_RULES:
        unlock = by_id.get(rule.id)
        board.append(
            AchievementBoardItem(
                id=rule.id,
                title=rule.title,
                description=rule.description,
                icon=rule.icon,
                rarity=rule.rarity,
                count=unlock.count if unlock else 0,
                unlocked=unlock is not None,
                first_awarded_at=unlock.first_awarded_at if unlock else None,
                last_awarded_at=unlock.last_awarded_at if unlock else None,
            )
        )
    return board


def to_achievement_display(unlocks: Iterable[AchievementUnlock]) -> list[AchievementDisplayItem]:
    """Unlocked catalog entries only, as shown to other users.

    Unlocks for IDs no longer in the catalog are dropped.
    """
    by_id = {unlock.achievement_id: unlock for unlock in unlocks}
    display = []
    for rule in ACHIEVEMENT_RULES:
        unlock = by_id.get(rule.id)
        if unlock is None:
            continue
        display.append(
            AchievementDisplayItem(
                id=rule.id,
                title=rule.title,
                description=rule.description,
                icon=rule.icon,
                rarity=rule.rarity,
                count=unlock.count,
                first_awarded_at=unlock.first_awarded_at,
                last_awarded_at=unlock.last_awarded_at,
            )
        )
    return display


async def load_profile_achievements(
    store: StatsStore,
    viewer_id: int,
    target: UserRecord,
    graph: SocialGraph,
) -> list[AchievementBoardItem] | list[AchievementDisplayItem] | None:
    """Achievements as a given viewer may see them on a profile.

    Owners get the full board; other viewers get unlocked items only, under
    the same visibility rules as the leaderboard.

    Returns:
        Board for the owner, display list for permitted viewers, None if hidden

    Raises:
        StoreError: If reading unlocks fails
    """
    if viewer_id != target.id and not can_view_stats(viewer_id, target, graph):
        return None
    unlocks = await store.list_achievement_unlocks(target.id)
    if viewer_id == target.id:
        return to_achievement_board(unlocks)
    return to_achievement_display(unlocks)
