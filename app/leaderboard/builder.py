"""Leaderboard assembly: visibility filtering, per-user date keys, ranking."""

import asyncio
from collections.abc import Iterable, Mapping, Sequence
from datetime import datetime
from typing import TYPE_CHECKING, Any

from app.core.clock import Clock, SystemClock
from app.core.config import Settings, get_settings
from app.core.dates import shift_date_key, to_date_key_in_time_zone
from app.core.logging import get_logger
from app.core.store import StatsStore
from app.leaderboard.format import format_delta
from app.leaderboard.ranking import compute_leaderboard, slice_leaderboard
from app.shared.models import (
    DailyLeaderboard,
    DailyStat,
    LeaderboardEntry,
    LeaderboardSlice,
    SocialGraph,
    StoredDailyStat,
    StoredWeeklyStat,
    UserRecord,
    WeeklyLeaderboard,
    WeeklyLeaderboardEntry,
    WeeklyStat,
)

if TYPE_CHECKING:
    from app.sync.weekly import WeeklyStatsCache

logger = get_logger(__name__)

NO_STATS_ERROR = "No stats synced yet"


def can_view_stats(viewer_id: int, target: UserRecord, graph: SocialGraph) -> bool:
    """Check whether a viewer may see a target user's stats.

    Users always see themselves. Otherwise the target's visibility decides:
    ``everyone`` always, ``no_one`` never, ``friends`` only for a mutual
    friend (each has added the other) or someone sharing a group.

    Args:
        viewer_id: Viewing user's ID
        target: User whose stats would be shown
        graph: Viewer-relative social graph

    Returns:
        True if the stats may be shown
    """
    if viewer_id == target.id:
        return True
    if target.stats_visibility == "everyone":
        return True
    if target.stats_visibility == "no_one":
        return False
    is_mutual_friend = target.id in graph.friend_ids and target.id in graph.incoming_friend_ids
    return is_mutual_friend or target.id in graph.group_peer_ids


def resolve_date_key_for_user(user: UserRecord, offset_days: int, now: datetime) -> str:
    """The user's local date key, shifted by offset_days (-1 for yesterday)."""
    today = to_date_key_in_time_zone(now, user.time_zone)
    return shift_date_key(today, offset_days)


def group_users_by_date_key(
    users: Iterable[UserRecord], offset_days: int, now: datetime
) -> dict[str, list[int]]:
    """Group user IDs by their local date key so each group is one store read."""
    groups: dict[str, list[int]] = {}
    for user in users:
        groups.setdefault(resolve_date_key_for_user(user, offset_days, now), []).append(user.id)
    return groups


def leaderboard_user_ids(viewer_id: int, graph: SocialGraph) -> list[int]:
    """Viewer first, then friends and group peers, without duplicates."""
    ordered = [viewer_id, *sorted(graph.friend_ids), *sorted(graph.group_peer_ids)]
    return list(dict.fromkeys(ordered))


def _daily_stat_for(
    user: UserRecord,
    stored: StoredDailyStat | None,
    viewer_id: int,
    graph: SocialGraph,
) -> DailyStat:
    # Socially hidden stats are indistinguishable from provider-private ones
    if not can_view_stats(viewer_id, user, graph):
        return DailyStat(username=user.username, total_seconds=0, status="private")
    if stored is None:
        return DailyStat(username=user.username, total_seconds=0, status="error", error=NO_STATS_ERROR)
    return DailyStat(
        username=user.username,
        total_seconds=stored.total_seconds,
        status=stored.status,
        error=stored.error,
    )


def _weekly_stat_for(
    user: UserRecord,
    stored: StoredWeeklyStat | None,
    viewer_id: int,
    graph: SocialGraph,
) -> WeeklyStat:
    if not can_view_stats(viewer_id, user, graph):
        return WeeklyStat(username=user.username, total_seconds=0, status="private")
    if stored is None:
        return WeeklyStat(
            username=user.username, total_seconds=0, status="error", error=NO_STATS_ERROR
        )
    return WeeklyStat(
        username=user.username,
        total_seconds=stored.total_seconds,
        daily_average_seconds=stored.daily_average_seconds,
        status=stored.status,
        error=stored.error,
    )


def _rank_for_viewer(
    viewer: UserRecord,
    users: Sequence[UserRecord],
    stat_for: dict[int, DailyStat] | dict[int, WeeklyStat],
) -> tuple[list[Any], Any]:
    self_stat = stat_for.get(viewer.id)
    stats = [stat_for[user.id] for user in users if user.is_competing]
    entries = compute_leaderboard(stats, viewer.username)

    # Deltas are against the viewer even when the viewer is not competing
    if self_stat is not None:
        entries = [
            entry.model_copy(update={"delta_seconds": entry.total_seconds - self_stat.total_seconds})
            for entry in entries
        ]

    self_entry = next((entry for entry in entries if entry.username == viewer.username), None)
    if self_entry is None and self_stat is not None:
        entry_class = WeeklyLeaderboardEntry if isinstance(self_stat, WeeklyStat) else LeaderboardEntry
        self_entry = entry_class(**self_stat.model_dump(), rank=None, delta_seconds=0)
    return entries, self_entry


def _updated_at(rows: Iterable[StoredDailyStat | StoredWeeklyStat], now: datetime) -> datetime:
    fetched = [row.fetched_at for row in rows]
    return max(fetched) if fetched else now


def build_daily_leaderboard(
    viewer: UserRecord,
    users: Sequence[UserRecord],
    graph: SocialGraph,
    stats_by_user_id: Mapping[int, StoredDailyStat],
    date_key: str,
    now: datetime,
) -> DailyLeaderboard:
    """Assemble the daily leaderboard a viewer sees.

    Every competing user gets a row: private when the viewer may not see
    them, an error row when nothing has been synced, otherwise the stored stat.

    Args:
        viewer: Viewing user
        users: Candidate users (viewer, friends, group peers)
        graph: Viewer-relative social graph
        stats_by_user_id: Stored daily stats, each at that user's local date key
        date_key: Viewer's local date key, reported as the board date
        now: Fallback for updated_at when no stats exist

    Returns:
        DailyLeaderboard with entries in display order
    """
    stat_for = {
        user.id: _daily_stat_for(user, stats_by_user_id.get(user.id), viewer.id, graph)
        for user in users
    }
    if viewer.id not in stat_for:
        stat_for[viewer.id] = _daily_stat_for(viewer, stats_by_user_id.get(viewer.id), viewer.id, graph)

    entries, self_entry = _rank_for_viewer(viewer, users, stat_for)
    return DailyLeaderboard(
        date=date_key,
        updated_at=_updated_at(stats_by_user_id.values(), now),
        entries=entries,
        self_entry=self_entry,
    )


def build_weekly_leaderboard(
    viewer: UserRecord,
    users: Sequence[UserRecord],
    graph: SocialGraph,
    stats_by_user_id: Mapping[int, StoredWeeklyStat],
    range_key: str,
    now: datetime,
) -> WeeklyLeaderboard:
    """Assemble the weekly leaderboard a viewer sees (same rules as daily)."""
    stat_for = {
        user.id: _weekly_stat_for(user, stats_by_user_id.get(user.id), viewer.id, graph)
        for user in users
    }
    if viewer.id not in stat_for:
        stat_for[viewer.id] = _weekly_stat_for(viewer, stats_by_user_id.get(viewer.id), viewer.id, graph)

    entries, self_entry = _rank_for_viewer(viewer, users, stat_for)
    return WeeklyLeaderboard(
        range=range_key,
        updated_at=_updated_at(stats_by_user_id.values(), now),
        entries=entries,
        self_entry=self_entry,
    )


async def _load_users(store: StatsStore, viewer: UserRecord, graph: SocialGraph) -> list[UserRecord]:
    user_ids = leaderboard_user_ids(viewer.id, graph)
    by_id = {user.id: user for user in await store.get_users_by_ids(user_ids)}
    by_id.setdefault(viewer.id, viewer)
    return [by_id[user_id] for user_id in user_ids if user_id in by_id]


async def load_daily_leaderboard(
    store: StatsStore,
    viewer: UserRecord,
    graph: SocialGraph,
    offset_days: int = 0,
    clock: Clock | None = None,
) -> DailyLeaderboard:
    """Read users and daily stats from the store and build the viewer's board.

    Each user's row is read at that user's own local date key, so "today"
    means each user's today.

    Args:
        store: Persistence port
        viewer: Viewing user
        graph: Viewer-relative social graph
        offset_days: 0 for today, -1 for yesterday
        clock: Time source

    Raises:
        StoreError: If a store read fails
    """
    now = (clock or SystemClock()).now()
    users = await _load_users(store, viewer, graph)
    groups = group_users_by_date_key(users, offset_days, now)
    batches = await asyncio.gather(
        *(store.get_daily_stats(ids, date_key) for date_key, ids in groups.items())
    )
    stats_by_user_id = {row.user_id: row for batch in batches for row in batch}

    board = build_daily_leaderboard(
        viewer,
        users,
        graph,
        stats_by_user_id,
        resolve_date_key_for_user(viewer, offset_days, now),
        now,
    )
    logger.debug(
        "leaderboard.daily.built",
        viewer_id=viewer.id,
        date=board.date,
        entries=len(board.entries),
    )
    return board


async def load_weekly_leaderboard(
    store: StatsStore,
    weekly_cache: "WeeklyStatsCache | None",
    viewer: UserRecord,
    graph: SocialGraph,
    range_key: str,
    clock: Clock | None = None,
) -> WeeklyLeaderboard:
    """Build the viewer's weekly board.

    Args:
        store: Persistence port (users, and stats when weekly_cache is None)
        weekly_cache: In-memory weekly cache to read from, or None to read
            the store directly
        viewer: Viewing user
        graph: Viewer-relative social graph
        range_key: Provider rolling-range key
        clock: Time source

    Raises:
        StoreError: If a store read fails
    """
    now = (clock or SystemClock()).now()
    users = await _load_users(store, viewer, graph)
    user_ids = [user.id for user in users]
    if weekly_cache is not None:
        rows = weekly_cache.get_stats(user_ids, range_key)
    else:
        rows = await store.get_weekly_stats(user_ids, range_key)
    stats_by_user_id = {row.user_id: row for row in rows}
    return build_weekly_leaderboard(viewer, users, graph, stats_by_user_id, range_key, now)


def slice_for_viewer(
    board: DailyLeaderboard | WeeklyLeaderboard,
    viewer: UserRecord,
    settings: Settings | None = None,
) -> LeaderboardSlice:
    """Split a built board into podium, near-me and rest buckets.

    Bucket sizes come from ``podium_count`` and ``around_count``.

    Args:
        board: Daily or weekly board from build_*/load_*
        viewer: Viewing user
        settings: Settings to read sizes from (defaults to get_settings())
    """
    settings = settings or get_settings()
    return slice_leaderboard(
        board.entries,
        viewer.username,
        podium_count=settings.podium_count,
        around_count=settings.around_count,
    )


def delta_text(entry: LeaderboardEntry | WeeklyLeaderboardEntry, settings: Settings | None = None) -> str:
    """Format an entry's delta against the viewer using ``delta_threshold_seconds``."""
    settings = settings or get_settings()
    return format_delta(entry.delta_seconds, settings.delta_threshold_seconds)
