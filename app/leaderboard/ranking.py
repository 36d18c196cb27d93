"""Leaderboard ranking: ordering, competition ranks and viewer deltas.

Everything here is pure. Visibility filtering happens before stats reach
these functions (see app.leaderboard.builder).
"""

from collections.abc import Sequence
from typing import TypeVar

from app.shared.models import (
    LeaderboardEntry,
    LeaderboardSlice,
    RankedEntry,
    StatBase,
    WeeklyLeaderboardEntry,
    WeeklyStat,
)

StatT = TypeVar("StatT", bound=StatBase)

STATUS_ORDER: dict[str, int] = {
    "ok": 0,
    "private": 1,
    "not_found": 2,
    "error": 3,
}


def _sort_key(stat: StatBase) -> tuple[int, int, str]:
    return (STATUS_ORDER[stat.status], -stat.total_seconds, stat.username)


def sort_stats(stats: Sequence[StatT]) -> list[StatT]:
    """Order stats for display.

    Status first (ok, private, not_found, error), then total seconds
    descending, then username ascending.

    Args:
        stats: Stats in any order

    Returns:
        New list in display order
    """
    return sorted(stats, key=_sort_key)


def _to_entry(stat: StatBase, rank: int | None, delta_seconds: int) -> RankedEntry:
    entry_class = WeeklyLeaderboardEntry if isinstance(stat, WeeklyStat) else LeaderboardEntry
    data = stat.model_dump()
    data["rank"] = rank
    data["delta_seconds"] = delta_seconds
    return entry_class(**data)


def compute_leaderboard(stats: Sequence[StatBase], self_username: str) -> list[RankedEntry]:
    """Rank stats and annotate each with its delta against the viewer.

    Ranked (ok) entries share a rank when their totals are equal ("1,1,3").
    When every ranked entry is at zero, ranks are strictly sequential in
    display order instead. Non-ok entries always get rank None.

    Args:
        stats: DailyStat or WeeklyStat values
        self_username: Viewer's username; deltas are relative to their total

    Returns:
        LeaderboardEntry (or WeeklyLeaderboardEntry for weekly input) list
        in display order, same length as the input

    Example:
        >>> stats = [DailyStat(username="amy", total_seconds=1200, status="ok"), ...]
        >>> [e.rank for e in compute_leaderboard(stats, "mo")]
        [1, 1, 3]
    """
    ordered = sort_stats(stats)
    ranked = [stat for stat in ordered if stat.status == "ok"]
    break_zero_ties = bool(ranked) and all(stat.total_seconds == 0 for stat in ranked)

    self_stat = next((stat for stat in stats if stat.username == self_username), None)
    self_seconds = self_stat.total_seconds if self_stat else 0

    entries: list[RankedEntry] = []
    current_rank = 0
    last_seconds: int | None = None

    for index, stat in enumerate(ordered):
        is_ranked = stat.status == "ok"
        if is_ranked:
            if break_zero_ties or last_seconds is None or stat.total_seconds != last_seconds:
                current_rank = index + 1
                last_seconds = stat.total_seconds

        entries.append(
            _to_entry(
                stat,
                rank=current_rank if is_ranked else None,
                delta_seconds=stat.total_seconds - self_seconds,
            )
        )

    return entries


def slice_leaderboard(
    entries: Sequence[StatBase],
    self_username: str,
    podium_count: int = 3,
    around_count: int = 1,
) -> LeaderboardSlice:
    """Partition a leaderboard into podium, around-the-viewer and the rest.

    Only ok entries take part in the podium and near-me window. The three
    buckets are disjoint by username and together cover every entry, so
    near_me leaves out podium members and can omit the viewer (for example
    a viewer ranked second with the default podium of three).

    Args:
        entries: Leaderboard entries (or plain stats) in any order
        self_username: Viewer's username
        podium_count: Number of top ranked entries on the podium
        around_count: Ranked neighbours to show on each side of the viewer

    Returns:
        LeaderboardSlice with all buckets in display order
    """
    ordered = sort_stats(entries)
    ranked = [entry for entry in ordered if entry.status == "ok"]
    podium = ranked[:podium_count]

    self_index = next(
        (index for index, entry in enumerate(ranked) if entry.username == self_username),
        -1,
    )
    self_entry = ranked[self_index] if self_index >= 0 else None
    leader_entry = ranked[0] if ranked else None

    picked = {entry.username for entry in podium}

    near_me: list[StatBase] = []
    if self_index >= 0:
        start = max(0, self_index - around_count)
        end = min(len(ranked), self_index + around_count + 1)
        # Podium members are never repeated in the window
        near_me = [entry for entry in ranked[start:end] if entry.username not in picked]

    picked.update(entry.username for entry in near_me)
    rest = [entry for entry in ordered if entry.username not in picked]

    return LeaderboardSlice(
        ordered=ordered,
        podium=podium,
        near_me=near_me,
        rest=rest,
        self_entry=self_entry,
        leader_entry=leader_entry,
    )
