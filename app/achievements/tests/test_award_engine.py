"""Tests for achievement award entry points and projections."""

from datetime import UTC, datetime, timedelta

import pytest

from app.achievements.catalog import ACHIEVEMENT_RULES
from app.achievements.engine import (
    award_daily_achievements,
    award_weekly_achievements,
    load_profile_achievements,
    to_achievement_board,
    to_achievement_display,
    weekly_context_key,
)
from app.shared.models import AchievementBoardItem, AchievementUnlock, SocialGraph

HOUR = 3600
FETCHED_AT = datetime(2026, 2, 11, 12, 0, tzinfo=UTC)


@pytest.mark.asyncio
async def test_daily_award_is_idempotent(memory_store):
    """Test repeated calls with the same arguments keep one grant per key."""
    for _ in range(2):
        granted = await award_daily_achievements(
            memory_store, 1, "2026-02-11", "ok", 6 * HOUR, fetched_at=FETCHED_AT
        )

    assert granted == ["quick-boot-4h", "focus-reactor-6h"]
    assert sorted(memory_store.grants) == [
        (1, "focus-reactor-6h", "daily", "2026-02-11"),
        (1, "quick-boot-4h", "daily", "2026-02-11"),
    ]


@pytest.mark.asyncio
async def test_daily_award_records_metadata(memory_store):
    """Test grants carry the fetch time and the satisfying values."""
    await award_daily_achievements(memory_store, 1, "2026-02-11", "ok", 4 * HOUR, fetched_at=FETCHED_AT)

    grant = memory_store.grants[(1, "quick-boot-4h", "daily", "2026-02-11")]
    assert grant.awarded_at == FETCHED_AT
    assert grant.metadata == {
        "total_seconds": 4 * HOUR,
        "metric": "total_seconds",
        "value": 4 * HOUR,
        "threshold": 4 * HOUR,
    }


@pytest.mark.asyncio
async def test_awards_without_fetch_time_use_clock(memory_store, fixed_clock):
    """Test awarded_at comes from the injected clock when fetched_at is missing."""
    await award_daily_achievements(memory_store, 1, "2026-02-11", "ok", 4 * HOUR, clock=fixed_clock)
    await award_weekly_achievements(
        memory_store, 1, "last_7_days", "ok", 41 * HOUR, clock=fixed_clock
    )

    daily = memory_store.grants[(1, "quick-boot-4h", "daily", "2026-02-11")]
    weekly = memory_store.grants[(1, "workweek-warrior-40h", "weekly", "2026-W07")]
    assert daily.awarded_at == fixed_clock.now()
    assert weekly.awarded_at == fixed_clock.now()


@pytest.mark.parametrize("status", ["private", "not_found", "error"])
@pytest.mark.asyncio
async def test_non_ok_fetches_never_grant(memory_store, status: str) -> None:
    """Test non-ok statuses short-circuit before any store call."""
    assert await award_daily_achievements(memory_store, 1, "2026-02-11", status, 20 * HOUR) == []
    assert await award_weekly_achievements(memory_store, 1, "last_7_days", status, 200 * HOUR) == []
    assert memory_store.calls == []


@pytest.mark.asyncio
async def test_weekly_refetches_within_a_week_share_one_grant(memory_store):
    """Test a rolling range fetched many times in one ISO week grants once."""
    for day in range(3):
        await award_weekly_achievements(
            memory_store,
            1,
            "last_7_days",
            "ok",
            41 * HOUR,
            fetched_at=FETCHED_AT + timedelta(days=day),
        )

    assert list(memory_store.grants) == [(1, "workweek-warrior-40h", "weekly", "2026-W07")]
    grant = memory_store.grants[(1, "workweek-warrior-40h", "weekly", "2026-W07")]
    assert grant.metadata is not None
    assert grant.metadata["range_key"] == "last_7_days"


@pytest.mark.asyncio
async def test_weekly_context_follows_payload_range(memory_store):
    """Test the payload's range end decides the week over the fetch time."""
    payload = {"data": {"range": {"end": "2026-02-01T23:59:59Z"}}}

    await award_weekly_achievements(
        memory_store, 1, "last_7_days", "ok", 41 * HOUR, payload=payload, fetched_at=FETCHED_AT
    )

    assert (1, "workweek-warrior-40h", "weekly", "2026-W05") in memory_store.grants


def test_weekly_context_key():
    """Test ISO week keys from payload dates and fetch times."""
    assert weekly_context_key({"data": {"range": {"end": "2026-02-10"}}}, FETCHED_AT) == "2026-W07"
    assert weekly_context_key({"data": {"end": "2026-01-01T00:00:00Z"}}, FETCHED_AT) == "2026-W01"
    assert weekly_context_key({"data": {"range": {"end": "2027-01-01"}}}, FETCHED_AT) == "2026-W53"
    assert weekly_context_key({"data": {"range": {"end": "garbage"}}}, FETCHED_AT) == "2026-W07"
    assert weekly_context_key(None, datetime(2026, 1, 4, 23, 30)) == "2026-W01"


def _unlock(achievement_id: str, count: int = 1) -> AchievementUnlock:
    return AchievementUnlock(
        achievement_id=achievement_id,
        count=count,
        first_awarded_at=FETCHED_AT - timedelta(days=7),
        last_awarded_at=FETCHED_AT,
    )


def test_achievement_board_lists_whole_catalog():
    """Test the owner's board includes locked entries in catalog order."""
    board = to_achievement_board([_unlock("streak-forge-8h", 3)])

    assert [item.id for item in board] == [rule.id for rule in ACHIEVEMENT_RULES]
    unlocked = next(item for item in board if item.id == "streak-forge-8h")
    locked = next(item for item in board if item.id == "legendary-commit-16h")
    assert unlocked.unlocked
    assert unlocked.count == 3
    assert not locked.unlocked
    assert locked.count == 0
    assert locked.first_awarded_at is None


def test_achievement_display_lists_unlocked_only():
    """Test other viewers see unlocked entries only, unknown IDs dropped."""
    display = to_achievement_display(
        [_unlock("workweek-warrior-40h"), _unlock("quick-boot-4h", 2), _unlock("retired-badge")]
    )

    assert [item.id for item in display] == ["quick-boot-4h", "workweek-warrior-40h"]
    assert display[0].count == 2


@pytest.mark.asyncio
async def test_load_profile_achievements_visibility(memory_store):
    """Test owners get the board, permitted viewers the display, others nothing."""
    owner = memory_store.add_user(1, "amy", stats_visibility="friends")
    await award_daily_achievements(memory_store, 1, "2026-02-11", "ok", 4 * HOUR, fetched_at=FETCHED_AT)

    own = await load_profile_achievements(memory_store, 1, owner, SocialGraph())
    friend = await load_profile_achievements(
        memory_store, 2, owner, SocialGraph(friend_ids={1}, incoming_friend_ids={1})
    )
    stranger = await load_profile_achievements(memory_store, 3, owner, SocialGraph())

    assert own is not None
    assert isinstance(own[0], AchievementBoardItem)
    assert len(own) == len(ACHIEVEMENT_RULES)
    assert friend is not None
    assert [item.id for item in friend] == ["quick-boot-4h"]
    assert stranger is None
