"""Tests for the daily status sync."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from app.shared.exceptions import PermanentStoreError, SyncError
from app.shared.models import ProviderResult
from app.sync.daily import DailyStatusSync


@pytest.mark.asyncio
async def test_sync_user_persists_and_awards(memory_store, mock_wakatime, fixed_clock):
    """Test one sync writes the daily row and grants daily achievements."""
    user = memory_store.add_user(1, "amy", api_key="waka_1", time_zone="UTC")
    sync = DailyStatusSync(memory_store, mock_wakatime, clock=fixed_clock)

    row = await sync.sync_user(user)

    assert row is not None
    assert row.total_seconds == 4 * 3600
    assert row.payload is None
    stored = memory_store.daily[(1, "2026-02-11")]
    assert stored.status == "ok"
    assert stored.fetched_at == fixed_clock.now()
    assert stored.payload is not None
    assert (1, "quick-boot-4h", "daily", "2026-02-11") in memory_store.grants
    mock_wakatime.fetch_today.assert_awaited_once_with("waka_1")


@pytest.mark.asyncio
async def test_sync_user_honors_ttl(memory_store, mock_wakatime, fixed_clock):
    """Test a fresh cached row is returned without calling the provider."""
    user = memory_store.add_user(1, "amy", api_key="waka_1", time_zone="UTC")
    sync = DailyStatusSync(memory_store, mock_wakatime, clock=fixed_clock, ttl_seconds=300)

    await sync.sync_user(user)
    fixed_clock.advance(299)
    await sync.sync_user(user)
    assert mock_wakatime.fetch_today.await_count == 1

    fixed_clock.advance(1)
    await sync.sync_user(user)
    assert mock_wakatime.fetch_today.await_count == 2


@pytest.mark.asyncio
async def test_sync_user_bypass_cache(memory_store, mock_wakatime, fixed_clock):
    """Test bypass_cache always fetches."""
    user = memory_store.add_user(1, "amy", api_key="waka_1", time_zone="UTC")
    sync = DailyStatusSync(memory_store, mock_wakatime, clock=fixed_clock)

    await sync.sync_user(user)
    await sync.sync_user(user, bypass_cache=True)

    assert mock_wakatime.fetch_today.await_count == 2


@pytest.mark.asyncio
async def test_zero_ttl_never_caches(memory_store, mock_wakatime, fixed_clock):
    """Test a TTL of 0 fetches on every call."""
    user = memory_store.add_user(1, "amy", api_key="waka_1", time_zone="UTC")
    sync = DailyStatusSync(memory_store, mock_wakatime, clock=fixed_clock, ttl_seconds=0)

    await sync.sync_user(user)
    await sync.sync_user(user)

    assert mock_wakatime.fetch_today.await_count == 2


@pytest.mark.asyncio
async def test_sync_user_without_api_key(memory_store, mock_wakatime, fixed_clock):
    """Test users without an API key are skipped."""
    user = memory_store.add_user(1, "amy", api_key="  ")
    sync = DailyStatusSync(memory_store, mock_wakatime, clock=fixed_clock)

    assert await sync.sync_user(user) is None
    mock_wakatime.fetch_today.assert_not_awaited()
    assert memory_store.daily == {}


@pytest.mark.asyncio
async def test_provider_date_and_time_zone_win(memory_store, mock_wakatime, fixed_clock):
    """Test the provider's date and zone are used and the zone is persisted."""
    user = memory_store.add_user(1, "amy", api_key="waka_1")
    mock_wakatime.fetch_today = AsyncMock(
        return_value=ProviderResult(
            status="ok",
            total_seconds=600,
            date_key="2026-02-12",
            time_zone="Pacific/Kiritimati",
        )
    )
    sync = DailyStatusSync(memory_store, mock_wakatime, clock=fixed_clock)

    row = await sync.sync_user(user)

    assert row is not None
    assert row.date_key == "2026-02-12"
    assert (1, "2026-02-12") in memory_store.daily
    assert memory_store.users[1].time_zone == "Pacific/Kiritimati"
    assert sync.get_cached(1, "2026-02-12") is row
    assert sync.get_cached(1, "2026-02-11") is row


@pytest.mark.asyncio
async def test_unchanged_time_zone_is_not_rewritten(memory_store, mock_wakatime, fixed_clock):
    """Test no time zone write when the provider agrees with the stored zone."""
    user = memory_store.add_user(1, "amy", api_key="waka_1", time_zone="UTC")
    sync = DailyStatusSync(memory_store, mock_wakatime, clock=fixed_clock)

    await sync.sync_user(user)

    assert "set_user_time_zone" not in memory_store.calls


@pytest.mark.asyncio
async def test_private_result_is_stored_without_grants(memory_store, mock_wakatime, fixed_clock):
    """Test non-ok results are persisted as rows but never grant."""
    user = memory_store.add_user(1, "amy", api_key="waka_1", time_zone="UTC")
    mock_wakatime.fetch_today = AsyncMock(
        return_value=ProviderResult(status="private", error="Stats are private", http_status=403)
    )
    sync = DailyStatusSync(memory_store, mock_wakatime, clock=fixed_clock)

    row = await sync.sync_user(user)

    assert row is not None
    assert row.status == "private"
    assert memory_store.daily[(1, "2026-02-11")].error == "Stats are private"
    assert memory_store.grants == {}


@pytest.mark.asyncio
async def test_store_error_propagates(memory_store, mock_wakatime, fixed_clock):
    """Test persistence failures surface to the caller."""
    user = memory_store.add_user(1, "amy", api_key="waka_1", time_zone="UTC")
    memory_store.failures["upsert_daily_stat"] = [PermanentStoreError("constraint violated")]
    sync = DailyStatusSync(memory_store, mock_wakatime, clock=fixed_clock)

    with pytest.raises(PermanentStoreError):
        await sync.sync_user(user)


@pytest.mark.asyncio
async def test_tick_isolates_failures(memory_store, mock_wakatime, fixed_clock):
    """Test one failing user does not stop the others."""
    memory_store.add_user(1, "amy", api_key="waka_1", time_zone="UTC")
    memory_store.add_user(2, "ben", api_key="waka_2", time_zone="UTC")
    memory_store.add_user(3, "cy")
    memory_store.failures["upsert_daily_stat"] = [PermanentStoreError("boom")]
    sync = DailyStatusSync(memory_store, mock_wakatime, clock=fixed_clock)

    succeeded = await sync.tick()

    assert succeeded == 1
    assert len(memory_store.daily) == 1
    assert mock_wakatime.fetch_today.await_count == 2


@pytest.mark.asyncio
async def test_start_and_stop(memory_store, mock_wakatime, fixed_clock):
    """Test the loop runs a first tick immediately and stops cleanly."""
    memory_store.add_user(1, "amy", api_key="waka_1", time_zone="UTC")
    sync = DailyStatusSync(memory_store, mock_wakatime, clock=fixed_clock, interval_seconds=3600)

    await sync.start()
    for _ in range(50):
        if memory_store.daily:
            break
        await asyncio.sleep(0.01)

    assert sync.running
    with pytest.raises(SyncError):
        await sync.start()

    await sync.stop()

    assert not sync.running
    assert (1, "2026-02-11") in memory_store.daily
