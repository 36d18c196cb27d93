"""Shared fixtures for sync tests."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from app.shared.models import ProviderResult


@pytest.fixture
def mock_wakatime():
    """WakaTime client double whose calls return ok results.

    Returns:
        MagicMock with fetch_today and fetch_range as AsyncMocks
    """
    client = MagicMock()
    client.fetch_today = AsyncMock(
        return_value=ProviderResult(
            status="ok",
            total_seconds=4 * 3600,
            http_status=200,
            payload={
                "data": {
                    "grand_total": {"total_seconds": 4 * 3600},
                    "range": {"date": "2026-02-11", "timezone": "UTC"},
                }
            },
            date_key="2026-02-11",
            time_zone="UTC",
        )
    )
    client.fetch_range = AsyncMock(
        return_value=ProviderResult(
            status="ok",
            total_seconds=42 * 3600,
            daily_average_seconds=6 * 3600,
            http_status=200,
            payload={"data": {"total_seconds": 42 * 3600, "range": {"end": "2026-02-11T23:59:59Z"}}},
        )
    )
    return client
