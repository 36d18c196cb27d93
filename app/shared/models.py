"""Data models for WakaWars."""

import json
from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field, SerializeAsAny, field_validator

StatStatus = Literal["ok", "private", "not_found", "error"]
StatsVisibility = Literal["everyone", "friends", "no_one"]
ContextKind = Literal["daily", "weekly"]

STAT_STATUSES: tuple[str, ...] = ("ok", "private", "not_found", "error")


def to_stat_status(value: str | None) -> StatStatus:
    """Coerce a stored status string, treating unknown values as errors."""
    if value in STAT_STATUSES:
        return value  # type: ignore[return-value]
    return "error"


def _ensure_utc(v: datetime | None) -> datetime | None:
    if v is None:
        return None
    if v.tzinfo is None:
        return v.replace(tzinfo=UTC)
    return v


def _decode_payload(value: Any) -> dict[str, Any] | None:
    # asyncpg hands back jsonb as text unless a codec is registered
    if value is None:
        return None
    if isinstance(value, str):
        decoded = json.loads(value)
        return decoded if isinstance(decoded, dict) else None
    if isinstance(value, dict):
        return value
    return None


class StatBase(BaseModel):
    """A fetch outcome for one user over one time bucket.

    Attributes:
        username: WakaWars username
        total_seconds: Coding time in the bucket (unused for ranking unless status is ok)
        status: Classified fetch status
        error: Human-readable error message for non-ok statuses
        fetched_at: When the provider was queried
    """

    username: str = Field(..., description="WakaWars username")
    total_seconds: int = Field(0, ge=0, description="Total coding seconds")
    status: StatStatus = Field(..., description="Fetch status")
    error: str | None = Field(None, description="Error message")
    fetched_at: datetime | None = Field(None, description="Fetch timestamp")

    @field_validator("fetched_at")
    @classmethod
    def ensure_timezone_aware(cls, v: datetime | None) -> datetime | None:
        """Ensure timestamp is timezone-aware, adding UTC if naive."""
        return _ensure_utc(v)


class DailyStat(StatBase):
    """Daily status for one user."""


class WeeklyStat(StatBase):
    """Rolling-range (weekly) stats for one user.

    Attributes:
        daily_average_seconds: Average coding seconds per day over the range
    """

    daily_average_seconds: int = Field(0, ge=0, description="Daily average seconds")


class LeaderboardEntry(DailyStat):
    """Daily stat annotated with rank and delta against the viewer."""

    rank: int | None = Field(None, description="Competition rank, None when unranked")
    delta_seconds: int = Field(0, description="total_seconds minus the viewer's total")


class WeeklyLeaderboardEntry(WeeklyStat):
    """Weekly stat annotated with rank and delta against the viewer."""

    rank: int | None = Field(None, description="Competition rank, None when unranked")
    delta_seconds: int = Field(0, description="total_seconds minus the viewer's total")


RankedEntry = LeaderboardEntry | WeeklyLeaderboardEntry


class LeaderboardSlice(BaseModel):
    """Leaderboard partitioned for display.

    Attributes:
        ordered: Every entry in display order
        podium: Top ranked entries
        near_me: Ranked entries around the viewer, excluding the podium
        rest: Everything not in podium or near_me, in display order
        self_entry: The viewer's ranked entry, if ranked
        leader_entry: The first ranked entry, if any
    """

    # Entries dump with their concrete fields (rank, delta_seconds, averages)
    ordered: list[SerializeAsAny[StatBase]] = Field(default_factory=list)
    podium: list[SerializeAsAny[StatBase]] = Field(default_factory=list)
    near_me: list[SerializeAsAny[StatBase]] = Field(default_factory=list)
    rest: list[SerializeAsAny[StatBase]] = Field(default_factory=list)
    self_entry: SerializeAsAny[StatBase] | None = None
    leader_entry: SerializeAsAny[StatBase] | None = None


class DailyLeaderboard(BaseModel):
    """Daily leaderboard as served to a viewer."""

    date: str = Field(..., description="Viewer's local date key")
    updated_at: datetime = Field(..., description="Latest fetch time among entries")
    entries: list[LeaderboardEntry] = Field(default_factory=list)
    self_entry: LeaderboardEntry | None = None


class WeeklyLeaderboard(BaseModel):
    """Weekly leaderboard as served to a viewer."""

    range: str = Field(..., description="Provider rolling-range key")
    updated_at: datetime = Field(..., description="Latest fetch time among entries")
    entries: list[WeeklyLeaderboardEntry] = Field(default_factory=list)
    self_entry: WeeklyLeaderboardEntry | None = None


class UserRecord(BaseModel):
    """A WakaWars account as needed by sync and leaderboard code.

    Attributes:
        id: Database ID
        username: WakaWars username (assumed to match the WakaTime username)
        api_key: WakaTime API key; users without one are never synced
        time_zone: Time zone reported by WakaTime, None until first sync
        stats_visibility: Who may see this user's stats
        is_competing: Whether the user appears on leaderboards
    """

    id: int = Field(..., description="User ID")
    username: str = Field(..., description="WakaWars username")
    api_key: str | None = Field(None, description="WakaTime API key")
    time_zone: str | None = Field(None, description="IANA time zone")
    stats_visibility: StatsVisibility = Field("friends", description="Stats visibility")
    is_competing: bool = Field(True, description="Shown on leaderboards")

    @property
    def has_api_key(self) -> bool:
        return bool(self.api_key and self.api_key.strip())


class SocialGraph(BaseModel):
    """Viewer-relative relationships supplied by the identity layer.

    Attributes:
        friend_ids: Users the viewer has added
        incoming_friend_ids: Users who have added the viewer
        group_peer_ids: Users sharing at least one group with the viewer
    """

    friend_ids: set[int] = Field(default_factory=set)
    incoming_friend_ids: set[int] = Field(default_factory=set)
    group_peer_ids: set[int] = Field(default_factory=set)


class ProviderResult(BaseModel):
    """Classified outcome of one WakaTime call.

    Attributes:
        status: Canonical status
        total_seconds: Extracted total (0 unless ok)
        daily_average_seconds: Extracted daily average (weekly calls only)
        error: Message for non-ok outcomes
        http_status: HTTP status code, None on transport failure
        payload: Raw JSON body for ok outcomes (breakdowns used by achievements)
        date_key: Provider-reported date for daily calls
        time_zone: Provider-reported time zone for daily calls
    """

    status: StatStatus = Field(..., description="Canonical status")
    total_seconds: int = Field(0, ge=0)
    daily_average_seconds: int = Field(0, ge=0)
    error: str | None = None
    http_status: int | None = None
    payload: dict[str, Any] | None = None
    date_key: str | None = None
    time_zone: str | None = None


class StoredDailyStat(BaseModel):
    """Persisted daily stat row keyed by (user_id, date_key)."""

    user_id: int = Field(..., description="User ID")
    username: str = Field("", description="WakaWars username")
    date_key: str = Field(..., description="Local date key YYYY-MM-DD")
    total_seconds: int = Field(0, ge=0)
    status: StatStatus = Field(...)
    error: str | None = None
    fetched_at: datetime = Field(...)
    payload: dict[str, Any] | None = None

    @field_validator("fetched_at")
    @classmethod
    def ensure_timezone_aware(cls, v: datetime) -> datetime:
        """Ensure timestamp is timezone-aware, adding UTC if naive."""
        return _ensure_utc(v)  # type: ignore[return-value]

    @classmethod
    def from_row(cls, row: Any) -> "StoredDailyStat":
        """Build from a database record.

        Args:
            row: asyncpg Record (or mapping) from ww_daily_stat

        Returns:
            StoredDailyStat instance
        """
        return cls(
            user_id=row["user_id"],
            username=row["username"] or "",
            date_key=row["date_key"],
            total_seconds=row["total_seconds"],
            status=to_stat_status(row["status"]),
            error=row["error"],
            fetched_at=row["fetched_at"],
            payload=_decode_payload(row["payload"]),
        )

    def to_daily_stat(self) -> DailyStat:
        return DailyStat(
            username=self.username,
            total_seconds=self.total_seconds,
            status=self.status,
            error=self.error,
            fetched_at=self.fetched_at,
        )


class StoredWeeklyStat(BaseModel):
    """Persisted weekly stat row keyed by (user_id, range_key)."""

    user_id: int = Field(..., description="User ID")
    username: str = Field("", description="WakaWars username")
    range_key: str = Field(..., description="Provider rolling-range key")
    total_seconds: int = Field(0, ge=0)
    daily_average_seconds: int = Field(0, ge=0)
    status: StatStatus = Field(...)
    error: str | None = None
    fetched_at: datetime = Field(...)
    payload: dict[str, Any] | None = None

    @field_validator("fetched_at")
    @classmethod
    def ensure_timezone_aware(cls, v: datetime) -> datetime:
        """Ensure timestamp is timezone-aware, adding UTC if naive."""
        return _ensure_utc(v)  # type: ignore[return-value]

    @classmethod
    def from_row(cls, row: Any) -> "StoredWeeklyStat":
        """Build from a database record.

        Args:
            row: asyncpg Record (or mapping) from ww_weekly_stat

        Returns:
            StoredWeeklyStat instance
        """
        return cls(
            user_id=row["user_id"],
            username=row["username"] or "",
            range_key=row["range_key"],
            total_seconds=row["total_seconds"],
            daily_average_seconds=row["daily_average_seconds"],
            status=to_stat_status(row["status"]),
            error=row["error"],
            fetched_at=row["fetched_at"],
            payload=_decode_payload(row["payload"]),
        )

    def to_weekly_stat(self) -> WeeklyStat:
        return WeeklyStat(
            username=self.username,
            total_seconds=self.total_seconds,
            daily_average_seconds=self.daily_average_seconds,
            status=self.status,
            error=self.error,
            fetched_at=self.fetched_at,
        )


class AchievementGrant(BaseModel):
    """One persisted achievement award.

    Unique on (user_id, achievement_id, context_kind, context_key).
    """

    user_id: int = Field(..., description="User ID")
    achievement_id: str = Field(..., description="Achievement ID")
    context_kind: ContextKind = Field(..., description="daily or weekly")
    context_key: str = Field(..., description="Date key or ISO week key")
    awarded_at: datetime = Field(..., description="When the qualifying fetch happened")
    metadata: dict[str, Any] | None = Field(None, description="Values that satisfied the rule")

    @field_validator("awarded_at")
    @classmethod
    def ensure_timezone_aware(cls, v: datetime) -> datetime:
        """Ensure timestamp is timezone-aware, adding UTC if naive."""
        return _ensure_utc(v)  # type: ignore[return-value]


class AchievementGrantSummary(BaseModel):
    """Grant identity without award details, used for honor titles."""

    user_id: int
    achievement_id: str
    context_kind: ContextKind
    context_key: str


class AchievementUnlock(BaseModel):
    """Per-user aggregate of grants for one achievement."""

    achievement_id: str = Field(..., description="Achievement ID")
    count: int = Field(..., ge=1, description="Number of grants")
    first_awarded_at: datetime = Field(...)
    last_awarded_at: datetime = Field(...)

    @field_validator("first_awarded_at", "last_awarded_at")
    @classmethod
    def ensure_timezone_aware(cls, v: datetime) -> datetime:
        """Ensure timestamp is timezone-aware, adding UTC if naive."""
        return _ensure_utc(v)  # type: ignore[return-value]


class AchievementDisplayItem(BaseModel):
    """An unlocked achievement as shown on another user's profile."""

    id: str
    title: str
    description: str
    icon: str
    rarity: str
    count: int
    first_awarded_at: datetime
    last_awarded_at: datetime


class AchievementBoardItem(BaseModel):
    """A catalog entry as shown to its owner, locked or unlocked."""

    id: str
    title: str
    description: str
    icon: str
    rarity: str
    count: int = 0
    unlocked: bool = False
    first_awarded_at: datetime | None = None
    last_awarded_at: datetime | None = None


class BackfillSummary(BaseModel):
    """Counters reported by an achievements backfill run."""

    users_count: int = 0
    achievements_before: int = 0
    achievements_after: int = 0
    achievements_created: int = 0
    daily_rows: int = 0
    daily_rows_ok: int = 0
    daily_rows_above_4h: int = 0
    daily_rows_with_payload: int = 0
    weekly_rows: int = 0
    weekly_rows_ok: int = 0
    weekly_rows_above_40h: int = 0
    weekly_buckets: int = 0
    daily_awards_processed: int = 0
    weekly_awards_processed: int = 0
    weekly_range_key: str = ""
