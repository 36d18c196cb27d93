"""Data models for the achievement rule table."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from app.shared.models import ContextKind

Metric = Literal[
    "total_seconds",
    "daily_average_seconds",
    "editor_count",
    "language_count",
    "project_count",
    "top_project_seconds",
    "active_days",
    "min_day_seconds",
]
Comparison = Literal["at_least", "exactly"]
Rarity = Literal["common", "rare", "epic", "legendary"]


class AchievementRule(BaseModel):
    """One catalog entry, evaluated by the generic rule interpreter.

    A rule fires for an ok fetch when ``metric`` compares to ``threshold``
    and the fetch total is at least ``min_total_seconds``.

    Attributes:
        id: Unique achievement identifier (stable, stored in grants)
        title: Display name
        description: What the user did
        icon: Emoji icon
        context_kind: daily or weekly
        metric: Value extracted from the fetch
        comparison: at_least (>=) or exactly (==)
        threshold: Value the metric is compared against
        min_total_seconds: Extra floor on the fetch total
        weekend_only: Only fire for Saturday/Sunday date keys
        honor_title: Title shown when this is the user's best achievement
        honor_priority: Higher wins during honor title fallback
        rarity: Display tier
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Unique achievement ID")
    title: str = Field(..., description="Achievement display name")
    description: str = Field(..., description="Achievement description")
    icon: str = Field(..., description="Achievement emoji")
    context_kind: ContextKind = Field(..., description="Grant bucket kind")
    metric: Metric = Field("total_seconds", description="Measured value")
    comparison: Comparison = Field("at_least", description="Comparison operator")
    threshold: float = Field(..., description="Threshold to earn")
    min_total_seconds: int = Field(0, ge=0, description="Minimum fetch total")
    weekend_only: bool = Field(False, description="Saturday/Sunday only")
    honor_title: str = Field(..., description="Honor title")
    honor_priority: int = Field(..., description="Honor title priority")
    rarity: Rarity = Field("rare", description="Display rarity")


class ComboRule(BaseModel):
    """Honor title earned by holding a combination of achievements.

    Attributes:
        title: Honor title awarded
        min_counts: achievement_id -> minimum unlock count, all required
        min_week_streak: Required consecutive-week run of ``streak_achievement_id``
        streak_achievement_id: Weekly achievement whose context keys form the streak
    """

    model_config = ConfigDict(frozen=True)

    title: str = Field(..., description="Honor title")
    min_counts: dict[str, int] = Field(default_factory=dict)
    min_week_streak: int = Field(0, ge=0)
    streak_achievement_id: str | None = None
