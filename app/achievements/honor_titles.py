"""Honor title resolution: one display title per user from their grants."""

from collections import defaultdict
from collections.abc import Iterable
from datetime import date, timedelta

from app.achievements.catalog import (
    COMBO_RULES,
    FALLBACK_HONOR_PRIORITY,
    FALLBACK_HONOR_TITLE,
    get_rule,
)
from app.achievements.models import ComboRule
from app.core.dates import iso_week_start_from_key
from app.shared.models import AchievementGrantSummary


def longest_week_streak(context_keys: Iterable[str]) -> int:
    """Length of the longest run of ISO weeks exactly 7 days apart.

    Keys that do not end in a valid ``YYYY-Www`` are ignored; duplicates count once.
    """
    starts: set[date] = set()
    for key in context_keys:
        start = iso_week_start_from_key(key)
        if start is not None:
            starts.add(start)

    longest = 0
    current = 0
    previous: date | None = None
    for start in sorted(starts):
        if previous is not None and start - previous == timedelta(days=7):
            current += 1
        else:
            current = 1
        longest = max(longest, current)
        previous = start
    return longest


def _honor(achievement_id: str) -> tuple[str, int]:
    rule = get_rule(achievement_id)
    if rule is None:
        return FALLBACK_HONOR_TITLE, FALLBACK_HONOR_PRIORITY
    return rule.honor_title, rule.honor_priority


def _combo_matches(
    combo: ComboRule,
    counts: dict[str, int],
    streak_keys: dict[str, set[str]],
) -> bool:
    if combo.min_week_streak and combo.streak_achievement_id:
        keys = streak_keys.get(combo.streak_achievement_id, set())
        if longest_week_streak(keys) < combo.min_week_streak:
            return False
    return all(counts.get(achievement_id, 0) >= n for achievement_id, n in combo.min_counts.items())


def resolve_honor_title(
    counts: dict[str, int],
    streak_keys: dict[str, set[str]] | None = None,
) -> str | None:
    """Pick a single honor title from one user's unlock counts.

    Combo rules are checked first, in declaration order. Otherwise the unlocked
    achievement with the highest honor priority wins, ties broken by higher
    count and then by achievement ID.

    Args:
        counts: achievement_id -> number of grants
        streak_keys: achievement_id -> weekly context keys, for streak combos

    Returns:
        Title, or None if the user has no unlocks
    """
    unlocked = {achievement_id: n for achievement_id, n in counts.items() if n >= 1}
    if not unlocked:
        return None

    for combo in COMBO_RULES:
        if _combo_matches(combo, unlocked, streak_keys or {}):
            return combo.title

    best_id = min(
        unlocked,
        key=lambda achievement_id: (
            -_honor(achievement_id)[1],
            -unlocked[achievement_id],
            achievement_id,
        ),
    )
    return _honor(best_id)[0]


def resolve_honor_titles_by_user_id(
    user_ids: Iterable[int],
    grants: Iterable[AchievementGrantSummary],
) -> dict[int, str | None]:
    """Resolve honor titles for a batch of users.

    Args:
        user_ids: Users to resolve (users without grants map to None)
        grants: Grant summaries for those users, typically from
            ``StatsStore.list_achievement_grants``

    Returns:
        user_id -> title or None
    """
    streak_ids = {combo.streak_achievement_id for combo in COMBO_RULES if combo.streak_achievement_id}
    counts: dict[int, dict[str, int]] = defaultdict(lambda: defaultdict(int))
    streak_keys: dict[int, dict[str, set[str]]] = defaultdict(lambda: defaultdict(set))

    for grant in grants:
        counts[grant.user_id][grant.achievement_id] += 1
        if grant.context_kind == "weekly" and grant.achievement_id in streak_ids:
            streak_keys[grant.user_id][grant.achievement_id].add(grant.context_key)

    return {
        user_id: resolve_honor_title(
            dict(counts.get(user_id, {})),
            {key: set(value) for key, value in streak_keys.get(user_id, {}).items()},
        )
        for user_id in user_ids
    }
