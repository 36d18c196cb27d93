"""Generic interpreter for the achievement rule table."""

from typing import Any

from app.achievements.models import AchievementRule, Metric
from app.core.dates import is_weekend_date_key
from app.shared.models import StatStatus
from app.wakatime.payload import extract_day_totals, extract_named_entries, get_data

DAYS_PER_WEEK = 7


def _breakdown(payload: Any, key: str) -> dict[str, float] | None:
    # None means the payload has no such list, which is not the same as zero entries
    data = get_data(payload)
    if data is None or not isinstance(data.get(key), list):
        return None
    return extract_named_entries(payload, key)


def compute_metric(
    metric: Metric,
    *,
    total_seconds: float,
    daily_average_seconds: float = 0,
    payload: Any = None,
) -> float | None:
    """Extract one measurable value from a fetch.

    Args:
        metric: Which value to compute
        total_seconds: Fetch total
        daily_average_seconds: Provider daily average (weekly fetches)
        payload: Stored provider body, may be None

    Returns:
        The value, or None when the fetch does not carry the data needed
    """
    if metric == "total_seconds":
        return float(total_seconds)
    if metric == "daily_average_seconds":
        if daily_average_seconds > 0:
            return float(daily_average_seconds)
        return total_seconds / DAYS_PER_WEEK

    if metric in ("editor_count", "language_count", "project_count"):
        key = {
            "editor_count": "editors",
            "language_count": "languages",
            "project_count": "projects",
        }[metric]
        entries = _breakdown(payload, key)
        return float(len(entries)) if entries is not None else None

    if metric == "top_project_seconds":
        projects = _breakdown(payload, "projects")
        if not projects:
            return None
        return max(projects.values())

    days = extract_day_totals(payload)
    if metric == "active_days":
        if not days:
            return None
        return float(sum(1 for seconds in days if seconds > 0))
    if metric == "min_day_seconds":
        if len(days) < DAYS_PER_WEEK:
            return None
        return min(days)

    raise ValueError(f"Unknown metric: {metric}")


def _compare(rule: AchievementRule, value: float) -> bool:
    if rule.comparison == "exactly":
        return value == rule.threshold
    return value >= rule.threshold


def _plain_number(value: float) -> int | float:
    return int(value) if float(value).is_integer() else round(value, 2)


def evaluate_rule(
    rule: AchievementRule,
    *,
    status: StatStatus,
    total_seconds: float,
    daily_average_seconds: float = 0,
    payload: Any = None,
    date_key: str | None = None,
) -> dict[str, Any] | None:
    """Check one rule against a fetch.

    Args:
        rule: Catalog entry
        status: Fetch status; only ok fetches can satisfy a rule
        total_seconds: Fetch total
        daily_average_seconds: Provider daily average (weekly fetches)
        payload: Stored provider body
        date_key: Local date key (daily fetches, for weekend rules)

    Returns:
        Grant metadata if the rule is satisfied, else None
    """
    if status != "ok":
        return None
    if total_seconds < rule.min_total_seconds:
        return None
    if rule.weekend_only and not (date_key and is_weekend_date_key(date_key)):
        return None

    value = compute_metric(
        rule.metric,
        total_seconds=total_seconds,
        daily_average_seconds=daily_average_seconds,
        payload=payload,
    )
    if value is None or not _compare(rule, value):
        return None

    return {
        "total_seconds": _plain_number(total_seconds),
        "metric": rule.metric,
        "value": _plain_number(value),
        "threshold": _plain_number(rule.threshold),
    }


def evaluate_rules(
    rules: tuple[AchievementRule, ...] | list[AchievementRule],
    **facts: Any,
) -> list[tuple[AchievementRule, dict[str, Any]]]:
    """Evaluate every rule, returning satisfied rules with their metadata."""
    matches = []
    for rule in rules:
        metadata = evaluate_rule(rule, **facts)
        if metadata is not None:
            matches.append((rule, metadata))
    return matches
