"""Defensive accessors for WakaTime JSON payloads.

Payloads are stored verbatim and re-read by the achievement rules and the
backfill, so every accessor tolerates missing keys and wrong types.
"""

import math
from typing import Any

BREAKDOWN_KEYS: tuple[str, ...] = ("editors", "languages", "projects")


def as_object(value: Any) -> dict[str, Any] | None:
    """Return value if it is a JSON object, else None."""
    if isinstance(value, dict):
        return value
    return None


def as_number(value: Any) -> float | None:
    """Coerce a JSON number (or numeric string) to a finite float.

    Returns:
        The number, or None for booleans, non-finite and non-numeric values
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        return float(value) if math.isfinite(value) else None
    if isinstance(value, str):
        try:
            parsed = float(value)
        except ValueError:
            return None
        return parsed if math.isfinite(parsed) else None
    return None


def get_data(payload: Any) -> dict[str, Any] | None:
    """Return the top-level ``data`` object of a payload."""
    return as_object((as_object(payload) or {}).get("data"))


def get_path(payload: Any, *keys: str) -> Any:
    """Walk nested objects, returning None as soon as a key is missing."""
    current: Any = payload
    for key in keys:
        obj = as_object(current)
        if obj is None:
            return None
        current = obj.get(key)
    return current


def extract_named_entries(payload: Any, key: str) -> dict[str, float]:
    """Collect a breakdown list (editors, languages, projects) as name -> seconds.

    Entries with the same name are summed; entries with no positive time are
    dropped. Missing names are grouped under "unknown".

    Args:
        payload: Stored WakaTime response body
        key: Breakdown key under ``data``

    Returns:
        Mapping of entry name to seconds, in first-seen order
    """
    data = get_data(payload)
    entries = data.get(key) if data else None
    if not isinstance(entries, list):
        return {}

    result: dict[str, float] = {}
    for raw in entries:
        entry = as_object(raw)
        if entry is None:
            continue
        seconds = next(
            (
                number
                for number in (
                    as_number(entry.get("total_seconds")),
                    as_number(entry.get("seconds")),
                    as_number(entry.get("total")),
                )
                if number is not None
            ),
            0.0,
        )
        if seconds <= 0:
            continue
        name = entry.get("name")
        name = name.strip() if isinstance(name, str) and name.strip() else "unknown"
        result[name] = result.get(name, 0.0) + seconds
    return result


def merge_named_seconds(target: dict[str, float], values: dict[str, float]) -> None:
    """Add per-name seconds into target in place."""
    for name, seconds in values.items():
        target[name] = target.get(name, 0.0) + seconds


def to_named_entries(values: dict[str, float]) -> list[dict[str, Any]]:
    """Render name -> seconds back into WakaTime's list shape, largest first."""
    return [
        {"name": name, "total_seconds": seconds}
        for name, seconds in sorted(values.items(), key=lambda item: -item[1])
    ]


def extract_day_totals(payload: Any) -> list[float]:
    """Per-day totals from ``data.days[*].grand_total.total_seconds``.

    Returns:
        One value per listed day (0 for unreadable days); empty if the payload
        carries no day list
    """
    data = get_data(payload)
    days = data.get("days") if data else None
    if not isinstance(days, list):
        return []
    totals = []
    for day in days:
        seconds = as_number(get_path(day, "grand_total", "total_seconds"))
        if seconds is None:
            seconds = as_number(get_path(day, "total_seconds"))
        totals.append(max(seconds or 0.0, 0.0))
    return totals
