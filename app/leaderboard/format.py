"""Human-readable durations and status labels for leaderboard rows."""

import math

from app.shared.models import StatStatus

DEFAULT_DELTA_THRESHOLD_SECONDS = 300

STATUS_LABELS: dict[str, str] = {
    "private": "Private",
    "not_found": "Not found",
    "error": "—",
}


def format_duration(seconds: float) -> str:
    """Format seconds as '45m', '2h' or '2h 5m' (rounded to the minute).

    Negative and non-finite values format as zero.
    """
    safe_seconds = max(0.0, seconds) if math.isfinite(seconds) else 0.0
    # Round half up
    total_minutes = math.floor(safe_seconds / 60 + 0.5)
    hours, minutes = divmod(total_minutes, 60)

    if hours == 0:
        return f"{minutes}m"
    if minutes == 0:
        return f"{hours}h"
    return f"{hours}h {minutes}m"


def format_delta(
    delta_seconds: float, threshold_seconds: int = DEFAULT_DELTA_THRESHOLD_SECONDS
) -> str:
    """Format a signed difference, collapsing small deltas to zero.

    Args:
        delta_seconds: Entry total minus the viewer's total
        threshold_seconds: Deltas with a smaller magnitude render as '0m'

    Returns:
        '+1h 5m', '-12m', '0m', or '—' for non-finite input
    """
    if not math.isfinite(delta_seconds):
        return STATUS_LABELS["error"]

    if abs(delta_seconds) < threshold_seconds:
        return format_duration(0)

    sign = "+" if delta_seconds > 0 else "-"
    return f"{sign}{format_duration(abs(delta_seconds))}"


def status_label(status: StatStatus) -> str | None:
    """Display text for a non-ok row, or None when the duration should show."""
    return STATUS_LABELS.get(status)
