"""Tests for the achievement rule interpreter."""

from app.achievements.catalog import DAILY_RULES, WEEKLY_RULES, get_rule
from app.achievements.rules import compute_metric, evaluate_rule, evaluate_rules

HOUR = 3600


def _ids(matches) -> set[str]:
    return {rule.id for rule, _ in matches}


def test_daily_thresholds_are_inclusive():
    """Test a rule fires at exactly its threshold."""
    rule = get_rule("quick-boot-4h")
    assert rule is not None

    assert evaluate_rule(rule, status="ok", total_seconds=4 * HOUR) is not None
    assert evaluate_rule(rule, status="ok", total_seconds=4 * HOUR - 1) is None


def test_non_ok_status_never_fires():
    """Test private, not_found and error fetches never satisfy a rule."""
    rule = get_rule("quick-boot-4h")
    assert rule is not None

    for status in ("private", "not_found", "error"):
        assert evaluate_rule(rule, status=status, total_seconds=20 * HOUR) is None


def test_metadata_records_the_satisfying_values():
    """Test grant metadata carries the metric, value and threshold."""
    rule = get_rule("streak-forge-8h")
    assert rule is not None

    metadata = evaluate_rule(rule, status="ok", total_seconds=30000.0)

    assert metadata == {
        "total_seconds": 30000,
        "metric": "total_seconds",
        "value": 30000,
        "threshold": 8 * HOUR,
    }


def test_weekend_rules_need_a_weekend_date():
    """Test weekend-only rules check the date key."""
    rule = get_rule("weekend-warrior-8h")
    assert rule is not None

    # 2026-02-14 is a Saturday, 2026-02-11 a Wednesday
    assert evaluate_rule(rule, status="ok", total_seconds=9 * HOUR, date_key="2026-02-14")
    assert evaluate_rule(rule, status="ok", total_seconds=9 * HOUR, date_key="2026-02-11") is None
    assert evaluate_rule(rule, status="ok", total_seconds=9 * HOUR) is None


def test_daily_unlock_set_for_twelve_hour_single_editor_day():
    """Test a 12h single-editor weekday unlocks the expected daily set."""
    payload = {
        "data": {
            "grand_total": {"total_seconds": 12 * HOUR},
            "editors": [{"name": "VS Code", "total_seconds": 12 * HOUR}],
        }
    }

    ids = _ids(
        evaluate_rules(
            DAILY_RULES,
            status="ok",
            total_seconds=12 * HOUR,
            payload=payload,
            date_key="2026-02-10",
        )
    )

    assert ids == {
        "quick-boot-4h",
        "focus-reactor-6h",
        "streak-forge-8h",
        "overclocked-core-10h",
        "merge-mountain-12h",
        "solo-day-8h",
    }
    assert "legendary-commit-16h" not in ids


def test_weekly_unlock_set_for_eighty_five_hour_week():
    """Test an 85h single-editor, five-language week unlocks the expected set."""
    payload = {
        "data": {
            "total_seconds": 85 * HOUR,
            "range": {"end": "2026-02-10"},
            "editors": [{"name": "VS Code", "total_seconds": 85 * HOUR}],
            "languages": [
                {"name": "TypeScript", "total_seconds": 20 * HOUR},
                {"name": "JavaScript", "total_seconds": 18 * HOUR},
                {"name": "Go", "total_seconds": 16 * HOUR},
                {"name": "Rust", "total_seconds": 14 * HOUR},
                {"name": "SQL", "total_seconds": 17 * HOUR},
            ],
        }
    }

    ids = _ids(
        evaluate_rules(
            WEEKLY_RULES,
            status="ok",
            total_seconds=85 * HOUR,
            daily_average_seconds=round(85 * HOUR / 7),
            payload=payload,
        )
    )

    assert ids == {
        "workweek-warrior-40h",
        "ship-it-60h",
        "green-wall-80h",
        "mono-stack-80h",
        "polyglot-stack-80h",
        "language-hydra-80h",
        "marathon-pace-8h",
        "ultra-pace-10h",
    }


def test_breakdown_rules_need_the_minimum_total():
    """Test breakdown rules also require the total floor."""
    rule = get_rule("solo-day-8h")
    assert rule is not None
    payload = {"data": {"editors": [{"name": "vim", "total_seconds": 7 * HOUR}]}}

    assert evaluate_rule(rule, status="ok", total_seconds=7 * HOUR, payload=payload) is None


def test_exact_comparison():
    """Test 'exactly' rules reject larger counts."""
    rule = get_rule("solo-day-8h")
    assert rule is not None
    payload = {
        "data": {
            "editors": [
                {"name": "vim", "total_seconds": 5 * HOUR},
                {"name": "emacs", "total_seconds": 4 * HOUR},
            ]
        }
    }

    assert evaluate_rule(rule, status="ok", total_seconds=9 * HOUR, payload=payload) is None


def test_compute_metric_without_payload():
    """Test payload-based metrics are unavailable without a payload."""
    for metric in ("editor_count", "language_count", "project_count", "top_project_seconds", "active_days", "min_day_seconds"):
        assert compute_metric(metric, total_seconds=100 * HOUR) is None


def test_compute_metric_daily_average_fallback():
    """Test the daily average falls back to total / 7."""
    assert compute_metric("daily_average_seconds", total_seconds=70) == 10
    assert compute_metric("daily_average_seconds", total_seconds=70, daily_average_seconds=12) == 12


def test_compute_metric_day_coverage():
    """Test active days and minimum day over a seven-day list."""
    payload = {
        "data": {
            "days": [{"grand_total": {"total_seconds": seconds}} for seconds in (5, 6, 7, 8, 9, 10, 0)]
        }
    }

    assert compute_metric("active_days", total_seconds=45, payload=payload) == 6
    assert compute_metric("min_day_seconds", total_seconds=45, payload=payload) == 0


def test_compute_metric_min_day_needs_full_week():
    """Test a short day list cannot prove a full week."""
    payload = {"data": {"days": [{"grand_total": {"total_seconds": 5 * HOUR}}] * 6}}

    assert compute_metric("min_day_seconds", total_seconds=30 * HOUR, payload=payload) is None


def test_compute_metric_top_project():
    """Test the largest single project is measured."""
    payload = {
        "data": {
            "projects": [
                {"name": "api", "total_seconds": 3 * HOUR},
                {"name": "web", "total_seconds": 5 * HOUR},
                {"name": "api", "total_seconds": 4 * HOUR},
            ]
        }
    }

    assert compute_metric("top_project_seconds", total_seconds=12 * HOUR, payload=payload) == 7 * HOUR
