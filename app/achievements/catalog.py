"""Achievement catalog, honor titles and combo rules.

The catalog is data: adding an achievement means adding a row here, never new
evaluation code. Order matters only for display (daily rules first, then
weekly, each roughly by difficulty).
"""

from app.achievements.models import AchievementRule, ComboRule

HOUR = 60 * 60

# Title used when a grant references an id that is no longer in the catalog
FALLBACK_HONOR_TITLE = "Achievement Hunter"
FALLBACK_HONOR_PRIORITY = 0

ACHIEVEMENT_RULES: tuple[AchievementRule, ...] = (
    # Daily totals
    AchievementRule(
        id="quick-boot-4h",
        title="Quick Boot",
        description="Code for 4 hours in a single day",
        icon="⚡",
        context_kind="daily",
        threshold=4 * HOUR,
        honor_title="Daybreak Sprinter",
        honor_priority=1,
        rarity="common",
    ),
    AchievementRule(
        id="focus-reactor-6h",
        title="Focus Reactor",
        description="Code for 6 hours in a single day",
        icon="🔋",
        context_kind="daily",
        threshold=6 * HOUR,
        honor_title="Focus Reactor",
        honor_priority=2,
        rarity="common",
    ),
    AchievementRule(
        id="streak-forge-8h",
        title="Streak Forge",
        description="Code for 8 hours in a single day",
        icon="🔥",
        context_kind="daily",
        threshold=8 * HOUR,
        honor_title="Green Wall Initiate",
        honor_priority=3,
    ),
    AchievementRule(
        id="overclocked-core-10h",
        title="Overclocked Core",
        description="Code for 10 hours in a single day",
        icon="🧠",
        context_kind="daily",
        threshold=10 * HOUR,
        honor_title="Overclock Core",
        honor_priority=4,
    ),
    AchievementRule(
        id="merge-mountain-12h",
        title="Merge Mountain",
        description="Code for 12 hours in a single day",
        icon="⛰️",
        context_kind="daily",
        threshold=12 * HOUR,
        honor_title="Merge Mountain Slayer",
        honor_priority=5,
        rarity="epic",
    ),
    AchievementRule(
        id="night-shift-14h",
        title="Night Shift",
        description="Code for 14 hours in a single day",
        icon="🌙",
        context_kind="daily",
        threshold=14 * HOUR,
        honor_title="Night Shift Sentinel",
        honor_priority=6,
        rarity="epic",
    ),
    AchievementRule(
        id="legendary-commit-16h",
        title="Legendary Commit",
        description="Code for 16 hours in a single day",
        icon="👑",
        context_kind="daily",
        threshold=16 * HOUR,
        honor_title="Commit Overlord",
        honor_priority=8,
        rarity="legendary",
    ),
    AchievementRule(
        id="boss-raid-20h",
        title="Boss Raid",
        description="Code for 20 hours in a single day",
        icon="🐉",
        context_kind="daily",
        threshold=20 * HOUR,
        honor_title="Boss Raider",
        honor_priority=10,
        rarity="legendary",
    ),
    # Daily weekend totals
    AchievementRule(
        id="weekend-warrior-8h",
        title="Weekend Warrior",
        description="Code for 8 hours on a Saturday or Sunday",
        icon="⚔️",
        context_kind="daily",
        threshold=8 * HOUR,
        weekend_only=True,
        honor_title="Weekend Warrior",
        honor_priority=2,
        rarity="common",
    ),
    AchievementRule(
        id="weekend-overdrive-12h",
        title="Weekend Overdrive",
        description="Code for 12 hours on a Saturday or Sunday",
        icon="🏎️",
        context_kind="daily",
        threshold=12 * HOUR,
        weekend_only=True,
        honor_title="Weekend Overdrive",
        honor_priority=4,
    ),
    # Daily breakdowns
    AchievementRule(
        id="solo-day-8h",
        title="Solo Day",
        description="Code for 8 hours in one day using a single editor",
        icon="🗡️",
        context_kind="daily",
        metric="editor_count",
        comparison="exactly",
        threshold=1,
        min_total_seconds=8 * HOUR,
        honor_title="Solo Blade",
        honor_priority=3,
    ),
    AchievementRule(
        id="switchblade-day-8h",
        title="Switchblade Day",
        description="Code for 8 hours in one day across 3 or more editors",
        icon="🔀",
        context_kind="daily",
        metric="editor_count",
        threshold=3,
        min_total_seconds=8 * HOUR,
        honor_title="Switchblade",
        honor_priority=4,
        rarity="epic",
    ),
    AchievementRule(
        id="mono-language-day-8h",
        title="Mono Language Day",
        description="Code for 8 hours in one day in a single language",
        icon="🎯",
        context_kind="daily",
        metric="language_count",
        comparison="exactly",
        threshold=1,
        min_total_seconds=8 * HOUR,
        honor_title="Mono Tongue",
        honor_priority=4,
    ),
    AchievementRule(
        id="language-juggler-day-8h",
        title="Language Juggler",
        description="Code for 8 hours in one day across 4 or more languages",
        icon="🤹",
        context_kind="daily",
        metric="language_count",
        threshold=4,
        min_total_seconds=8 * HOUR,
        honor_title="Language Juggler",
        honor_priority=5,
        rarity="epic",
    ),
    AchievementRule(
        id="deep-focus-day-8h",
        title="Deep Focus Day",
        description="Spend 8 hours on a single project in one day",
        icon="🤿",
        context_kind="daily",
        metric="top_project_seconds",
        threshold=8 * HOUR,
        honor_title="Deep Focus Diver",
        honor_priority=4,
    ),
    # Weekly totals
    AchievementRule(
        id="workweek-warrior-40h",
        title="Workweek Warrior",
        description="Code for 40 hours in a week",
        icon="💼",
        context_kind="weekly",
        threshold=40 * HOUR,
        honor_title="Workweek Warrior",
        honor_priority=5,
        rarity="common",
    ),
    AchievementRule(
        id="ship-it-60h",
        title="Ship It",
        description="Code for 60 hours in a week",
        icon="🚢",
        context_kind="weekly",
        threshold=60 * HOUR,
        honor_title="Release Captain",
        honor_priority=6,
    ),
    AchievementRule(
        id="green-wall-80h",
        title="Green Wall",
        description="Code for 80 hours in a week",
        icon="🟩",
        context_kind="weekly",
        threshold=80 * HOUR,
        honor_title="Green Wall Commander",
        honor_priority=7,
        rarity="epic",
    ),
    AchievementRule(
        id="graph-overflow-100h",
        title="Graph Overflow",
        description="Code for 100 hours in a week",
        icon="📈",
        context_kind="weekly",
        threshold=100 * HOUR,
        honor_title="Graph Breaker",
        honor_priority=9,
        rarity="legendary",
    ),
    AchievementRule(
        id="matrix-120h",
        title="Matrix",
        description="Code for 120 hours in a week",
        icon="🕶️",
        context_kind="weekly",
        threshold=120 * HOUR,
        honor_title="Matrix Sovereign",
        honor_priority=10,
        rarity="legendary",
    ),
    # Weekly breakdowns
    AchievementRule(
        id="mono-stack-80h",
        title="Mono Stack",
        description="Code for 80 hours in a week using a single editor",
        icon="🛡️",
        context_kind="weekly",
        metric="editor_count",
        comparison="exactly",
        threshold=1,
        min_total_seconds=80 * HOUR,
        honor_title="Solo Stack Hero",
        honor_priority=7,
        rarity="legendary",
    ),
    AchievementRule(
        id="mono-stack-100h",
        title="Mono Stack Mythic",
        description="Code for 100 hours in a week using a single editor",
        icon="🏰",
        context_kind="weekly",
        metric="editor_count",
        comparison="exactly",
        threshold=1,
        min_total_seconds=100 * HOUR,
        honor_title="Solo Stack Mythic",
        honor_priority=9,
        rarity="legendary",
    ),
    AchievementRule(
        id="polyglot-stack-80h",
        title="Polyglot Stack",
        description="Code for 80 hours in a week across 3 or more languages",
        icon="🗣️",
        context_kind="weekly",
        metric="language_count",
        threshold=3,
        min_total_seconds=80 * HOUR,
        honor_title="Polyglot General",
        honor_priority=7,
        rarity="epic",
    ),
    AchievementRule(
        id="language-hydra-80h",
        title="Language Hydra",
        description="Code for 80 hours in a week across 5 or more languages",
        icon="🐍",
        context_kind="weekly",
        metric="language_count",
        threshold=5,
        min_total_seconds=80 * HOUR,
        honor_title="Language Hydra",
        honor_priority=8,
        rarity="epic",
    ),
    AchievementRule(
        id="language-spectrum-80h",
        title="Language Spectrum",
        description="Code for 80 hours in a week across 7 or more languages",
        icon="🌈",
        context_kind="weekly",
        metric="language_count",
        threshold=7,
        min_total_seconds=80 * HOUR,
        honor_title="Spectrum Master",
        honor_priority=9,
        rarity="legendary",
    ),
    AchievementRule(
        id="editor-arsenal-80h",
        title="Editor Arsenal",
        description="Code for 80 hours in a week across 3 or more editors",
        icon="🧰",
        context_kind="weekly",
        metric="editor_count",
        threshold=3,
        min_total_seconds=80 * HOUR,
        honor_title="Editor Arsenal",
        honor_priority=8,
        rarity="legendary",
    ),
    AchievementRule(
        id="project-monolith-80h",
        title="Project Monolith",
        description="Code for 80 hours in a week on a single project",
        icon="🗿",
        context_kind="weekly",
        metric="project_count",
        comparison="exactly",
        threshold=1,
        min_total_seconds=80 * HOUR,
        honor_title="Monolith Architect",
        honor_priority=7,
        rarity="epic",
    ),
    AchievementRule(
        id="project-nomad-80h",
        title="Project Nomad",
        description="Code for 80 hours in a week across 5 or more projects",
        icon="🧭",
        context_kind="weekly",
        metric="project_count",
        threshold=5,
        min_total_seconds=80 * HOUR,
        honor_title="Project Nomad",
        honor_priority=7,
        rarity="epic",
    ),
    # Weekly day coverage
    AchievementRule(
        id="seven-sunrise-week",
        title="Seven Sunrises",
        description="Code on all 7 days of a week",
        icon="🌅",
        context_kind="weekly",
        metric="active_days",
        threshold=7,
        honor_title="Seven Sunrises",
        honor_priority=4,
        rarity="common",
    ),
    AchievementRule(
        id="iron-week-4h",
        title="Iron Week",
        description="Code for at least 4 hours on every day of a week",
        icon="⚙️",
        context_kind="weekly",
        metric="min_day_seconds",
        threshold=4 * HOUR,
        honor_title="Iron Week",
        honor_priority=6,
        rarity="epic",
    ),
    # Weekly pace
    AchievementRule(
        id="marathon-pace-8h",
        title="Marathon Pace",
        description="Average 8 hours a day over a week",
        icon="🏃",
        context_kind="weekly",
        metric="daily_average_seconds",
        threshold=8 * HOUR,
        honor_title="Marathon Coder",
        honor_priority=7,
    ),
    AchievementRule(
        id="ultra-pace-10h",
        title="Ultra Pace",
        description="Average 10 hours a day over a week",
        icon="🚀",
        context_kind="weekly",
        metric="daily_average_seconds",
        threshold=10 * HOUR,
        honor_title="Turbo Engine",
        honor_priority=8,
        rarity="legendary",
    ),
)

ACHIEVEMENTS_BY_ID: dict[str, AchievementRule] = {rule.id: rule for rule in ACHIEVEMENT_RULES}

DAILY_RULES: tuple[AchievementRule, ...] = tuple(
    rule for rule in ACHIEVEMENT_RULES if rule.context_kind == "daily"
)
WEEKLY_RULES: tuple[AchievementRule, ...] = tuple(
    rule for rule in ACHIEVEMENT_RULES if rule.context_kind == "weekly"
)

# Weekly achievement whose consecutive ISO weeks form the streak combos
WEEK_STREAK_ACHIEVEMENT_ID = "workweek-warrior-40h"

# Checked in order; the first match wins
COMBO_RULES: tuple[ComboRule, ...] = (
    ComboRule(
        title="Emperor of Weeks",
        min_week_streak=8,
        streak_achievement_id=WEEK_STREAK_ACHIEVEMENT_ID,
    ),
    ComboRule(
        title="Sultan of Weeks",
        min_week_streak=4,
        streak_achievement_id=WEEK_STREAK_ACHIEVEMENT_ID,
    ),
    ComboRule(title="Matrix Deity", min_counts={"matrix-120h": 2}),
    ComboRule(title="Overflow Breaker", min_counts={"graph-overflow-100h": 2}),
    ComboRule(title="Eternal Green Wall", min_counts={"green-wall-80h": 4}),
    ComboRule(
        title="Master of All Trades",
        min_counts={"language-spectrum-80h": 1, "editor-arsenal-80h": 1},
    ),
    ComboRule(
        title="Solo Stack Titan",
        min_counts={"mono-stack-100h": 1, "project-monolith-80h": 1},
    ),
    ComboRule(
        title="Unstoppable Machine",
        min_counts={"ultra-pace-10h": 2, "iron-week-4h": 2},
    ),
)


def get_rule(achievement_id: str) -> AchievementRule | None:
    """Look up a catalog entry by ID."""
    return ACHIEVEMENTS_BY_ID.get(achievement_id)
