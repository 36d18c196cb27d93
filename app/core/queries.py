"""SQL constants for the stats store."""

# Schema bootstrap, safe to run on every start
CREATE_SCHEMA = """
    CREATE TABLE IF NOT EXISTS ww_user (
        id SERIAL PRIMARY KEY,
        wakawars_username TEXT NOT NULL UNIQUE,
        api_key TEXT,
        wakatime_timezone TEXT,
        stats_visibility TEXT NOT NULL DEFAULT 'friends',
        is_competing BOOLEAN NOT NULL DEFAULT TRUE,
        created_at TIMESTAMP NOT NULL DEFAULT NOW()
    );

    CREATE TABLE IF NOT EXISTS ww_daily_stat (
        id SERIAL PRIMARY KEY,
        user_id INTEGER NOT NULL REFERENCES ww_user(id) ON DELETE CASCADE,
        date_key TEXT NOT NULL,
        total_seconds INTEGER NOT NULL DEFAULT 0,
        status TEXT NOT NULL,
        error TEXT,
        fetched_at TIMESTAMP NOT NULL,
        payload JSONB,
        UNIQUE (user_id, date_key)
    );

    CREATE TABLE IF NOT EXISTS ww_weekly_stat (
        id SERIAL PRIMARY KEY,
        user_id INTEGER NOT NULL REFERENCES ww_user(id) ON DELETE CASCADE,
        range_key TEXT NOT NULL,
        total_seconds INTEGER NOT NULL DEFAULT 0,
        daily_average_seconds INTEGER NOT NULL DEFAULT 0,
        status TEXT NOT NULL,
        error TEXT,
        fetched_at TIMESTAMP NOT NULL,
        payload JSONB,
        UNIQUE (user_id, range_key)
    );

    CREATE TABLE IF NOT EXISTS ww_user_achievement (
        id SERIAL PRIMARY KEY,
        user_id INTEGER NOT NULL REFERENCES ww_user(id) ON DELETE CASCADE,
        achievement_id TEXT NOT NULL,
        context_kind TEXT NOT NULL,
        context_key TEXT NOT NULL,
        awarded_at TIMESTAMP NOT NULL,
        metadata JSONB,
        UNIQUE (user_id, achievement_id, context_kind, context_key)
    );

    CREATE INDEX IF NOT EXISTS ww_user_achievement_user_idx
        ON ww_user_achievement (user_id, achievement_id);
"""

_USER_COLUMNS = """
    id, wakawars_username AS username, api_key, wakatime_timezone AS time_zone,
    stats_visibility, is_competing
"""

LIST_USERS = f"""
    SELECT {_USER_COLUMNS}
    FROM ww_user
    ORDER BY id
"""

# $1 = user_ids (int[])
GET_USERS_BY_IDS = f"""
    SELECT {_USER_COLUMNS}
    FROM ww_user
    WHERE id = ANY($1::int[])
    ORDER BY id
"""

# $1 = user_id, $2 = time zone
SET_USER_TIMEZONE = """
    UPDATE ww_user SET wakatime_timezone = $2 WHERE id = $1
"""

# $1 = user_id, $2 = date_key, $3 = total_seconds, $4 = status, $5 = error,
# $6 = fetched_at, $7 = payload (JSONB text)
UPSERT_DAILY_STAT = """
    INSERT INTO ww_daily_stat
        (user_id, date_key, total_seconds, status, error, fetched_at, payload)
    VALUES ($1, $2, $3, $4, $5, $6, $7::jsonb)
    ON CONFLICT (user_id, date_key)
    DO UPDATE SET
        total_seconds = EXCLUDED.total_seconds,
        status = EXCLUDED.status,
        error = EXCLUDED.error,
        fetched_at = EXCLUDED.fetched_at,
        payload = EXCLUDED.payload
"""

# $1 = user_ids (int[]), $2 = date_key
GET_DAILY_STATS = """
    SELECT s.user_id, u.wakawars_username AS username, s.date_key, s.total_seconds,
           s.status, s.error, s.fetched_at, s.payload
    FROM ww_daily_stat s
    JOIN ww_user u ON u.id = s.user_id
    WHERE s.user_id = ANY($1::int[]) AND s.date_key = $2
"""

# $1 = user_id, $2 = range_key, $3 = total_seconds, $4 = daily_average_seconds,
# $5 = status, $6 = error, $7 = fetched_at, $8 = payload (JSONB text)
UPSERT_WEEKLY_STAT = """
    INSERT INTO ww_weekly_stat
        (user_id, range_key, total_seconds, daily_average_seconds, status, error,
         fetched_at, payload)
    VALUES ($1, $2, $3, $4, $5, $6, $7, $8::jsonb)
    ON CONFLICT (user_id, range_key)
    DO UPDATE SET
        total_seconds = EXCLUDED.total_seconds,
        daily_average_seconds = EXCLUDED.daily_average_seconds,
        status = EXCLUDED.status,
        error = EXCLUDED.error,
        fetched_at = EXCLUDED.fetched_at,
        payload = EXCLUDED.payload
"""

# $1 = user_ids (int[]), $2 = range_key
GET_WEEKLY_STATS = """
    SELECT s.user_id, u.wakawars_username AS username, s.range_key, s.total_seconds,
           s.daily_average_seconds, s.status, s.error, s.fetched_at, s.payload
    FROM ww_weekly_stat s
    JOIN ww_user u ON u.id = s.user_id
    WHERE s.user_id = ANY($1::int[]) AND s.range_key = $2
"""

# $1 = user_id, $2 = achievement_id, $3 = context_kind, $4 = context_key,
# $5 = awarded_at, $6 = metadata (JSONB text)
UPSERT_ACHIEVEMENT = """
    INSERT INTO ww_user_achievement
        (user_id, achievement_id, context_kind, context_key, awarded_at, metadata)
    VALUES ($1, $2, $3, $4, $5, $6::jsonb)
    ON CONFLICT (user_id, achievement_id, context_kind, context_key)
    DO UPDATE SET
        awarded_at = EXCLUDED.awarded_at,
        metadata = EXCLUDED.metadata
"""

# $1 = user_id
LIST_ACHIEVEMENT_UNLOCKS = """
    SELECT achievement_id,
           COUNT(*) AS unlock_count,
           MIN(awarded_at) AS first_awarded_at,
           MAX(awarded_at) AS last_awarded_at
    FROM ww_user_achievement
    WHERE user_id = $1
    GROUP BY achievement_id
    ORDER BY last_awarded_at DESC, achievement_id ASC
"""

# $1 = user_ids (int[]), $2 = achievement_ids (text[] or NULL), $3 = context_kind or NULL
LIST_ACHIEVEMENT_GRANTS = """
    SELECT user_id, achievement_id, context_kind, context_key
    FROM ww_user_achievement
    WHERE user_id = ANY($1::int[])
      AND ($2::text[] IS NULL OR achievement_id = ANY($2::text[]))
      AND ($3::text IS NULL OR context_kind = $3::text)
    ORDER BY user_id, achievement_id, context_key
"""

LOAD_DAILY_HISTORY = """
    SELECT s.user_id, u.wakawars_username AS username, s.date_key, s.total_seconds,
           s.status, s.error, s.fetched_at, s.payload
    FROM ww_daily_stat s
    JOIN ww_user u ON u.id = s.user_id
    ORDER BY s.user_id ASC, s.date_key ASC
"""

LOAD_WEEKLY_HISTORY = """
    SELECT s.user_id, u.wakawars_username AS username, s.range_key, s.total_seconds,
           s.daily_average_seconds, s.status, s.error, s.fetched_at, s.payload
    FROM ww_weekly_stat s
    JOIN ww_user u ON u.id = s.user_id
    ORDER BY s.user_id ASC, s.fetched_at ASC
"""

COUNT_ACHIEVEMENTS = """
    SELECT COUNT(*) FROM ww_user_achievement
"""

COUNT_USERS = """
    SELECT COUNT(*) FROM ww_user
"""
