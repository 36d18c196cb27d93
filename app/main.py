"""WakaWars sync service entry point."""

import asyncio
import signal
import sys

from app.core.clock import SystemClock
from app.core.config import get_settings
from app.core.database import DatabaseClient
from app.core.logging import get_logger, setup_logging
from app.shared.exceptions import ConfigError
from app.sync.daily import DailyStatusSync
from app.sync.weekly import WeeklyStatsCache
from app.wakatime.client import WakaTimeClient

logger = get_logger(__name__)

# Module-level variables for lifecycle management
database_client: DatabaseClient | None = None
wakatime_client: WakaTimeClient | None = None
daily_sync: DailyStatusSync | None = None
weekly_cache: WeeklyStatsCache | None = None


async def startup() -> None:
    """Initialize application on startup."""
    global database_client, wakatime_client, daily_sync, weekly_cache

    settings = get_settings()

    logger.info(
        "application.lifecycle.started",
        version=settings.app_version,
        environment=settings.environment,
    )
    logger.info(
        "application.config.loaded",
        log_level=settings.log_level,
        daily_interval=settings.daily_sync_interval_seconds,
        weekly_interval=settings.weekly_cache_interval_seconds,
        weekly_range_key=settings.weekly_range_key,
    )

    database_client = DatabaseClient()
    await database_client.__aenter__()
    await database_client.ensure_schema()
    logger.info("database.client.initialized")

    wakatime_client = WakaTimeClient(
        base_url=settings.wakatime_base_url,
        timeout_seconds=settings.wakatime_timeout_seconds,
    )
    await wakatime_client.__aenter__()

    clock = SystemClock()

    if settings.enable_status_sync:
        daily_sync = DailyStatusSync(
            database_client,
            wakatime_client,
            clock=clock,
            interval_seconds=settings.daily_sync_interval_seconds,
            ttl_seconds=settings.daily_cache_ttl_seconds,
        )
        await daily_sync.start()

    if settings.enable_weekly_cache:
        weekly_cache = WeeklyStatsCache(
            database_client,
            wakatime_client,
            clock=clock,
            interval_seconds=settings.weekly_cache_interval_seconds,
            ttl_seconds=settings.weekly_cache_ttl_seconds,
            range_key=settings.weekly_range_key,
        )
        await weekly_cache.start()

    logger.info("application.initialization.completed")


async def shutdown() -> None:
    """Cleanup on application shutdown."""
    global database_client, wakatime_client, daily_sync, weekly_cache

    logger.info("application.shutdown.started")

    # Sync loops first: in-flight ticks still need the client and the pool
    if weekly_cache:
        await weekly_cache.stop()
        weekly_cache = None

    if daily_sync:
        await daily_sync.stop()
        daily_sync = None

    if wakatime_client:
        await wakatime_client.__aexit__(None, None, None)
        wakatime_client = None

    if database_client:
        await database_client.__aexit__(None, None, None)
        database_client = None

    logger.info("application.shutdown.completed")


async def main() -> None:
    """Main application loop."""
    loop = asyncio.get_running_loop()
    stop_event = asyncio.Event()

    def signal_handler(sig: int) -> None:
        logger.info("application.signal.received", signal=signal.Signals(sig).name)
        stop_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):

        def make_handler(s: int = sig) -> None:
            signal_handler(s)

        loop.add_signal_handler(sig, make_handler)

    try:
        await startup()
        await stop_event.wait()
    except Exception as e:
        logger.error("application.error.fatal", error=str(e), exc_info=True)
        raise
    finally:
        await shutdown()


def run() -> None:
    """Entry point for running the sync service."""
    try:
        # Load settings first to validate configuration
        settings = get_settings()

        setup_logging(log_level=settings.log_level)

        asyncio.run(main())

    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        pass
    except Exception as e:
        print(f"Fatal error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    run()
