"""Command-line entry point for the achievements backfill."""

import argparse
import asyncio
import sys

from dotenv import load_dotenv

from app.backfill.job import RetryPolicy, run_achievements_backfill
from app.core.config import get_settings
from app.core.database import DatabaseClient
from app.core.logging import get_logger, setup_logging
from app.shared.exceptions import ConfigError
from app.shared.models import BackfillSummary

logger = get_logger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="wakawars-backfill",
        description="Replay stored WakaTime history through the achievement rules.",
    )
    parser.add_argument(
        "--range-key",
        default=None,
        help="Weekly range key recorded on rebuilt weekly grants (default: WEEKLY_RANGE_KEY)",
    )
    parser.add_argument(
        "--env-file",
        default=".env",
        help="Environment file to load before reading settings",
    )
    return parser.parse_args(argv)


async def main(range_key: str | None = None) -> BackfillSummary:
    """Run the backfill against the configured database."""
    settings = get_settings()
    policy = RetryPolicy(
        attempts=settings.backfill_retry_attempts,
        base_delay_ms=settings.backfill_retry_base_delay_ms,
        max_delay_ms=settings.backfill_retry_max_delay_ms,
    )

    async with DatabaseClient() as db:
        summary = await run_achievements_backfill(
            db,
            weekly_range_key=range_key or settings.weekly_range_key,
            progress_every=settings.backfill_progress_every,
            policy=policy,
        )

    logger.info("backfill.summary", **summary.model_dump())
    if summary.achievements_created == 0:
        logger.warning(
            "backfill.no_new_achievements",
            hint="check daily_rows_ok, daily_rows_above_4h and weekly_rows_above_40h",
        )
    return summary


def run(argv: list[str] | None = None) -> None:
    """Entry point for the wakawars-backfill script."""
    args = parse_args(argv)
    load_dotenv(args.env_file)

    try:
        settings = get_settings()
        setup_logging(log_level=settings.log_level)
        asyncio.run(main(args.range_key))
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        logger.error("backfill.failed", error=str(e), exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    run()
