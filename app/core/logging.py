"""Structured logging setup using structlog with sync-run IDs."""

import logging
import uuid
from contextvars import ContextVar

import structlog
from structlog.types import EventDict, WrappedLogger

# Identifies one sync tick or backfill run across all of its log events
sync_run_id_var: ContextVar[str] = ContextVar("sync_run_id", default="")


def add_sync_run_id(
    _logger: WrappedLogger, _method_name: str, event_dict: EventDict
) -> EventDict:
    """Add sync run ID to log event if set."""
    run_id = sync_run_id_var.get()
    if run_id:
        event_dict["sync_run_id"] = run_id
    return event_dict


def setup_logging(log_level: str = "INFO") -> None:
    """Configure structured logging for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    level = getattr(logging, log_level.upper())

    logging.basicConfig(format="%(message)s", level=level)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            add_sync_run_id,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a structured logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structlog logger
    """
    return structlog.get_logger(name)  # type: ignore[no-any-return]


def start_sync_run(prefix: str) -> str:
    """Assign a fresh run ID to the current async context.

    Args:
        prefix: Short label for the run kind (e.g. "daily", "weekly", "backfill")

    Returns:
        The new run ID
    """
    run_id = f"{prefix}-{uuid.uuid4().hex[:12]}"
    sync_run_id_var.set(run_id)
    return run_id


def get_sync_run_id() -> str:
    """Get the run ID of the current async context.

    Returns:
        Current run ID or empty string if not set
    """
    return sync_run_id_var.get()
