"""
Logging setup for the eligibility engine.

The engine only ever logs through structlog.get_logger(__name__). The host
application calls configure_logging() once at startup; importing the engine
never touches logging configuration.
"""

import logging
from typing import List, Optional

import structlog

from naturalization.core.config import Settings, get_settings

VALID_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

ENVIRONMENT_LEVELS = {
    "production": "INFO",
    "staging": "INFO",
    "development": "DEBUG",
    "test": "WARNING",
}

# Third-party loggers kept at WARNING (Supabase HTTP client)
QUIET_LOGGERS = ("httpx", "httpcore", "hpack", "urllib3")


class CorrelationIdFilter(logging.Filter):
    """
    Copy trace_id and user_id from the structlog context onto stdlib records,
    so records emitted by third-party libraries carry them too.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        context = structlog.contextvars.get_contextvars()
        record.correlation_id = context.get("trace_id", "")
        record.user_id = context.get("user_id", "")
        return True


def _shared_processors() -> List[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]


def get_log_level(settings: Optional[Settings] = None) -> str:
    """
    Explicit LOG_LEVEL when valid, otherwise the environment's default.

    Returns:
        Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    settings = settings or get_settings()
    level = (settings.log_level or "").upper()
    if level in VALID_LEVELS:
        return level
    return ENVIRONMENT_LEVELS.get(settings.environment, "INFO")


def configure_logging(settings: Optional[Settings] = None) -> None:
    """
    Route structlog through the stdlib root logger.

    JSON lines in production, plain console output everywhere else.
    """
    settings = settings or get_settings()
    shared = _shared_processors()

    structlog.configure(
        processors=shared + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    if settings.environment == "production":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    handler = logging.StreamHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(processor=renderer, foreign_pre_chain=shared)
    )
    handler.addFilter(CorrelationIdFilter())

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(get_log_level(settings))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Example:
        logger = get_logger(__name__)
        logger.info("lockout_set", user_id=user_id, unlock_date=unlock_date)
    """
    return structlog.get_logger(name)
