"""
Structured logging for the API.

Console output while developing, one JSON object per line in production
where the serverless log collector parses stdout.
"""
import logging
import sys
from typing import Any, Optional

import structlog
from structlog.types import EventDict, Processor

from techassist.config import Settings, get_settings


def _app_context(app_settings: Settings) -> Processor:
    def add_app_context(
        logger: logging.Logger, method_name: str, event_dict: EventDict
    ) -> EventDict:
        event_dict["app"] = app_settings.app_name
        event_dict["environment"] = app_settings.environment
        return event_dict

    return add_app_context


def configure_logging(app_settings: Optional[Settings] = None) -> None:
    """
    Configure structlog for the given settings (environment settings by default).

    ``create_app`` calls this again with the settings it was given, so the
    renderer and level follow that app's environment.
    """
    app_settings = app_settings or get_settings()
    level = logging.DEBUG if app_settings.debug else logging.INFO

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        _app_context(app_settings),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    if app_settings.debug:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))
    else:
        processors.append(structlog.processors.JSONRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        # module-level loggers must pick up a later reconfiguration
        cache_logger_on_first_use=False,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    logging.getLogger("pymongo").setLevel(logging.WARNING)


def get_logger(name: Optional[str] = None) -> structlog.BoundLogger:
    """Logger bound with the module name, e.g. ``get_logger(__name__)``."""
    # initial values keep the proxy lazy, so it follows reconfiguration
    if name:
        return structlog.get_logger(name=name)
    return structlog.get_logger()


def bind_context(**kwargs: Any) -> None:
    """Bind request-scoped values (request_id) to every following log entry."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()
