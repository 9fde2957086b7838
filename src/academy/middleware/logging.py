"""structlog setup shared by application loggers and stdlib ``logging``."""

import logging
import sys
from typing import Any

import structlog

from academy.config import Settings

SERVICE_NAME = "academy-api"

# Libraries that log every query or request at INFO
_CHATTY_LOGGERS = ("sqlalchemy.engine", "uvicorn.access", "httpx")


def _service_fields(environment: str) -> structlog.types.Processor:
    def add(_logger: Any, _method: str, event_dict: dict[str, Any]) -> dict[str, Any]:  # noqa: ANN401
        event_dict.setdefault("service", SERVICE_NAME)
        event_dict.setdefault("environment", environment)
        return event_dict

    return add


def _renderer(log_format: str) -> structlog.types.Processor:
    if log_format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=False)


def setup_logging(settings: Settings) -> None:
    """Render structlog events and plain ``logging`` records the same way.

    Services log through structlog; a few modules (and uvicorn, alembic)
    use stdlib loggers. Both end up on one stdout handler with the same
    timestamp, level and request context fields.
    """
    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    shared: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        _service_fields(settings.environment),
    ]

    structlog.configure(
        processors=[
            *shared,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(settings.log_format),
            ],
        )
    )
    root = logging.getLogger()
    # One academy handler at a time; handlers installed by others stay
    for existing in [h for h in root.handlers if getattr(h, "name", None) == SERVICE_NAME]:
        root.removeHandler(existing)
    handler.set_name(SERVICE_NAME)
    root.addHandler(handler)
    root.setLevel(level)
    for name in _CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
