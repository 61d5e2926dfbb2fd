"""
Logging for the pipeline handlers.

Every loguru record carries a ``handler`` field (baseline, forecast,
risk-engine, calibration, sync, collaborator, or ``api`` outside a handler).
Services log through ``handler_logger(name)`` instead of tagging messages by
hand, so the text sink shows the handler as its own column and the JSON sink
emits it as ``record.extra.handler``.

structlog is used for request access logs. Both paths drop secret values
(internal token, Authorization header, Sentry DSN) before anything is written.
"""

import sys
import logging
from datetime import datetime
from typing import Any
from pathlib import Path

from loguru import logger
import structlog
from structlog.typing import EventDict, WrappedLogger

from fusionrisk.config import settings

SERVICE_NAME = "fusion-stability"
DEFAULT_HANDLER = "api"

SECRET_FIELDS = frozenset({
    "token", "secret", "password", "authorization", "auth", "bearer", "api_key", "dsn"
})
REDACTED = "[REDACTED]"


def is_secret_field(key: str) -> bool:
    key = key.lower()
    return any(field in key for field in SECRET_FIELDS)


class SecretFilter:
    """Redact tokens and credentials from structlog event dicts."""

    def __call__(self, logger: WrappedLogger, name: str, event_dict: EventDict) -> EventDict:
        for key in list(event_dict.keys()):
            if is_secret_field(key):
                event_dict[key] = REDACTED
        return event_dict


def redact_bound_secrets(record: dict) -> None:
    """loguru patcher: same redaction for values passed through ``bind()``."""
    extra = record["extra"]
    for key in list(extra.keys()):
        if is_secret_field(key):
            extra[key] = REDACTED


def add_log_level(logger: WrappedLogger, name: str, event_dict: EventDict) -> EventDict:
    event_dict["level"] = name.upper()
    return event_dict


def add_timestamp(logger: WrappedLogger, name: str, event_dict: EventDict) -> EventDict:
    event_dict["timestamp"] = datetime.utcnow().isoformat()
    return event_dict


def add_service(logger: WrappedLogger, name: str, event_dict: EventDict) -> EventDict:
    """Stamp service and environment so access logs can be told apart downstream."""
    event_dict.setdefault("service", SERVICE_NAME)
    event_dict.setdefault("environment", settings.app_env)
    return event_dict


class InterceptHandler(logging.Handler):
    """Route stdlib logging (uvicorn, SQLAlchemy, httpx) into loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).bind(handler=record.name).log(
            level, record.getMessage()
        )


TEXT_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<magenta>{extra[handler]: <12}</magenta> | "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level>"
)


def _add_sinks(serialize: bool) -> None:
    log_format = "{message}" if serialize else TEXT_FORMAT
    sink_options = dict(
        format=log_format,
        level=settings.log_level,
        serialize=serialize,
        backtrace=True,
        diagnose=settings.is_development,
    )

    logger.add(sys.stderr, **sink_options)

    if settings.log_file:
        Path(settings.log_file).parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            settings.log_file,
            rotation="100 MB",
            retention="10 days",
            compression="zip",
            **sink_options,
        )


def _configure_structlog(serialize: bool) -> None:
    processors = [
        structlog.contextvars.merge_contextvars,
        add_timestamp,
        add_log_level,
        add_service,
        SecretFilter(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer() if serialize else structlog.dev.ConsoleRenderer(),
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(settings.log_level.upper())
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_logging() -> None:
    serialize = settings.log_format == "json"

    logger.remove()
    logger.configure(
        extra={"handler": DEFAULT_HANDLER, "service": SERVICE_NAME},
        patcher=redact_bound_secrets,
    )
    _add_sinks(serialize)
    _configure_structlog(serialize)

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for noisy in ("urllib3", "httpx", "httpcore", "sqlalchemy.engine"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    logger.info(
        "Logging configured: level={} format={} environment={}",
        settings.log_level,
        settings.log_format,
        settings.app_env,
    )


def handler_logger(handler: str):
    """loguru logger tagged with the pipeline handler it logs for."""
    return logger.bind(handler=handler)


def get_logger(name: str) -> Any:
    """structlog logger, used for access logs."""
    return structlog.get_logger(name)


configure_logging()
