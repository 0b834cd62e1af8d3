"""structlog setup for the API process.

Every event carries the app version and environment so logs from several
deployments can share one sink. Third-party loggers that are noisy at INFO
(httpx per request, botocore per S3 call, uvicorn's access log, which
duplicates ``request_completed``) are raised to WARNING.
"""

import logging

import structlog

from gitpoke.config import Settings

_QUIET_LOGGERS = ("httpx", "botocore", "aiobotocore", "uvicorn.access")


def _deployment_fields(settings: Settings) -> structlog.types.Processor:
    def add_fields(_logger, _method_name, event_dict):  # noqa: ANN001, ANN202
        event_dict.setdefault("version", settings.app_version)
        event_dict.setdefault("env", settings.environment)
        return event_dict

    return add_fields


def setup_logging(settings: Settings) -> None:
    """JSON lines in deployments, the console renderer for local runs."""
    renderer: structlog.types.Processor = (
        structlog.processors.JSONRenderer() if settings.log_format == "json" else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            _deployment_fields(settings),
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(level=level, format="%(message)s")
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
