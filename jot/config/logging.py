import logging
import sys
import uuid
from typing import Any

import structlog
from structlog.typing import EventDict, WrappedLogger

from .settings import Settings, settings as default_settings

# Event keys that may carry GitHub tokens or provider keys
SECRET_KEYS = frozenset(
    {"access_token", "authorization", "api_key", "cron_secret", "webhook_secret", "token"}
)


def redact_secrets(_: WrappedLogger, __: str, event_dict: EventDict) -> EventDict:
    """Mask credential-bearing fields before they reach a renderer."""
    for key in event_dict.keys() & SECRET_KEYS:
        if event_dict[key]:
            event_dict[key] = "***"
    return event_dict


def setup_logging(settings: Settings | None = None) -> None:
    """Configure structlog: JSON lines for cron runs, console output when debugging."""
    settings = settings or default_settings
    level = getattr(logging, settings.log_level)

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.add_log_level,
        redact_secrets,
    ]
    if settings.debug:
        processors += [
            structlog.processors.CallsiteParameterAdder(
                parameters=[structlog.processors.CallsiteParameter.FUNC_NAME]
            ),
            structlog.dev.ConsoleRenderer(),
        ]
    else:
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.WriteLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str = __name__) -> structlog.BoundLogger:
    return structlog.get_logger(name)


def add_request_context(request_id: str, **context: Any) -> None:
    """Replace the bound context with this request's."""
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(request_id=request_id, **context)


def bind_invocation_context(invocation: str, **context: Any) -> str:
    """
    Tag every log line of one scheduler or worker run.

    Returns the generated run id so callers can report it.
    """
    run_id = uuid.uuid4().hex[:12]
    structlog.contextvars.bind_contextvars(invocation=invocation, run_id=run_id, **context)
    return run_id
