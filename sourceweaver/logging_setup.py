# sourceweaver/logging_setup.py
import logging
import sys
from typing import List, Optional, TextIO
import structlog

APP_LOGGER_NAME = "sourceweaver"

_VERBOSITY_LEVELS = ("warning", "info", "debug")


def level_for_verbosity(verbosity: int) -> str:
    # -v -> info, -vv (or more) -> debug.
    return _VERBOSITY_LEVELS[min(max(verbosity, 0), len(_VERBOSITY_LEVELS) - 1)]


def _shared_processors() -> List:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.format_exc_info,
    ]


def configure_logging(
    log_level_str: str = "warning",
    force_json_logs: bool = False,
    stream: Optional[TextIO] = None,
):
    """
    Routes structlog events through the stdlib ``sourceweaver`` logger to
    ``stream`` (stderr by default), rendered for the console or, with
    ``force_json_logs``, as one JSON object per line. Calling it again
    replaces the previous handler.
    """
    target = stream if stream is not None else sys.stderr
    log_level = getattr(logging, log_level_str.upper(), logging.WARNING)

    structlog.configure(
        processors=_shared_processors() + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    if force_json_logs:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=target.isatty())

    handler = logging.StreamHandler(target)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=renderer,
            foreign_pre_chain=[structlog.stdlib.add_log_level],
        )
    )

    app_logger = logging.getLogger(APP_LOGGER_NAME)
    app_logger.handlers.clear()
    app_logger.addHandler(handler)
    app_logger.setLevel(log_level)

    structlog.get_logger(__name__).info("logging_configured", level=log_level_str, json=force_json_logs)
