import logging
import sys
from typing import Any, Dict

import structlog

from dissect.amcache.helpers.logging import TRACE_LEVEL

# -v, -vv, -vvv
VERBOSITY_LEVELS = [logging.WARNING, logging.INFO, logging.DEBUG, TRACE_LEVEL]


def custom_obj_renderer(
    logger: structlog.types.WrappedLogger,
    name: str,
    event_dict: structlog.types.EventDict,
) -> Dict[Any, str]:
    """Render all event dict values with str(), so hive paths and exceptions print as plain text"""
    return {key: str(value) for key, value in event_dict.items()}


def render_stacktrace_only_in_debug_or_less(
    logger: structlog.types.WrappedLogger,
    name: str,
    event_dict: structlog.types.EventDict,
) -> Dict[Any, str]:
    """
    Render the stack trace of an exception only if `logger` is configured with `DEBUG` or a lower level,
    otherwise render the `str()` representation of the exception.
    """
    if event_dict.get("exc_info") and logger.getEffectiveLevel() > logging.DEBUG:
        exc_info = event_dict.pop("exc_info")
        exc = exc_info if isinstance(exc_info, BaseException) else sys.exc_info()[1]
        event_dict["exc"] = str(exc)
    return event_dict


def get_level(verbose_value: int, be_quiet: bool) -> int:
    """Return the logging level for the number of ``-v`` flags, or ``CRITICAL`` when quiet."""
    if be_quiet:
        return logging.CRITICAL
    return VERBOSITY_LEVELS[min(max(verbose_value, 0), len(VERBOSITY_LEVELS) - 1)]


def configure_logging(verbose_value: int, be_quiet: bool, as_plain_text: bool = True) -> None:
    """Configure the logging level and output of the `dissect` root logger.

    By default, if `verbose_value` is not set (equals 0) and `be_quiet` is False, the logging level is `WARNING`.
    Every `-v` lowers the level one step, down to `TRACE`.

    If `be_quiet` is set to True, the logging level is set to the least noisy `CRITICAL` level.
    """

    renderer = (
        structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty(), pad_event=10)
        if as_plain_text
        else structlog.processors.JSONRenderer(sort_keys=True)
    )

    attr_processors = [
        # Add the name of the logger to event dict.
        structlog.stdlib.add_logger_name,
        # Add log level to event dict.
        structlog.stdlib.add_log_level,
        # Add a timestamp in ISO 8601 format.
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    structlog.configure(
        processors=(
            [
                # If log level is too low, abort pipeline and throw away log entry.
                structlog.stdlib.filter_by_level,
            ]
            + attr_processors
            + [
                # Perform %-style formatting.
                structlog.stdlib.PositionalArgumentsFormatter(),
                structlog.processors.StackInfoRenderer(),
                custom_obj_renderer,
                render_stacktrace_only_in_debug_or_less,
                # Wrapping is needed in order to use formatter down the line
                structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
            ]
        ),
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # warnings issued by the ``warnings`` module will be
    # redirected to the ``py.warnings`` logger
    logging.captureWarnings(True)

    logging.getLogger("dissect").setLevel(get_level(verbose_value, be_quiet))

    formatter = structlog.stdlib.ProcessorFormatter(processor=renderer, foreign_pre_chain=attr_processors)

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)
    # set handler on a root logger
    logging.getLogger().handlers = [handler]
