"""
structlog wiring for applications that embed Cadence.

Library modules obtain their loggers from ``get_logger``, which binds structlog
to a standard-library logger. Until a host configures logging, output follows
the stdlib rules: silent below WARNING, stderr otherwise, never stdout.
``configure_logging()`` is a convenience for scripts and tests.
"""

from __future__ import annotations

import logging
from typing import Optional

import structlog

_MAX_FIELD_LEN = 200
_TRUNCATED_KEYS = ("error", "result")

_logging_configured = False


def get_logger(name: str):
    """Return a structlog logger that writes through ``logging.getLogger(name)``."""
    return structlog.wrap_logger(logging.getLogger(name))


def _truncate_long_fields(logger, method_name, event_dict):
    """
    Structlog processor that shortens step errors and results.

    Step functions are user code, so their results and exception messages can
    be arbitrarily large. Non-string values are rendered with ``repr`` first.
    """
    for key in _TRUNCATED_KEYS:
        if key in event_dict:
            val = event_dict[key]
            if not isinstance(val, str):
                val = repr(val)
            if len(val) > _MAX_FIELD_LEN:
                val = val[:_MAX_FIELD_LEN] + "... [truncated]"
            event_dict[key] = val
    return event_dict


def configure_logging(
    level: Optional[str] = None,
    fmt: Optional[str] = None,
    force: bool = False,
) -> None:
    """Configure structlog and standard-library logging.

    Safe to call more than once; later calls are no-ops unless ``force`` is
    set. Unspecified arguments come from ``LogConfig`` (``CADENCE_LOG_LEVEL``,
    ``CADENCE_LOG_FORMAT``). A call that fails, for example on an invalid
    environment value, leaves logging unconfigured so it can be retried.
    """
    global _logging_configured  # noqa: PLW0603
    if _logging_configured and not force:
        return

    from cadence.config import LogConfig

    settings = LogConfig()
    level_name = (level or settings.level).upper()
    renderer_name = fmt or settings.format

    logging.basicConfig(format="%(message)s", level=level_name, force=force)
    logging.getLogger("cadence").setLevel(level_name)

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        _truncate_long_fields,
    ]
    if renderer_name == "json":
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )
    _logging_configured = True
