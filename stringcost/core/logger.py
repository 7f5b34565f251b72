"""Structured, hierarchical logging on top of the standard logging module.

A StructuredLogger carries a prefix and a bound context. Every call emits a
single LogRecord with the message "[prefix] message" and three extra
attributes: ``event`` (the bare message), ``prefix`` and ``fields`` (the
bound context merged with call-site fields, call-site winning). Child
loggers extend the context without touching their parent.
"""

import json
import logging
import sys
from typing import Any, Dict, Mapping, Optional, TextIO

from stringcost.config import settings

DEFAULT_LOGGER_NAME = "stringcost"


class StructuredLogger:
    """Logger bound to a prefix and a set of context fields."""

    def __init__(
        self,
        prefix: str,
        context: Optional[Mapping[str, Any]] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """Initialize the logger.

        Args:
            prefix: Label rendered in front of every message.
            context: Fields attached to every record.
            logger: Underlying stdlib logger. Defaults to the "stringcost" logger.
        """
        self.prefix = prefix
        self._context: Dict[str, Any] = dict(context or {})
        self._logger = logger or logging.getLogger(DEFAULT_LOGGER_NAME)

    @property
    def context(self) -> Dict[str, Any]:
        """Copy of the bound context fields."""
        return dict(self._context)

    def debug(self, message: str, fields: Optional[Mapping[str, Any]] = None) -> None:
        self._emit(logging.DEBUG, message, fields)

    def info(self, message: str, fields: Optional[Mapping[str, Any]] = None) -> None:
        self._emit(logging.INFO, message, fields)

    def warning(
        self, message: str, fields: Optional[Mapping[str, Any]] = None
    ) -> None:
        self._emit(logging.WARNING, message, fields)

    warn = warning

    def error(self, message: str, fields: Optional[Mapping[str, Any]] = None) -> None:
        self._emit(logging.ERROR, message, fields)

    def child(self, fields: Mapping[str, Any]) -> "StructuredLogger":
        """Return a new logger whose context is this context plus fields."""
        return StructuredLogger(
            self.prefix, {**self._context, **fields}, logger=self._logger
        )

    def _emit(
        self, level: int, message: str, fields: Optional[Mapping[str, Any]]
    ) -> None:
        if not self._logger.isEnabledFor(level):
            return
        merged = {**self._context, **(fields or {})}
        self._logger.log(
            level,
            "[%s] %s",
            self.prefix,
            message,
            extra={"event": message, "prefix": self.prefix, "fields": merged},
        )


def create_logger(
    prefix: str,
    context: Optional[Mapping[str, Any]] = None,
    logger: Optional[logging.Logger] = None,
) -> StructuredLogger:
    """Create a StructuredLogger."""
    return StructuredLogger(prefix, context, logger=logger)


def _format_value(value: Any) -> str:
    if isinstance(value, str):
        return value
    try:
        return json.dumps(value, default=str, sort_keys=True)
    except (TypeError, ValueError):
        return str(value)


class StructuredFormatter(logging.Formatter):
    """Formatter that appends bound fields as sorted key=value tokens."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        fields = getattr(record, "fields", None)
        if not fields:
            return line
        tokens = [f"{key}={_format_value(fields[key])}" for key in sorted(fields)]
        return f"{line} {' '.join(tokens)}"


def configure_logging(
    level: Optional[str] = None,
    logger_name: str = DEFAULT_LOGGER_NAME,
    stream: Optional[TextIO] = None,
) -> logging.Handler:
    """Install a structured handler on the stringcost logger.

    Calling this more than once replaces the previously installed handler
    instead of stacking a second one.

    Args:
        level: Level name. Defaults to settings.log_level.
        logger_name: Name of the logger to configure.
        stream: Output stream. Defaults to stderr.

    Returns:
        The installed handler.
    """
    target = logging.getLogger(logger_name)
    for existing in list(target.handlers):
        if isinstance(existing.formatter, StructuredFormatter):
            target.removeHandler(existing)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(
        StructuredFormatter("%(asctime)s %(levelname)s %(name)s %(message)s")
    )
    target.addHandler(handler)
    target.setLevel((level or settings.log_level).upper())
    return handler
