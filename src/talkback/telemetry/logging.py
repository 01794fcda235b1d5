"""Logging setup: rich console output with structured ``extra`` fields."""

from __future__ import annotations

import logging

from rich.logging import RichHandler

_RESERVED = frozenset(logging.LogRecord("", 0, "", 0, "", (), None).__dict__) | {"message", "asctime"}


class ExtraFieldsFormatter(logging.Formatter):
    """Appends ``key=value`` pairs for every ``extra=`` field on the record."""

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        fields = {key: value for key, value in record.__dict__.items() if key not in _RESERVED}
        if not fields:
            return message
        rendered = " ".join(f"{key}={value!r}" for key, value in sorted(fields.items()))
        return f"{message} {rendered}"


def configure_logging(level: str | int = "INFO") -> logging.Logger:
    """Route the ``talkback`` logger tree to a rich console handler."""
    handler = RichHandler(show_path=False, rich_tracebacks=True)
    handler.setFormatter(ExtraFieldsFormatter("%(message)s"))

    logger = logging.getLogger("talkback")
    logger.handlers[:] = [handler]
    logger.setLevel(level.upper() if isinstance(level, str) else level)
    logger.propagate = False
    return logger
