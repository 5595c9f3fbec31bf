"""Logging setup and secret redaction for the BambooHR client.

MCP's stdio transport owns stdout, so all log output goes to stderr.
"""

from __future__ import annotations

import logging
import sys
from typing import Iterable

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

REDACTED = "[REDACTED]"

_TRACEBACK_FORMATTER = logging.Formatter()


def redact(text: str, secrets: Iterable[str]) -> str:
    """Replace every occurrence of each non-empty secret in *text*."""
    for secret in secrets:
        if secret:
            text = text.replace(secret, REDACTED)
    return text


class RedactingFilter(logging.Filter):
    """Scrub secrets from log records before they are emitted."""

    def __init__(self, secrets: Iterable[str] = ()):
        super().__init__()
        self.secrets: list[str] = [s for s in secrets if s]

    def add_secret(self, secret: str) -> None:
        if secret and secret not in self.secrets:
            self.secrets.append(secret)

    def filter(self, record: logging.LogRecord) -> bool:
        if self.secrets:
            record.msg = redact(record.getMessage(), self.secrets)
            record.args = None
            # Render the traceback now so it is scrubbed too
            if record.exc_info:
                record.exc_text = _TRACEBACK_FORMATTER.formatException(record.exc_info)
                record.exc_info = None
            if record.exc_text:
                record.exc_text = redact(record.exc_text, self.secrets)
        return True


_redacting_filter = RedactingFilter()


def register_secret(secret: str) -> None:
    """Add *secret* to the process-wide redaction list."""
    _redacting_filter.add_secret(secret)


def configure_logging(level: str = "INFO") -> None:
    """Send log records to stderr through the redacting filter."""
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    handler.addFilter(_redacting_filter)

    root = logging.getLogger()
    root.setLevel(level.upper())
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
