"""Root logger setup driven by environment variables."""

import os
import logging
import sys
from typing import Optional
from pythonjsonlogger import jsonlogger

# HTTP and PostgREST internals of the Supabase client log every request at INFO
QUIET_LOGGERS = ("httpx", "httpcore", "hpack", "postgrest", "supabase", "gotrue")

JSON_FIELDS = "%(timestamp)s %(levelname)s %(name)s %(message)s"
TEXT_FIELDS = "%(asctime)s %(levelname)-7s [%(name)s] %(message)s"


class LoggingConfig:
    """Logging settings, read once at import."""

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
    LOG_FORMAT = os.environ.get("LOG_FORMAT", "json").lower()
    # Whether raw quick-capture lines may appear in logs at all
    LOG_INPUT_PREVIEW = os.environ.get("LOG_INPUT_PREVIEW", "true").lower() == "true"
    LOG_REDACT = os.environ.get("LOG_REDACT", "true").lower() == "true"
    LOG_SLOW_MS = int(os.environ.get("LOG_SLOW_MS", "250"))

    @classmethod
    def setup_logging(cls, level: Optional[str] = None, fmt: Optional[str] = None) -> None:
        """
        Install a single stdout handler on the root logger.

        Args:
            level: Overrides LOG_LEVEL.
            fmt: ``json`` or ``text``; overrides LOG_FORMAT.
        """
        resolved = getattr(logging, (level or cls.LOG_LEVEL).upper(), logging.INFO)

        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(resolved)
        handler.setFormatter(_formatter(fmt or cls.LOG_FORMAT))

        root = logging.getLogger()
        root.handlers.clear()
        root.addHandler(handler)
        root.setLevel(resolved)

        for name in QUIET_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)


def _formatter(fmt: str) -> logging.Formatter:
    if fmt == "json":
        return jsonlogger.JsonFormatter(
            JSON_FIELDS,
            rename_fields={"levelname": "level"},
            timestamp=True,
        )
    return logging.Formatter(TEXT_FIELDS)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
