"""
Channel-scoped loggers.

Every Discord channel (plus a ``system`` channel for the bot itself) gets its
own logger under ``karma.channel``. When a log directory is configured, each
channel also writes to ``<log_directory>/<channel>/<MM-DD-YY>.log`` with ANSI
colour codes stripped.
"""

from __future__ import annotations

import datetime
import logging
import re
from pathlib import Path

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] [%(name)s]: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

OK = 25
logging.addLevelName(OK, "OK")

CHANNEL_NAMESPACE = "karma.channel"

_ANSI_RE = re.compile(r"[\u001b\u009b][\[()#;?]*(?:[0-9]{1,4}(?:;[0-9]{0,4})*)?[0-9A-ORZcf-nqry=><]")


def strip_ansi(text: str) -> str:
    """Remove terminal colour/control sequences from ``text``."""

    return _ANSI_RE.sub("", text)


class _PlainFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        return strip_ansi(super().format(record))


class LoggingManager:
    """Hands out one logger per channel name, optionally mirrored to disk."""

    def __init__(self, root_directory: str | Path | None = None) -> None:
        self.root_directory = Path(root_directory) if root_directory else None
        self._channels: dict[str, logging.Logger] = {}

    def channel(self, name: str) -> logging.Logger:
        """Return the logger for ``name``, creating it on first use."""

        logger = self._channels.get(name)
        if logger is not None:
            return logger

        logger = logging.getLogger(f"{CHANNEL_NAMESPACE}.{name}")
        if self.root_directory is not None:
            logger.addHandler(self._file_handler(name))
        self._channels[name] = logger
        return logger

    def _file_handler(self, name: str) -> logging.Handler:
        channel_dir = self.root_directory / name
        channel_dir.mkdir(parents=True, exist_ok=True)
        filename = channel_dir / f"{datetime.date.today():%m-%d-%y}.log"
        handler = logging.FileHandler(filename, encoding="utf-8", delay=True)
        handler.setFormatter(_PlainFormatter(LOG_FORMAT, DATE_FORMAT))
        return handler

    def close(self) -> None:
        """Detach and close every file handler this manager created."""

        for logger in self._channels.values():
            for handler in list(logger.handlers):
                if isinstance(handler, logging.FileHandler):
                    logger.removeHandler(handler)
                    handler.close()
        self._channels.clear()


__all__ = ["DATE_FORMAT", "LOG_FORMAT", "OK", "CHANNEL_NAMESPACE", "LoggingManager", "strip_ansi"]
