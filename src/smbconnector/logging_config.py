"""Logging setup for the connector and its SMB protocol client."""

import logging
import sys
from pathlib import Path

from smbconnector.config import LogLevel

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Loggers owned by the smbprotocol distribution
CLIENT_LOGGERS = ("smbprotocol", "smbclient", "spnego")

_LEVELS = {
    LogLevel.TRACE: logging.DEBUG,
    LogLevel.DEBUG: logging.DEBUG,
    LogLevel.INFO: logging.INFO,
    LogLevel.WARN: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
}


def to_logging_level(level: LogLevel | str) -> int:
    """Map a LogLevel (or its name) to a stdlib logging level."""
    return _LEVELS[LogLevel.parse(level)]


def apply_client_log_level(level: LogLevel | str) -> None:
    """Set the level of the SMB protocol library's loggers."""
    numeric = to_logging_level(level)
    for name in CLIENT_LOGGERS:
        logging.getLogger(name).setLevel(numeric)


def setup_logging(level: LogLevel | str = LogLevel.WARN, log_file: Path | None = None) -> None:
    """Configure root logging for CLI and daemon use.

    Args:
        level: Level for the connector's own loggers
        log_file: Optional file to log to in addition to stderr
    """
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=to_logging_level(level),
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )


__all__ = ["apply_client_log_level", "setup_logging", "to_logging_level"]
