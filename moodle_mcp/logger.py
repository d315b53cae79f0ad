"""
Logger — rotating log files plus stderr diagnostics, NEVER stdout (would corrupt MCP protocol)
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from .config import Config

_FORMAT = "%(asctime)s %(levelname)-5s [%(name)s] %(message)s"


def _secure_handler(log_path: Path, level: int, fmt: str) -> RotatingFileHandler:
    """Create a rotating file handler with restricted permissions."""
    handler = RotatingFileHandler(
        log_path,
        maxBytes=10 * 1024 * 1024,  # 10 MB
        backupCount=3,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt, datefmt="%Y-%m-%d %H:%M:%S"))

    # Log files may contain student names and submission text
    try:
        os.chmod(log_path, 0o600)
    except OSError:
        pass  # Best-effort; file may not exist yet on first call

    return handler


def _stderr_handler(level_name: str) -> logging.StreamHandler:
    handler = logging.StreamHandler(sys.stderr)
    level = logging.getLevelName(level_name)
    handler.setLevel(level if isinstance(level, int) else logging.INFO)
    handler.setFormatter(logging.Formatter("[%(name)s] %(message)s"))
    return handler


def get_logger(name: str) -> logging.Logger:
    """Get a logger that writes to the log files and stderr"""
    Config.ensure_dirs()

    logger = logging.getLogger(f"moodle_mcp.{name}")
    if logger.handlers:
        return logger

    logger.setLevel(logging.DEBUG)

    fh = _secure_handler(Config.LOG_FILE, logging.DEBUG, _FORMAT)
    logger.addHandler(fh)

    # Separate error log
    eh = _secure_handler(
        Config.ERROR_LOG,
        logging.ERROR,
        _FORMAT + "\n%(exc_info)s",
    )
    logger.addHandler(eh)

    logger.addHandler(_stderr_handler(Config.LOG_LEVEL))

    # Never propagate to root (which might have stdout handlers)
    logger.propagate = False

    return logger
