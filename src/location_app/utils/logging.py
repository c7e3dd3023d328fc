"""
location_app.utils.logging
~~~~~~~~~~~~~~~~~~~~~~~~~~

A thin wrapper around Python’s ``logging`` that gives you:

* 🌈 Rich-styled, colourised console output.
* 📄 Optional daily-rotating file handler that keeps a week of history.
* 🔒 Singleton config—subsequent ``get_logger()`` calls just fetch loggers
  without re-initialising the root handlers.

Example
-------
>>> from location_app.utils.logging import get_logger
>>> log = get_logger(__name__, level=logging.DEBUG, log_file="logs/widget.log")
>>> log.info("Widget attached")
"""

from __future__ import annotations

import logging
import logging.handlers
from pathlib import Path
from typing import Optional

from rich.logging import RichHandler

__all__ = ["get_logger", "reset_logging"]

# --------------------------------------------------------------------------- #
# Internal state                                                              #
# --------------------------------------------------------------------------- #
_LOG_CONFIGURED = False
_INSTALLED: list[logging.Handler] = []
_DEFAULT_LEVEL = logging.INFO


def _configure_root(level: int = _DEFAULT_LEVEL, log_file: Optional[Path] = None) -> None:
    """
    One-time initialisation of the *root* logger.

    Console logs:
        • RichHandler (pretty colours, tracebacks)

    File logs (optional):
        • Daily rotation at midnight
        • 7 backups kept (≈ one week of history)
    """
    global _LOG_CONFIGURED
    if _LOG_CONFIGURED:
        return

    handlers: list[logging.Handler] = [
        RichHandler(
            level=level,
            show_time=True,
            show_level=True,
            show_path=False,
            rich_tracebacks=True,
        )
    ]

    # -------- File handler ---------------------------------------------------
    if log_file:
        log_file = Path(log_file).expanduser().resolve()
        log_file.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.TimedRotatingFileHandler(
            filename=str(log_file),
            when="midnight",
            backupCount=7,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(
            logging.Formatter(
                fmt="%(asctime)s | %(levelname)-8s | %(threadName)s | "
                "%(name)s (%(funcName)s:%(lineno)d): %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        handlers.append(file_handler)

    # -------- Activate root config ------------------------------------------
    root = logging.getLogger()
    root.setLevel(level)
    for handler in handlers:
        root.addHandler(handler)
    _INSTALLED.extend(handlers)
    _LOG_CONFIGURED = True


# --------------------------------------------------------------------------- #
# Public API                                                                  #
# --------------------------------------------------------------------------- #
def get_logger(
    name: str | None = None,
    *,
    level: int = _DEFAULT_LEVEL,
    log_file: str | Path | None = None,
    force: bool = False,
) -> logging.Logger:
    """
    Return a configured ``logging.Logger``.

    Parameters
    ----------
    name:
        Usually ``__name__`` of the caller. ``None`` returns the root logger.
    level:
        Lowest level that will appear in both console and file logs
        (default: ``logging.INFO``).
    log_file:
        Path where a rotating log file should be written. If *None*, no file
        logging is set up.
    force:
        Drop the handlers installed by an earlier call and configure again,
        so a command can apply its own level and log file.
    """
    if force:
        reset_logging()
    _configure_root(level=level, log_file=Path(log_file) if log_file else None)
    logger = logging.getLogger(name)
    logger.setLevel(level)
    return logger


def reset_logging() -> None:
    """Remove the handlers installed here so the next ``get_logger`` call reconfigures."""
    global _LOG_CONFIGURED
    root = logging.getLogger()
    while _INSTALLED:
        handler = _INSTALLED.pop()
        root.removeHandler(handler)
        handler.close()
    _LOG_CONFIGURED = False
