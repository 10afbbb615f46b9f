"""Logging setup for Slideshow Studio.

Every module logs through a child of the ``slideshow_studio`` logger, e.g.
``slideshow_studio.audio.bands`` or ``slideshow_studio.routers.plan``, so one
call to :func:`setup_logging` controls the analysis core, the planner and
the HTTP layer together.
"""
from __future__ import annotations

import logging
import logging.handlers
from pathlib import Path
from typing import List, Optional

ROOT_LOGGER = "slideshow_studio"
LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _resolve_level(level: str) -> int:
    name = str(level).upper()
    if name not in _LEVELS:
        raise ValueError(f"Unknown log level {level!r}; expected one of {', '.join(_LEVELS)}")
    return getattr(logging, name)


def _build_handlers(
    log_file: Optional[str], max_bytes: int, backup_count: int
) -> List[logging.Handler]:
    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            logging.handlers.RotatingFileHandler(
                path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
            )
        )
    return handlers


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    max_bytes: int = 100 * 1024 * 1024,
    backup_count: int = 5,
) -> None:
    """Point the slideshow_studio logger at the console and, optionally, a file.

    Calling it again replaces the handlers installed by the previous call,
    which is what happens each time ``create_app`` runs in a test session.

    Args:
        level: "DEBUG", "INFO", "WARNING", "ERROR" or "CRITICAL" (any case).
        log_file: Rotating log file; its directory is created on demand.
        max_bytes: Rotation threshold for the file log.
        backup_count: Rotated files to keep.

    Raises:
        ValueError: For any other level name.
    """
    numeric = _resolve_level(level)
    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    root = logging.getLogger(ROOT_LOGGER)
    for old in list(root.handlers):
        root.removeHandler(old)
        old.close()

    for handler in _build_handlers(log_file, max_bytes, backup_count):
        handler.setLevel(numeric)
        handler.setFormatter(formatter)
        root.addHandler(handler)

    root.setLevel(numeric)
    root.propagate = False


def get_logger(name: str = "") -> logging.Logger:
    """Logger for ``name`` inside the slideshow_studio tree.

    ``get_logger("video.planner")`` and ``get_logger("slideshow_studio.video.planner")``
    return the same logger; ``get_logger()`` returns the tree's root.
    """
    if not name or name == ROOT_LOGGER:
        return logging.getLogger(ROOT_LOGGER)
    if name.startswith(ROOT_LOGGER + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")
