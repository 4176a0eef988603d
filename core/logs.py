from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from core.settings import LOGGING

ROOT_LOGGER = "taskboard"


def get_logger(name: str) -> logging.Logger:
    """Return a child of the ``taskboard`` logger, e.g. ``taskboard.tasks``."""
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


def setup_logging(
    log_path: Optional[Path] = None,
    *,
    level: Optional[str] = None,
    console: bool = True,
) -> logging.Logger:
    logger = logging.getLogger(ROOT_LOGGER)
    if not logger.handlers:
        target = Path(log_path or LOGGING.path)
        target.parent.mkdir(parents=True, exist_ok=True)
        formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
        handler = RotatingFileHandler(
            target,
            maxBytes=LOGGING.max_bytes,
            backupCount=LOGGING.backup_count,
            encoding="utf-8",
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        if console:
            stream = logging.StreamHandler()
            stream.setFormatter(formatter)
            logger.addHandler(stream)
    logger.setLevel(getattr(logging, (level or LOGGING.level).upper(), logging.INFO))
    return logger


__all__ = ["ROOT_LOGGER", "get_logger", "setup_logging"]
