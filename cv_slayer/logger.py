"""
Logging setup shared by every cv_slayer module.
"""

from __future__ import annotations

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

from .settings import settings

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logger(name: str = "cv_slayer", log_dir: Optional[str] = None) -> logging.Logger:
    """
    Return the ``cv_slayer.<name>`` logger, attaching handlers on first use.

    Args:
        name: component name
        log_dir: directory for the daily log file; defaults to ``settings.log_dir``.
            Without one, only the console handler is attached.
    """
    full_name = name if name.startswith("cv_slayer") else f"cv_slayer.{name}"
    logger = logging.getLogger(full_name)
    logger.setLevel(logging.DEBUG)

    # already configured
    if logger.handlers:
        return logger

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    target_dir = log_dir or settings.log_dir
    if target_dir:
        path = Path(target_dir)
        path.mkdir(parents=True, exist_ok=True)
        log_file = path / f"cv_slayer_{datetime.now().strftime('%Y%m%d')}.log"
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    # handlers live on the component logger; don't double-print via root
    logger.propagate = False
    return logger


def mask_token(token: Optional[str], visible: int = 6) -> str:
    """Shorten a credential for log output."""
    if not token:
        return "<none>"
    return f"{token[:visible]}..."
