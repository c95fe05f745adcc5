"""Logging initialization using loguru."""

from __future__ import annotations

import sys
from pathlib import Path

from loguru import logger


def init_logging(log_dir: str | Path | None = None, level: str = "INFO") -> None:
    """Send log records to stderr and, if `log_dir` is given, to a rotating file."""
    logger.remove()
    logger.add(sys.stderr, level=level, format="<green>{time:HH:mm:ss}</green> | <level>{level: <7}</level> | {message}")

    if log_dir is None:
        return

    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)
    logger.add(
        str(log_path / "sync_{time:YYYYMMDD}.log"),
        rotation="10 MB",
        retention="10 days",
        enqueue=True,
        backtrace=False,
        diagnose=False,
        level=level,
    )
