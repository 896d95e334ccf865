"""Centralized logging configuration using loguru."""

import sys
from pathlib import Path
from typing import Optional

from loguru import logger


def setup_logging(
    level: str = "WARNING",
    log_dir: Optional[str] = None,
    rotation: str = "10 MB",
    retention: str = "7 days",
) -> None:
    """Configure loguru with a console sink and optional file sinks.

    Args:
        level: Minimum console log level.
        log_dir: Directory for log files; no file sinks when omitted.
        rotation: Log file rotation size.
        retention: How long to keep old log files.
    """
    # Remove default handler
    logger.remove()

    logger.add(
        sys.stderr,
        level=level,
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>",
    )

    if log_dir is None:
        return

    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)

    # Shrink traces are logged at DEBUG; keep them in the files
    logger.add(
        str(log_path / "pbt_{time}.log"),
        level="DEBUG",
        format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} - {message}",
        rotation=rotation,
        retention=retention,
    )

    # JSON log for machine parsing
    logger.add(
        str(log_path / "pbt_{time}.jsonl"),
        level="DEBUG",
        serialize=True,
        rotation=rotation,
        retention=retention,
    )

    logger.info(f"Logging initialized (log_dir={log_dir}, level={level})")
