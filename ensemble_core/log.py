"""
Logging setup.

Configures loguru sinks for applications embedding the core. Library
modules only ever call `logger`; sinks are the host's decision.
"""

import sys
from pathlib import Path
from typing import Optional

from loguru import logger

from config.settings import settings


def setup_logging(level: Optional[str] = None, log_dir: Optional[Path] = None) -> None:
    """
    Install a stderr sink and, optionally, a rotating file sink.

    Args:
        level: Minimum stderr level (defaults to LOG_LEVEL)
        log_dir: Directory for ensemble.log; no file sink when None
    """
    logger.remove()
    logger.add(
        sys.stderr,
        level=(level or settings.log_level).upper(),
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | {message}"
    )

    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_dir / "ensemble.log",
            rotation="10 MB",
            retention="7 days",
            level="DEBUG",
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function} | {message}"
        )
