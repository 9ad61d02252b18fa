"""Log sinks — stderr plus JSON-lines combined.log and error.log."""

from __future__ import annotations

import sys

from loguru import logger

from streamrec.core.config.schema import Config


def setup_logging(config: Config) -> None:
    """Replace loguru's default sink with the configured ones."""
    level = config.logging.level.upper()
    logger.remove()
    logger.add(sys.stderr, level=level)

    if not config.logging.file_sinks:
        return
    log_dir = config.log_path
    log_dir.mkdir(parents=True, exist_ok=True)
    logger.add(log_dir / "combined.log", level=level, serialize=True, enqueue=True)
    logger.add(log_dir / "error.log", level="ERROR", serialize=True, enqueue=True)
    logger.debug(f"File logging enabled in {log_dir}")
