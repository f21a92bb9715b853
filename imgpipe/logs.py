from __future__ import annotations

import sys
from pathlib import Path
from typing import Literal

from loguru import logger


LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL", "OFF"]

LOG_ROTATION = "5 MB"
LOG_RETENTION = 5


def setup_logging(
    console_log_level: LogLevel = "INFO",
    file_log_level: LogLevel = "DEBUG",
    log_folder: Path = Path("logs"),
) -> None:
    """
    Configure Loguru sinks for a pipeline run.

    Args:
        console_log_level: Level for the coloured stderr sink ('OFF' disables it)
        file_log_level: Level for combined.log ('OFF' disables both files)
        log_folder: Directory holding combined.log and errors.log

    Both files are JSON lines, rotated at 5 MB with the last 5 kept.
    errors.log only receives ERROR and above.
    """
    logger.remove()

    if file_log_level != "OFF":
        log_folder = Path(log_folder)
        log_folder.mkdir(parents=True, exist_ok=True)

        logger.add(
            log_folder / "errors.log",
            level="ERROR",
            serialize=True,
            rotation=LOG_ROTATION,
            retention=LOG_RETENTION,
        )
        logger.add(
            log_folder / "combined.log",
            level=file_log_level,
            serialize=True,
            rotation=LOG_ROTATION,
            retention=LOG_RETENTION,
        )

    if console_log_level != "OFF":
        logger.add(
            sys.stderr,
            level=console_log_level,
            colorize=True,
            format=(
                "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
                "<level>{level: <7}</level> | "
                "<level>{message:<32}</level> | "
                "<yellow>{extra}</yellow>"
            ),
        )
