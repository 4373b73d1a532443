import sys
from pathlib import Path

from loguru import logger

from .config import Settings

RECONCILIATION_FAILURE_EVENT = "reconciliation_failure"


def configure_logging(settings: Settings) -> None:
    log_file = Path(settings.absolute_log_file)
    log_file.parent.mkdir(parents=True, exist_ok=True)

    logger.remove()
    logger.add(sys.stderr, level=settings.LOG_LEVEL)
    logger.add(
        str(log_file),
        level=settings.LOG_LEVEL,
        rotation="10 MB",
        retention=5,
        enqueue=True,
    )
