# src/slidepool/utils/config.py
import os
import sys
from pathlib import Path

from loguru import logger

# Base directory for all slidepool data
SLIDEPOOL_HOME = Path(os.getenv("SLIDEPOOL_HOME", Path.home() / ".slidepool"))

# Logging configuration
LOG_LEVEL = os.getenv("SLIDEPOOL_LOG_LEVEL", "INFO")
LOG_FORMAT = "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"

# Scheduler defaults
DEFAULT_LIMIT = int(os.getenv("SLIDEPOOL_DEFAULT_LIMIT", "10"))

# HTTP transport
HTTP_TIMEOUT_SECONDS = float(os.getenv("SLIDEPOOL_HTTP_TIMEOUT", "30"))

# Simulated workload
DEFAULT_MIN_DELAY = 0.05
DEFAULT_MAX_DELAY = 0.5


def setup_logging():
    """Configure loguru logging for CLI - file only."""
    logger.remove()  # Remove default handler

    SLIDEPOOL_HOME.mkdir(parents=True, exist_ok=True)
    log_file = SLIDEPOOL_HOME / "slidepool.log"
    logger.add(
        log_file,
        format=LOG_FORMAT,
        level=LOG_LEVEL,
        rotation="10 MB",
        retention="1 week",
        compression="zip"
    )


def setup_console_logging(run_id: str, level: str = "DEBUG"):
    """Add a console sink tagged with the run id, on top of the file sink."""
    logger.add(
        sys.stderr,
        format=f"<green>{{time:HH:mm:ss.SSS}}</green> | <level>{{level: <8}}</level> | <cyan>[{run_id}]</cyan> - <level>{{message}}</level>",
        level=level
    )
