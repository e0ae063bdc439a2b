# =============================================================================
# RAIN ALERT ENGINE - LOGGING CONFIGURATION
# =============================================================================
#
# Operational logging only. The engine persists no decisions; these logs
# exist for debugging station selection and cycle outcomes.
#
# - Console output by default
# - Optional file output under logs/engine/
#
# =============================================================================

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional


ENGINE_LOGGER_NAME = "rain_alert"

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _get_project_root() -> Path:
    """Get the project root directory."""
    # This file is at shared/logging_config.py
    return Path(__file__).parent.parent


def _get_log_dir() -> Path:
    return _get_project_root() / "logs" / "engine"


# =============================================================================
# LOGGING SETUP
# =============================================================================

def setup_logging(
    level: int = logging.INFO,
    console_output: bool = True,
    file_output: bool = False,
    log_dir: Optional[Path] = None,
) -> logging.Logger:
    """
    Configure the engine logger.

    All engine modules log through children of the "rain_alert" logger,
    so configuring it once covers the whole package.

    Args:
        level: Logging level
        console_output: Whether to log to console
        file_output: Whether to log to a timestamped file
        log_dir: Directory for the log file (default: logs/engine/)

    Returns:
        The configured engine logger
    """
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    logger = logging.getLogger(ENGINE_LOGGER_NAME)
    logger.setLevel(level)

    # Remove existing handlers to avoid duplicates
    logger.handlers.clear()

    if console_output:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    log_file = None
    if file_output:
        target_dir = Path(log_dir) if log_dir is not None else _get_log_dir()
        target_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_file = target_dir / f"engine_{timestamp}.log"

        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.info(f"Logging initialized for {ENGINE_LOGGER_NAME}")
    if log_file is not None:
        logger.info(f"Log file: {log_file}")

    return logger


def get_engine_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Get the engine logger or one of its children.

    Args:
        name: Optional child name (e.g. "cli")

    Returns:
        Logger instance
    """
    if name:
        return logging.getLogger(f"{ENGINE_LOGGER_NAME}.{name}")
    return logging.getLogger(ENGINE_LOGGER_NAME)
