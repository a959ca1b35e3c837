"""Logging setup for the dashboard."""
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from settings import get_log_dir, get_log_level

LOGGER_NAME = "dashboard_financeiro"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


class DashboardLogger:
    """Owns the handlers of the application logger."""

    def __init__(self, log_level: str = "INFO", log_dir: Optional[Path] = None):
        self.logger = logging.getLogger(LOGGER_NAME)
        self.logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))
        self.logger.propagate = False

        # Streamlit reruns the script; never stack handlers
        self.logger.handlers.clear()

        formatter = logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        self.logger.addHandler(console_handler)

        self.log_file = None
        if log_dir is not None:
            log_dir.mkdir(parents=True, exist_ok=True)
            self.log_file = log_dir / "dashboard.log"
            file_handler = RotatingFileHandler(
                self.log_file,
                maxBytes=5 * 1024 * 1024,
                backupCount=5,
                encoding="utf-8",
            )
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(formatter)
            self.logger.addHandler(file_handler)


_logger_instance: Optional[DashboardLogger] = None


def configure_logging(log_level: Optional[str] = None, log_dir: Optional[Path] = None) -> logging.Logger:
    """(Re)build the application logger from arguments or the environment."""
    global _logger_instance
    _logger_instance = DashboardLogger(log_level or get_log_level(), log_dir or get_log_dir())
    return _logger_instance.logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get the application logger, or a child of it."""
    if _logger_instance is None:
        configure_logging()
    if name:
        return logging.getLogger(f"{LOGGER_NAME}.{name}")
    return logging.getLogger(LOGGER_NAME)
