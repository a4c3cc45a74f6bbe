"""
Loguru logger configuration with runtime level control and deduplication
"""
from loguru import logger
import sys
import time
import threading
from pathlib import Path
from collections import deque
from typing import Dict, Any
from tickerstream.config import settings


VALID_LEVELS = ["TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"]


class LogDeduplicationFilter:
    """Filter to suppress duplicate log messages from the same location.

    A record is dropped when another record from the same file and line
    was let through less than ``time_threshold_seconds`` ago. Price pages
    can report several readings per second, so without this the per-tick
    debug lines would flood the log file.

    Example:
        12:00:00.100 | DEBUG | ...session_manager.api:_on_reading:412 - BTCUSDT 43000.12
        12:00:00.350 | DEBUG | ...session_manager.api:_on_reading:412 - BTCUSDT 43000.50  <- Suppressed
        12:00:01.200 | DEBUG | ...session_manager.api:_on_reading:412 - BTCUSDT 43001.00  <- Allowed
    """

    def __init__(self, max_history: int = 5, time_threshold_seconds: float = 1.0):
        """Initialize deduplication filter.

        Args:
            max_history: Number of recent log locations to track
            time_threshold_seconds: Suppress duplicates within this time window
        """
        self.max_history = max_history
        self.time_threshold = time_threshold_seconds
        # Each entry: {"file": str, "line": int, "timestamp": float}
        self.recent_logs = deque(maxlen=max_history)
        self._lock = threading.Lock()

    def __call__(self, record: Dict[str, Any]) -> bool:
        """Return True to allow the record, False to suppress it."""
        # Warnings and errors are never deduplicated
        if record["level"].no >= logger.level("WARNING").no:
            return True

        current_file = record["file"].path
        current_line = record["line"]
        current_time = time.time()

        with self._lock:
            for recent in self.recent_logs:
                if recent["line"] == current_line and recent["file"] == current_file:
                    if current_time - recent["timestamp"] < self.time_threshold:
                        return False

            self.recent_logs.append({
                "file": current_file,
                "line": current_line,
                "timestamp": current_time
            })
            return True


class LoggerManager:
    """Manages application logging with runtime level control"""

    def __init__(self):
        self.current_level = settings.LOGGER.default_level.upper()
        self.log_file_path = Path(settings.LOGGER.file_path)
        self.log_rotation = settings.LOGGER.rotation
        self.log_retention = settings.LOGGER.retention

        self.dedup_filter = None
        if settings.LOGGER.filter_enabled:
            self.dedup_filter = LogDeduplicationFilter(
                max_history=settings.LOGGER.filter_max_history,
                time_threshold_seconds=settings.LOGGER.filter_time_threshold_seconds
            )

        self.setup_logger()

    def setup_logger(self):
        """Configure logger with console and file handlers"""
        self.log_file_path.parent.mkdir(parents=True, exist_ok=True)

        logger.remove()

        # Console follows the runtime level
        logger.add(
            sys.stderr,
            level=self.current_level,
            format=(
                "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
                "<level>{level: <8}</level> | "
                "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
                "<level>{message}</level>"
            ),
            colorize=True,
            backtrace=True,
            diagnose=False,
            filter=self.dedup_filter
        )

        # File handler with rotation and retention
        logger.add(
            str(self.log_file_path),
            level="DEBUG",
            format=(
                "{time:YYYY-MM-DD HH:mm:ss.SSS} | "
                "{level: <8} | "
                "{name}:{function}:{line} - "
                "{message}"
            ),
            rotation=self.log_rotation,
            retention=self.log_retention,
            compression="zip",
            backtrace=True,
            diagnose=False,
            enqueue=True,  # Thread-safe logging
            filter=self.dedup_filter
        )

        logger.debug(f"Logger initialized with level: {self.current_level}")

    def set_level(self, level: str) -> str:
        """
        Change console log level at runtime

        Args:
            level: New log level (TRACE, DEBUG, INFO, SUCCESS, WARNING, ERROR, CRITICAL)

        Returns:
            The new log level

        Raises:
            ValueError: If level is invalid
        """
        level_upper = level.upper()

        if level_upper not in VALID_LEVELS:
            raise ValueError(f"Invalid level '{level}'. Choose from: {', '.join(VALID_LEVELS)}")

        old_level = self.current_level
        self.current_level = level_upper
        self.setup_logger()

        logger.success(f"Log level changed from {old_level} to {level_upper}")
        return self.current_level

    def get_level(self) -> str:
        """Get current log level"""
        return self.current_level

    def get_available_levels(self) -> list[str]:
        """Get list of available log levels"""
        return list(VALID_LEVELS)


# Global logger manager instance
logger_manager = LoggerManager()

__all__ = ["logger", "logger_manager", "LogDeduplicationFilter", "VALID_LEVELS"]
