"""
Logging configuration for the StreamFlow proxy.

This module provides logging setup with rotation, formatting,
and different log levels for different components.
"""

import logging
import logging.handlers
import os
import sys
import time
from datetime import datetime
from typing import Optional


class ColoredFormatter(logging.Formatter):
    """Colored formatter for console output"""

    # ANSI color codes
    COLORS = {
        'DEBUG': '\033[36m',    # Cyan
        'INFO': '\033[32m',     # Green
        'WARNING': '\033[33m',  # Yellow
        'ERROR': '\033[31m',    # Red
        'CRITICAL': '\033[35m', # Magenta
        'RESET': '\033[0m'      # Reset
    }

    def format(self, record):
        # Color a copy so file handlers keep the plain level name
        if record.levelname in self.COLORS:
            record = logging.makeLogRecord(record.__dict__)
            record.levelname = f"{self.COLORS[record.levelname]}{record.levelname}{self.COLORS['RESET']}"

        return super().format(record)


class StreamFlowLogger:
    """Logger setup for the StreamFlow proxy"""

    def __init__(self, log_level: str = "INFO", log_file: Optional[str] = None,
                 enable_console: bool = True, enable_rotation: bool = True):
        self.log_level = log_level.upper()
        self.log_file = log_file
        self.enable_console = enable_console
        self.enable_rotation = enable_rotation

        # Setup logging
        self._setup_logging()

    def _setup_logging(self) -> None:
        """Setup logging configuration"""

        # Get root logger
        root_logger = logging.getLogger()
        root_logger.setLevel(getattr(logging, self.log_level))

        # Clear existing handlers
        root_logger.handlers.clear()

        detailed_formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
        )

        colored_formatter = ColoredFormatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

        # Console handler
        if self.enable_console:
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setLevel(getattr(logging, self.log_level))
            console_handler.setFormatter(colored_formatter)
            root_logger.addHandler(console_handler)

        # File handler
        if self.log_file:
            try:
                log_dir = os.path.dirname(self.log_file)
                if log_dir and not os.path.exists(log_dir):
                    os.makedirs(log_dir)

                if self.enable_rotation:
                    # Rotating file handler (10MB max, keep 5 backups)
                    file_handler = logging.handlers.RotatingFileHandler(
                        self.log_file,
                        maxBytes=10*1024*1024,  # 10MB
                        backupCount=5
                    )
                else:
                    file_handler = logging.FileHandler(self.log_file)

                file_handler.setLevel(logging.DEBUG)  # File gets all messages
                file_handler.setFormatter(detailed_formatter)
                root_logger.addHandler(file_handler)

            except OSError as e:
                print(f"Warning: Could not setup file logging: {e}")

        self._setup_component_loggers()

        logger = logging.getLogger(__name__)
        logger.info(f"Logging initialized - Level: {self.log_level}, File: {self.log_file}")

    def _setup_component_loggers(self) -> None:
        """Setup specific log levels for different components"""
        debugging = self.log_level == 'DEBUG'

        # Proxy and resolution - the interesting part when debugging
        video_logger = logging.getLogger('streamflow.video')
        video_logger.setLevel(logging.DEBUG if debugging else logging.INFO)

        api_logger = logging.getLogger('streamflow.api')
        api_logger.setLevel(logging.DEBUG if debugging else logging.INFO)

        # Uvicorn - reduce noise unless debugging
        logging.getLogger('uvicorn').setLevel(logging.INFO if debugging else logging.WARNING)

        # httpx logs every upstream request at INFO
        logging.getLogger('httpx').setLevel(logging.INFO if debugging else logging.WARNING)
        logging.getLogger('httpcore').setLevel(logging.WARNING)

        logging.getLogger('fastapi').setLevel(logging.WARNING)

    @staticmethod
    def setup_exception_logging():
        """Setup logging for uncaught exceptions"""

        def handle_exception(exc_type, exc_value, exc_traceback):
            if issubclass(exc_type, KeyboardInterrupt):
                sys.__excepthook__(exc_type, exc_value, exc_traceback)
                return

            logger = logging.getLogger("uncaught_exception")
            logger.critical(
                "Uncaught exception",
                exc_info=(exc_type, exc_value, exc_traceback)
            )

        sys.excepthook = handle_exception


class PerformanceLogger:
    """Logger for timing operations; safe to share between concurrent requests"""

    def __init__(self, name: str):
        self.logger = logging.getLogger(f"performance.{name}")

    def start_timer(self, operation: str) -> float:
        """Start timing an operation, returning the start mark"""
        self.logger.debug(f"Started: {operation}")
        return time.monotonic()

    def end_timer(self, operation: str, started: float) -> float:
        """Log and return the duration since ``started``"""
        duration = time.monotonic() - started
        self.logger.info(f"Completed: {operation} in {duration:.3f}s")
        return duration


class ErrorTracker:
    """Track and log errors with context"""

    def __init__(self, component_name: str):
        self.component_name = component_name
        self.logger = logging.getLogger(f"errors.{component_name}")
        self.error_count = 0
        self.last_error_time: Optional[datetime] = None

    def log_error(self, error: Exception, context: str = "",
                  additional_data: Optional[dict] = None) -> None:
        """Log an error with context and tracking"""
        self.error_count += 1
        self.last_error_time = datetime.now()

        error_msg = f"Error in {self.component_name}"
        if context:
            error_msg += f" ({context})"
        error_msg += f": {str(error)}"

        if additional_data:
            error_msg += f" | Data: {additional_data}"

        self.logger.error(error_msg, exc_info=error)

    def get_error_stats(self) -> dict:
        """Get error statistics"""
        return {
            "component": self.component_name,
            "error_count": self.error_count,
            "last_error_time": self.last_error_time.isoformat() if self.last_error_time else None
        }


def setup_logging(log_level: str = "INFO", log_file: Optional[str] = None) -> StreamFlowLogger:
    """Setup logging for the entire application"""

    logger_setup = StreamFlowLogger(
        log_level=log_level,
        log_file=log_file,
        enable_console=True,
        enable_rotation=True
    )

    StreamFlowLogger.setup_exception_logging()

    return logger_setup


def get_performance_logger(component_name: str) -> PerformanceLogger:
    """Get a performance logger for a component"""
    return PerformanceLogger(component_name)


def get_error_tracker(component_name: str) -> ErrorTracker:
    """Get an error tracker for a component"""
    return ErrorTracker(component_name)
