# taskwerk/core/utils/logger.py

"""
Logging configuration and utilities for taskwerk.

This module provides centralized logging configuration and utility functions
for consistent error reporting across taskwerk modules.

Key Features:
- Global logger instance with lazy initialization
- Standardized log message formats with module context
- Optional console and file output
- Configuration change and file operation logging
"""

import logging
import sys
from typing import Any

# Global logger instance for singleton pattern
# This ensures all modules use the same logger configuration
_logger: logging.Logger | None = None

LOGGER_NAME = "taskwerk"

# Default logging configuration values
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DEFAULT_LOG_FILE = "taskwerk.log"

# developer.logLevel values -> logging levels
CONFIG_LEVELS = {
    "error": "ERROR",
    "warn": "WARNING",
    "info": "INFO",
    "debug": "DEBUG",
    "trace": "DEBUG",
}


def setup_logging(
    level: str = DEFAULT_LOG_LEVEL,
    log_file: str | None = None,
    format_string: str | None = None,
    console: bool = True,
) -> logging.Logger:
    """
    Set up logging configuration for taskwerk.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL) or one of
               the configuration values (error, warn, info, debug, trace)
        log_file: Path to log file (optional). If provided, logs will be
                 written to the file as well.
        format_string: Custom log format string (optional).
        console: Attach a stderr handler.

    Returns:
        Configured logger instance

    Note:
        Subsequent calls replace the handlers of the same ``taskwerk`` logger,
        so reconfiguring is safe.
    """
    global _logger

    level_name = CONFIG_LEVELS.get(level.lower(), level.upper())
    numeric_level = getattr(logging, level_name, logging.INFO)

    logger = logging.getLogger(LOGGER_NAME)
    logger.disabled = False
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(numeric_level)

    formatter = logging.Formatter(format_string or DEFAULT_LOG_FORMAT)

    if console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(numeric_level)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    if log_file:
        try:
            file_handler = logging.FileHandler(log_file, encoding="utf-8")
        except OSError as e:
            logger.warning(f"Could not open log file {log_file}: {e}")
        else:
            file_handler.setLevel(numeric_level)
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

    if not logger.handlers:
        logger.addHandler(logging.NullHandler())

    _logger = logger
    return logger


def get_logger() -> logging.Logger:
    """
    Get the global logger instance.

    Returns the ``taskwerk`` logger without attaching handlers when logging
    has not been set up yet; records then propagate to the root logger.
    """
    if _logger is None:
        return logging.getLogger(LOGGER_NAME)
    return _logger


def _format(module: str, message: str, context: str) -> str:
    message = f"[{module.upper()}] {message}"
    if context:
        message += f" | Context: {context}"
    return message


def log_error(
    module: str, error: str, context: str = "", exception: Exception | None = None
) -> None:
    """
    Log a standardized error message.

    Args:
        module: Name of the module where the error occurred
        error: Error message describing what went wrong
        context: Additional context information (optional)
        exception: Exception object to include stack trace (optional)
    """
    logger = get_logger()
    if exception:
        logger.error(_format(module, error, context), exc_info=exception)
    else:
        logger.error(_format(module, error, context))


def log_warning(module: str, warning: str, context: str = "") -> None:
    """
    Log a standardized warning message.

    Warnings indicate potential issues that don't prevent execution.
    """
    get_logger().warning(_format(module, warning, context))


def log_info(module: str, message: str, context: str = "") -> None:
    """Log a standardized info message."""
    get_logger().info(_format(module, message, context))


def log_debug(module: str, message: str, context: str = "") -> None:
    """Log a standardized debug message."""
    get_logger().debug(_format(module, message, context))


def log_configuration_change(setting: str, old_value: Any, new_value: Any) -> None:
    """
    Log a configuration change.

    Args:
        setting: Name of the setting that changed
        old_value: Previous value of the setting
        new_value: New value of the setting
    """
    get_logger().info(f"Configuration changed: {setting} = {old_value} -> {new_value}")


def log_file_operation(
    operation: str, file_path: str, success: bool, error: str | None = None
) -> None:
    """
    Log a file operation.

    Args:
        operation: Type of operation (read, write, delete, etc.)
        file_path: Path to the file being operated on
        success: Whether the operation was successful
        error: Error message if the operation failed (optional)
    """
    logger = get_logger()
    if success:
        logger.debug(f"File {operation}: {file_path}")
    else:
        logger.error(f"File {operation} failed: {file_path} - {error}")


def reset_logging() -> None:
    """
    Reset the global logger instance.

    This is useful for testing or when you need to reconfigure
    the logging system from scratch.
    """
    global _logger
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)
    _logger = None
