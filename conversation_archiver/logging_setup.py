"""
Logging Setup Module - Category-tagged logging for the conversation archiver

Every message carries a [CONV_ARCHIVE][<CATEGORY>] tag. The tools log to
stderr, and optionally append to a log file as plain text or one JSON
object per line (--log-file / --json-logs).

Usage:
    from conversation_archiver.logging_setup import get_logger, LogCategory

    logger = get_logger()
    logger.info(f"{LogCategory.RENDER} Rendered {path}")
"""

import os
import sys
import json
import logging
import re
import time
import argparse
from pathlib import Path
from datetime import datetime
from typing import Optional, Set, Union
from dataclasses import dataclass, field
from functools import wraps


LOGGER_NAME = "conversation_archiver"


# =============================================================================
# Log Categories
# =============================================================================

class LogCategory:
    """Standard log category tags for the archiver."""

    PARSER = "[CONV_ARCHIVE][PARSER]"
    RENDER = "[CONV_ARCHIVE][RENDER]"
    ARCHIVE = "[CONV_ARCHIVE][ARCHIVE]"
    SEARCH = "[CONV_ARCHIVE][SEARCH]"

    FILE_IO = "[CONV_ARCHIVE][FILE_IO]"
    CONFIG = "[CONV_ARCHIVE][CONFIG]"

    PERF = "[CONV_ARCHIVE][PERF]"
    DEBUG = "[CONV_ARCHIVE][DEBUG]"
    ERROR = "[CONV_ARCHIVE][ERROR]"


CATEGORY_PATTERN = re.compile(r'\[CONV_ARCHIVE\]\[([^\]]+)\]')


def category_of(message: str) -> Optional[str]:
    """Category name tagged on a message, e.g. 'RENDER'; None when untagged."""
    match = CATEGORY_PATTERN.search(message)
    return match.group(1).upper() if match else None


@dataclass
class LoggingOptions:
    """What a tool asked for on its command line."""
    log_level: str = "INFO"
    log_file: Optional[Path] = None
    json_output: bool = False
    # one line per dropped record is too chatty unless DEBUG was requested
    muted_categories: Set[str] = field(default_factory=lambda: {"DEBUG"})


# =============================================================================
# Filter and Formatters
# =============================================================================

class CategoryFilter(logging.Filter):
    """Suppress records whose category is muted."""

    def __init__(self, muted: Set[str]):
        super().__init__()
        self.muted = set(muted)

    def filter(self, record: logging.LogRecord) -> bool:
        return category_of(record.getMessage()) not in self.muted


class JsonLineFormatter(logging.Formatter):
    """One JSON object per record, for log files read by other tools."""

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        entry = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "category": category_of(message),
            "message": message,
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False)


TEXT_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
TEXT_DATEFMT = "%Y-%m-%d %H:%M:%S"


# =============================================================================
# Logger Factory
# =============================================================================

_logger: Optional[logging.Logger] = None


def _build_logger(options: LoggingOptions) -> logging.Logger:
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.DEBUG)  # handlers decide what passes
    logger.propagate = False

    category_filter = CategoryFilter(options.muted_categories)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(getattr(logging, options.log_level.upper(), logging.INFO))
    console.setFormatter(logging.Formatter(TEXT_FORMAT, TEXT_DATEFMT))
    console.addFilter(category_filter)
    logger.addHandler(console)

    if options.log_file:
        options.log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(options.log_file, encoding='utf-8')
        # the file keeps everything the console would show and more
        file_handler.setLevel(logging.DEBUG)
        if options.json_output:
            file_handler.setFormatter(JsonLineFormatter())
        else:
            file_handler.setFormatter(logging.Formatter(TEXT_FORMAT, TEXT_DATEFMT))
        file_handler.addFilter(category_filter)
        logger.addHandler(file_handler)

    return logger


def get_logger() -> logging.Logger:
    """
    Get the archiver logger, creating it with defaults on first use.

    The default level comes from the LOG_LEVEL environment variable.
    """
    global _logger

    if _logger is None:
        _logger = _build_logger(LoggingOptions(log_level=os.environ.get("LOG_LEVEL", "INFO")))
    return _logger


def configure_logging(
    log_level: str = "INFO",
    log_file: Union[str, Path, None] = None,
    json_output: bool = False
) -> logging.Logger:
    """
    Replace the archiver logger's handlers.

    Args:
        log_level: Console level (DEBUG, INFO, WARNING, ERROR). DEBUG also
            unmutes the DEBUG category.
        log_file: Also append records to this file
        json_output: Write the log file as JSON lines

    Returns:
        Configured logger
    """
    global _logger

    options = LoggingOptions(
        log_level=log_level,
        log_file=Path(log_file).expanduser() if log_file else None,
        json_output=json_output,
    )
    if log_level.upper() == "DEBUG":
        options.muted_categories = set()

    _logger = _build_logger(options)
    return _logger


def add_logging_arguments(parser: argparse.ArgumentParser, default_level: str = "INFO"):
    """Add --log-level, --log-file and --json-logs to a tool's parser."""
    parser.add_argument(
        "--log-level",
        default=default_level,
        help=f"Log level (DEBUG, INFO, WARNING, ERROR; default: {default_level})"
    )
    parser.add_argument(
        "--log-file",
        help="Also write log records to this file"
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Write the log file as one JSON object per line"
    )


def configure_from_args(args: argparse.Namespace) -> logging.Logger:
    """configure_logging() from the options add_logging_arguments() added."""
    return configure_logging(
        log_level=args.log_level,
        log_file=args.log_file,
        json_output=args.json_logs,
    )


# =============================================================================
# Utility Functions
# =============================================================================

def log_performance(operation: str):
    """
    Decorator to log function performance.

    Usage:
        @log_performance("Render conversation")
        def render_file(...):
            ...
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            logger = get_logger()
            start_time = time.time()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                logger.error(f"{LogCategory.PERF} Failed: {operation} after {time.time() - start_time:.2f}s - {e}")
                raise
            logger.info(f"{LogCategory.PERF} Completed: {operation} ({time.time() - start_time:.2f}s)")
            return result

        return wrapper
    return decorator


def log_file_operation(operation: str, path: Path, details: str = ""):
    """Log a file read or write at debug level."""
    message = f"{LogCategory.FILE_IO} {operation}: {path}"
    if details:
        message += f" - {details}"
    get_logger().debug(message)
