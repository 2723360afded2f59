import json
import logging
import sys
import traceback
from datetime import datetime
from typing import Optional, Union


class JsonFormatter(logging.Formatter):
    """Render each record as a single JSON object: timestamp, level, msg."""

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created).astimezone()
        entry = {
            "timestamp": timestamp.isoformat(timespec="seconds"),
            "level": record.levelname,
            "msg": record.getMessage(),
        }
        return json.dumps(entry)


class _MaxLevelFilter(logging.Filter):
    """Let through only records strictly below the given level."""

    def __init__(self, level: int):
        super().__init__()
        self.level = level

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno < self.level


def setup_logging(level: Union[int, str] = logging.INFO, force: bool = False) -> None:
    """Configure root logging once. Subsequent calls are no-ops unless force is set.

    Records below ERROR are written to stdout, ERROR and above to stderr,
    both as JSON lines.
    """
    root = logging.getLogger()
    if root.handlers and not force:
        # Already configured; do nothing
        return
    for handler in list(root.handlers):
        root.removeHandler(handler)

    formatter = JsonFormatter()

    out_handler = logging.StreamHandler(sys.stdout)
    out_handler.setFormatter(formatter)
    out_handler.addFilter(_MaxLevelFilter(logging.ERROR))

    err_handler = logging.StreamHandler(sys.stderr)
    err_handler.setFormatter(formatter)
    err_handler.setLevel(logging.ERROR)

    root.addHandler(out_handler)
    root.addHandler(err_handler)
    root.setLevel(level)


def set_log_level(level: Union[int, str]) -> None:
    """Change the root log level after setup (e.g. once config is loaded)."""
    logging.getLogger().setLevel(level)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return a module/logger by name, after ensuring logging is configured."""
    setup_logging()
    return logging.getLogger(name) if name else logging.getLogger(__name__)


def log_exception(logger: logging.Logger, message: str = "An error occurred", exc_info: Exception = None) -> None:
    """Centralized exception logging with full traceback.

    Args:
        logger: Logger instance to use
        message: Custom error message to log before the traceback
        exc_info: Exception instance (if None, uses current exception context)
    """
    logger.error(message)
    if exc_info is not None:
        logger.error(f"Exception type: {type(exc_info).__name__}")
        logger.error(f"Exception message: {str(exc_info)}")
    logger.debug("Full traceback:")
    logger.debug(traceback.format_exc())
