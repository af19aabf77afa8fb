"""Logging setup and helpers."""

import logging
import threading
import time

from config import LOG_FORMAT, LOG_LEVEL

_lock = threading.Lock()
_last_log: dict[str, float] = {}


def setup_logging(level: str = LOG_LEVEL) -> None:
    """Configure the root logger once for a CLI or service run."""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)


def should_log(key: str, *, interval_seconds: float) -> bool:
    now = time.monotonic()
    with _lock:
        last = _last_log.get(key)
        if last is not None and (now - last) < interval_seconds:
            return False
        _last_log[key] = now
        return True


def log_exception_throttled(
    logger: logging.Logger, key: str, *args, interval_seconds: float, message: str
) -> None:
    """Log the current exception at most once per interval per key.

    Meant for background loops where a persistent failure would otherwise
    repeat the same traceback on every iteration.
    """
    if should_log(key, interval_seconds=interval_seconds):
        logger.exception(message, *args)
