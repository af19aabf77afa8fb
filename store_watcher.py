"""Change monitor that reports updates written to the store by another process."""

import logging
import threading
from typing import Any, Callable, Optional

from config import GROUPS_KEY, WATCH_INTERVAL
from errors import StorageUnavailable
from logutil import log_exception_throttled
from storage import KeyValueStore

logger = logging.getLogger(__name__)

_MISSING = object()
_UNREADABLE = object()


class StoreWatcher:
    """Polls the store file and reports changes to one key."""

    def __init__(
        self,
        store: KeyValueStore,
        on_change: Callable[[str, Any, Any], None],
        key: str = GROUPS_KEY,
        check_interval: float = WATCH_INTERVAL,
    ):
        """
        Initialize the store watcher.

        Args:
            store: The store to watch
            on_change: Called with (key, old_value, new_value) when the value changes
            key: The key to watch (default: "groups")
            check_interval: How often to check the store in seconds
        """
        self.store = store
        self.on_change = on_change
        self.key = key
        self.check_interval = check_interval

        self._running = False
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._last_signature: Optional[tuple[int, ...]] = None
        self._last_value: Any = _MISSING

    def check_now(self) -> bool:
        """
        Check the store once and report a change if there is one.

        Returns True if on_change was called.
        """
        signature = self.store.signature()
        if signature == self._last_signature and self._last_value is not _MISSING:
            return False

        try:
            value = self.store.get(self.key)
        except StorageUnavailable:
            if self._last_value is _MISSING:
                # No baseline yet, so the first good read must be reported
                self._last_value = _UNREADABLE
            raise
        self._last_signature = signature

        if self._last_value is _MISSING:
            # First look only records the baseline
            self._last_value = value
            return False
        if value == self._last_value:
            return False

        old_value = None if self._last_value is _UNREADABLE else self._last_value
        self._last_value = value
        logger.debug("Detected change to %r in %s", self.key, self.store.path)
        self.on_change(self.key, old_value, value)
        return True

    def _prime(self) -> None:
        try:
            self.check_now()
        except StorageUnavailable:
            log_exception_throttled(
                logger,
                "store_watcher.prime",
                interval_seconds=60.0,
                message="Cannot read store for initial snapshot",
            )

    def _monitor_loop(self) -> None:
        """Main monitoring loop."""
        while not self._stop_event.wait(self.check_interval):
            try:
                self.check_now()
            except Exception:
                log_exception_throttled(
                    logger,
                    "store_watcher.check",
                    interval_seconds=60.0,
                    message="Store check failed; will retry",
                )

    def start(self) -> None:
        """Start the watcher in a background thread."""
        if self._running:
            return

        self._prime()
        self._running = True
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._monitor_loop, daemon=True)
        self._thread.start()
        logger.info("Watching %s every %.1fs", self.store.path, self.check_interval)

    def stop(self) -> None:
        """Stop the watcher."""
        self._running = False
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=self.check_interval + 1)
            self._thread = None

    def is_running(self) -> bool:
        """Check if the watcher is running."""
        return self._running and self._thread is not None and self._thread.is_alive()
