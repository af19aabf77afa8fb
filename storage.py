"""Keyed JSON document store shared between the CLI and the service."""

import json
import logging
import os
import threading
from pathlib import Path
from typing import Any, Callable, Optional

from errors import StorageUnavailable

logger = logging.getLogger(__name__)

Listener = Callable[[str, Any, Any], None]


class KeyValueStore:
    """
    A JSON object persisted in one file, addressed by key.

    Writes replace the whole file atomically, so a reader in another
    process sees either the previous document or the new one.
    Listeners registered in this process are called after every
    successful write with (key, old_value, new_value).
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._listeners: list[Listener] = []
        self._lock = threading.Lock()

    def _read_text(self) -> Optional[str]:
        try:
            return self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageUnavailable(f"Cannot read {self.path}: {e}") from e

    def _decode(self, text: Optional[str]) -> dict:
        if text is None:
            return {}
        try:
            document = json.loads(text)
        except json.JSONDecodeError as e:
            raise StorageUnavailable(f"Corrupted store {self.path}: {e}") from e

        if not isinstance(document, dict):
            raise StorageUnavailable(f"Corrupted store {self.path}: not a JSON object")
        return document

    def _read_document(self) -> dict:
        return self._decode(self._read_text())

    def _write_document(self, document: dict) -> None:
        tmp = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(json.dumps(document, indent=2), encoding="utf-8")
            os.replace(tmp, self.path)
        except OSError as e:
            raise StorageUnavailable(f"Cannot write {self.path}: {e}") from e

    def get(self, key: str, default: Any = None) -> Any:
        """Return the value stored under key, or default if there is none."""
        return self._read_document().get(key, default)

    def set(self, key: str, value: Any) -> None:
        """Store value under key and notify listeners."""
        with self._lock:
            text = self._read_text()
            try:
                document = self._decode(text)
            except StorageUnavailable:
                # The writer holds the authoritative copy; start over.
                logger.warning("Replacing corrupted store %s", self.path)
                document = {}
            old_value = document.get(key)
            document[key] = value
            self._write_document(document)

        logger.debug("Wrote key %r to %s", key, self.path)
        # The write has landed; a failing listener must not undo that for the caller
        for listener in list(self._listeners):
            try:
                listener(key, old_value, value)
            except Exception:
                logger.exception("Change listener %r failed for key %r", listener, key)

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def signature(self) -> Optional[tuple[int, ...]]:
        """Cheap change token for the file: (inode, mtime_ns, size), None if absent."""
        try:
            stat = self.path.stat()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageUnavailable(f"Cannot stat {self.path}: {e}") from e
        return stat.st_ino, stat.st_mtime_ns, stat.st_size
