"""
store/memory.py -- In-process Store backend for tests and ephemeral use.

Values are kept as codec output, not as live objects, so callers never share
mutable state with the store and encoding faults surface exactly as they
would against SQLite. One lock serializes every primitive; a scan copies the
matching entries under that lock, which makes it a snapshot.
"""

from __future__ import annotations

import threading

from store.base import Store


class MemoryStore(Store):
    def __init__(self) -> None:
        self._data: dict[str, bytes] = {}
        self._lock = threading.Lock()

    def _get(self, key: str) -> bytes | None:
        with self._lock:
            return self._data.get(key)

    def _put(self, key: str, value: bytes) -> None:
        with self._lock:
            self._data[key] = value

    def _insert(self, key: str, value: bytes) -> bool:
        with self._lock:
            if key in self._data:
                return False
            self._data[key] = value
            return True

    def _delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def _scan(self, prefix: str) -> list[tuple[str, bytes]]:
        # Sort on UTF-8 bytes to match SQLite's BINARY collation exactly.
        with self._lock:
            items = [(k, v) for k, v in self._data.items() if k.startswith(prefix)]
        return sorted(items, key=lambda item: item[0].encode("utf-8"))

    def close(self) -> None:
        with self._lock:
            self._data.clear()
