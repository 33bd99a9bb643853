"""
Configuration Management - Key-Value Store Contract.

============================================================
PURPOSE
============================================================
The version manager persists everything through four calls:

    get(key) -> Optional[str]
    set(key, value)
    list_append(key, value)
    list_range(key, start, end) -> List[str]

Values are opaque strings (JSON documents in practice).
``list_range`` uses inclusive bounds with ``-1`` meaning the
last element, so ``list_range(key, 0, -1)`` is the whole list.

============================================================
IMPLEMENTATIONS
============================================================
- InMemoryKeyValueStore: process-local, lock-guarded
- SqlKeyValueStore (sql_store): SQLAlchemy-backed

============================================================
"""

import threading
from abc import ABC, abstractmethod
from typing import Dict, List, Optional


class KeyValueStore(ABC):
    """Abstract keyed store used for configuration persistence."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the value under ``key`` or None."""
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""
        pass

    @abstractmethod
    def list_append(self, key: str, value: str) -> None:
        """Append ``value`` to the list under ``key``, creating it if needed."""
        pass

    @abstractmethod
    def list_range(self, key: str, start: int = 0, end: int = -1) -> List[str]:
        """Return list elements ``start..end`` inclusive; missing list is empty."""
        pass


def slice_inclusive(values: List[str], start: int, end: int) -> List[str]:
    """Apply inclusive, negative-aware range bounds to ``values``."""
    size = len(values)
    if start < 0:
        start = max(size + start, 0)
    if end < 0:
        end = size + end
    if start > end or start >= size:
        return []
    return values[start:end + 1]


class InMemoryKeyValueStore(KeyValueStore):
    """
    Dict-backed store.

    A single lock guards both maps so readers never observe a
    partially written value.
    """

    def __init__(self) -> None:
        self._values: Dict[str, str] = {}
        self._lists: Dict[str, List[str]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._values[key] = value

    def list_append(self, key: str, value: str) -> None:
        with self._lock:
            self._lists.setdefault(key, []).append(value)

    def list_range(self, key: str, start: int = 0, end: int = -1) -> List[str]:
        with self._lock:
            values = list(self._lists.get(key, []))
        return slice_inclusive(values, start, end)

    def keys(self) -> List[str]:
        with self._lock:
            return sorted(set(self._values) | set(self._lists))
