"""Key-value stores injected into the persistence boundary.

Keys are always namespaced by course and lesson (see ``lesson_key``), so
two lessons never share cached state.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from course_player.db import Database


def lesson_key(course_id: str, lesson_id: str, name: str) -> str:
    return f"course:{course_id}:lesson:{lesson_id}:{name}"


class KeyValueStore(ABC):
    @abstractmethod
    def get(self, key: str) -> Any:
        ...

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        ...


class MemoryStore(KeyValueStore):
    def __init__(self):
        self._data: dict[str, Any] = {}

    def get(self, key: str) -> Any:
        return self._data.get(key)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class DatabaseStore(KeyValueStore):
    """Store backed by the ``kv_cache`` table; values must be JSON-serializable."""

    def __init__(self, db: Database):
        self.db = db

    def get(self, key: str) -> Any:
        return self.db.kv_get(key)

    def set(self, key: str, value: Any) -> None:
        self.db.kv_set(key, value)

    def delete(self, key: str) -> None:
        self.db.kv_delete(key)
