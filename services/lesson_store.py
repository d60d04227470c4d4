"""Persistence store for generated lessons and guideline records.

``LessonStore`` is the narrow async interface the engine depends on; the
database layer behind it is owned elsewhere.  ``InMemoryLessonStore`` backs
tests and single-process deployments.
"""

from __future__ import annotations

import copy
import threading
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any


class LessonStore(ABC):
    """Table-oriented async record store."""

    @abstractmethod
    async def insert(
        self,
        table: str,
        record: dict[str, Any],
        idempotency_key: str | None = None,
    ) -> dict[str, Any]:
        """Insert *record* and return it with ``id`` and ``createdAt`` set.

        Repeating an insert with the same *idempotency_key* returns the
        originally stored record instead of creating a second one.
        """

    @abstractmethod
    async def get(self, table: str, record_id: str) -> dict[str, Any] | None:
        ...

    @abstractmethod
    async def list(self, table: str) -> list[dict[str, Any]]:
        ...

    async def find(self, table: str, **filters: Any) -> list[dict[str, Any]]:
        """Records whose fields equal every keyword filter."""
        rows = await self.list(table)
        return [row for row in rows if all(row.get(k) == v for k, v in filters.items())]


class InMemoryLessonStore(LessonStore):
    """Dict-backed store; records are copied on the way in and out."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._tables: dict[str, dict[str, dict[str, Any]]] = {}
        self._idempotency: dict[tuple[str, str], str] = {}

    async def insert(
        self,
        table: str,
        record: dict[str, Any],
        idempotency_key: str | None = None,
    ) -> dict[str, Any]:
        with self._lock:
            rows = self._tables.setdefault(table, {})
            if idempotency_key is not None:
                existing_id = self._idempotency.get((table, idempotency_key))
                if existing_id is not None and existing_id in rows:
                    return copy.deepcopy(rows[existing_id])

            stored = copy.deepcopy(record)
            record_id = str(stored.get("id") or uuid.uuid4().hex)
            stored["id"] = record_id
            stored.setdefault("createdAt", datetime.now(timezone.utc).isoformat())
            rows[record_id] = stored
            if idempotency_key is not None:
                self._idempotency[(table, idempotency_key)] = record_id
            return copy.deepcopy(stored)

    async def get(self, table: str, record_id: str) -> dict[str, Any] | None:
        with self._lock:
            row = self._tables.get(table, {}).get(record_id)
            return copy.deepcopy(row) if row is not None else None

    async def list(self, table: str) -> list[dict[str, Any]]:
        with self._lock:
            return [copy.deepcopy(row) for row in self._tables.get(table, {}).values()]

    def count(self, table: str) -> int:
        with self._lock:
            return len(self._tables.get(table, {}))
