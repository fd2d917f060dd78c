"""In-memory repository used by tests and single-process deployments."""

import asyncio
import copy
import itertools
import uuid
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

import structlog

from ..actions.errors import NotFoundError
from ..utils.clock import utcnow
from .base import Record, Repository

logger = structlog.get_logger(__name__)


class InMemoryRepository(Repository):
    """Dict-backed repository guarded by a single asyncio lock."""

    def __init__(self, clock: Callable[[], datetime] = utcnow) -> None:
        """Initialize the repository.

        Args:
            clock: Source of ``created_at``/``updated_at`` timestamps
        """
        self._collections: Dict[str, Dict[str, Record]] = {}
        # Monotonic write sequence, used to break updated_at ties
        self._recency: Dict[Tuple[str, str], int] = {}
        self._sequence = itertools.count()
        self._clock = clock
        self._lock = asyncio.Lock()

        logger.info("Initialized InMemoryRepository")

    def _table(self, collection: str) -> Dict[str, Record]:
        return self._collections.setdefault(collection, {})

    async def insert(self, collection: str, record: Mapping[str, Any]) -> Record:
        async with self._lock:
            now = self._clock()
            stored = copy.deepcopy(dict(record))
            stored.setdefault("id", uuid.uuid4().hex)
            stored.setdefault("created_at", now)
            stored.setdefault("updated_at", now)

            table = self._table(collection)
            if stored["id"] in table:
                raise ValueError(f"Duplicate id '{stored['id']}' in {collection}")

            table[stored["id"]] = stored
            self._recency[(collection, stored["id"])] = next(self._sequence)

            logger.debug(
                "Inserted record",
                collection=collection,
                record_id=stored["id"],
                tenant=stored.get("tenant_id"),
            )
            return copy.deepcopy(stored)

    async def get(self, collection: str, record_id: str) -> Optional[Record]:
        async with self._lock:
            record = self._table(collection).get(record_id)
            return copy.deepcopy(record) if record is not None else None

    async def find(
        self,
        collection: str,
        tenant_id: str,
        *,
        where: Optional[Mapping[str, Any]] = None,
        contains: Optional[Mapping[str, str]] = None,
        order_by: str = "updated_at",
        descending: bool = True,
        limit: Optional[int] = None,
    ) -> List[Record]:
        async with self._lock:
            matches = [
                record
                for record in self._table(collection).values()
                if record.get("tenant_id") == tenant_id
                and self._matches_where(record, where)
                and self._matches_contains(record, contains)
            ]

            # Records without the sort field go last in either direction
            present = [r for r in matches if r.get(order_by) is not None]
            missing = [r for r in matches if r.get(order_by) is None]
            present.sort(
                key=lambda r: (r[order_by], self._recency[(collection, r["id"])]),
                reverse=descending,
            )
            ordered = present + missing

            if limit is not None:
                ordered = ordered[:limit]
            return [copy.deepcopy(r) for r in ordered]

    async def update(
        self,
        collection: str,
        record_id: str,
        changes: Mapping[str, Any],
        *,
        touch: bool = True,
    ) -> Record:
        async with self._lock:
            record = self._table(collection).get(record_id)
            if record is None:
                raise NotFoundError(f"{collection} record '{record_id}' not found")

            record.update(copy.deepcopy(dict(changes)))
            if touch:
                record["updated_at"] = self._clock()
            self._recency[(collection, record_id)] = next(self._sequence)

            logger.debug(
                "Updated record",
                collection=collection,
                record_id=record_id,
                fields=sorted(changes.keys()),
            )
            return copy.deepcopy(record)

    async def delete(self, collection: str, record_id: str) -> bool:
        async with self._lock:
            removed = self._table(collection).pop(record_id, None)
            self._recency.pop((collection, record_id), None)
            if removed is not None:
                logger.debug("Deleted record", collection=collection, record_id=record_id)
            return removed is not None

    @staticmethod
    def _matches_where(record: Record, where: Optional[Mapping[str, Any]]) -> bool:
        if not where:
            return True
        return all(record.get(field) == value for field, value in where.items())

    @staticmethod
    def _matches_contains(record: Record, contains: Optional[Mapping[str, str]]) -> bool:
        if not contains:
            return True
        for field, needle in contains.items():
            value = record.get(field)
            if value is not None and needle.lower() in str(value).lower():
                return True
        return False

    def get_stats(self) -> Dict[str, int]:
        """Record counts per collection."""
        return {name: len(table) for name, table in self._collections.items()}
