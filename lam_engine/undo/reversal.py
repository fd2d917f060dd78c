"""Reversal descriptors returned by undoable actions.

The undo manager stores these opaquely and calls ``apply`` to reverse the
original mutation; it never inspects the business meaning of the fields.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable

from ..actions.errors import CrossTenantError, NotFoundError
from ..store.base import Repository


class Reversal(ABC):
    """Inverse of a single tier-1 mutation."""

    collection: str
    record_id: str

    @abstractmethod
    async def apply(self, store: Repository, tenant_id: str) -> None:
        """Reverse the mutation.

        Args:
            store: Repository holding the mutated record
            tenant_id: Tenant the undo was requested for

        Raises:
            NotFoundError: If the record no longer exists
            CrossTenantError: If the record belongs to another tenant
        """

    @abstractmethod
    def describe(self) -> str:
        """Short human-readable description."""

    async def _load_owned(self, store: Repository, tenant_id: str) -> Dict[str, Any]:
        record = await store.get(self.collection, self.record_id)
        if record is None:
            raise NotFoundError(f"{self.collection} record {self.record_id} no longer exists")
        if record.get("tenant_id") != tenant_id:
            raise CrossTenantError(f"{self.collection} record {self.record_id} belongs to a different account")
        return record


@dataclass
class RestoreFields(Reversal):
    """Write back the pre-mutation values of the changed fields."""

    collection: str
    record_id: str
    fields: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_snapshot(cls, collection: str, before: Dict[str, Any], changed: Iterable[str]) -> "RestoreFields":
        """Capture the prior values of ``changed`` plus the prior ``updated_at``."""
        keys = set(changed) | {"updated_at"}
        return cls(
            collection=collection,
            record_id=before["id"],
            fields={key: before.get(key) for key in keys},
        )

    async def apply(self, store: Repository, tenant_id: str) -> None:
        await self._load_owned(store, tenant_id)
        await store.update(self.collection, self.record_id, self.fields, touch="updated_at" not in self.fields)

    def describe(self) -> str:
        return f"restore {', '.join(sorted(self.fields))} on {self.collection}/{self.record_id}"


@dataclass
class DeleteRecord(Reversal):
    """Remove a record the action created."""

    collection: str
    record_id: str

    async def apply(self, store: Repository, tenant_id: str) -> None:
        await self._load_owned(store, tenant_id)
        await store.delete(self.collection, self.record_id)

    def describe(self) -> str:
        return f"delete {self.collection}/{self.record_id}"
