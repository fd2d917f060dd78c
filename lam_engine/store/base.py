"""Repository contract consumed by action executors."""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Optional

Record = Dict[str, Any]

CONTACTS = "contacts"
DEALS = "deals"
TASKS = "tasks"
MESSAGES = "messages"
PROFILES = "profiles"
PROPERTIES = "properties"


class Repository(ABC):
    """Generic async data store contract.

    Records are plain dicts carrying ``id``, ``tenant_id``, ``created_at`` and
    ``updated_at``. Reads return copies; callers never hold live references.
    """

    @abstractmethod
    async def insert(self, collection: str, record: Mapping[str, Any]) -> Record:
        """Insert a record and return the stored copy.

        Args:
            collection: Collection name (e.g. "contacts")
            record: Field values; ``id`` is generated when absent

        Returns:
            Stored record including generated fields
        """

    @abstractmethod
    async def get(self, collection: str, record_id: str) -> Optional[Record]:
        """Fetch a record by id regardless of tenant."""

    @abstractmethod
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
        """Query records of one tenant.

        Args:
            collection: Collection name
            tenant_id: Only records of this tenant are considered
            where: Exact-match field filters, all of which must hold
            contains: Case-insensitive substring filters, any of which may match
            order_by: Field to sort by
            descending: Sort direction
            limit: Maximum number of records to return

        Returns:
            Matching records
        """

    @abstractmethod
    async def update(
        self,
        collection: str,
        record_id: str,
        changes: Mapping[str, Any],
        *,
        touch: bool = True,
    ) -> Record:
        """Apply field changes and return the updated record.

        ``touch`` refreshes ``updated_at``; restoring a pre-image passes False so
        the captured timestamp is written back unchanged.
        """

    @abstractmethod
    async def delete(self, collection: str, record_id: str) -> bool:
        """Delete a record; returns False when it did not exist."""
