"""Entity resolution shared by lookup and mutation actions.

Targets named by the model (rather than by id) are resolved with a
case-insensitive substring match scoped to the caller's tenant, most
recently updated first. The first match wins unless the engine is configured
to reject ambiguous matches.
"""

from dataclasses import dataclass
from typing import Any, Mapping, Optional

import structlog

from ..store import CONTACTS, DEALS, PROPERTIES, TASKS, Record, Repository
from .errors import AmbiguousMatchError, CrossTenantError, NotFoundError

logger = structlog.get_logger(__name__)

MOST_RECENT = "most_recent"
REJECT = "reject"

_MAX_LISTED_CANDIDATES = 5


@dataclass(frozen=True)
class EntityKind:
    """How one kind of business object is looked up and described."""

    collection: str
    label: str
    search_field: str
    verb: str

    @property
    def title(self) -> str:
        return self.label.capitalize()

    def not_found_message(self, search: str, qualifier: str = "") -> str:
        noun = f"{qualifier} {self.label}" if qualifier else self.label
        article = "an" if noun[0].lower() in "aeiou" else "a"
        return f'Could not find {article} {noun} {self.verb} "{search}".'


CONTACT = EntityKind(CONTACTS, "contact", "name", "named")
DEAL = EntityKind(DEALS, "deal", "title", "titled")
TASK = EntityKind(TASKS, "task", "title", "titled")
PROPERTY = EntityKind(PROPERTIES, "property", "address", "at")

# Foreign-key fields and the kind of record they point at
LINKED_KINDS = {"contact_id": CONTACT, "deal_id": DEAL, "property_id": PROPERTY}


def ensure_owned(kind: EntityKind, record: Record, tenant_id: str) -> Record:
    """Fail unless the record belongs to the tenant.

    Raises:
        CrossTenantError: If the record belongs to another tenant
    """
    if record.get("tenant_id") != tenant_id:
        logger.warning(
            "Cross-tenant access refused",
            entity=kind.label,
            record_id=record.get("id"),
            tenant=tenant_id,
        )
        raise CrossTenantError(f"{kind.title} belongs to a different account.")
    return record


async def get_owned(store: Repository, kind: EntityKind, record_id: str, tenant_id: str) -> Record:
    """Load a record by id and check ownership.

    Raises:
        NotFoundError: If no record has this id
        CrossTenantError: If the record belongs to another tenant
    """
    record = await store.get(kind.collection, record_id)
    if record is None:
        raise NotFoundError(f"{kind.title} not found.")
    return ensure_owned(kind, record, tenant_id)


async def check_links(store: Repository, tenant_id: str, links: Mapping[str, Optional[str]]) -> None:
    """Check that every referenced record exists and belongs to the tenant.

    Args:
        store: Repository to query
        tenant_id: Tenant the new or updated record belongs to
        links: Foreign-key field (``contact_id``, ``deal_id``, ``property_id``) to id

    Raises:
        NotFoundError: If a referenced record does not exist
        CrossTenantError: If a referenced record belongs to another tenant
    """
    for field_name, record_id in links.items():
        if record_id:
            await get_owned(store, LINKED_KINDS[field_name], record_id, tenant_id)


async def find_by_name(
    store: Repository,
    kind: EntityKind,
    tenant_id: str,
    search: str,
    *,
    where: Optional[Mapping[str, Any]] = None,
    qualifier: str = "",
    policy: str = MOST_RECENT,
) -> Record:
    """Resolve a record by fuzzy name within a tenant.

    Args:
        store: Repository to query
        kind: Entity kind being resolved
        tenant_id: Tenant whose records are searched
        search: Text the model used to name the entity
        where: Extra exact-match filters (e.g. open tasks only)
        qualifier: Word inserted in the not-found message ("open")
        policy: MOST_RECENT picks the newest match, REJECT fails on several

    Returns:
        The chosen record

    Raises:
        NotFoundError: If nothing matches
        AmbiguousMatchError: If several match under the REJECT policy
    """
    matches = await store.find(
        kind.collection,
        tenant_id,
        where=where,
        contains={kind.search_field: search},
    )

    if not matches:
        raise NotFoundError(kind.not_found_message(search, qualifier))

    if len(matches) > 1:
        names = [str(m.get(kind.search_field)) for m in matches]
        if policy == REJECT:
            listed = ", ".join(f'"{n}"' for n in names[:_MAX_LISTED_CANDIDATES])
            if len(names) > _MAX_LISTED_CANDIDATES:
                listed += f" and {len(names) - _MAX_LISTED_CANDIDATES} more"
            raise AmbiguousMatchError(
                f'Found {len(matches)} {kind.label}s matching "{search}": {listed}. '
                f"Use a more specific {kind.search_field} or an id.",
                candidates=names,
            )
        logger.info(
            "Ambiguous name lookup, using most recently updated",
            entity=kind.label,
            search=search,
            candidates=len(matches),
            chosen=matches[0]["id"],
        )

    return matches[0]


async def resolve(
    store: Repository,
    kind: EntityKind,
    tenant_id: str,
    *,
    record_id: Optional[str] = None,
    search: Optional[str] = None,
    where: Optional[Mapping[str, Any]] = None,
    qualifier: str = "",
    policy: str = MOST_RECENT,
) -> Record:
    """Resolve a target by id when given, otherwise by fuzzy name.

    Ownership is re-checked on a fresh read of the chosen record before it is
    returned.
    """
    if not record_id:
        if not search:
            raise NotFoundError(f"No {kind.label} id or {kind.search_field} given.")
        found = await find_by_name(
            store,
            kind,
            tenant_id,
            search,
            where=where,
            qualifier=qualifier,
            policy=policy,
        )
        record_id = found["id"]

    return await get_owned(store, kind, record_id, tenant_id)
