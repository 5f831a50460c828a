from typing import Any, Dict, List, Mapping, Optional

from peopledesk.access.policy import Action, RowLevelAccessFilter
from peopledesk.core.exceptions import AccessDenied
from peopledesk.core.logging_config import get_logger
from peopledesk.schemas.identity import Identity
from peopledesk.store.base import CollectionName, EntityStore
from peopledesk.store.query import QuerySpec, Row


def _fields_of(spec: Optional[QuerySpec]) -> set:
    if spec is None:
        return set()
    fields = {predicate.field for predicate in spec.active_filters}
    if spec.search is not None and not spec.search.unrestricted:
        fields.add(spec.search.field)
    return fields

class ScopedStore:
    """
    An EntityStore bound to one identity through the access filter.

    Refused mutations raise AccessDenied before the store is called. A query
    the filter scopes to nothing returns no rows without touching the store.
    Returned rows are re-checked against the effective query.
    """

    def __init__(self, store: EntityStore, identity: Optional[Identity], policy: Optional[RowLevelAccessFilter] = None):
        self._store = store
        self._identity = identity
        self._policy = policy or RowLevelAccessFilter()
        self._log = get_logger(__name__).bind(identity_id=identity.id if identity else None)

    @property
    def identity(self) -> Optional[Identity]:
        return self._identity

    @property
    def is_admin(self) -> bool:
        return self._identity is not None and self._identity.is_admin

    @property
    def store(self) -> EntityStore:
        return self._store

    def _deny(self, collection: CollectionName, action: Action) -> AccessDenied:
        name = getattr(collection, "value", collection)
        self._log.warning(f"Refused {action.value} on {name}", extra={"collection": name})
        return AccessDenied(
            f"Not permitted to {action.value} {name}",
            collection=name,
            action=action.value,
        )

    def _require(self, collection: CollectionName, action: Action, row=None, changes=None, fields=()) -> None:
        if not self._policy.permits(self._identity, collection, action, row=row, changes=changes, fields=fields):
            raise self._deny(collection, action)

    async def query(self, collection: CollectionName, spec: Optional[QuerySpec] = None) -> List[Row]:
        scoped = self._policy.scope(self._identity, collection, spec)
        if scoped is None:
            self._log.debug(f"No query issued for {collection}: no access")
            return []
        rows = await self._store.query(collection, scoped)
        return [row for row in rows if scoped.matches(row)]

    async def get(self, collection: CollectionName, row_id: str) -> Optional[Row]:
        scoped = self._policy.scope(self._identity, collection)
        if scoped is None:
            return None
        row = await self._store.get(collection, row_id)
        if row is None or not scoped.matches(row):
            return None
        return row

    async def count(self, collection: CollectionName, spec: Optional[QuerySpec] = None) -> int:
        self._require(collection, Action.COUNT, fields=_fields_of(spec))
        return await self._store.count(collection, spec)

    async def count_by(self, collection: CollectionName, field: str, spec: Optional[QuerySpec] = None) -> Dict[Any, int]:
        self._require(collection, Action.COUNT, fields=_fields_of(spec) | {field})
        return await self._store.count_by(collection, field, spec)

    async def insert(self, collection: CollectionName, values: Mapping[str, Any]) -> Row:
        self._require(collection, Action.INSERT, row=values)
        return await self._store.insert(collection, values)

    async def update(self, collection: CollectionName, row_id: str, changes: Mapping[str, Any]) -> Row:
        self._require(collection, Action.UPDATE, row={"id": row_id}, changes=changes)
        return await self._store.update(collection, row_id, changes)

    async def delete(self, collection: CollectionName, row_id: str) -> Row:
        self._require(collection, Action.DELETE, row={"id": row_id})
        return await self._store.delete(collection, row_id)
