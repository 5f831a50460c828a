from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Optional, Union

from peopledesk.store.query import Collection, QuerySpec, Row

CollectionName = Union[Collection, str]


class EntityStore(ABC):
    """
    Collection-scoped access to the relational store.

    Every method raises StoreError on failure. A single mutation is never
    partially applied.
    """

    @abstractmethod
    async def query(self, collection: CollectionName, spec: Optional[QuerySpec] = None) -> List[Row]:
        """Rows matching spec, in spec order, at most spec.limit of them."""

    @abstractmethod
    async def get(self, collection: CollectionName, row_id: str) -> Optional[Row]:
        ...

    @abstractmethod
    async def count(self, collection: CollectionName, spec: Optional[QuerySpec] = None) -> int:
        ...

    @abstractmethod
    async def count_by(self, collection: CollectionName, field: str, spec: Optional[QuerySpec] = None) -> Dict[Any, int]:
        """Row counts grouped by the value of one field."""

    @abstractmethod
    async def insert(self, collection: CollectionName, values: Mapping[str, Any]) -> Row:
        ...

    @abstractmethod
    async def update(self, collection: CollectionName, row_id: str, changes: Mapping[str, Any]) -> Row:
        """Apply changes to one row and return it. Unknown id raises StoreError(reason="not_found")."""

    @abstractmethod
    async def delete(self, collection: CollectionName, row_id: str) -> Row:
        """Delete one row and return it as it was."""
