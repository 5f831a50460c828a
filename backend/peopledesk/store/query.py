"""
Query description shared by every store implementation.

A QuerySpec is a conjunction of equality predicates, at most one case-insensitive
substring predicate, a single sort key and an optional row limit. Specs are
immutable; every builder method returns a new spec.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Optional, Tuple

Row = Dict[str, Any]


class Collection(str, Enum):
    EMPLOYEES = "employees"
    DEPARTMENTS = "departments"
    LEAVE_REQUESTS = "leave_requests"
    EMPLOYEE_DOCUMENTS = "employee_documents"


class _AllSentinel:
    """Filter value meaning "no restriction on this field"."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "ALL"


ALL = _AllSentinel()


def is_unrestricted(value: Any) -> bool:
    """The sentinel, and the literal "all" that list filters send, both mean no restriction."""
    return value is ALL or (isinstance(value, str) and value.lower() == "all")


def _normalize(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


@dataclass(frozen=True)
class Eq:
    field: str
    value: Any

    @property
    def unrestricted(self) -> bool:
        return is_unrestricted(self.value)

    def matches(self, row: Row) -> bool:
        if self.unrestricted:
            return True
        return _normalize(row.get(self.field)) == _normalize(self.value)


@dataclass(frozen=True)
class Contains:
    """Case-insensitive substring match."""
    field: str
    term: str

    @property
    def unrestricted(self) -> bool:
        return not self.term

    def matches(self, row: Row) -> bool:
        if self.unrestricted:
            return True
        value = row.get(self.field)
        return value is not None and self.term.lower() in str(value).lower()


@dataclass(frozen=True)
class Ordering:
    field: str
    descending: bool = False


@dataclass(frozen=True)
class QuerySpec:
    filters: Tuple[Eq, ...] = field(default_factory=tuple)
    search: Optional[Contains] = None
    order: Optional[Ordering] = None
    limit: Optional[int] = None

    def where(self, **equals: Any) -> "QuerySpec":
        return replace(self, filters=self.filters + tuple(Eq(k, v) for k, v in equals.items()))

    def with_filter(self, predicate: Eq) -> "QuerySpec":
        return replace(self, filters=self.filters + (predicate,))

    def matching(self, field_name: str, term: Optional[str]) -> "QuerySpec":
        return replace(self, search=Contains(field_name, term or ""))

    def order_by(self, field_name: str, descending: bool = False) -> "QuerySpec":
        return replace(self, order=Ordering(field_name, descending))

    def limited(self, limit: Optional[int]) -> "QuerySpec":
        if limit is not None and limit < 0:
            raise ValueError("limit must be non-negative")
        return replace(self, limit=limit)

    @property
    def active_filters(self) -> Tuple[Eq, ...]:
        return tuple(p for p in self.filters if not p.unrestricted)

    def matches(self, row: Row) -> bool:
        """Evaluate the predicates against an already materialized row."""
        if not all(p.matches(row) for p in self.filters):
            return False
        return self.search is None or self.search.matches(row)

    def describe(self) -> Dict[str, Any]:
        """Loggable summary."""
        return {
            "filters": {p.field: _normalize(p.value) for p in self.active_filters},
            "search": None if self.search is None or self.search.unrestricted else {self.search.field: self.search.term},
            "order": None if self.order is None else f"{self.order.field}{' desc' if self.order.descending else ''}",
            "limit": self.limit,
        }
