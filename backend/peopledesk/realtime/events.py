from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from peopledesk.store.query import Row


class EventType(str, Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class EventMask(str, Enum):
    """Which change events a subscription wants delivered."""
    INSERT_ONLY = "insert"
    ALL_CHANGES = "*"

    def matches(self, event_type: EventType) -> bool:
        if self is EventMask.ALL_CHANGES:
            return True
        return event_type is EventType.INSERT


@dataclass(frozen=True)
class ChangeEvent:
    """A row in `collection` was inserted, updated or deleted."""
    collection: str
    event_type: EventType
    row: Row
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def row_id(self) -> Optional[str]:
        return self.row.get("id")

    def to_payload(self) -> Dict[str, Any]:
        return {
            "collection": self.collection,
            "event_type": self.event_type.value,
            "row": {k: _jsonable(v) for k, v in self.row.items()},
            "occurred_at": self.occurred_at.isoformat(),
        }

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "ChangeEvent":
        return cls(
            collection=payload["collection"],
            event_type=EventType(payload["event_type"]),
            row=dict(payload.get("row") or {}),
            occurred_at=datetime.fromisoformat(payload["occurred_at"]),
        )


def _jsonable(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    return value
