"""
Row-level access filter.

Narrows queries and gates mutations by role, independently of whatever the
store enforces. The filter never raises: an unknown identity, collection or
action always gets the tightest answer (no rows, not permitted).
"""

from enum import Enum
from typing import Any, Iterable, Mapping, Optional, Union

from peopledesk.models.enums import LeaveStatus
from peopledesk.schemas.employee import SELF_SERVICE_FIELDS
from peopledesk.schemas.identity import Identity
from peopledesk.store.query import Collection, QuerySpec


# Employee fields a non-admin may group or filter headcounts by
COUNTABLE_EMPLOYEE_FIELDS = frozenset({"department", "position", "status"})


class Action(str, Enum):
    READ = "read"
    COUNT = "count"
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


def _collection(collection: Union[Collection, str]) -> Optional[Collection]:
    try:
        return Collection(collection)
    except ValueError:
        return None


class RowLevelAccessFilter:

    def scope(
        self,
        identity: Optional[Identity],
        collection: Union[Collection, str],
        query: Optional[QuerySpec] = None,
    ) -> Optional[QuerySpec]:
        """
        The effective query for identity, or None when no query may be issued at all.

        Non-admin restrictions are added as extra equality predicates, so a
        caller filter that names someone else simply matches nothing.
        """
        name = _collection(collection)
        if identity is None or name is None:
            return None
        query = query or QuerySpec()
        if identity.is_admin or name is Collection.DEPARTMENTS:
            return query
        if name is Collection.EMPLOYEES:
            return query.where(id=identity.id)
        if name in (Collection.LEAVE_REQUESTS, Collection.EMPLOYEE_DOCUMENTS):
            return query.where(employee_id=identity.id)
        return None

    def permits(
        self,
        identity: Optional[Identity],
        collection: Union[Collection, str],
        action: Action,
        row: Optional[Mapping[str, Any]] = None,
        changes: Optional[Mapping[str, Any]] = None,
        fields: Iterable[str] = (),
    ) -> bool:
        """
        Whether identity may perform action on collection.

        For COUNT, fields names every column the count groups or filters by.
        """
        name = _collection(collection)
        if identity is None or name is None:
            return False

        if action is Action.READ:
            return self.scope(identity, name) is not None
        if action is Action.COUNT:
            if identity.is_admin or name is Collection.DEPARTMENTS:
                return True
            return name is Collection.EMPLOYEES and set(fields) <= COUNTABLE_EMPLOYEE_FIELDS

        if name is Collection.LEAVE_REQUESTS:
            if action is Action.INSERT:
                return self._is_own_pending_request(identity, row)
            return identity.is_admin

        if identity.is_admin:
            return True

        if name is Collection.EMPLOYEES and action is Action.UPDATE:
            return self._is_self_service_update(identity, row, changes)
        return False

    @staticmethod
    def _is_own_pending_request(identity: Identity, row: Optional[Mapping[str, Any]]) -> bool:
        if not row or row.get("employee_id") != identity.id:
            return False
        if row.get("status", LeaveStatus.PENDING) != LeaveStatus.PENDING:
            return False
        return row.get("approved_by") is None

    @staticmethod
    def _is_self_service_update(
        identity: Identity,
        row: Optional[Mapping[str, Any]],
        changes: Optional[Mapping[str, Any]],
    ) -> bool:
        if not row or row.get("id") != identity.id or not changes:
            return False
        return set(changes) <= SELF_SERVICE_FIELDS
