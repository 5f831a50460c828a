"""
Leave request lifecycle.

    pending --approve--> approved
    pending --reject---> rejected

approved and rejected are terminal; there is no path back to pending.
"""

from typing import Dict, FrozenSet, List, Optional

from peopledesk.access.scoped import ScopedStore
from peopledesk.core.exceptions import AccessDenied, InvalidTransition, StoreError
from peopledesk.core.logging_config import get_logger
from peopledesk.models.enums import LeaveStatus
from peopledesk.schemas.leave import LeaveRequestCreate
from peopledesk.store.query import Collection, QuerySpec, Row

TRANSITIONS: Dict[LeaveStatus, FrozenSet[LeaveStatus]] = {
    LeaveStatus.PENDING: frozenset({LeaveStatus.APPROVED, LeaveStatus.REJECTED}),
    LeaveStatus.APPROVED: frozenset(),
    LeaveStatus.REJECTED: frozenset(),
}


class LeaveApprovalWorkflow:

    def __init__(self, scoped: ScopedStore):
        self._scoped = scoped
        identity = scoped.identity
        self._log = get_logger(__name__).bind(
            identity_id=identity.id if identity else None,
            collection=Collection.LEAVE_REQUESTS.value,
        )

    @staticmethod
    def can_transition(source: LeaveStatus, target: LeaveStatus) -> bool:
        return LeaveStatus(target) in TRANSITIONS[LeaveStatus(source)]

    async def list_requests(self, spec: Optional[QuerySpec] = None) -> List[Row]:
        """Visible requests, newest first."""
        spec = (spec or QuerySpec()).order_by("created_at", descending=True)
        return await self._scoped.query(Collection.LEAVE_REQUESTS, spec)

    async def submit(self, request: LeaveRequestCreate) -> Row:
        """File a request for the bound identity. It always starts pending with no approver."""
        identity = self._scoped.identity
        values = {
            "employee_id": identity.id if identity else None,
            "leave_type": request.leave_type.value,
            "start_date": request.start_date,
            "end_date": request.end_date,
            "reason": request.reason,
            "status": LeaveStatus.PENDING.value,
            "approved_by": None,
        }
        row = await self._scoped.insert(Collection.LEAVE_REQUESTS, values)
        self._log.info(f"Submitted leave request {row['id']} ({request.leave_type.value})")
        return row

    async def approve(self, request_id: str) -> Row:
        return await self._decide(request_id, LeaveStatus.APPROVED)

    async def reject(self, request_id: str) -> Row:
        return await self._decide(request_id, LeaveStatus.REJECTED)

    async def _decide(self, request_id: str, target: LeaveStatus) -> Row:
        identity = self._scoped.identity
        if identity is None or not identity.is_admin:
            self._log.warning(f"Refused {target.value} of leave request {request_id}")
            raise AccessDenied(
                "Only administrators can decide leave requests",
                collection=Collection.LEAVE_REQUESTS.value,
                action="update",
            )

        current = await self._scoped.get(Collection.LEAVE_REQUESTS, request_id)
        if current is None:
            raise StoreError(f"Leave request {request_id} not found", reason="not_found")
        source = LeaveStatus(current["status"])
        if not self.can_transition(source, target):
            raise InvalidTransition(source.value, target.value)

        # status and approver travel in one update
        row = await self._scoped.update(
            Collection.LEAVE_REQUESTS,
            request_id,
            {"status": target.value, "approved_by": identity.id},
        )
        self._log.info(f"Leave request {request_id} {source.value} -> {target.value}")
        return row
