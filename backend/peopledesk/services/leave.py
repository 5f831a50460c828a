from datetime import date, timedelta
from typing import Any, Dict, List, Optional

from peopledesk.access.scoped import ScopedStore
from peopledesk.core.exceptions import StoreError
from peopledesk.leave.workflow import LeaveApprovalWorkflow
from peopledesk.schemas.leave import LeaveRequestCreate
from peopledesk.store.query import ALL, Collection, QuerySpec, Row

MAX_CALENDAR_DAYS = 366


def leave_list_query(status: Any = ALL) -> QuerySpec:
    return QuerySpec().where(status=status).order_by("created_at", descending=True)


class LeaveService:
    """Leave listing for the current identity plus the approval workflow."""

    def __init__(self, scoped: ScopedStore):
        self._scoped = scoped
        self.workflow = LeaveApprovalWorkflow(scoped)

    async def with_names(self, rows: List[Row]) -> List[Row]:
        """Attach requester and approver names the identity is allowed to see."""
        if not rows:
            return rows
        people = await self._scoped.query(Collection.EMPLOYEES, QuerySpec())
        names: Dict[str, str] = {p["id"]: p["full_name"] for p in people}
        return [
            {
                **row,
                "employee_name": names.get(row["employee_id"]),
                "approver_name": names.get(row["approved_by"]) if row.get("approved_by") else None,
            }
            for row in rows
        ]

    async def list(self, status: Any = ALL) -> List[Row]:
        rows = await self._scoped.query(Collection.LEAVE_REQUESTS, leave_list_query(status))
        return await self.with_names(rows)

    async def calendar(self, start: date, end: date, status: Any = ALL) -> List[Row]:
        """
        Visible requests per day between start and end, both inclusive.

        A request covers every day from its start_date through its end_date.
        Only days with at least one request are returned, oldest first.
        """
        if end < start:
            raise StoreError("Calendar end must be on or after its start", reason="validation")
        if (end - start).days >= MAX_CALENDAR_DAYS:
            raise StoreError(f"Calendar spans at most {MAX_CALENDAR_DAYS} days", reason="validation")

        rows = await self._scoped.query(
            Collection.LEAVE_REQUESTS, QuerySpec().where(status=status).order_by("start_date")
        )
        rows = [row for row in rows if row["start_date"] <= end and row["end_date"] >= start]
        by_day: Dict[date, List[Row]] = {}
        for row in await self.with_names(rows):
            day = max(row["start_date"], start)
            last = min(row["end_date"], end)
            while day <= last:
                by_day.setdefault(day, []).append(row)
                day += timedelta(days=1)
        return [
            {"day": day, "count": len(by_day[day]), "requests": by_day[day]}
            for day in sorted(by_day)
        ]

    async def get(self, request_id: str) -> Optional[Row]:
        return await self._scoped.get(Collection.LEAVE_REQUESTS, request_id)

    async def submit(self, request: LeaveRequestCreate) -> Row:
        return await self.workflow.submit(request)

    async def approve(self, request_id: str) -> Row:
        return await self.workflow.approve(request_id)

    async def reject(self, request_id: str) -> Row:
        return await self.workflow.reject(request_id)
