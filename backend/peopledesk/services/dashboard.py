from typing import List, Optional

from peopledesk.access.scoped import ScopedStore
from peopledesk.core.config import settings
from peopledesk.models.enums import DepartmentStatus, EmployeeStatus
from peopledesk.schemas.dashboard import Activity, DashboardMetrics
from peopledesk.store.query import Collection, QuerySpec, Row


def activity_query(limit: Optional[int] = None) -> QuerySpec:
    """Most recent hires first."""
    limit = settings.ACTIVITY_FEED_LIMIT if limit is None else limit
    return QuerySpec().order_by("created_at", descending=True).limited(limit)


def activity_from_employee(row: Row) -> Activity:
    return Activity(
        id=row["id"],
        description=f"{row['full_name']} joined as {row['position']}",
        timestamp=row.get("created_at"),
    )


class DashboardService:

    def __init__(self, scoped: ScopedStore):
        self._scoped = scoped

    async def metrics(self) -> DashboardMetrics:
        active_employees = QuerySpec().where(status=EmployeeStatus.ACTIVE)
        headcount = await self._scoped.count(Collection.EMPLOYEES, active_employees)
        departments = await self._scoped.count(
            Collection.DEPARTMENTS, QuerySpec().where(status=DepartmentStatus.ACTIVE)
        )
        positions = await self._scoped.count_by(Collection.EMPLOYEES, "position", active_employees)

        payroll = None
        if self._scoped.is_admin:
            rows = await self._scoped.query(Collection.EMPLOYEES, active_employees)
            payroll = float(sum(row.get("salary") or 0 for row in rows))

        return DashboardMetrics(
            active_employees=headcount,
            active_departments=departments,
            positions=len([p for p in positions if p]),
            total_payroll=payroll,
        )

    async def activities(self, limit: Optional[int] = None) -> List[Activity]:
        rows = await self._scoped.query(Collection.EMPLOYEES, activity_query(limit))
        return [activity_from_employee(row) for row in rows]
