from typing import Any, Dict, List, Optional

from peopledesk.access.scoped import ScopedStore
from peopledesk.core.exceptions import StoreError
from peopledesk.models.enums import DepartmentStatus
from peopledesk.schemas.department import DepartmentCreate, DepartmentUpdate
from peopledesk.store.query import ALL, Collection, QuerySpec, Row


def department_list_query(search: Optional[str] = None, status: Any = ALL) -> QuerySpec:
    return QuerySpec().matching("name", search).where(status=status).order_by("name")


class DepartmentService:
    """
    Department reads and admin mutations.

    The stored employee_count is never returned as is; every read replaces it
    with a live count of employees whose department matches the name,
    ignoring case.
    """

    def __init__(self, scoped: ScopedStore):
        self._scoped = scoped

    async def headcounts(self) -> Dict[str, int]:
        grouped = await self._scoped.count_by(Collection.EMPLOYEES, "department")
        totals: Dict[str, int] = {}
        for department, count in grouped.items():
            if department is None:
                continue
            key = department.strip().lower()
            totals[key] = totals.get(key, 0) + count
        return totals

    async def with_counts(self, rows: List[Row]) -> List[Row]:
        if not rows:
            return rows
        totals = await self.headcounts()
        return [{**row, "employee_count": totals.get(row["name"].strip().lower(), 0)} for row in rows]

    async def list(self, search: Optional[str] = None, status: Any = ALL) -> List[Row]:
        rows = await self._scoped.query(Collection.DEPARTMENTS, department_list_query(search, status))
        return await self.with_counts(rows)

    async def get(self, department_id: str) -> Optional[Row]:
        row = await self._scoped.get(Collection.DEPARTMENTS, department_id)
        if row is None:
            return None
        return (await self.with_counts([row]))[0]

    async def create(self, department: DepartmentCreate) -> Row:
        values = {
            **department.model_dump(),
            "status": DepartmentStatus.ACTIVE.value,
            "employee_count": 0,
        }
        return await self._scoped.insert(Collection.DEPARTMENTS, values)

    async def update(self, department_id: str, update: DepartmentUpdate) -> Row:
        changes = update.model_dump(exclude_unset=True)
        if not changes:
            raise StoreError("No changes supplied", reason="validation")
        return await self._scoped.update(Collection.DEPARTMENTS, department_id, changes)

    async def set_status(self, department_id: str, status: DepartmentStatus) -> Row:
        return await self._scoped.update(
            Collection.DEPARTMENTS, department_id, {"status": DepartmentStatus(status).value}
        )

    async def delete(self, department_id: str) -> Row:
        return await self._scoped.delete(Collection.DEPARTMENTS, department_id)
