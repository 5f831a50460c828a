from typing import Any, List, Optional, Tuple

from peopledesk.access.scoped import ScopedStore
from peopledesk.core.exceptions import StoreError
from peopledesk.models.enums import EmployeeStatus
from peopledesk.schemas.employee import EmployeeUpdate
from peopledesk.storage.blob import BlobStorage
from peopledesk.store.query import ALL, Collection, QuerySpec, Row


def employee_list_query(search: Optional[str] = None, department: Any = ALL, status: Any = ALL) -> QuerySpec:
    """The employee table query: name search, department and status filters, sorted by name."""
    return (
        QuerySpec()
        .matching("full_name", search)
        .where(department=department, status=status)
        .order_by("full_name")
    )


class EmployeeService:

    def __init__(self, scoped: ScopedStore, blobs: Optional[BlobStorage] = None):
        self._scoped = scoped
        self._blobs = blobs

    async def list(self, search: Optional[str] = None, department: Any = ALL, status: Any = ALL) -> List[Row]:
        return await self._scoped.query(Collection.EMPLOYEES, employee_list_query(search, department, status))

    async def get(self, employee_id: str) -> Optional[Row]:
        return await self._scoped.get(Collection.EMPLOYEES, employee_id)

    async def update(self, employee_id: str, update: EmployeeUpdate) -> Row:
        """Admin edit, or self-service when only contact fields change."""
        changes = update.model_dump(exclude_unset=True)
        if not changes:
            raise StoreError("No changes supplied", reason="validation")
        return await self._scoped.update(Collection.EMPLOYEES, employee_id, changes)

    async def set_status(self, employee_id: str, status: EmployeeStatus) -> Row:
        return await self._scoped.update(Collection.EMPLOYEES, employee_id, {"status": EmployeeStatus(status).value})

    async def delete(self, employee_id: str) -> Row:
        return await self._scoped.delete(Collection.EMPLOYEES, employee_id)

    async def documents(self, employee_id: str) -> List[Row]:
        spec = QuerySpec().where(employee_id=employee_id).order_by("uploaded_at", descending=True)
        return await self._scoped.query(Collection.EMPLOYEE_DOCUMENTS, spec)

    async def document(self, employee_id: str, document_id: str) -> Optional[Row]:
        row = await self._scoped.get(Collection.EMPLOYEE_DOCUMENTS, document_id)
        if row is None or row["employee_id"] != employee_id:
            return None
        return row

    async def download_document(self, employee_id: str, document_id: str) -> Optional[Tuple[Row, bytes]]:
        """The document row and its stored bytes, or None when the caller cannot see it."""
        row = await self.document(employee_id, document_id)
        if row is None:
            return None
        return row, await self._require_blobs().download(row["file_url"])

    async def delete_document(self, employee_id: str, document_id: str) -> Optional[Row]:
        """Remove the document row, then its blob."""
        row = await self.document(employee_id, document_id)
        if row is None:
            return None
        deleted = await self._scoped.delete(Collection.EMPLOYEE_DOCUMENTS, document_id)
        await self._require_blobs().delete(row["file_url"])
        return deleted

    def _require_blobs(self) -> BlobStorage:
        if self._blobs is None:
            raise StoreError("Document storage is not configured", reason="unavailable")
        return self._blobs
