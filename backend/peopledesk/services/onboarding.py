"""
Employee onboarding pipeline.

    1. insert the employee row                      step "employee"
    2. for each document:
       a. upload the binary to the documents bucket  step "upload:<name>"
       b. insert its employee_documents row          step "document:<name>"

Steps run in order and stop at the first failure. Nothing is rolled back: once
the employee row exists, a later failure raises PartialWriteError naming the
steps that did complete.
"""

import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

from peopledesk.access.scoped import ScopedStore
from peopledesk.core.exceptions import PartialWriteError, PeopleDeskError
from peopledesk.core.logging_config import get_logger
from peopledesk.core.security_utils import file_extension
from peopledesk.schemas.employee import EmployeeCreate
from peopledesk.storage.blob import BlobStorage
from peopledesk.store.query import Collection, Row


@dataclass
class DocumentUpload:
    name: str
    data: bytes
    content_type: Optional[str] = None


@dataclass
class OnboardingResult:
    employee: Row
    documents: List[Row] = field(default_factory=list)
    completed_steps: List[str] = field(default_factory=list)


def _millis() -> int:
    return int(time.time() * 1000)


class EmployeeOnboarding:

    def __init__(self, scoped: ScopedStore, blobs: BlobStorage, clock: Callable[[], int] = _millis):
        self._scoped = scoped
        self._blobs = blobs
        self._clock = clock
        self._last_stamp = 0
        identity = scoped.identity
        self._log = get_logger(__name__).bind(identity_id=identity.id if identity else None)

    def _next_stamp(self) -> int:
        # Blob paths are keyed by millisecond; keep them unique within one run
        stamp = max(self._clock(), self._last_stamp + 1)
        self._last_stamp = stamp
        return stamp

    async def run(self, employee: EmployeeCreate, documents: Sequence[DocumentUpload] = ()) -> OnboardingResult:
        values = employee.model_dump(mode="json")

        # Nothing exists yet, so a failure here is an ordinary error
        try:
            row = await self._scoped.insert(Collection.EMPLOYEES, values)
        except PeopleDeskError as exc:
            self._log.error(f"Onboarding {employee.email}: employee row failed: {exc.message}", extra={"step": "employee"})
            raise
        employee_id = row["id"]
        result = OnboardingResult(employee=row, completed_steps=["employee"])
        self._log.info(f"Onboarding {employee_id}: employee row created", extra={"step": "employee"})

        for document in documents:
            extension = file_extension(document.name)
            path = f"{employee_id}/{self._next_stamp()}.{extension}"

            step = f"upload:{document.name}"
            try:
                await self._blobs.upload(path, document.data, document.content_type)
            except PeopleDeskError as exc:
                raise self._partial(result, step, employee_id, exc) from exc
            result.completed_steps.append(step)
            self._log.info(f"Onboarding {employee_id}: stored {path}", extra={"step": step})

            step = f"document:{document.name}"
            try:
                doc_row = await self._scoped.insert(
                    Collection.EMPLOYEE_DOCUMENTS,
                    {
                        "employee_id": employee_id,
                        "name": document.name,
                        "file_url": path,
                        "file_type": extension,
                    },
                )
            except PeopleDeskError as exc:
                raise self._partial(result, step, employee_id, exc) from exc
            result.completed_steps.append(step)
            result.documents.append(doc_row)
            self._log.info(f"Onboarding {employee_id}: recorded {document.name}", extra={"step": step})

        return result

    def _partial(self, result: OnboardingResult, step: str, employee_id: str, exc: PeopleDeskError) -> PartialWriteError:
        self._log.error(
            f"Onboarding {employee_id}: step {step} failed after {result.completed_steps[-1]}: {exc.message}",
            extra={"step": step},
        )
        return PartialWriteError(
            f"Employee {employee_id} was created but step '{step}' failed: {exc.message}",
            completed_steps=result.completed_steps,
            failed_step=step,
            entity_id=employee_id,
            cause=exc,
        )
