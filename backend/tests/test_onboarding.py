"""
Tests for peopledesk/services/onboarding.py - employee creation with document uploads.
"""
from datetime import date
from typing import Optional
from unittest.mock import MagicMock

import pytest

from peopledesk.access.scoped import ScopedStore
from peopledesk.core.exceptions import AccessDenied, PartialWriteError, StoreError
from peopledesk.schemas.employee import EmployeeCreate
from peopledesk.services.onboarding import DocumentUpload, EmployeeOnboarding
from peopledesk.storage.blob import BlobStorage, LocalBlobStorage, StoredBlob
from peopledesk.store.query import Collection, QuerySpec


def _new_hire(**overrides) -> EmployeeCreate:
    values = dict(
        full_name="Nina New",
        email="nina@example.com",
        department="Engineering",
        position="Engineer",
        start_date=date(2025, 9, 1),
        salary=55000,
    )
    values.update(overrides)
    return EmployeeCreate(**values)


class FailingBlobStorage(BlobStorage):
    """Accepts the first `succeed` uploads, then fails."""

    def __init__(self, succeed: int = 0):
        self.succeed = succeed
        self.paths = []

    async def upload(self, path: str, data: bytes, content_type: Optional[str] = None) -> StoredBlob:
        if len(self.paths) >= self.succeed:
            raise StoreError("bucket unavailable", reason="storage_error")
        self.paths.append(path)
        return StoredBlob(bucket="test", path=path, size=len(data), content_type=content_type)

    async def download(self, path: str) -> bytes:
        raise StoreError("not found", reason="not_found")

    async def delete(self, path: str) -> None:
        return None


class TestOnboarding:

    @pytest.mark.asyncio
    async def test_employee_and_documents_written_in_order(self, runtime, seeded, admin_identity):
        onboarding = EmployeeOnboarding(runtime.scoped(admin_identity), runtime.blobs, clock=lambda: 1700000000000)

        result = await onboarding.run(
            _new_hire(),
            [DocumentUpload("contract.pdf", b"%PDF-1.4"), DocumentUpload("id.PNG", b"\x89PNG")],
        )

        employee_id = result.employee["id"]
        assert result.completed_steps == [
            "employee",
            "upload:contract.pdf",
            "document:contract.pdf",
            "upload:id.PNG",
            "document:id.PNG",
        ]
        assert [d["file_url"] for d in result.documents] == [
            f"{employee_id}/1700000000000.pdf",
            f"{employee_id}/1700000000001.png",
        ]
        assert [d["file_type"] for d in result.documents] == ["pdf", "png"]
        assert await runtime.blobs.download(f"{employee_id}/1700000000000.pdf") == b"%PDF-1.4"

    @pytest.mark.asyncio
    async def test_no_documents(self, runtime, seeded, admin_identity):
        onboarding = EmployeeOnboarding(runtime.scoped(admin_identity), runtime.blobs)

        result = await onboarding.run(_new_hire())

        assert result.completed_steps == ["employee"]
        assert result.documents == []
        assert result.employee["status"] == "active"
        assert result.employee["role"] == "employee"

    @pytest.mark.asyncio
    async def test_upload_failure_reports_partial_write(self, runtime, seeded, admin_identity):
        blobs = FailingBlobStorage(succeed=1)
        onboarding = EmployeeOnboarding(runtime.scoped(admin_identity), blobs)

        with pytest.raises(PartialWriteError) as exc_info:
            await onboarding.run(
                _new_hire(),
                [DocumentUpload("contract.pdf", b"a"), DocumentUpload("id.png", b"b")],
            )

        error = exc_info.value
        assert error.completed_steps == ["employee", "upload:contract.pdf", "document:contract.pdf"]
        assert error.failed_step == "upload:id.png"
        assert error.last_completed_step == "document:contract.pdf"
        assert isinstance(error.cause, StoreError)
        # Nothing is rolled back
        assert await runtime.store.get(Collection.EMPLOYEES, error.entity_id) is not None
        documents = await runtime.store.query(Collection.EMPLOYEE_DOCUMENTS, QuerySpec().where(employee_id=error.entity_id))
        assert len(documents) == 1

    @pytest.mark.asyncio
    async def test_oversize_document(self, runtime, seeded, admin_identity, tmp_path):
        blobs = LocalBlobStorage(root=str(tmp_path), max_bytes=4)
        onboarding = EmployeeOnboarding(runtime.scoped(admin_identity), blobs)

        with pytest.raises(PartialWriteError) as exc_info:
            await onboarding.run(_new_hire(), [DocumentUpload("scan.pdf", b"too large")])

        assert exc_info.value.completed_steps == ["employee"]
        assert exc_info.value.cause.reason == "too_large"

    @pytest.mark.asyncio
    async def test_employee_failure_is_not_partial(self, runtime, seeded, admin_identity):
        onboarding = EmployeeOnboarding(runtime.scoped(admin_identity), runtime.blobs)

        with pytest.raises(StoreError) as exc_info:
            await onboarding.run(_new_hire(email="emma@example.com"), [DocumentUpload("a.pdf", b"a")])

        assert not isinstance(exc_info.value, PartialWriteError)
        assert exc_info.value.reason == "constraint"

    @pytest.mark.asyncio
    async def test_employees_cannot_onboard(self, runtime, seeded, e1_identity):
        onboarding = EmployeeOnboarding(runtime.scoped(e1_identity), runtime.blobs)

        with pytest.raises(AccessDenied):
            await onboarding.run(_new_hire())

    def test_stamps_are_unique_within_a_run(self, tmp_path):
        onboarding = EmployeeOnboarding(ScopedStore(MagicMock(), None), LocalBlobStorage(root=str(tmp_path)), clock=lambda: 5)

        assert [onboarding._next_stamp() for _ in range(3)] == [5, 6, 7]


class TestLocalBlobStorage:

    @pytest.mark.asyncio
    async def test_round_trip_and_delete(self, tmp_path):
        blobs = LocalBlobStorage(root=str(tmp_path), bucket="docs", max_bytes=1024)

        stored = await blobs.upload("emp-1/1.pdf", b"data", "application/pdf")

        assert stored.bucket == "docs"
        assert stored.size == 4
        assert (tmp_path / "docs" / "emp-1" / "1.pdf").read_bytes() == b"data"
        assert await blobs.download("emp-1/1.pdf") == b"data"
        await blobs.delete("emp-1/1.pdf")
        with pytest.raises(StoreError):
            await blobs.download("emp-1/1.pdf")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("path", ["../escape.pdf", "/etc/passwd", "a/../../b", ""])
    async def test_paths_outside_bucket_rejected(self, tmp_path, path):
        blobs = LocalBlobStorage(root=str(tmp_path), max_bytes=1024)

        with pytest.raises(StoreError) as exc_info:
            await blobs.upload(path, b"x")

        assert exc_info.value.reason == "invalid_path"
