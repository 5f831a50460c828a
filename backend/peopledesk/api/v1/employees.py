import mimetypes
from datetime import date
from typing import Any, List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, Response, UploadFile, status
from pydantic import ValidationError

from peopledesk.api.deps import get_employee_service, get_onboarding
from peopledesk.core.security_utils import sanitize_filename, validate_uuid
from peopledesk.models.enums import EmployeeStatus, Role
from peopledesk.schemas.document import DocumentResponse
from peopledesk.schemas.employee import (
    EmployeeCreate,
    EmployeeResponse,
    EmployeeStatusUpdate,
    EmployeeUpdate,
    OnboardingResponse,
)
from peopledesk.services.employees import EmployeeService
from peopledesk.services.onboarding import DocumentUpload, EmployeeOnboarding

router = APIRouter()


@router.get("", response_model=List[EmployeeResponse])
async def list_employees(
    search: Optional[str] = None,
    department: str = "all",
    status_filter: str = Query("all", alias="status"),
    service: EmployeeService = Depends(get_employee_service),
) -> Any:
    """
    Employees visible to the caller, sorted by name.

    Administrators see everyone; employees see only their own record.
    "all" disables the department or status filter.
    """
    return await service.list(search=search, department=department, status=status_filter)


@router.get("/{employee_id}", response_model=EmployeeResponse)
async def read_employee(
    employee_id: str,
    service: EmployeeService = Depends(get_employee_service),
) -> Any:
    employee = await service.get(employee_id) if validate_uuid(employee_id) else None
    if employee is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Employee not found",
        )
    return employee


@router.get("/{employee_id}/documents", response_model=List[DocumentResponse])
async def list_documents(
    employee_id: str,
    service: EmployeeService = Depends(get_employee_service),
) -> Any:
    return await service.documents(employee_id)


@router.get("/{employee_id}/documents/{document_id}/download")
async def download_document(
    employee_id: str,
    document_id: str,
    service: EmployeeService = Depends(get_employee_service),
) -> Response:
    found = await service.download_document(employee_id, document_id)
    if found is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Document not found",
        )
    document, data = found
    media_type = mimetypes.guess_type(document["name"])[0] or "application/octet-stream"
    return Response(
        content=data,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{sanitize_filename(document["name"])}"'},
    )


@router.delete("/{employee_id}/documents/{document_id}", response_model=DocumentResponse)
async def delete_document(
    employee_id: str,
    document_id: str,
    service: EmployeeService = Depends(get_employee_service),
) -> Any:
    """Administrators only. Removes the record and the stored file."""
    deleted = await service.delete_document(employee_id, document_id)
    if deleted is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Document not found",
        )
    return deleted


@router.post("", response_model=OnboardingResponse, status_code=status.HTTP_201_CREATED)
async def create_employee(
    full_name: str = Form(...),
    email: str = Form(...),
    department: str = Form(...),
    position: str = Form(...),
    start_date: date = Form(...),
    salary: float = Form(0),
    phone: Optional[str] = Form(None),
    address: Optional[str] = Form(None),
    emergency_contact: Optional[str] = Form(None),
    role: Role = Form(Role.EMPLOYEE),
    documents: List[UploadFile] = File(default=[]),
    onboarding: EmployeeOnboarding = Depends(get_onboarding),
) -> Any:
    """
    Create an employee and upload their documents.

    The employee row is written first, then each document is stored and
    recorded in turn. A failure after the employee row exists is reported as
    a partial write listing the completed steps; nothing is undone.
    """
    try:
        employee = EmployeeCreate(
            full_name=full_name,
            email=email,
            department=department,
            position=position,
            start_date=start_date,
            salary=salary,
            phone=phone,
            address=address,
            emergency_contact=emergency_contact,
            role=role,
        )
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=e.errors(include_url=False, include_context=False),
        )

    uploads = [
        DocumentUpload(name=sanitize_filename(upload.filename), data=await upload.read(), content_type=upload.content_type)
        for upload in documents
    ]
    result = await onboarding.run(employee, uploads)
    return OnboardingResponse(employee=result.employee, documents=result.documents)


@router.patch("/{employee_id}", response_model=EmployeeResponse)
async def update_employee(
    employee_id: str,
    update: EmployeeUpdate,
    service: EmployeeService = Depends(get_employee_service),
) -> Any:
    """Administrators may change anything; employees only their own contact details."""
    return await service.update(employee_id, update)


@router.patch("/{employee_id}/status", response_model=EmployeeResponse)
async def update_employee_status(
    employee_id: str,
    body: EmployeeStatusUpdate,
    service: EmployeeService = Depends(get_employee_service),
) -> Any:
    return await service.set_status(employee_id, body.status)


@router.delete("/{employee_id}", response_model=EmployeeResponse)
async def delete_employee(
    employee_id: str,
    service: EmployeeService = Depends(get_employee_service),
) -> Any:
    return await service.delete(employee_id)
