from typing import Any, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from peopledesk.api.deps import get_department_service
from peopledesk.schemas.department import (
    DepartmentCreate,
    DepartmentResponse,
    DepartmentStatusUpdate,
    DepartmentUpdate,
)
from peopledesk.services.departments import DepartmentService

router = APIRouter()


@router.get("", response_model=List[DepartmentResponse])
async def list_departments(
    search: Optional[str] = None,
    status_filter: str = Query("all", alias="status"),
    service: DepartmentService = Depends(get_department_service),
) -> Any:
    """Departments sorted by name, with live employee counts."""
    return await service.list(search=search, status=status_filter)


@router.get("/{department_id}", response_model=DepartmentResponse)
async def read_department(
    department_id: str,
    service: DepartmentService = Depends(get_department_service),
) -> Any:
    department = await service.get(department_id)
    if department is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Department not found",
        )
    return department


@router.post("", response_model=DepartmentResponse, status_code=status.HTTP_201_CREATED)
async def create_department(
    department: DepartmentCreate,
    service: DepartmentService = Depends(get_department_service),
) -> Any:
    """New departments start active with no employees."""
    return await service.create(department)


@router.patch("/{department_id}", response_model=DepartmentResponse)
async def update_department(
    department_id: str,
    update: DepartmentUpdate,
    service: DepartmentService = Depends(get_department_service),
) -> Any:
    row = await service.update(department_id, update)
    return (await service.with_counts([row]))[0]


@router.patch("/{department_id}/status", response_model=DepartmentResponse)
async def update_department_status(
    department_id: str,
    body: DepartmentStatusUpdate,
    service: DepartmentService = Depends(get_department_service),
) -> Any:
    row = await service.set_status(department_id, body.status)
    return (await service.with_counts([row]))[0]


@router.delete("/{department_id}", response_model=DepartmentResponse)
async def delete_department(
    department_id: str,
    service: DepartmentService = Depends(get_department_service),
) -> Any:
    return await service.delete(department_id)
