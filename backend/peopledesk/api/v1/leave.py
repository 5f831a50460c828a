from datetime import date
from typing import Any, List

from fastapi import APIRouter, Depends, Query, status

from peopledesk.api.deps import get_leave_service
from peopledesk.schemas.leave import LeaveCalendarDay, LeaveRequestCreate, LeaveRequestResponse, LeaveRequestView
from peopledesk.services.leave import LeaveService

router = APIRouter()


@router.get("", response_model=List[LeaveRequestView])
async def list_leave_requests(
    status_filter: str = Query("all", alias="status"),
    service: LeaveService = Depends(get_leave_service),
) -> Any:
    """Newest first. Employees only ever see their own requests."""
    return await service.list(status=status_filter)


@router.get("/calendar", response_model=List[LeaveCalendarDay])
async def leave_calendar(
    start: date,
    end: date,
    status_filter: str = Query("all", alias="status"),
    service: LeaveService = Depends(get_leave_service),
) -> Any:
    """Requests covering each day from start to end inclusive. Days without leave are omitted."""
    return await service.calendar(start, end, status=status_filter)


@router.post("", response_model=LeaveRequestResponse, status_code=status.HTTP_201_CREATED)
async def submit_leave_request(
    request: LeaveRequestCreate,
    service: LeaveService = Depends(get_leave_service),
) -> Any:
    """File a request for the caller. It starts pending."""
    return await service.submit(request)


@router.post("/{request_id}/approve", response_model=LeaveRequestResponse)
async def approve_leave_request(
    request_id: str,
    service: LeaveService = Depends(get_leave_service),
) -> Any:
    return await service.approve(request_id)


@router.post("/{request_id}/reject", response_model=LeaveRequestResponse)
async def reject_leave_request(
    request_id: str,
    service: LeaveService = Depends(get_leave_service),
) -> Any:
    return await service.reject(request_id)
