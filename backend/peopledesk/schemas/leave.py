from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, model_validator

from peopledesk.models.enums import LeaveStatus, LeaveType


class LeaveRequestCreate(BaseModel):
    leave_type: LeaveType
    start_date: date
    end_date: date
    reason: Optional[str] = None

    @model_validator(mode="after")
    def check_date_range(self) -> "LeaveRequestCreate":
        if self.end_date < self.start_date:
            raise ValueError("end_date must be on or after start_date")
        return self


class LeaveRequestResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    employee_id: str
    leave_type: LeaveType
    start_date: date
    end_date: date
    reason: Optional[str] = None
    status: LeaveStatus
    approved_by: Optional[str] = None
    created_at: Optional[datetime] = None


class LeaveRequestView(LeaveRequestResponse):
    """Leave request with the requester and approver names resolved for listing."""
    employee_name: Optional[str] = None
    approver_name: Optional[str] = None


class LeaveCalendarDay(BaseModel):
    day: date
    count: int
    requests: List[LeaveRequestView]
