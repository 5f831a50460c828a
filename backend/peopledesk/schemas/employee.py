from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from peopledesk.models.enums import EmployeeStatus, Role
from peopledesk.schemas.document import DocumentResponse

# Fields an employee may change on their own row
SELF_SERVICE_FIELDS = frozenset({"phone", "address", "emergency_contact"})


class EmployeeBase(BaseModel):
    full_name: str = Field(..., min_length=1)
    email: EmailStr
    department: str = Field(..., min_length=1)
    position: str = Field(..., min_length=1)
    start_date: date
    salary: float = Field(..., ge=0)
    phone: Optional[str] = None
    address: Optional[str] = None
    emergency_contact: Optional[str] = None


class EmployeeCreate(EmployeeBase):
    status: EmployeeStatus = EmployeeStatus.ACTIVE
    role: Role = Role.EMPLOYEE
    auth_id: Optional[str] = None


class EmployeeUpdate(BaseModel):
    full_name: Optional[str] = Field(None, min_length=1)
    email: Optional[EmailStr] = None
    department: Optional[str] = Field(None, min_length=1)
    position: Optional[str] = Field(None, min_length=1)
    start_date: Optional[date] = None
    salary: Optional[float] = Field(None, ge=0)
    phone: Optional[str] = None
    address: Optional[str] = None
    emergency_contact: Optional[str] = None
    role: Optional[Role] = None


class EmployeeStatusUpdate(BaseModel):
    status: EmployeeStatus


class EmployeeResponse(EmployeeBase):
    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    status: EmployeeStatus
    role: Role
    auth_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class OnboardingResponse(BaseModel):
    employee: EmployeeResponse
    documents: List[DocumentResponse] = []
