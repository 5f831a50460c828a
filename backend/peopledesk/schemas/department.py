from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from peopledesk.models.enums import DepartmentStatus


class DepartmentCreate(BaseModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    icon: Optional[str] = None


class DepartmentUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    icon: Optional[str] = None


class DepartmentStatusUpdate(BaseModel):
    status: DepartmentStatus


class DepartmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    description: Optional[str] = None
    icon: Optional[str] = None
    status: DepartmentStatus
    employee_count: int = 0
    created_at: Optional[datetime] = None
