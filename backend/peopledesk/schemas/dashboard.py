from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class DashboardMetrics(BaseModel):
    active_employees: int
    active_departments: int
    positions: int
    # Only administrators see payroll
    total_payroll: Optional[float] = None


class Activity(BaseModel):
    id: str
    type: str = "new_hire"
    title: str = "New Employee Hired"
    description: str
    timestamp: Optional[datetime] = None
