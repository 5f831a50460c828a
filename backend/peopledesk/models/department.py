from sqlalchemy import Column, String, Integer, DateTime, Text

from peopledesk.db.base_class import Base
from peopledesk.models._columns import new_id, utcnow
from peopledesk.models.enums import DepartmentStatus


class Department(Base):
    __tablename__ = "departments"  # type: ignore[assignment]

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String, nullable=False, unique=True)
    description = Column(Text, nullable=True)
    icon = Column(String, nullable=True)
    status = Column(String, nullable=False, default=DepartmentStatus.ACTIVE.value)
    # Advisory only; readers recompute it from employees.department
    employee_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
