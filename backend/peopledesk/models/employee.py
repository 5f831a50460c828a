from sqlalchemy import Column, String, Float, Date, DateTime, Text, Index

from peopledesk.db.base_class import Base
from peopledesk.models._columns import new_id, utcnow
from peopledesk.models.enums import EmployeeStatus, Role


class Employee(Base):
    __tablename__ = "employees"  # type: ignore[assignment]

    id = Column(String(36), primary_key=True, default=new_id)
    full_name = Column(String, nullable=False)
    email = Column(String, nullable=False, unique=True)
    department = Column(String, nullable=False)  # loose reference to Department.name
    position = Column(String, nullable=False)
    start_date = Column(Date, nullable=False)
    salary = Column(Float, nullable=False, default=0)
    phone = Column(String, nullable=True)
    address = Column(Text, nullable=True)
    emergency_contact = Column(String, nullable=True)
    status = Column(String, nullable=False, default=EmployeeStatus.ACTIVE.value)
    role = Column(String, nullable=False, default=Role.EMPLOYEE.value)
    auth_id = Column(String(36), nullable=True, unique=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=utcnow, nullable=True)


Index("ix_employees_department_status", Employee.department, Employee.status)
