from sqlalchemy import Column, String, Date, DateTime, Text, ForeignKey, CheckConstraint, Index

from peopledesk.db.base_class import Base
from peopledesk.models._columns import new_id, utcnow
from peopledesk.models.enums import LeaveStatus


class LeaveRequest(Base):
    __tablename__ = "leave_requests"  # type: ignore[assignment]

    id = Column(String(36), primary_key=True, default=new_id)
    employee_id = Column(String(36), ForeignKey("employees.id", ondelete="CASCADE"), nullable=False)
    leave_type = Column(String, nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    reason = Column(Text, nullable=True)
    status = Column(String, nullable=False, default=LeaveStatus.PENDING.value)
    approved_by = Column(String(36), ForeignKey("employees.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint("end_date >= start_date", name="ck_leave_requests_date_range"),
        Index("ix_leave_requests_employee_created", "employee_id", "created_at"),
    )
