from sqlalchemy import Column, String, DateTime, ForeignKey

from peopledesk.db.base_class import Base
from peopledesk.models._columns import new_id, utcnow


class EmployeeDocument(Base):
    """Metadata row for a blob stored in the documents bucket."""
    __tablename__ = "employee_documents"  # type: ignore[assignment]

    id = Column(String(36), primary_key=True, default=new_id)
    employee_id = Column(String(36), ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String, nullable=False)
    file_url = Column(String, nullable=False)
    file_type = Column(String, nullable=False)
    uploaded_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
