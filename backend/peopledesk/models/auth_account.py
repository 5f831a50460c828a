from sqlalchemy import Column, String, DateTime

from peopledesk.db.base_class import Base
from peopledesk.models._columns import new_id, utcnow


class AuthAccount(Base):
    """Credentials known to the local auth provider. Employees link here through auth_id."""
    __tablename__ = "auth_accounts"

    id = Column(String(36), primary_key=True, default=new_id)
    email = Column(String, unique=True, nullable=False, index=True)
    password_hash = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    last_sign_in_at = Column(DateTime(timezone=True), nullable=True)
