from typing import Optional

from pydantic import BaseModel, ConfigDict

from peopledesk.models.enums import Role
from peopledesk.store.query import Row


class Identity(BaseModel):
    """
    The resolved application principal.

    Always a projection of the Employee row whose auth_id matches the session.
    is_admin is derived from role and never stored.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    email: str
    full_name: str
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @classmethod
    def from_row(cls, row: Row) -> "Identity":
        return cls(id=row["id"], email=row["email"], full_name=row["full_name"], role=Role(row["role"]))


class IdentityResponse(BaseModel):
    id: str
    email: str
    full_name: str
    role: Role
    is_admin: bool

    @classmethod
    def from_identity(cls, identity: Optional[Identity]) -> Optional["IdentityResponse"]:
        if identity is None:
            return None
        return cls(**identity.model_dump(), is_admin=identity.is_admin)
