from typing import Optional

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer

from peopledesk.access.scoped import ScopedStore
from peopledesk.auth.provider import AuthSession
from peopledesk.auth.resolver import lookup_identity
from peopledesk.core.config import settings
from peopledesk.core.exceptions import AccessDenied, AuthError
from peopledesk.runtime import Runtime
from peopledesk.schemas.identity import Identity
from peopledesk.services.dashboard import DashboardService
from peopledesk.services.departments import DepartmentService
from peopledesk.services.employees import EmployeeService
from peopledesk.services.leave import LeaveService
from peopledesk.services.onboarding import EmployeeOnboarding

oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_V1_STR}/auth/login", auto_error=False)


def get_runtime(request: Request) -> Runtime:
    return request.app.state.runtime


async def get_auth_session(
    token: Optional[str] = Depends(oauth2_scheme),
    runtime: Runtime = Depends(get_runtime),
) -> AuthSession:
    """The session behind the bearer token. Raises AuthError when missing or invalid."""
    if not token:
        raise AuthError("Not authenticated")
    return await runtime.auth.session_from_token(token)


async def get_identity(
    session: AuthSession = Depends(get_auth_session),
    runtime: Runtime = Depends(get_runtime),
) -> Identity:
    """
    The identity of the employee linked to the session.

    An authenticated account without an employee record has no access at all.
    """
    identity = await lookup_identity(runtime.store, session.user.id)
    if identity is None:
        raise AccessDenied("No employee record is linked to this account")
    return identity


async def get_scoped_store(
    identity: Identity = Depends(get_identity),
    runtime: Runtime = Depends(get_runtime),
) -> ScopedStore:
    return runtime.scoped(identity)


def get_employee_service(
    scoped: ScopedStore = Depends(get_scoped_store),
    runtime: Runtime = Depends(get_runtime),
) -> EmployeeService:
    return EmployeeService(scoped, runtime.blobs)


def get_department_service(scoped: ScopedStore = Depends(get_scoped_store)) -> DepartmentService:
    return DepartmentService(scoped)


def get_leave_service(scoped: ScopedStore = Depends(get_scoped_store)) -> LeaveService:
    return LeaveService(scoped)


def get_dashboard_service(scoped: ScopedStore = Depends(get_scoped_store)) -> DashboardService:
    return DashboardService(scoped)


def get_onboarding(
    scoped: ScopedStore = Depends(get_scoped_store),
    runtime: Runtime = Depends(get_runtime),
) -> EmployeeOnboarding:
    return EmployeeOnboarding(scoped, runtime.blobs)
