from typing import Any

from fastapi import APIRouter, Depends, status

from peopledesk.api.deps import get_auth_session, get_identity, get_runtime
from peopledesk.auth.provider import AuthSession
from peopledesk.auth.resolver import lookup_identity
from peopledesk.core.exceptions import AccessDenied
from peopledesk.runtime import Runtime
from peopledesk.schemas.identity import Identity, IdentityResponse
from peopledesk.schemas.token import LoginRequest, LoginResponse

router = APIRouter()


@router.post("/login", response_model=LoginResponse)
async def login(
    login_data: LoginRequest,
    runtime: Runtime = Depends(get_runtime),
) -> Any:
    """
    Exchange email and password for a bearer token.

    Accounts that are not linked to an employee record are refused with 403:
    being authenticated grants nothing by itself.
    """
    provider = runtime.new_auth_provider()
    session = await provider.sign_in(login_data.email, login_data.password)
    identity = await lookup_identity(runtime.store, session.user.id)
    if identity is None:
        await provider.revoke(session)
        raise AccessDenied("No employee record is linked to this account")
    return LoginResponse(
        access_token=session.access_token,
        expires_in=session.expires_in,
        user=IdentityResponse.from_identity(identity),
    )


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    session: AuthSession = Depends(get_auth_session),
    runtime: Runtime = Depends(get_runtime),
) -> None:
    """Revoke the current bearer token."""
    await runtime.auth.revoke(session)


@router.get("/me", response_model=IdentityResponse)
async def read_me(identity: Identity = Depends(get_identity)) -> Any:
    return IdentityResponse.from_identity(identity)
