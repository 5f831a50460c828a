"""
HTTP mapping of the data-access error taxonomy.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from peopledesk.core.exceptions import (
    AccessDenied,
    AuthError,
    InvalidTransition,
    PartialWriteError,
    StoreError,
)

logger = logging.getLogger("peopledesk.api")

STORE_ERROR_STATUS: Dict[str, int] = {
    "not_found": status.HTTP_404_NOT_FOUND,
    "too_large": status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
    "constraint": status.HTTP_409_CONFLICT,
    "unavailable": status.HTTP_503_SERVICE_UNAVAILABLE,
    "feed_unavailable": status.HTTP_503_SERVICE_UNAVAILABLE,
    "store_error": status.HTTP_502_BAD_GATEWAY,
}


class ErrorResponse(BaseModel):
    """Standardized error response format."""
    error: str
    detail: Optional[str] = None
    timestamp: str
    path: Optional[str] = None
    completed_steps: Optional[List[str]] = None
    failed_step: Optional[str] = None
    entity_id: Optional[str] = None


def _respond(request: Request, status_code: int, error: str, detail: str, headers=None, **extra: Any) -> JSONResponse:
    body = ErrorResponse(
        error=error,
        detail=detail,
        timestamp=datetime.now(timezone.utc).isoformat(),
        path=request.url.path,
        **extra,
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True), headers=headers)


async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    return _respond(
        request,
        status.HTTP_401_UNAUTHORIZED,
        "Not authenticated",
        exc.message or "Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


async def access_denied_handler(request: Request, exc: AccessDenied) -> JSONResponse:
    return _respond(request, status.HTTP_403_FORBIDDEN, "Access denied", exc.message)


async def invalid_transition_handler(request: Request, exc: InvalidTransition) -> JSONResponse:
    return _respond(request, status.HTTP_409_CONFLICT, "Invalid transition", exc.message)


async def store_error_handler(request: Request, exc: StoreError) -> JSONResponse:
    status_code = STORE_ERROR_STATUS.get(exc.reason, status.HTTP_400_BAD_REQUEST)
    if status_code >= 500:
        logger.error(f"Store error on {request.url.path}: {exc.message}")
    return _respond(request, status_code, exc.reason, exc.message)


async def partial_write_handler(request: Request, exc: PartialWriteError) -> JSONResponse:
    logger.error(f"Partial write on {request.url.path}: {exc.message}")
    return _respond(
        request,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "Partial write",
        exc.message,
        completed_steps=exc.completed_steps,
        failed_step=exc.failed_step,
        entity_id=exc.entity_id,
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AuthError, auth_error_handler)
    app.add_exception_handler(AccessDenied, access_denied_handler)
    app.add_exception_handler(InvalidTransition, invalid_transition_handler)
    app.add_exception_handler(StoreError, store_error_handler)
    app.add_exception_handler(PartialWriteError, partial_write_handler)
