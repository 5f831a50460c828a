"""
The controller error boundary.

Data-access failures inside a guarded block become an error notice instead
of propagating into the view. Anything that is not a PeopleDeskError is a bug
and is left to propagate.
"""

from typing import Optional

from peopledesk.controllers.notifier import Notice, Notifier
from peopledesk.core.exceptions import (
    AccessDenied,
    AuthError,
    InvalidTransition,
    PartialWriteError,
    PeopleDeskError,
    StoreError,
)


def describe_error(exc: PeopleDeskError) -> str:
    if isinstance(exc, PartialWriteError):
        completed = ", ".join(exc.completed_steps) or "none"
        return f"{exc.message} (completed: {completed}; failed: {exc.failed_step})"
    if isinstance(exc, AccessDenied):
        return "You do not have permission to do that"
    if isinstance(exc, AuthError):
        return exc.message or "Please sign in again"
    if isinstance(exc, (InvalidTransition, StoreError)):
        return exc.message
    return exc.message or exc.__class__.__name__


class guard:
    """
    Usage:
        async with guard(notifier, "Error fetching leave requests") as g:
            rows = await workflow.list_requests()
        if g.failed:
            return
    """

    def __init__(self, notifier: Notifier, message: str):
        self._notifier = notifier
        self._message = message
        self.error: Optional[PeopleDeskError] = None
        self.notice: Optional[Notice] = None

    @property
    def failed(self) -> bool:
        return self.error is not None

    def _handle(self, exc: Optional[BaseException]) -> bool:
        if not isinstance(exc, PeopleDeskError):
            return False
        self.error = exc
        self.notice = self._notifier.error(self._message, detail=describe_error(exc))
        return True

    def __enter__(self) -> "guard":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        return self._handle(exc)

    async def __aenter__(self) -> "guard":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        return self._handle(exc)
