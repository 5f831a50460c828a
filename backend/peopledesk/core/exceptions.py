"""
Error taxonomy for the data-access layer.

Everything raised across the store, auth, access and workflow boundaries derives
from PeopleDeskError so view controllers and the HTTP surface can catch one type.
"""

from typing import List, Optional


class PeopleDeskError(Exception):
    """Base class for all data-access errors."""

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


class AuthError(PeopleDeskError):
    """Bad credentials, invalid or expired token, or no session."""


class AccessDenied(PeopleDeskError):
    """The access filter refused the operation before it reached the store."""

    def __init__(self, message: str = "Access denied", *, collection: Optional[str] = None, action: Optional[str] = None):
        super().__init__(message)
        self.collection = collection
        self.action = action


class InvalidTransition(PeopleDeskError):
    """A leave request is already in a terminal state."""

    def __init__(self, current: str, target: str):
        super().__init__(f"Cannot move leave request from '{current}' to '{target}'")
        self.current = current
        self.target = target


class StoreError(PeopleDeskError):
    """Network, validation or constraint failure reported by the store."""

    def __init__(self, message: str, reason: str = "store_error"):
        super().__init__(message)
        self.reason = reason


class PartialWriteError(PeopleDeskError):
    """
    A multi-step write failed part way through.

    Earlier steps are NOT rolled back; completed_steps lists them in order so the
    caller can report exactly what exists.
    """

    def __init__(
        self,
        message: str,
        *,
        completed_steps: List[str],
        failed_step: str,
        entity_id: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.completed_steps = list(completed_steps)
        self.failed_step = failed_step
        self.entity_id = entity_id
        self.cause = cause

    @property
    def last_completed_step(self) -> Optional[str]:
        return self.completed_steps[-1] if self.completed_steps else None
