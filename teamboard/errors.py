"""
Error taxonomy for the team board.

Every failure in the application degrades to "notify and leave state
consistent with before the attempted action"; there is no fatal class.

- ``ValidationError`` blocks an action before any persistence call.
- ``PersistenceError`` wraps a rejection or network failure from the data
  store. Callers roll back optimistic state and surface a notification.
- ``AuthorizationError`` is raised when an admin-only action is attempted
  by a caller without the ``admin`` role.
- ``NotFoundError`` is raised when an intent names an entity that is not
  in the current task list.
"""

from __future__ import annotations


class TeamboardError(Exception):
    """Base class for all application errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(TeamboardError):
    """A required field is missing or a value is out of range."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field


class PersistenceError(TeamboardError):
    """The data store rejected a call or could not be reached."""

    def __init__(
        self,
        message: str,
        *,
        operation: str | None = None,
        status_code: int | None = None,
    ):
        super().__init__(message)
        self.operation = operation
        self.status_code = status_code


class AuthorizationError(TeamboardError):
    """The caller lacks the role required for the action."""


class NotFoundError(TeamboardError):
    """The named task or sub-task is not in the current task list."""
