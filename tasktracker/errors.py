"""Error kinds raised by the task tracker core.

Every exception carries an ``ErrorKind``. Route handlers let these propagate;
the exception handler registered in ``main.py`` maps the kind to an HTTP
status code, so the mapping lives in exactly one place.
"""
from enum import Enum


class ErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    ALREADY_EXISTS = "already_exists"
    INVALID_ARGUMENT = "invalid_argument"
    INVALID_PASSWORD = "invalid_password"
    UNAUTHORIZED = "unauthorized"
    ROLE_VIOLATION = "role_violation"


class TaskTrackerError(Exception):
    """Base class for every failure surfaced to API callers"""

    kind: ErrorKind = ErrorKind.INVALID_ARGUMENT

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(TaskTrackerError):
    kind = ErrorKind.NOT_FOUND


class UserNotFoundError(NotFoundError):
    pass


class TaskNotFoundError(NotFoundError):
    pass


class StatusNotFoundError(NotFoundError):
    pass


class RoleNotFoundError(NotFoundError):
    pass


class AlreadyExistsError(TaskTrackerError):
    kind = ErrorKind.ALREADY_EXISTS


class InvalidArgumentError(TaskTrackerError):
    kind = ErrorKind.INVALID_ARGUMENT


class InvalidPasswordError(TaskTrackerError):
    kind = ErrorKind.INVALID_PASSWORD


class UnauthorizedError(TaskTrackerError):
    kind = ErrorKind.UNAUTHORIZED


class RoleViolationError(TaskTrackerError):
    kind = ErrorKind.ROLE_VIOLATION


class DuplicateRoleError(RoleViolationError):
    pass


class LastRoleViolationError(RoleViolationError):
    pass


class RoleNotHeldError(RoleViolationError):
    pass
