from __future__ import annotations


class AppError(ValueError):
    """Base application-level error."""


class NotFoundError(AppError):
    """Referenced record does not exist or was deleted."""


class ValidationError(AppError):
    """Input outside the declared ranges or an unclassifiable combination."""


class InvalidTransitionError(AppError):
    """Requested status is not reachable from the current one."""


class TerminalStateError(InvalidTransitionError):
    """Record is in a terminal status and cannot be changed further."""


class ResourceConflictError(AppError):
    """A shared resource (vehicle) is not available for the operation."""


class VersionConflictError(AppError):
    """Record was changed by another writer after it was read."""
