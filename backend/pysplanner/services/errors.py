"""
Error taxonomy for plan editing, persistence and code generation.

Every failure raised by the core derives from :class:`PlanError` so the
HTTP layer can translate them with a single exception handler.  None of
these are fatal; each one is recoverable by user action.
"""

from __future__ import annotations

from enum import Enum


class PlanError(Exception):
    """Base class for all recoverable planner errors."""

    pass


class ValidationErrorKind(str, Enum):
    """Reason a constructor rejected its input."""

    INVALID_DRIVE_BASE = "InvalidDriveBase"
    EMPTY_NAME = "EmptyName"
    DUPLICATE_MOTOR_PORT = "DuplicateMotorPort"
    NON_POSITIVE_DIMENSION = "NonPositiveDimension"
    INVALID_ACTION = "InvalidAction"
    INVALID_POINT = "InvalidPoint"
    NO_RUNS = "NoRuns"


class ValidationError(PlanError):
    """Raised when a model constructor receives inconsistent input."""

    def __init__(self, kind: ValidationErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind


class IndexOutOfRange(PlanError):
    """Raised when a run, point or action index does not exist."""

    pass


class CapacityExceeded(PlanError):
    """Raised when a run has no room for another point."""

    pass


class CapacityWarning(UserWarning):
    """Emitted when a run crosses the soft point-count threshold."""

    pass


class MalformedDocument(PlanError):
    """Raised when a persisted plan document cannot be loaded."""

    pass


class TemplateUnavailable(PlanError):
    """Raised when a code template cannot be fetched."""

    pass


class PlaceholderNotFound(PlanError):
    """Raised when a template does not contain the placeholder exactly once."""

    pass


class DeliveryFailed(PlanError):
    """Raised when a device channel rejects or fails to send a payload."""

    pass
