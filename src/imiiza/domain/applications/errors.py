"""Exceptions raised by the application workflow."""

from typing import Optional


class ApplicationError(Exception):
    """Base class for application workflow errors."""
    pass


class ApplicationNotFoundError(ApplicationError):
    """Raised when an application id does not resolve to a stored application."""

    def __init__(self, application_id):
        self.application_id = application_id
        super().__init__(f"Application {application_id} not found")


class ApplicationValidationError(ApplicationError):
    """Raised when a request violates a workflow rule.

    Attributes:
        field: Name of the offending input, when there is one
    """

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(message)


class UnknownStatusError(ApplicationValidationError):
    """Raised when a status string is not in the status catalog."""

    def __init__(self, status):
        self.status = status
        super().__init__(f"Unknown application status: {status!r}", field="status")


class ApplicationAlreadyAssignedError(ApplicationError):
    """Raised when an agent tries to accept an application that already has one."""
    pass


class ConcurrentUpdateError(ApplicationError):
    """Raised when the application changed between read and write."""

    def __init__(self, application_id):
        self.application_id = application_id
        super().__init__(
            f"Application {application_id} was modified by another request. "
            "Reload it and try again."
        )
